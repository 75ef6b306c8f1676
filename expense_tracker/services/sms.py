from __future__ import annotations

import logging
import re
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from expense_tracker.config import settings

LOGGER = logging.getLogger(__name__)


class SmsSendError(RuntimeError):
    pass


def send_otp_sms(to_phone: str, code: str) -> None:
    auth_key = settings.sms_auth_key
    if not auth_key:
        raise SmsSendError("SMS gateway is not configured")

    country_code, mobile = _split_phone(to_phone)
    query = urlencode(
        {
            "authkey": auth_key,
            "sms": _build_body(code, settings.otp_ttl_seconds),
            "mobile": mobile,
            "country_code": country_code,
            "sender": settings.sms_sender_id,
        }
    )
    LOGGER.info("Sending OTP SMS to=%s%s", country_code, _mask(mobile))
    request = Request(f"{settings.sms_api_url}?{query}", method="GET")
    try:
        with urlopen(request, timeout=10) as response:
            response.read()
    except HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        LOGGER.error(
            "SMS gateway error to=%s%s response=%s",
            country_code,
            _mask(mobile),
            error_body,
        )
        raise SmsSendError("Failed to send OTP SMS") from exc
    except URLError as exc:
        raise SmsSendError("Failed to reach SMS gateway") from exc


def deliver_otp(to_phone: str, code: str) -> None:
    """Best-effort delivery. A failed send is logged and never surfaces to the client."""
    try:
        send_otp_sms(to_phone, code)
    except SmsSendError as exc:
        LOGGER.warning("OTP delivery to %s failed: %s", _mask(to_phone), exc)


def get_otp_sender():
    return deliver_otp


# ITU-T E.164 country codes are prefix-free: 1 and 7 are the only one-digit
# codes, these are the two-digit ones, and every other code has three digits.
_ONE_DIGIT_CODES = frozenset({"1", "7"})
_TWO_DIGIT_CODES = frozenset(
    {
        "20", "27", "30", "31", "32", "33", "34", "36", "39", "40", "41",
        "43", "44", "45", "46", "47", "48", "49", "51", "52", "53", "54",
        "55", "56", "57", "58", "60", "61", "62", "63", "64", "65", "66",
        "81", "82", "84", "86", "90", "91", "92", "93", "94", "95", "98",
    }
)


def _split_phone(phone_number: str) -> tuple[str, str]:
    """Split an E.164 number into its ``+country`` code and national number."""
    raw = phone_number.strip()
    digits = re.sub(r"\D", "", raw)
    if not digits:
        raise SmsSendError("Phone number is missing")
    if not raw.startswith("+"):
        raise SmsSendError("Phone number must be in E.164 form")
    if digits[:1] in _ONE_DIGIT_CODES:
        code_length = 1
    elif digits[:2] in _TWO_DIGIT_CODES:
        code_length = 2
    else:
        code_length = 3
    national = digits[code_length:]
    if len(national) < 4:
        raise SmsSendError("Phone number is too short")
    return f"+{digits[:code_length]}", national


def _mask(phone_number: str) -> str:
    return "*" * max(0, len(phone_number) - 4) + phone_number[-4:]


def _build_body(code: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return (
        f"Your expense tracker OTP code is {code}."
        f" It expires in {minutes} minute(s)."
    )
