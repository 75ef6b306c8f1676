import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from expense_tracker.config import settings

OTP_LENGTH = settings.otp_length

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_PHONE_PATTERN = re.compile(r"^\+?[0-9]+$")
NAME_MAX_LENGTH = 100


def normalize_phone(value: str) -> str:
    """Validate a mobile number and return it in E.164 form (``+`` and digits).

    Numbers with a leading ``+`` are taken as already carrying their country
    code. A bare 10-digit national number gets ``DEFAULT_COUNTRY_CODE``.
    """
    cleaned = _PHONE_SEPARATORS.sub("", value.strip())
    if not _PHONE_PATTERN.match(cleaned):
        raise ValueError("Valid phone number is required")
    if cleaned.startswith("+"):
        digits = cleaned[1:]
    else:
        if len(cleaned) != 10 or cleaned.startswith("0"):
            raise ValueError("Valid phone number is required")
        default_code = re.sub(r"\D", "", settings.default_country_code)
        if not default_code:
            raise ValueError("Default country code is not configured")
        digits = f"{default_code}{cleaned}"
    if len(digits) < 8 or len(digits) > 15 or digits.startswith("0"):
        raise ValueError("Valid phone number is required")
    return f"+{digits}"


@dataclass(frozen=True)
class Challenge:
    code: str
    expires_at: datetime


class OtpRequest(BaseModel):
    phone: str
    name: str = Field(max_length=NAME_MAX_LENGTH)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return normalize_phone(value)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Name is required")
        return cleaned


class OtpResponse(BaseModel):
    success: bool = True
    message: str
    otp: Optional[str] = None


class OtpVerifyRequest(BaseModel):
    phone: str
    otp: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return normalize_phone(value)

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) != OTP_LENGTH:
            raise ValueError(f"OTP must be {OTP_LENGTH} digits")
        return cleaned


class VerifiedUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    phone: str
    is_verified: bool


class OtpVerifyResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: VerifiedUser
