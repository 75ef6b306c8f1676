import logging

from fastapi import status

from expense_tracker.config import settings
from expense_tracker.errors import AuthError
from expense_tracker.schemas.otp import Challenge
from expense_tracker.schemas.users import UserRecord
from expense_tracker.services.otp import otp_service
from expense_tracker.services.tokens import create_access_token
from expense_tracker.services.users import UserStore

LOGGER = logging.getLogger(__name__)


def issue_challenge(
    store: UserStore, phone: str, name: str | None
) -> tuple[UserRecord, Challenge]:
    """Find or create the identity for ``phone`` and give it a fresh challenge.

    Any previously outstanding code for the identity stops being valid.
    """
    challenge = otp_service.generate()
    user = store.find_by_phone(phone)
    if user is None:
        user = store.create(phone=phone, name=name, challenge=challenge)
        LOGGER.info("Created identity %s on first OTP request", user.id)
    else:
        values = {"challenge": challenge}
        if name:
            values["name"] = name
        user = store.update(user.id, **values)
        if user is None:
            raise LookupError(f"Identity for {phone} vanished during OTP request")
    if settings.otp_debug:
        LOGGER.info("OTP for %s: %s", phone, challenge.code)
    return user, challenge


def confirm_challenge(store: UserStore, phone: str, code: str) -> tuple[UserRecord, str]:
    """Check ``code`` against the outstanding challenge and mint a session token.

    A successful check marks the identity verified and consumes the challenge,
    so the same code cannot be used twice.
    """
    user = store.find_by_phone(phone)
    if user is None:
        raise AuthError("User not found", status_code=status.HTTP_400_BAD_REQUEST)
    if not otp_service.verify(user, code):
        raise AuthError(
            "Invalid or expired OTP", status_code=status.HTTP_400_BAD_REQUEST
        )
    token = create_access_token(user.id)
    user = store.update(user.id, is_verified=True, challenge=None)
    if user is None:
        raise AuthError("User not found", status_code=status.HTTP_400_BAD_REQUEST)
    LOGGER.info("Identity %s verified", user.id)
    return user, token
