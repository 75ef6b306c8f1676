import logging
from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends

from expense_tracker.config import settings
from expense_tracker.dependencies import get_token_subject
from expense_tracker.errors import ApiError, InternalError, NotFoundError
from expense_tracker.schemas.otp import (
    OtpRequest,
    OtpResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
    VerifiedUser,
)
from expense_tracker.schemas.users import UserEnvelope, UserResponse
from expense_tracker.services.auth import confirm_challenge, issue_challenge
from expense_tracker.services.sms import get_otp_sender
from expense_tracker.services.users import UserStore, get_user_store

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/request-otp", response_model=OtpResponse, response_model_exclude_none=True)
def request_otp(
    payload: OtpRequest,
    background_tasks: BackgroundTasks,
    store: UserStore = Depends(get_user_store),
    send_otp: Callable[[str, str], None] = Depends(get_otp_sender),
) -> OtpResponse:
    """Request OTP for login/registration."""
    try:
        user, challenge = issue_challenge(store, payload.phone, payload.name)
    except ApiError:
        raise
    except Exception as exc:
        LOGGER.exception("Error requesting OTP")
        raise InternalError("Error requesting OTP") from exc
    background_tasks.add_task(send_otp, user.phone, challenge.code)
    return OtpResponse(
        message="OTP sent successfully",
        otp=challenge.code if settings.otp_debug else None,
    )


@router.post("/verify-otp", response_model=OtpVerifyResponse)
def verify_otp(
    payload: OtpVerifyRequest, store: UserStore = Depends(get_user_store)
) -> OtpVerifyResponse:
    """Verify OTP for authentication."""
    try:
        user, token = confirm_challenge(store, payload.phone, payload.otp)
    except ApiError:
        raise
    except Exception as exc:
        LOGGER.exception("Error verifying OTP")
        raise InternalError("Error verifying OTP") from exc
    return OtpVerifyResponse(
        message="OTP verified successfully",
        token=token,
        user=VerifiedUser(id=user.id, phone=user.phone, is_verified=user.is_verified),
    )


@router.get("/me", response_model=UserEnvelope)
def get_me(
    user_id: str = Depends(get_token_subject),
    store: UserStore = Depends(get_user_store),
) -> UserEnvelope:
    try:
        user = store.get(user_id)
    except Exception as exc:
        LOGGER.exception("Error getting user")
        raise InternalError("Error getting user") from exc
    if user is None:
        raise NotFoundError("User not found")
    return UserEnvelope(data=UserResponse.from_record(user))
