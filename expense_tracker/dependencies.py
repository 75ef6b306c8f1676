"""Bearer-token access gate.

Protected routers declare `Depends(get_current_user)` to require a verified
identity; `/auth/me` uses the token half, `get_token_subject`, on its own.
"""
import logging

from fastapi import Depends, Header, Request

from expense_tracker.errors import AuthError
from expense_tracker.schemas.tokens import TokenError
from expense_tracker.schemas.users import UserRecord
from expense_tracker.services.tokens import decode_access_token
from expense_tracker.services.users import UserStore, get_user_store

LOGGER = logging.getLogger(__name__)

NOT_AUTHORIZED = "Not authorized to access this route"


def get_token_subject(authorization: str | None = Header(default=None)) -> str:
    """Validate the bearer token and return the identity id it carries."""
    if not authorization:
        raise AuthError(NOT_AUTHORIZED)
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthError(NOT_AUTHORIZED)
    try:
        access_data = decode_access_token(token)
    except TokenError as exc:
        LOGGER.info("Rejected bearer token: %s", exc)
        raise AuthError(NOT_AUTHORIZED) from exc
    return access_data.user_id


def get_current_user(
    request: Request,
    user_id: str = Depends(get_token_subject),
    store: UserStore = Depends(get_user_store),
) -> UserRecord:
    """Resolve the authenticated identity and expose it as ``request.state.user``."""
    user = store.get(user_id)
    if user is None:
        LOGGER.info("Token subject %s no longer exists", user_id)
        raise AuthError(NOT_AUTHORIZED)
    request.state.user = user
    return user
