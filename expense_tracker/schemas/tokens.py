from dataclasses import dataclass
from datetime import datetime


class TokenError(ValueError):
    pass


@dataclass(frozen=True)
class AccessTokenData:
    user_id: str
    issued_at: datetime
    expires_at: datetime
