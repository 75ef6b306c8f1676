from datetime import datetime, timedelta, timezone
import secrets

from expense_tracker.config import settings
from expense_tracker.schemas.otp import Challenge
from expense_tracker.schemas.users import UserRecord


class OtpService:
    def __init__(self, ttl_seconds: int, code_length: int) -> None:
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def generate(self, now: datetime | None = None) -> Challenge:
        now = now or datetime.now(timezone.utc)
        return Challenge(
            code=self._generate_code(),
            expires_at=now + timedelta(seconds=self._ttl_seconds),
        )

    def verify(self, user: UserRecord, code: str, now: datetime | None = None) -> bool:
        challenge = user.challenge
        if challenge is None or not challenge.code or challenge.expires_at is None:
            return False
        if not secrets.compare_digest(
            challenge.code.encode("utf-8"), code.strip().encode("utf-8")
        ):
            return False
        now = now or datetime.now(timezone.utc)
        return now < challenge.expires_at

    def _generate_code(self) -> str:
        value = secrets.randbelow(10**self._code_length)
        return str(value).zfill(self._code_length)


otp_service = OtpService(settings.otp_ttl_seconds, settings.otp_length)
