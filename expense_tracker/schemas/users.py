from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from expense_tracker.schemas.otp import Challenge


@dataclass(frozen=True)
class UserRecord:
    id: str
    phone: str
    created_at: datetime
    name: Optional[str] = None
    email: Optional[str] = None
    is_verified: bool = False
    challenge: Optional[Challenge] = None


class UserResponse(BaseModel):
    """Public view of an identity. The outstanding challenge is never exposed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    phone: str
    name: Optional[str] = None
    email: Optional[str] = None
    is_verified: bool = False
    created_at: datetime

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserResponse":
        return cls(
            id=record.id,
            phone=record.phone,
            name=record.name,
            email=record.email,
            is_verified=record.is_verified,
            created_at=record.created_at,
        )


class UserEnvelope(BaseModel):
    success: bool = True
    data: UserResponse
