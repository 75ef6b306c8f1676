from sqlalchemy import Boolean, Column, DateTime, String

from expense_tracker.database import Base
from expense_tracker.schemas.otp import NAME_MAX_LENGTH


class UserEntry(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=True)
    # NULLs never collide, so uniqueness only applies to supplied emails.
    email = Column(String(255), nullable=True, unique=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    otp_code = Column(String(10), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
