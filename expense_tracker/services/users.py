from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
import logging
import threading
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from expense_tracker.config import settings
from expense_tracker.database import session_scope
from expense_tracker.models.user import UserEntry
from expense_tracker.schemas.otp import Challenge
from expense_tracker.schemas.users import UserRecord

LOGGER = logging.getLogger(__name__)

_UNSET = object()


def _new_user_id() -> str:
    return uuid.uuid4().hex


def _normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    cleaned = email.strip().lower()
    return cleaned or None


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class UserStore(ABC):
    """Persistence contract for identities.

    Both backends return immutable ``UserRecord`` snapshots; callers write
    changes back through ``update``. There is no versioning, so two
    concurrent read-modify-write sequences on one identity resolve as last
    write wins.
    """

    @abstractmethod
    def find_by_phone(self, phone: str) -> UserRecord | None:
        ...

    @abstractmethod
    def get(self, user_id: str) -> UserRecord | None:
        ...

    @abstractmethod
    def create(
        self,
        phone: str,
        name: str | None = None,
        email: str | None = None,
        challenge: Challenge | None = None,
    ) -> UserRecord:
        """Insert a new identity. Raises ``ValueError`` on a duplicate phone or email."""

    @abstractmethod
    def update(self, user_id: str, **values) -> UserRecord | None:
        """Apply ``name``/``email``/``is_verified``/``challenge`` changes.

        Returns the updated record, or ``None`` when the identity is unknown.
        Passing ``challenge=None`` clears the outstanding challenge.
        """

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        ...

    @abstractmethod
    def count(self) -> int:
        ...


_UPDATABLE_FIELDS = frozenset({"name", "email", "is_verified", "challenge"})


def _check_fields(values: dict) -> None:
    unknown = set(values) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"UserRecord has no updatable field(s) {sorted(unknown)}")


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._records: list[UserRecord] = []
        self._lock = threading.Lock()

    def find_by_phone(self, phone: str) -> UserRecord | None:
        with self._lock:
            return next((r for r in self._records if r.phone == phone), None)

    def get(self, user_id: str) -> UserRecord | None:
        with self._lock:
            return next((r for r in self._records if r.id == user_id), None)

    def create(self, phone, name=None, email=None, challenge=None) -> UserRecord:
        email = _normalize_email(email)
        with self._lock:
            if any(r.phone == phone for r in self._records):
                raise ValueError("Phone number already in use")
            if email and any(r.email == email for r in self._records):
                raise ValueError("Email already in use")
            record = UserRecord(
                id=_new_user_id(),
                phone=phone,
                name=name,
                email=email,
                is_verified=False,
                challenge=challenge,
                created_at=datetime.now(timezone.utc),
            )
            self._records.append(record)
            return record

    def update(self, user_id: str, **values) -> UserRecord | None:
        _check_fields(values)
        if "email" in values:
            values["email"] = _normalize_email(values["email"])
        with self._lock:
            for index, record in enumerate(self._records):
                if record.id != user_id:
                    continue
                email = values.get("email")
                if email and any(
                    r.email == email and r.id != user_id for r in self._records
                ):
                    raise ValueError("Email already in use")
                updated = replace(record, **values)
                self._records[index] = updated
                return updated
        return None

    def delete(self, user_id: str) -> bool:
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.id != user_id]
            return len(self._records) < before

    def count(self) -> int:
        with self._lock:
            return len(self._records)


class SqlUserStore(UserStore):
    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._session_factory = session_factory

    def find_by_phone(self, phone: str) -> UserRecord | None:
        with session_scope(self._session_factory) as session:
            entry = session.execute(
                select(UserEntry).where(UserEntry.phone == phone)
            ).scalar_one_or_none()
            return self._to_record(entry) if entry else None

    def get(self, user_id: str) -> UserRecord | None:
        with session_scope(self._session_factory) as session:
            entry = session.get(UserEntry, user_id)
            return self._to_record(entry) if entry else None

    def create(self, phone, name=None, email=None, challenge=None) -> UserRecord:
        email = _normalize_email(email)
        with session_scope(self._session_factory) as session:
            existing_phone = session.execute(
                select(UserEntry).where(UserEntry.phone == phone)
            ).scalar_one_or_none()
            if existing_phone:
                raise ValueError("Phone number already in use")
            if email:
                existing = session.execute(
                    select(UserEntry).where(UserEntry.email == email)
                ).scalar_one_or_none()
                if existing:
                    raise ValueError("Email already in use")
            entry = UserEntry(
                id=_new_user_id(),
                phone=phone,
                name=name,
                email=email,
                is_verified=False,
                otp_code=challenge.code if challenge else None,
                otp_expires_at=challenge.expires_at if challenge else None,
                created_at=datetime.now(timezone.utc),
            )
            session.add(entry)
            session.flush()
            return self._to_record(entry)

    def update(self, user_id: str, **values) -> UserRecord | None:
        _check_fields(values)
        with session_scope(self._session_factory) as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                return None
            if "name" in values:
                entry.name = values["name"]
            if "email" in values:
                email = _normalize_email(values["email"])
                if email and email != entry.email:
                    existing = session.execute(
                        select(UserEntry).where(UserEntry.email == email)
                    ).scalar_one_or_none()
                    if existing and existing.id != user_id:
                        raise ValueError("Email already in use")
                entry.email = email
            if "is_verified" in values:
                entry.is_verified = bool(values["is_verified"])
            challenge = values.get("challenge", _UNSET)
            if challenge is None:
                entry.otp_code = None
                entry.otp_expires_at = None
            elif challenge is not _UNSET:
                entry.otp_code = challenge.code
                entry.otp_expires_at = challenge.expires_at
            session.flush()
            return self._to_record(entry)

    def delete(self, user_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                return False
            session.delete(entry)
            return True

    def count(self) -> int:
        with session_scope(self._session_factory) as session:
            return session.execute(select(func.count()).select_from(UserEntry)).scalar_one()

    def _to_record(self, entry: UserEntry) -> UserRecord:
        challenge = None
        if entry.otp_code and entry.otp_expires_at:
            challenge = Challenge(
                code=entry.otp_code, expires_at=_as_utc(entry.otp_expires_at)
            )
        return UserRecord(
            id=entry.id,
            phone=entry.phone,
            name=entry.name,
            email=entry.email,
            is_verified=bool(entry.is_verified),
            challenge=challenge,
            created_at=_as_utc(entry.created_at),
        )


def build_user_store(backend: str) -> UserStore:
    if backend == "memory":
        LOGGER.warning("Using the in-memory user store; identities are not persisted")
        return InMemoryUserStore()
    if backend == "sql":
        return SqlUserStore()
    raise ValueError(f"Unknown user store backend '{backend}'")


user_store = build_user_store(settings.user_store_backend)


def get_user_store() -> UserStore:
    return user_store
