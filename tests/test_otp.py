"""Tests for challenge generation and verification"""
from datetime import datetime, timedelta, timezone

import pytest

from expense_tracker.schemas.otp import Challenge, normalize_phone
from expense_tracker.schemas.users import UserRecord
from expense_tracker.services.otp import OtpService

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _user(challenge=None) -> UserRecord:
    return UserRecord(id="abc", phone="+15551234567", created_at=NOW, challenge=challenge)


class TestGenerate:
    def test_code_is_six_digits(self):
        service = OtpService(ttl_seconds=600, code_length=6)
        for _ in range(200):
            code = service.generate().code
            assert len(code) == 6
            assert code.isdigit()
            assert "000000" <= code <= "999999"

    def test_leading_zeros_are_kept(self, monkeypatch):
        monkeypatch.setattr("expense_tracker.services.otp.secrets.randbelow", lambda n: 42)
        service = OtpService(ttl_seconds=600, code_length=6)
        assert service.generate().code == "000042"

    def test_expiry_is_ten_minutes_after_generation(self):
        service = OtpService(ttl_seconds=600, code_length=6)
        challenge = service.generate(now=NOW)
        assert challenge.expires_at == NOW + timedelta(minutes=10)
        assert challenge.expires_at > NOW


class TestVerify:
    service = OtpService(ttl_seconds=600, code_length=6)

    def test_matching_code_before_expiry(self):
        user = _user(Challenge(code="123456", expires_at=NOW + timedelta(minutes=10)))
        assert self.service.verify(user, "123456", now=NOW) is True

    def test_no_outstanding_challenge(self):
        assert self.service.verify(_user(), "123456", now=NOW) is False

    def test_wrong_code(self):
        user = _user(Challenge(code="123456", expires_at=NOW + timedelta(minutes=10)))
        assert self.service.verify(user, "654321", now=NOW) is False

    def test_expired_code(self):
        user = _user(Challenge(code="123456", expires_at=NOW + timedelta(minutes=10)))
        assert self.service.verify(user, "123456", now=NOW + timedelta(minutes=11)) is False

    def test_code_rejected_exactly_at_expiry(self):
        expires_at = NOW + timedelta(minutes=10)
        user = _user(Challenge(code="123456", expires_at=expires_at))
        assert self.service.verify(user, "123456", now=expires_at) is False

    def test_non_ascii_code_is_rejected(self):
        user = _user(Challenge(code="123456", expires_at=NOW + timedelta(minutes=10)))
        assert self.service.verify(user, "12345٦", now=NOW) is False

    def test_surrounding_whitespace_is_ignored(self):
        user = _user(Challenge(code="123456", expires_at=NOW + timedelta(minutes=10)))
        assert self.service.verify(user, " 123456 ", now=NOW) is True


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("+15551234567", "+15551234567"),
            ("+1 (555) 123-4567", "+15551234567"),
            ("9123456789", "+919123456789"),
            ("912-345-6789", "+919123456789"),
            ("+44 7911 123456", "+447911123456"),
        ],
    )
    def test_returns_e164(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["", "12ab", "15551234567", "0123456789", "912345678", "+0123456789", "+1234567", "+1234567890123456"],
    )
    def test_rejects_implausible_numbers(self, raw):
        with pytest.raises(ValueError):
            normalize_phone(raw)
