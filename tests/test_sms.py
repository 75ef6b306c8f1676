"""Tests for OTP delivery through the SMS gateway (network calls are faked)"""
import logging
from dataclasses import replace
from urllib.error import URLError
from urllib.parse import parse_qs, urlsplit

import pytest

from expense_tracker.schemas.otp import normalize_phone
from expense_tracker.services import sms
from expense_tracker.services.sms import SmsSendError, deliver_otp, send_otp_sms


class _FakeResponse:
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def read(self):
        return b"{}"


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(
        sms,
        "settings",
        replace(
            sms.settings,
            sms_auth_key="key-123",
            sms_sender_id="13616",
            sms_api_url="https://sms.example.test/request",
        ),
    )


class TestSendOtpSms:
    def test_builds_gateway_request(self, configured, monkeypatch):
        captured = []

        def fake_urlopen(request, timeout):
            captured.append(request)
            return _FakeResponse()

        monkeypatch.setattr(sms, "urlopen", fake_urlopen)
        send_otp_sms("+91 98765 43210", "012345")

        url = urlsplit(captured[0].full_url)
        query = parse_qs(url.query)
        assert url.netloc == "sms.example.test"
        assert query["authkey"] == ["key-123"]
        assert query["mobile"] == ["9876543210"]
        assert query["country_code"] == ["+91"]
        assert query["sender"] == ["13616"]
        assert "012345" in query["sms"][0]

    @pytest.mark.parametrize(
        "raw_phone, country_code, mobile",
        [
            ("9123456789", "+91", "9123456789"),
            ("+919123456789", "+91", "9123456789"),
            ("+15551234567", "+1", "5551234567"),
            ("+44 7911 123456", "+44", "7911123456"),
            ("+353 85 123 4567", "+353", "851234567"),
        ],
    )
    def test_sends_to_the_number_the_user_entered(
        self, configured, monkeypatch, raw_phone, country_code, mobile
    ):
        captured = []

        def fake_urlopen(request, timeout):
            captured.append(request)
            return _FakeResponse()

        monkeypatch.setattr(sms, "urlopen", fake_urlopen)
        send_otp_sms(normalize_phone(raw_phone), "123456")

        query = parse_qs(urlsplit(captured[0].full_url).query)
        assert query["country_code"] == [country_code]
        assert query["mobile"] == [mobile]

    def test_rejects_number_without_country_code(self, configured):
        with pytest.raises(SmsSendError, match="E.164"):
            send_otp_sms("9123456789", "123456")

    def test_requires_auth_key(self, monkeypatch):
        monkeypatch.setattr(sms, "settings", replace(sms.settings, sms_auth_key=""))
        with pytest.raises(SmsSendError, match="not configured"):
            send_otp_sms("+919876543210", "123456")

    def test_unreachable_gateway(self, configured, monkeypatch):
        def fake_urlopen(request, timeout):
            raise URLError("connection refused")

        monkeypatch.setattr(sms, "urlopen", fake_urlopen)
        with pytest.raises(SmsSendError, match="Failed to reach"):
            send_otp_sms("+919876543210", "123456")


class TestDeliverOtp:
    def test_failure_is_logged_not_raised(self, monkeypatch, caplog):
        monkeypatch.setattr(sms, "settings", replace(sms.settings, sms_auth_key=""))
        with caplog.at_level(logging.WARNING, logger="expense_tracker.services.sms"):
            deliver_otp("+919876543210", "123456")
        assert "OTP delivery" in caplog.text
        assert "123456" not in caplog.text
