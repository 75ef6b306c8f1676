import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", os.getenv("ALGORITHM", "HS256"))
    jwt_expire_days: int = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
    otp_length: int = int(os.getenv("OTP_LENGTH", "6"))
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "600"))
    # Echoes the code in the request-otp response. Never enable in production.
    otp_debug: bool = _env_bool("OTP_DEBUG", False)
    database_url: str = os.getenv(
        "DATABASE_URL", os.getenv("URI", "sqlite:///./expense_tracker.db")
    )
    user_store_backend: str = os.getenv("USER_STORE", "sql").strip().lower()
    sms_auth_key: str = os.getenv("SMS_AUTH_KEY", os.getenv("AUTH_KEY", ""))
    sms_api_url: str = os.getenv("SMS_API_URL", "https://console.authkey.io/request")
    sms_sender_id: str = os.getenv("SMS_SENDER_ID", "13616")
    # Prepended to bare 10-digit numbers; anything else must arrive in E.164 form.
    default_country_code: str = os.getenv(
        "DEFAULT_COUNTRY_CODE", os.getenv("SMS_COUNTRY_CODE", "+91")
    )
    cors_origins: tuple[str, ...] = _env_list("CORS_ORIGINS", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
