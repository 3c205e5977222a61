import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./medbook.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

SMTP_HOST = os.getenv("SMTP_HOST", "smtp.ethereal.email")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _get_bool(os.getenv("SMTP_USE_TLS"), default=True)
SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))
EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@medicalbooking.com")

NOTIFICATIONS_ENABLED = _get_bool(os.getenv("NOTIFICATIONS_ENABLED"), default=True)
NOTIFICATION_WORKERS = int(os.getenv("NOTIFICATION_WORKERS", "2"))

CALENDAR_DEFAULT_DAYS = int(os.getenv("CALENDAR_DEFAULT_DAYS", "30"))


@dataclass(frozen=True)
class JwtSettings:
    secret_key: str
    algorithm: str
    expires_minutes: int

    @classmethod
    def from_env(cls) -> "JwtSettings":
        return cls(
            secret_key=JWT_SECRET_KEY,
            algorithm=JWT_ALGORITHM,
            expires_minutes=JWT_EXPIRES_MINUTES,
        )


@dataclass(frozen=True)
class MailSettings:
    host: str
    port: int
    username: str
    password: str
    use_tls: bool
    timeout_seconds: float
    sender: str
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "MailSettings":
        return cls(
            host=SMTP_HOST,
            port=SMTP_PORT,
            username=SMTP_USER,
            password=SMTP_PASSWORD,
            use_tls=SMTP_USE_TLS,
            timeout_seconds=SMTP_TIMEOUT_SECONDS,
            sender=EMAIL_FROM,
            enabled=NOTIFICATIONS_ENABLED,
        )


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
