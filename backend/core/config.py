import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


load_dotenv()


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./patient_portal.db")

CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")

CORS_ALLOWED_ORIGINS = _get_list(
    os.getenv("CORS_ALLOWED_ORIGINS"),
    default=["http://localhost:5173"],
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_clinic_timezone() -> ZoneInfo:
    return ZoneInfo(CLINIC_TIMEZONE)


def validate_runtime_config() -> None:
    try:
        get_clinic_timezone()
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"CLINIC_TIMEZONE '{CLINIC_TIMEZONE}' is not a known timezone.") from exc

    if APP_ENV.lower() == "production" and DATABASE_URL.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at Postgres in production.")
