import os

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

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

DEFAULT_APPOINTMENT_DURATION_MINUTES = 15
QUERY_TIMEOUT_SECONDS = float(os.getenv("QUERY_TIMEOUT_SECONDS", "10"))

REMINDER_ENABLED = _get_bool(os.getenv("REMINDER_ENABLED"), default=True)
REMINDER_LEAD_MINUTES = int(os.getenv("REMINDER_LEAD_MINUTES", "10"))
REMINDER_POLL_SECONDS = float(os.getenv("REMINDER_POLL_SECONDS", "30"))
REMINDER_BATCH_SIZE = int(os.getenv("REMINDER_BATCH_SIZE", "50"))
REMINDER_CLAIM_TIMEOUT_SECONDS = float(os.getenv("REMINDER_CLAIM_TIMEOUT_SECONDS", "300"))
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "+91")

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER", "")
TWILIO_RECORDED_CALL_URL = os.getenv("TWILIO_RECORDED_CALL_URL", "")
TWILIO_API_BASE_URL = os.getenv("TWILIO_API_BASE_URL", "https://api.twilio.com/2010-04-01")
TWILIO_TIMEOUT_SECONDS = float(os.getenv("TWILIO_TIMEOUT_SECONDS", "10"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if REMINDER_LEAD_MINUTES < 0:
        raise RuntimeError("REMINDER_LEAD_MINUTES must not be negative.")
    if REMINDER_CLAIM_TIMEOUT_SECONDS <= TWILIO_TIMEOUT_SECONDS:
        raise RuntimeError("REMINDER_CLAIM_TIMEOUT_SECONDS must be longer than TWILIO_TIMEOUT_SECONDS.")
