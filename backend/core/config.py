import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = _get_int(os.getenv("PORT"), 8080)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///db/users.db")
SESSION_DATABASE_URL = os.getenv("SESSION_DATABASE_URL", "sqlite:///db/sessions.db")

SESSION_KEY = os.getenv("SESSION_KEY", "change-me")
SESSION_ALGORITHM = "HS256"
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
SESSION_COOKIE_SECURE = _get_bool(os.getenv("SESSION_COOKIE_SECURE"), default=False)
SESSION_MAX_AGE_DAYS = _get_int(os.getenv("SESSION_MAX_AGE_DAYS"), 30)
SESSION_CLEANUP_INTERVAL_SECONDS = _get_int(os.getenv("SESSION_CLEANUP_INTERVAL_SECONDS"), 3600)

BCRYPT_ROUNDS = _get_int(os.getenv("BCRYPT_ROUNDS"), 10)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")

REQUEST_TIMEOUT_SECONDS = _get_int(os.getenv("REQUEST_TIMEOUT_SECONDS"), 30)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:4200"])

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and SESSION_KEY == "change-me":
        raise RuntimeError("SESSION_KEY must be set in production.")
    if not 4 <= BCRYPT_ROUNDS <= 31:
        raise RuntimeError("BCRYPT_ROUNDS must be between 4 and 31.")
