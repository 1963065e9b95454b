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
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sitside.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
# Tokens stay valid for a week.
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))

# Attempts for a read-modify-write that loses an optimistic version check.
WRITE_RETRIES = int(os.getenv("SITSIDE_WRITE_RETRIES", "3"))

ADMIN_EMAIL = os.getenv("SITSIDE_ADMIN_EMAIL", "")
ADMIN_PASSWORD = os.getenv("SITSIDE_ADMIN_PASSWORD", "")

RECENT_ITEMS_LIMIT = int(os.getenv("RECENT_ITEMS_LIMIT", "5"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if WRITE_RETRIES < 1:
        raise RuntimeError("SITSIDE_WRITE_RETRIES must be at least 1.")
