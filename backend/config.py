# config.py — Environment configuration for the DevThon portal API
import os
import re
from datetime import timedelta
from typing import List


class ConfigError(RuntimeError):
    """Raised at startup when a required setting is missing or malformed."""


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value: str) -> timedelta:
    """Parse "7d", "12h", "30m", "45s" or bare seconds into a timedelta."""
    match = _DURATION_RE.match(value or "")
    if not match:
        raise ConfigError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


# ============================================================
# SETTINGS
# ============================================================

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
PORT = _int_env("PORT", 5000)

DATABASE_URL = os.getenv("DATABASE_URL", "")
DB_POOL_SIZE = _int_env("DB_POOL_SIZE", 10)
DB_POOL_TIMEOUT_SECONDS = 5
DB_SOCKET_TIMEOUT_SECONDS = 45
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "7d")
JWT_REFRESH_EXPIRES_IN = os.getenv("JWT_REFRESH_EXPIRES_IN", "30d")
BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12)

CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGIN", "http://localhost:5173").split(",")
    if origin.strip()
]

RATE_LIMIT_WINDOW_MS = _int_env("RATE_LIMIT_WINDOW_MS", 900_000)
RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 100)
# honour X-Forwarded-For for rate limiting only behind a trusted reverse proxy
TRUST_PROXY = os.getenv("TRUST_PROXY", "false").lower() == "true"

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@devup.org")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin@123456")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

REQUIRED_ENV_VARS = ("DATABASE_URL", "JWT_SECRET")


def is_production() -> bool:
    return ENVIRONMENT == "production"


def access_token_lifetime() -> timedelta:
    return parse_duration(JWT_EXPIRES_IN)


def refresh_token_lifetime() -> timedelta:
    return parse_duration(JWT_REFRESH_EXPIRES_IN)


def validate_config() -> None:
    """Fail fast on missing required settings and unparseable durations."""
    missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
    if missing:
        raise ConfigError(f"Missing required environment variable(s): {', '.join(missing)}")
    access_token_lifetime()
    refresh_token_lifetime()
    if BCRYPT_ROUNDS < 4 or BCRYPT_ROUNDS > 31:
        raise ConfigError("BCRYPT_ROUNDS must be between 4 and 31")
