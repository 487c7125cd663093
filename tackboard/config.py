"""Runtime configuration for Tackboard.

Values are read from environment variables once at import time so the
service and the client can be pointed at different databases or hosts
without code changes.
"""
import os


def _trueish(v: str | None) -> bool:
    if not v:
        return False
    return v.lower() in ("1", "true", "yes", "on")


ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tackboard.db")
SQL_ECHO = _trueish(os.getenv("SQL_ECHO"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Single shared password; the cookie only records that the check passed.
AUTH_PASSWORD = os.getenv("AUTH_PASSWORD", "password123")
AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "auth-cookie")
AUTH_COOKIE_MAX_AGE = 30 * 24 * 60 * 60
COOKIE_SECURE = ENVIRONMENT == "production"

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# Base URL the client uses when none is passed explicitly.
TACKBOARD_URL = os.getenv("TACKBOARD_URL", f"http://localhost:{PORT}")
