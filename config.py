"""Configuration for the festival manager."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'festival.db'}",
)

# Realtime relay (web -> push service). Empty URL disables delivery, events are only logged.
REALTIME_URL = os.getenv("REALTIME_URL", "")
REALTIME_SECRET = os.getenv("REALTIME_SECRET", "")  # Shared secret sent as bearer token


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


REALTIME_TIMEOUT = _parse_float(os.getenv("REALTIME_TIMEOUT", ""), 5.0)

# Web auth (JWT secret, initial admin bootstrap)
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-use-long-random-string")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = 7
INITIAL_ADMIN_USERNAME = os.getenv("INITIAL_ADMIN_USERNAME", "admin")
INITIAL_ADMIN_PASSWORD = os.getenv("INITIAL_ADMIN_PASSWORD", "")  # Set to bootstrap first admin

# Reserved jury used when admins enter results directly
ADMIN_JURY_ID = "jury-admin"
ADMIN_JURY_PASSWORD = os.getenv("ADMIN_JURY_PASSWORD", "admin@jury")

# Registration window defaults (hours from bootstrap) when no window is stored
REGISTRATION_DEFAULT_HOURS = int(os.getenv("REGISTRATION_DEFAULT_HOURS", "1") or 1)
