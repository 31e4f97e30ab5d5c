"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # repository root
        pathlib.Path.cwd() / ".env",
        pathlib.Path.cwd().parent / ".env",
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Configuration constants with defaults
def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "postgresql://localhost/class_series_dev"
    )

DATABASE_URL = get_database_url()

# Business timezone of the school (hours offset from UTC). Used for "today".
SCHOOL_UTC_OFFSET_HOURS = int(os.getenv("SCHOOL_UTC_OFFSET_HOURS", "9"))

# Rolling advance generation
SERIES_ADVANCE_ENABLED = _env_bool("SERIES_ADVANCE_ENABLED", False)
SERIES_ADVANCE_LEAD_DAYS = int(os.getenv("SERIES_ADVANCE_LEAD_DAYS", "30"))
SERIES_ADVANCE_HOUR = int(os.getenv("SERIES_ADVANCE_HOUR", "2"))
