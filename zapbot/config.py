"""
zapbot/config.py
Application configuration
Environment-driven (Render compatible)
"""

import os

DEV_SQLITE_URL = "sqlite:///./zapbot.db"


def load_database_url() -> str:
    """
    DATABASE_URL is required. Local development opts into a SQLite file
    next to the working directory with ZAPBOT_DEV_SQLITE=true.
    """
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url
    if os.getenv("ZAPBOT_DEV_SQLITE", "false").lower() == "true":
        return DEV_SQLITE_URL
    raise RuntimeError("DATABASE_URL is not set")


DATABASE_URL = load_database_url()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Create missing tables on startup (SQLite / first deploy only)
AUTO_CREATE_SCHEMA = os.getenv("AUTO_CREATE_SCHEMA", "false").lower() == "true"
