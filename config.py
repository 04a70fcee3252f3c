"""
Configuration for the Batch Delivery Portal.

Values come from environment variables, with a .env file loaded first.
The backend URL is required in every environment except testing.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _seconds(name: str, default: Optional[str]) -> Optional[float]:
    """
    Read a staleness window from the environment.

    'never', 'none', 'inf' or an empty value mean the data never goes stale.
    """
    raw = os.environ.get(name, default)
    if raw is None or raw.strip().lower() in ("", "never", "none", "inf", "infinity"):
        return None
    return float(raw)


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "batch_portal_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Backend API
    # ==========================================================================
    PORTAL_API_BASE_URL = os.environ.get("PORTAL_API_BASE_URL", "")
    PORTAL_API_TOKEN = os.environ.get("PORTAL_API_TOKEN", "")
    PORTAL_API_TIMEOUT = float(os.environ.get("PORTAL_API_TIMEOUT", "15"))

    # ==========================================================================
    # Query cache staleness (seconds)
    # ==========================================================================
    # Courses rarely change and never go stale. Per-student order lists are
    # reused for 5 minutes. Students and delivery packs revalidate in the
    # background on every read.
    # ==========================================================================
    COURSES_STALE_TIME = _seconds("COURSES_STALE_TIME", "never")
    STUDENTS_STALE_TIME = _seconds("STUDENTS_STALE_TIME", "0")
    SETTINGS_STALE_TIME = _seconds("SETTINGS_STALE_TIME", "0")
    ORDERS_STALE_TIME = _seconds("ORDERS_STALE_TIME", "300")
    QUERY_CACHE_WORKERS = int(os.environ.get("QUERY_CACHE_WORKERS", "4"))

    # ==========================================================================
    # Remembered delivery-order defaults
    # ==========================================================================
    # PREFERENCE_SCOPE:
    #   shared - one record for every operator of this instance
    #   user   - one record per signed-in operator
    # ==========================================================================
    PREFERENCES_PATH = os.environ.get(
        "PREFERENCES_PATH", str(BASE_DIR / "instance" / "preferences.json")
    )
    PREFERENCE_SCOPE = os.environ.get("PREFERENCE_SCOPE", "shared")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    PORTAL_API_BASE_URL = "http://backend.test/api"
    PORTAL_API_TOKEN = ""
