"""
Centralized configuration module for the Customer Payment Portal.
Reads configuration from env.properties file.
"""

import os
from pathlib import Path
from typing import Optional

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.absolute()

CONFIG_FILE = PROJECT_ROOT / "env.properties"

_config_cache: dict = {}


def _load_config() -> dict:
    """Load configuration from env.properties file."""
    global _config_cache
    if _config_cache:
        return _config_cache

    config = {}
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    config[key.strip()] = value.strip()

    _config_cache = config
    return config


def get(key: str, default: Optional[str] = None) -> str:
    """Get a configuration value by key."""
    config = _load_config()
    # Environment variables take precedence
    env_value = os.environ.get(key)
    if env_value is not None:
        return env_value
    return config.get(key, default or "")


def get_int(key: str, default: int = 0) -> int:
    """Get a configuration value as integer."""
    value = get(key, str(default))
    try:
        return int(value)
    except ValueError:
        return default


def get_float(key: str, default: float = 0.0) -> float:
    """Get a configuration value as float."""
    value = get(key, str(default))
    try:
        return float(value)
    except ValueError:
        return default


def get_bool(key: str, default: bool = False) -> bool:
    """Get a configuration value as boolean."""
    value = get(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def reload():
    """Reload configuration from file."""
    global _config_cache
    _config_cache = {}
    _load_config()


# Server Configuration
BACKEND_HOST = get("BACKEND_HOST", "0.0.0.0")
BACKEND_PORT = get_int("BACKEND_PORT", 3001)

# Database Configuration
# DATABASE_URL wins over everything else. Without it the URL is built from the
# resolved credential bundle, and a local SQLite file is used when neither the
# secret store nor the DB_* settings provide a host.
DATABASE_URL = get("DATABASE_URL", "")
DATABASE_NAME = get("DATABASE_NAME", "payment_portal.db")
DATA_DIR = PROJECT_ROOT / get("DATA_DIR", "data")
DATABASE_PATH = DATA_DIR / DATABASE_NAME
DB_DRIVER = get("DB_DRIVER", "mssql+pyodbc")
DB_PORT = get_int("DB_PORT", 0)
STORE_TIMEOUT_SECONDS = get_float("STORE_TIMEOUT_SECONDS", 5.0)

# Static fallback credentials (used when the secret store is unavailable)
DB_USER = get("DB_USER", "")
DB_PASSWORD = get("DB_PASSWORD", "")
DB_SERVER = get("DB_SERVER", "")
DB_NAME = get("DB_NAME", "")

# Secret store
AWS_REGION = get("AWS_REGION", "us-east-1")
AWS_SECRET_NAME = get("AWS_SECRET_NAME", "")

# Logging Configuration
LOGS_DIR = PROJECT_ROOT / get("LOGS_DIR", "logs")
LOG_LEVEL = get("LOG_LEVEL", "").upper()  # empty: DEBUG outside production, INFO in it
AUDIT_LOG_RETENTION_DAYS = get_int("AUDIT_LOG_RETENTION_DAYS", 90)

# Application Settings
APP_NAME = get("APP_NAME", "Customer Payment Portal")
APP_VERSION = get("APP_VERSION", "1.0.0")
ENVIRONMENT = get("ENVIRONMENT", "development")  # development, staging, production

# Authentication
BCRYPT_ROUNDS = get_int("BCRYPT_ROUNDS", 10)
SESSION_TOKEN_EXPIRE_MINUTES = get_int("SESSION_TOKEN_EXPIRE_MINUTES", 60)
LOGIN_RATE_LIMIT = get("LOGIN_RATE_LIMIT", "5 per 15 minutes")
REGISTER_RATE_LIMIT = get("REGISTER_RATE_LIMIT", "5/hour")

# Payments
IMMEDIATE_SETTLEMENT = get_bool("IMMEDIATE_SETTLEMENT", False)
STRIPE_WEBHOOK_SECRET = get("STRIPE_WEBHOOK_SECRET", "")

# Audit
AUDIT_ASYNC = get_bool("AUDIT_ASYNC", True)

# Security Settings
FORCE_HTTPS = get_bool("FORCE_HTTPS", False)  # Redirect HTTP to HTTPS in production
ALLOWED_ORIGINS = get(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000",
)  # Comma-separated CORS origins

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)
