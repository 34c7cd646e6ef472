"""Service configuration loaded from environment variables."""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Deployment
ENV = os.getenv("ENV")
ENV_IS_PROD = ENV == "prod"
COMMIT_HASH = os.getenv("COMMIT_HASH")
if not COMMIT_HASH and ENV_IS_PROD:
    raise ValueError("COMMIT_HASH is required for production environments")

APP_ADDR = os.getenv("HOST", "0.0.0.0")
APP_PORT = int(os.getenv("PORT", "8000"))

# Database
DATABASE_URL = os.getenv("DATABASE_URL")
SQL_DEBUG = os.getenv("SQL_DEBUG", "false").lower() == "true"
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))

# Messaging policy
UNDO_WINDOW_HOURS = int(os.getenv("UNDO_WINDOW_HOURS", "24"))
TYPING_TTL_SECONDS = int(os.getenv("TYPING_TTL_SECONDS", "8"))
RETENTION_DAYS = int(os.getenv("RETENTION_DAYS", "30"))
PREVIEW_MAX_CHARS = int(os.getenv("PREVIEW_MAX_CHARS", "140"))

# Realtime events
EVENT_QUEUE_SIZE = int(os.getenv("EVENT_QUEUE_SIZE", "100"))

# Notification dispatcher (disabled when no URL is configured)
NOTIFICATION_WEBHOOK_URL: Optional[str] = os.getenv("NOTIFICATION_WEBHOOK_URL")
NOTIFICATION_API_KEY = os.getenv("NOTIFICATION_API_KEY", "")
NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "5"))

# Logging: "json" or "console"
LOG_FORMAT = os.getenv("LOG_FORMAT", "json" if ENV_IS_PROD else "console")
