"""
Configuration Settings

All runtime configuration comes from environment variables. A .env file next
to the application is loaded first when present.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

APP_ROOT = Path(__file__).resolve().parent

load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

DEFAULT_SECRET_KEY = "dev-secret-key-change-me"


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "blog")

# Security
SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Server
PORT = int(os.getenv("PORT", "8000"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Uploads
UPLOADS_DIR = os.getenv("UPLOADS_DIR", os.path.join(APP_ROOT, "uploads"))
UPLOADS_URL_PREFIX = "/uploads"
THUMBNAIL_MAX_BYTES = int(os.getenv("THUMBNAIL_MAX_BYTES", "4000000"))
AVATAR_MAX_BYTES = int(os.getenv("AVATAR_MAX_BYTES", "2500000"))

# Posts can be edited by any authenticated user unless this is switched on.
ENFORCE_EDIT_OWNERSHIP = _get_bool("ENFORCE_EDIT_OWNERSHIP", False)
