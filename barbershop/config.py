"""Application configuration loaded from the environment."""
from __future__ import annotations

import os

from .models import utc_now


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///barbershop.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens expire after 24 hours by default
    TOKEN_MAX_AGE_SECONDS = int(os.environ.get("TOKEN_MAX_AGE_SECONDS", 86400))
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Injectable time source, overridden in tests
    CLOCK = staticmethod(utc_now)
