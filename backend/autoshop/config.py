# backend/autoshop/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/autoshop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///autoshop.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session tokens expire after this many hours
    SESSION_TTL_HOURS = _env_int("SESSION_TTL_HOURS", 24)

    # Approvals flag parts whose remaining stock drops to this level or below
    LOW_STOCK_WARNING_THRESHOLD = _env_int("LOW_STOCK_WARNING_THRESHOLD", 5)

    # Clients may cancel a pending appointment up to this many minutes before it starts
    CANCELLATION_CUTOFF_MINUTES = _env_int("CANCELLATION_CUTOFF_MINUTES", 60)

    MAX_BOOKING_DAYS_AHEAD = _env_int("MAX_BOOKING_DAYS_AHEAD", 365)

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
