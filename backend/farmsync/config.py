# backend/farmsync/config.py
from __future__ import annotations
import os


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL", "sqlite:///farmsync.sqlite3")
    # Hosted Postgres providers still hand out the legacy scheme
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def _engine_options(url: str) -> dict:
    # Timestamps are written as UTC-naive values; pin the session zone to match
    if url.startswith("postgresql"):
        return {"connect_args": {"options": "-c timezone=utc"}, "pool_pre_ping": True}
    return {}


def _origins(raw: str) -> set[str]:
    return {o.strip() for o in raw.split(",") if o.strip()}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file in the instance folder unless DATABASE_URL points elsewhere
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)

    # Offline clients can push large batches after a long disconnect
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    SYNC_TIMEOUT_SECONDS = float(os.environ.get("SYNC_TIMEOUT_SECONDS", "30"))
    SYNC_RETRY_ATTEMPTS = int(os.environ.get("SYNC_RETRY_ATTEMPTS", "3"))
    # serverTime handed to polling clients trails the clock by this much; keep
    # it above SYNC_TIMEOUT_SECONDS so a batch committing late is not missed
    UPDATES_LOOKBACK_SECONDS = float(
        os.environ.get("UPDATES_LOOKBACK_SECONDS", SYNC_TIMEOUT_SECONDS + 5)
    )

    CORS_ALLOWED_ORIGINS = _origins(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8081,http://127.0.0.1:8081",
        )
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    API_VERSION = "1.0.0"
