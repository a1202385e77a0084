# backend/storeledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storeledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storeledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Tenant context is resolved upstream and forwarded in these headers
    TENANT_HEADER = os.environ.get("TENANT_HEADER", "X-Store-Id")
    ACTOR_HEADER = os.environ.get("ACTOR_HEADER", "X-Actor")

    # Whether a confirmed (not yet delivered) order may still be cancelled
    ALLOW_CANCEL_CONFIRMED_ORDERS = _env_flag("ALLOW_CANCEL_CONFIRMED_ORDERS", False)

    STOCK_LOG_DEFAULT_LIMIT = int(os.environ.get("STOCK_LOG_DEFAULT_LIMIT", "50"))
