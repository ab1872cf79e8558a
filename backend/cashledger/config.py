# backend/cashledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///cashledger.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Reporting page sizes
    MANUAL_MOVEMENTS_PAGE_SIZE = int(os.environ.get("MANUAL_MOVEMENTS_PAGE_SIZE", "50"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "200"))
    SESSION_HISTORY_PAGE_SIZE = int(os.environ.get("SESSION_HISTORY_PAGE_SIZE", "20"))
