# backend/fulfillment/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fulfillment.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fulfillment.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Conflict retry policy for pipeline transactions
    TRANSACTION_MAX_ATTEMPTS = int(os.environ.get("TRANSACTION_MAX_ATTEMPTS", "5"))
    TRANSACTION_BACKOFF_BASE = float(os.environ.get("TRANSACTION_BACKOFF_BASE", "0.05"))

    # "token:caller_id:role" entries separated by commas
    API_TOKENS = os.environ.get("API_TOKENS", "")
