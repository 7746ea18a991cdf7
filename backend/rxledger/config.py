# backend/rxledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/rxledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///rxledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Receipt numbers look like RX-260118-142233-7KQ2
    RECEIPT_PREFIX = os.environ.get("RECEIPT_PREFIX", "RX")

    STOCK_HISTORY_DEFAULT_LIMIT = 20
    STOCK_HISTORY_MAX_LIMIT = 100

    # Lock/deadlock retries for a whole unit of work
    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))
