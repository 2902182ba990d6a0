"""Configuration settings for RentLedger."""
from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    """Base configuration class."""

    SECRET_KEY = os.environ.get("RENTLEDGER_SECRET_KEY", "rentledger-dev-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "RENTLEDGER_DATABASE_URI", f"sqlite:///{BASE_DIR / 'rentledger.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ENVIRONMENT = os.environ.get("RENTLEDGER_ENV", "development")
    LOG_RETENTION = int(os.environ.get("RENTLEDGER_LOG_RETENTION", 200))

    # rent obligations due within this many days are flagged "due soon"
    DUE_SOON_DAYS = int(os.environ.get("RENTLEDGER_DUE_SOON_DAYS", 7))
    EXPIRING_SOON_DAYS = int(os.environ.get("RENTLEDGER_EXPIRING_SOON_DAYS", 30))
    EXPIRING_LATER_DAYS = int(os.environ.get("RENTLEDGER_EXPIRING_LATER_DAYS", 90))
