"""Blueprint for portfolio-wide RentLedger settings."""
from __future__ import annotations

from flask import Blueprint

bp = Blueprint("settings", __name__)

from . import routes  # noqa: E402,F401
