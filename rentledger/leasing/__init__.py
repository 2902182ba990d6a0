"""Lease store blueprint."""
from flask import Blueprint

bp = Blueprint("leasing", __name__)

from . import routes  # noqa: E402,F401
