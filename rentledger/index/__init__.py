"""Dashboard overview blueprint."""
from flask import Blueprint

bp = Blueprint("index", __name__)

from . import routes  # noqa: E402,F401
