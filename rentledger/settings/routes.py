"""HTTP routes for managing portfolio-wide settings."""
from __future__ import annotations

from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..logging_service import log_manager
from . import bp
from .services import (
    current_date,
    describe_timezone,
    ensure_app_settings,
    get_timezone_options,
    is_supported_timezone,
    set_timezone,
)


def _settings_payload() -> dict[str, object]:
    settings = ensure_app_settings()
    return {
        "timezone": settings.timezone,
        "timezone_label": describe_timezone(settings.timezone),
        "today": current_date().isoformat(),
        "options": [option.to_dict() for option in get_timezone_options()],
    }


@bp.route("/api/timezone", methods=["GET"])
def timezone_settings():
    """Return the active timezone and the selectable options."""

    return jsonify(_settings_payload())


@bp.route("/api/timezone", methods=["POST"])
def update_timezone():
    """Persist a new timezone selection."""

    data = request.get_json(silent=True) or request.form
    requested_timezone = (data.get("timezone") or "").strip()

    if not is_supported_timezone(requested_timezone):
        response = jsonify(
            {"success": False, "message": "Select a timezone from the list before saving."}
        )
        response.status_code = 400
        return response

    try:
        settings = set_timezone(requested_timezone)
    except SQLAlchemyError as exc:
        db.session.rollback()
        log_manager.record(
            component="Settings",
            action="update-timezone",
            level="error",
            result="error",
            title="Timezone update failed",
            user_summary="The system could not save the new timezone. Try again shortly.",
            technical_details=(
                "settings.set_timezone raised"
                f" {exc.__class__.__name__}: {exc}"
            ),
        )
        response = jsonify(
            {
                "success": False,
                "message": "We were unable to update the timezone. Try again.",
            }
        )
        response.status_code = 500
        return response

    timezone_label = describe_timezone(settings.timezone)
    log_manager.record(
        component="Settings",
        action="update-timezone",
        level="info",
        result="success",
        title="Timezone updated",
        user_summary=f"Portfolio timezone changed to {timezone_label}.",
        technical_details=f"settings.set_timezone persisted timezone={settings.timezone}",
    )
    payload = _settings_payload()
    payload.update(success=True, message=f"Timezone updated to {timezone_label}.")
    return jsonify(payload)
