"""Timezone preference and the portfolio's notion of "today"."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..extensions import db
from .models import AppSettings

AVAILABLE_TIMEZONES: tuple[tuple[str, str], ...] = (
    ("UTC", "Coordinated Universal Time"),
    ("America/New_York", "Eastern Time — US & Canada"),
    ("America/Chicago", "Central Time — US & Canada"),
    ("America/Denver", "Mountain Time — US & Canada"),
    ("America/Phoenix", "Mountain Time — Arizona"),
    ("America/Los_Angeles", "Pacific Time — US & Canada"),
    ("America/Anchorage", "Alaska Time"),
    ("Pacific/Honolulu", "Hawaii Time"),
    ("Europe/London", "Greenwich Mean Time"),
    ("Africa/Lagos", "West Africa Time"),
)

_timezone_cache: dict[str, ZoneInfo] = {}


@dataclass(frozen=True)
class TimezoneOption:
    """Selectable timezone with its current UTC offset."""

    value: str
    label: str
    offset: str

    @property
    def display_label(self) -> str:
        return f"{self.label} ({self.offset})"

    def to_dict(self) -> dict[str, str]:
        return {
            "value": self.value,
            "label": self.label,
            "offset": self.offset,
            "display_label": self.display_label,
        }


def _resolve_zoneinfo(name: str) -> ZoneInfo:
    """Return a cached ZoneInfo, falling back to UTC for unknown names."""

    zone = _timezone_cache.get(name)
    if zone:
        return zone
    try:
        zone = ZoneInfo(name)
    except ZoneInfoNotFoundError:
        zone = ZoneInfo("UTC")
    _timezone_cache[name] = zone
    return zone


def is_supported_timezone(value: str | None) -> bool:
    return value in {choice[0] for choice in AVAILABLE_TIMEZONES}


def ensure_app_settings() -> AppSettings:
    """Create application settings with defaults when missing."""

    settings = AppSettings.query.first()
    changed = False

    if not settings:
        settings = AppSettings(timezone="UTC")
        db.session.add(settings)
        changed = True
    elif not settings.timezone:
        settings.timezone = "UTC"
        db.session.add(settings)
        changed = True

    if changed:
        db.session.commit()

    return settings


def get_active_timezone() -> ZoneInfo:
    """Return the ZoneInfo instance for the configured timezone."""

    settings = ensure_app_settings()
    return _resolve_zoneinfo(settings.timezone or "UTC")


def set_timezone(choice: str) -> AppSettings:
    """Persist a new timezone selection."""

    if not is_supported_timezone(choice):
        raise ValueError(f"Unsupported timezone '{choice}'.")

    settings = ensure_app_settings()
    settings.timezone = choice
    db.session.add(settings)
    db.session.commit()
    return settings


def _format_offset(delta: timedelta | None) -> str:
    if delta is None:
        return "UTC±00:00"
    minutes = int(delta.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    hours, remainder = divmod(abs(minutes), 60)
    return f"UTC{sign}{hours:02d}:{remainder:02d}"


def get_timezone_options() -> list[TimezoneOption]:
    """Return the curated timezone choices with their current offsets."""

    now_utc = datetime.now(timezone.utc)
    return [
        TimezoneOption(
            value=value,
            label=label,
            offset=_format_offset(now_utc.astimezone(_resolve_zoneinfo(value)).utcoffset()),
        )
        for value, label in AVAILABLE_TIMEZONES
    ]


def describe_timezone(name: str | None) -> str:
    """Return a friendly label such as ``Eastern Time — US & Canada (UTC-04:00)``."""

    name = name or "UTC"
    label = dict(AVAILABLE_TIMEZONES).get(name, name)
    now_utc = datetime.now(timezone.utc)
    offset = _format_offset(now_utc.astimezone(_resolve_zoneinfo(name)).utcoffset())
    return f"{label} ({offset})"


def convert_to_active_timezone(value: datetime) -> datetime:
    """Convert a naive UTC datetime to the configured timezone."""

    if not isinstance(value, datetime):
        raise TypeError("Datetime objects are required for timezone conversion")

    zone = get_active_timezone()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.astimezone(zone)


def current_datetime() -> datetime:
    """Return the current datetime localized to the active timezone."""

    return datetime.now(get_active_timezone())


def current_date() -> date:
    """Return today's date in the configured timezone.

    Rent obligations, late fees and lease expiry are all classified against
    this date, so a property manager in Honolulu and one in New York see
    the same statuses for their own local day.
    """

    return current_datetime().date()
