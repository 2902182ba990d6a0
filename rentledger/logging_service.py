"""Structured activity logging for RentLedger."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional
from uuid import uuid4

from flask import current_app

from .extensions import db
from .models import SystemLog


@dataclass(frozen=True)
class LogRecord:
    """Structured representation of a log message."""

    component: str
    action: str
    level: str
    result: str
    title: str
    user_summary: str
    technical_details: str
    record_ref: Optional[str]
    correlation_id: str
    environment: str


class LogManager:
    """Record and query the activity log stored in ``SystemLog``."""

    def __init__(self) -> None:
        self.app = None
        self.available_levels = ["info", "warn", "error"]
        self.available_components: list[str] = []

    def init_app(self, app) -> None:
        """Attach the log manager to the Flask app."""
        self.app = app

    def _ensure_component(self, component: str) -> None:
        if component not in self.available_components:
            self.available_components.append(component)
            self.available_components.sort()

    def register_component(self, component: str) -> None:
        """Explicitly register a component name."""
        self._ensure_component(component)

    def record(
        self,
        *,
        component: str,
        action: str,
        level: str = "info",
        result: str = "success",
        title: str,
        user_summary: str,
        technical_details: str,
        record_ref: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> LogRecord:
        """Persist a new log record."""
        if level not in self.available_levels:
            raise ValueError(f"Unsupported level '{level}'")

        self._ensure_component(component)
        config = (self.app or current_app).config
        environment = config.get("ENVIRONMENT", "development")
        correlation = correlation_id or str(uuid4())

        entry = SystemLog(
            component=component,
            action=action,
            level=level,
            result=result,
            title=title,
            user_summary=user_summary,
            technical_details=technical_details,
            record_ref=record_ref,
            correlation_id=correlation,
            environment=environment,
        )
        db.session.add(entry)
        self._trim_logs(config.get("LOG_RETENTION", 200))
        db.session.commit()

        return LogRecord(
            component=component,
            action=action,
            level=level,
            result=result,
            title=title,
            user_summary=user_summary,
            technical_details=technical_details,
            record_ref=record_ref,
            correlation_id=correlation,
            environment=environment,
        )

    def record_issues(self, *, component: str, action: str, issues: Iterable) -> int:
        """Log each data-integrity issue as a warning and return how many were logged.

        All warnings produced by one request share a correlation id so they can be
        pulled back together from the log feed.
        """
        correlation = str(uuid4())
        count = 0
        for issue in issues:
            self.record(
                component=component,
                action=action,
                level="warn",
                result="warn",
                title="Data integrity warning",
                user_summary=issue.message,
                technical_details=f"{issue.kind}: {issue.record_type} {issue.record_id} -> {issue.missing_id}",
                record_ref=issue.record_id,
                correlation_id=correlation,
            )
            count += 1
        return count

    def _trim_logs(self, retention: int) -> None:
        """Keep the number of stored logs under the configured retention."""
        total = SystemLog.query.count()
        if total <= retention:
            return
        excess = total - retention
        oldest_ids = [
            entry.id
            for entry in SystemLog.query.order_by(SystemLog.timestamp, SystemLog.id).limit(excess)
        ]
        if oldest_ids:
            SystemLog.query.filter(SystemLog.id.in_(oldest_ids)).delete(synchronize_session=False)

    def fetch_logs(
        self,
        *,
        level: Optional[str] = None,
        component: Optional[str] = None,
        record_ref: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
    ) -> list[dict[str, str]]:
        """Retrieve structured logs with optional filtering."""
        query = SystemLog.query.order_by(SystemLog.timestamp.desc(), SystemLog.id.desc())
        if level and level in self.available_levels:
            query = query.filter_by(level=level)
        if component:
            query = query.filter_by(component=component)
        if record_ref:
            query = query.filter_by(record_ref=record_ref)
        if search:
            like_pattern = f"%{search}%"
            query = query.filter(
                (SystemLog.title.ilike(like_pattern))
                | (SystemLog.user_summary.ilike(like_pattern))
                | (SystemLog.technical_details.ilike(like_pattern))
                | (SystemLog.correlation_id.ilike(like_pattern))
            )
        records = query.limit(limit).all()
        return [record.serialize() for record in records]

    def latest_timestamp(self) -> Optional[str]:
        """Return ISO formatted timestamp of the most recent log entry."""
        from .settings.services import convert_to_active_timezone

        record = SystemLog.query.order_by(SystemLog.timestamp.desc()).first()
        if not record:
            return None
        localized = convert_to_active_timezone(record.timestamp)
        return localized.isoformat(timespec="seconds")


log_manager = LogManager()
