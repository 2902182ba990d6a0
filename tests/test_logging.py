from __future__ import annotations

import pytest

from rentledger.logging_service import log_manager
from rentledger.models import SystemLog


def test_record_trims_to_retention(app):
    app.config["LOG_RETENTION"] = 3

    with app.app_context():
        for index in range(5):
            log_manager.record(
                component="Leases",
                action="view",
                title=f"Entry {index}",
                user_summary="Lease list opened.",
                technical_details="test",
            )

        assert SystemLog.query.count() == 3
        titles = [entry["title"] for entry in log_manager.fetch_logs(component="Leases")]
        assert titles == ["Entry 4", "Entry 3", "Entry 2"]


def test_record_rejects_unknown_level(app):
    with app.app_context():
        with pytest.raises(ValueError):
            log_manager.record(
                component="Payments",
                action="view",
                level="debug",
                title="Nope",
                user_summary="",
                technical_details="",
            )


def test_feed_filters_by_component(client):
    client.get("/")
    client.get("/leases/api/leases")

    data = client.get("/logs/feed?component=Dashboard").get_json()

    assert [entry["component"] for entry in data["logs"]] == ["Dashboard"]
    assert "Payments" in data["components"]
    assert data["latest"] is not None
