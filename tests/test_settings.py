from __future__ import annotations

from rentledger.settings.services import current_date, get_active_timezone


def test_timezone_settings_default_to_utc(client):
    """The settings endpoint reports UTC until a timezone is chosen."""

    response = client.get("/settings/api/timezone")

    assert response.status_code == 200
    data = response.get_json()
    assert data["timezone"] == "UTC"
    assert any(option["value"] == "America/Chicago" for option in data["options"])


def test_settings_timezone_update(client, app):
    """Submitting a timezone selection should persist the change."""

    response = client.post("/settings/api/timezone", json={"timezone": "America/New_York"})

    assert response.status_code == 200
    assert response.get_json()["message"].startswith("Timezone updated")

    with app.app_context():
        assert get_active_timezone().key == "America/New_York"
        assert current_date().isoformat() == response.get_json()["today"]


def test_settings_rejects_unknown_timezone(client):
    response = client.post("/settings/api/timezone", json={"timezone": "Mars/Olympus"})

    assert response.status_code == 400
    assert response.get_json()["success"] is False
