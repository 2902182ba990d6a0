from __future__ import annotations


def test_overview_on_empty_portfolio(client):
    response = client.get("/")

    assert response.status_code == 200
    data = response.get_json()
    assert data["leases"]["total"] == 0
    assert data["schedule"]["total_count"] == 0
    assert data["payments"]["total_count"] == 0
    assert data["month"] == data["today"][:7]
