"""Tests for the lease and directory endpoints."""

from __future__ import annotations


def _create_directory(client):
    prop = client.post("/leases/api/properties", json={"name": "Harbor View"}).get_json()["property"]
    unit = client.post(
        "/leases/api/units", json={"property_id": prop["id"], "number": "2A", "rent": "1800"}
    ).get_json()["unit"]
    tenant = client.post("/leases/api/tenants", json={"name": "Grace Hopper"}).get_json()["tenant"]
    return prop, unit, tenant


def test_create_lease_resolves_property_from_unit(client):
    prop, unit, tenant = _create_directory(client)

    response = client.post(
        "/leases/api/leases",
        json={
            "tenant_id": tenant["id"],
            "unit_id": unit["id"],
            "start_date": "2024-01-15",
            "end_date": "2024-12-15",
            "rent": "2000",
            "late_fee": "50",
            "grace_period": 5,
            "status": "active",
        },
    )

    assert response.status_code == 201
    lease = response.get_json()["lease"]
    assert lease["propertyId"] == prop["id"]
    assert lease["propertyName"] == "Harbor View"
    assert lease["tenantName"] == "Grace Hopper"
    assert lease["unitLabel"] == "Unit 2A"
    assert lease["rentDisplay"] == "$2,000.00"


def test_create_lease_rejects_end_before_start(client):
    response = client.post(
        "/leases/api/leases",
        json={
            "tenant_id": "t1",
            "unit_id": "u1",
            "start_date": "2024-12-15",
            "end_date": "2024-01-15",
            "rent": "2000",
        },
    )

    assert response.status_code == 400
    data = response.get_json()
    assert data["success"] is False
    assert "end date must be after" in data["message"]


def test_unit_requires_known_property(client):
    response = client.post("/leases/api/units", json={"property_id": "nope", "number": "1"})

    assert response.status_code == 404


def test_renew_and_terminate_lease(client):
    _, unit, tenant = _create_directory(client)
    lease = client.post(
        "/leases/api/leases",
        json={
            "tenant_id": tenant["id"],
            "unit_id": unit["id"],
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
            "rent": "1500",
        },
    ).get_json()["lease"]
    assert lease["status"] == "pending"

    too_early = client.post(f"/leases/api/leases/{lease['id']}/renew", json={"end_date": "2024-06-30"})
    assert too_early.status_code == 400

    renewed = client.post(
        f"/leases/api/leases/{lease['id']}/renew", json={"end_date": "2025-12-31", "rent": "1600"}
    ).get_json()["lease"]
    assert renewed["status"] == "active"
    assert renewed["endDate"] == "2025-12-31"
    assert renewed["rent"] == 1600.0

    terminated = client.post(f"/leases/api/leases/{lease['id']}/terminate")
    assert terminated.status_code == 200
    assert terminated.get_json()["lease"]["status"] == "terminated"

    again = client.post(f"/leases/api/leases/{lease['id']}/terminate")
    assert again.status_code == 400


def test_list_leases_filters_and_summarizes(client):
    _, unit, tenant = _create_directory(client)
    for status, rent in (("active", "1000"), ("pending", "700")):
        client.post(
            "/leases/api/leases",
            json={
                "tenant_id": tenant["id"],
                "unit_id": unit["id"],
                "start_date": "2024-01-01",
                "end_date": "2030-12-31",
                "rent": rent,
                "status": status,
            },
        )

    response = client.get("/leases/api/leases?status=active&search=hopper")

    assert response.status_code == 200
    data = response.get_json()
    assert [lease["status"] for lease in data["leases"]] == ["active"]
    assert data["summary"]["total"] == 2
    assert data["summary"]["active"] == 1
    assert data["summary"]["monthly_revenue"] == 1000.0

    assert client.get("/leases/api/leases?status=archived").status_code == 400


def test_missing_lease_returns_404(client):
    assert client.get("/leases/api/leases/unknown").status_code == 404
    assert client.post("/leases/api/leases/unknown/terminate").status_code == 404


def test_property_filter_follows_the_unit(client):
    prop, unit, tenant = _create_directory(client)
    lease = client.post(
        "/leases/api/leases",
        json={
            "tenant_id": tenant["id"],
            "unit_id": unit["id"],
            "property_id": "stale-property",
            "start_date": "2024-01-01",
            "end_date": "2030-12-31",
            "rent": "1000",
            "status": "active",
        },
    ).get_json()["lease"]

    by_unit = client.get(f"/leases/api/leases?property={prop['id']}").get_json()["leases"]
    by_stale = client.get("/leases/api/leases?property=stale-property").get_json()["leases"]

    assert [row["id"] for row in by_unit] == [lease["id"]]
    assert by_stale == []


def test_deposit_lifecycle(client):
    _, unit, tenant = _create_directory(client)
    lease = client.post(
        "/leases/api/leases",
        json={
            "tenant_id": tenant["id"],
            "unit_id": unit["id"],
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
            "rent": "1500",
            "deposit": "1500",
        },
    ).get_json()["lease"]
    base = f"/leases/api/leases/{lease['id']}/deposit"

    assert client.get(base).status_code == 404
    opened = client.post(base, json={})
    assert opened.status_code == 201
    assert opened.get_json()["deposit"]["status"] == "held"
    assert client.post(base, json={}).status_code == 400

    bad = client.post(f"{base}/deductions", json={"amount": "50", "reason": "Pets", "category": "pets"})
    assert bad.status_code == 400
    added = client.post(
        f"{base}/deductions", json={"amount": "200", "reason": "Wall repair", "category": "damage"}
    )
    assert added.status_code == 201
    assert added.get_json()["deposit"]["refundDue"] == 1300.0

    assert client.post(f"{base}/request-refund").get_json()["deposit"]["status"] == "pending_refund"
    settled = client.post(f"{base}/settle").get_json()["deposit"]
    assert settled["status"] == "refunded"
    assert settled["refundedAmount"] == 1300.0

    stored = client.get(base).get_json()["deposit"]
    assert stored["status"] == "refunded"
    assert [item["category"] for item in stored["deductions"]] == ["damage"]
    assert client.post(f"{base}/settle").status_code == 400


def test_deposit_requires_known_lease(client):
    assert client.post("/leases/api/leases/unknown/deposit", json={"amount": "100"}).status_code == 404
