from datetime import datetime, timedelta

import pytest

from app.integrations.errors import IntegrationUnavailableError
from app.models.location_tracking import LocationTracking


def _accept(client, headers, order_id):
    return client.post(f"/api/v1/delivery/orders/{order_id}/accept", headers=headers)


def _status(client, headers, order_id, status, reason=None):
    payload = {"status": status}
    if reason is not None:
        payload["cancellation_reason"] = reason
    return client.put(f"/api/v1/delivery/orders/{order_id}/status", json=payload, headers=headers)


def test_agent_flow_from_accept_to_delivered(client, auth_headers, place_order, notifier, sheets):
    order = place_order().json()
    agent = auth_headers["agent"]

    available = client.get("/api/v1/delivery/orders/available", headers=agent)
    assert [item["id"] for item in available.json()["items"]] == [order["id"]]

    accepted = _accept(client, agent, order["id"])
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "ACCEPTED"
    assert accepted.json()["assigned_to"] == "agent-1"
    assert accepted.json()["accepted_at"] is not None

    available = client.get("/api/v1/delivery/orders/available", headers=agent)
    assert available.json()["items"] == []
    mine = client.get("/api/v1/delivery/orders/mine", headers=agent)
    assert [item["id"] for item in mine.json()["items"]] == [order["id"]]

    for step in ("PICKED_UP", "OUT_FOR_DELIVERY", "DELIVERED"):
        response = _status(client, agent, order["id"], step)
        assert response.status_code == 200, response.json()
        assert response.json()["status"] == step

    final = response.json()
    assert final["picked_up_at"] and final["out_for_delivery_at"] and final["delivered_at"]

    timeline = client.get(f"/api/v1/tracking/{order['tracking_id']}").json()
    assert [event["sequence"] for event in timeline["events"]] == [1, 2, 3, 4, 5, 6, 7]
    assert timeline["events"][-1]["event_type"] == "DELIVERED"
    assert timeline["status"] == "DELIVERED"

    assert [s.status.value for s in notifier.status_updates] == [
        "ACCEPTED",
        "PICKED_UP",
        "OUT_FOR_DELIVERY",
        "DELIVERED",
    ]
    assert len(sheets.rows) == 5


def test_second_agent_cannot_accept_assigned_order(client, auth_headers, place_order):
    order = place_order().json()
    assert _accept(client, auth_headers["agent"], order["id"]).status_code == 200

    response = _accept(client, auth_headers["agent_b"], order["id"])

    assert response.status_code == 400
    assert response.json()["detail"] == "Order is already assigned to another delivery agent"
    details = client.get(f"/api/v1/delivery/orders/{order['id']}", headers=auth_headers["admin"])
    assert details.json()["assigned_to"] == "agent-1"


def test_agent_gate_blocks_skips_that_admin_may_take(client, auth_headers, place_order):
    order = place_order().json()
    agent = auth_headers["agent"]
    _accept(client, agent, order["id"])

    skipped = _status(client, agent, order["id"], "DELIVERED")
    assert skipped.status_code == 409
    assert skipped.json()["detail"]["message"] == "Invalid status transition"

    admin_skip = client.put(
        f"/api/v1/admin/orders/{order['id']}/status",
        json={"status": "DELIVERED"},
        headers=auth_headers["admin"],
    )
    assert admin_skip.status_code == 200


def test_unassigned_agent_cannot_drive_order(client, auth_headers, place_order):
    order = place_order().json()
    _accept(client, auth_headers["agent"], order["id"])

    response = _status(client, auth_headers["agent_b"], order["id"], "PICKED_UP")
    assert response.status_code == 403

    details = client.get(f"/api/v1/delivery/orders/{order['id']}", headers=auth_headers["agent_b"])
    assert details.status_code == 403


def test_agent_cancel_requires_reason(client, auth_headers, place_order):
    order = place_order().json()
    agent = auth_headers["agent"]
    _accept(client, agent, order["id"])

    assert _status(client, agent, order["id"], "CANCELLED").status_code == 400
    cancelled = _status(client, agent, order["id"], "CANCELLED", reason="Address unreachable")
    assert cancelled.status_code == 200
    assert cancelled.json()["cancellation_reason"] == "Address unreachable"


def test_location_updates_feed_live_tracking(client, auth_headers, place_order):
    order = place_order().json()
    agent = auth_headers["agent"]
    _accept(client, agent, order["id"])

    for lat, lng in ((12.95, 77.60), (12.96, 77.61)):
        response = client.put(
            f"/api/v1/delivery/orders/{order['id']}/location",
            json={"latitude": lat, "longitude": lng, "address": "On the way", "heading": 90},
            headers=agent,
        )
        assert response.status_code == 200

    assert response.json()["current_location"]["lat"] == 12.96
    assert response.json()["pickup_location"]["address"] == "Stockflow Warehouse, Bangalore"
    assert response.json()["delivery_location"]["lat"] == 12.93

    history = client.get(f"/api/v1/tracking/{order['tracking_id']}/locations")
    assert history.status_code == 200
    body = history.json()
    assert body["tracking_enabled"] is True
    assert body["message"] is None
    assert [sample["latitude"] for sample in body["locations"]] == [12.95, 12.96]
    assert body["current_location"]["lng"] == 77.61
    assert body["pickup_location"]["lat"] == 12.9716
    assert body["delivery_location"] == {
        "lat": 12.93,
        "lng": 77.62,
        "address": "Koramangala, Bengaluru",
        "pincode": "560001",
    }
    assert body["route"]["distance_text"] == "3.5 km"
    assert 3400 < body["route"]["distance_m"] < 3600
    assert body["route"]["duration_s"] == pytest.approx(body["route"]["distance_m"] * 0.06, abs=1)
    assert body["route"]["duration_text"] == "3 min"


def test_live_tracking_disabled_until_accepted(client, place_order):
    order = place_order().json()

    response = client.get(f"/api/v1/tracking/{order['tracking_id']}/locations")

    assert response.status_code == 200
    body = response.json()
    assert body["order_number"] == order["order_number"]
    assert body["tracking_enabled"] is False
    assert body["message"] == "Order not yet accepted by a delivery agent"
    assert body["locations"] == []
    assert body["pickup_location"] is None
    assert body["route"] is None


def test_live_tracking_ignores_samples_before_acceptance(
    client, auth_headers, place_order, db_session
):
    order = place_order().json()
    agent = auth_headers["agent"]
    accepted_at = datetime.fromisoformat(_accept(client, agent, order["id"]).json()["accepted_at"])

    db_session.add(
        LocationTracking(
            order_id=order["id"],
            latitude=10.0,
            longitude=70.0,
            recorded_at=accepted_at - timedelta(hours=1),
        )
    )
    db_session.commit()
    client.put(
        f"/api/v1/delivery/orders/{order['id']}/location",
        json={"latitude": 12.95, "longitude": 77.60},
        headers=agent,
    )

    body = client.get(f"/api/v1/tracking/{order['tracking_id']}/locations").json()

    assert [sample["latitude"] for sample in body["locations"]] == [12.95]


def test_live_tracking_backfills_missing_delivery_location(
    client, auth_headers, place_order, geocoder
):
    geocoder.error = IntegrationUnavailableError("geocoding", "down")
    order = place_order().json()
    _accept(client, auth_headers["agent"], order["id"])
    client.put(
        f"/api/v1/delivery/orders/{order['id']}/location",
        json={"latitude": 12.95, "longitude": 77.60},
        headers=auth_headers["agent"],
    )

    still_down = client.get(f"/api/v1/tracking/{order['tracking_id']}/locations").json()
    assert still_down["tracking_enabled"] is True
    assert still_down["delivery_location"] is None
    assert still_down["route"] is None

    geocoder.error = None
    recovered = client.get(f"/api/v1/tracking/{order['tracking_id']}/locations").json()
    assert recovered["delivery_location"]["lat"] == 12.93
    assert recovered["route"] is not None
    assert geocoder.calls == ["560001", "560001", "560001"]

    stored = client.get(f"/api/v1/delivery/orders/{order['id']}", headers=auth_headers["admin"])
    assert stored.json()["delivery_location"]["pincode"] == "560001"

    client.get(f"/api/v1/tracking/{order['tracking_id']}/locations")
    assert len(geocoder.calls) == 3


def test_customer_live_tracking_is_owner_scoped(client, auth_headers, place_order):
    order = place_order().json()
    _accept(client, auth_headers["agent"], order["id"])

    mine = client.get(
        f"/api/v1/orders/{order['id']}/location-tracking", headers=auth_headers["customer"]
    )
    assert mine.status_code == 200
    assert mine.json()["tracking_enabled"] is True

    other = client.get(
        f"/api/v1/orders/{order['id']}/location-tracking", headers=auth_headers["customer_b"]
    )
    assert other.status_code == 403


def test_location_update_validates_coordinates(client, auth_headers, place_order):
    order = place_order().json()
    agent = auth_headers["agent"]
    _accept(client, agent, order["id"])

    response = client.put(
        f"/api/v1/delivery/orders/{order['id']}/location",
        json={"latitude": 91, "longitude": 0},
        headers=agent,
    )

    assert response.status_code == 422


def test_delivery_routes_require_agent_role(client, auth_headers, place_order):
    order = place_order().json()

    assert _accept(client, auth_headers["customer"], order["id"]).status_code == 403
    assert client.get(
        "/api/v1/delivery/orders/available", headers=auth_headers["admin"]
    ).status_code == 403
