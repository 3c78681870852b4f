from datetime import timedelta
from unittest.mock import patch

import pytest

from cinebook.core.logging import REQUEST_ID_HEADER
from cinebook.database import models
from cinebook.database.payment_models import ORDER_ORPHANED, PaymentOrder

pytestmark = pytest.mark.integration


def _query(catalog):
    return {"movie": catalog.movie_id, "theater": catalog.theater_name, "showtime": catalog.start.isoformat()}


def _intent_body(catalog, seats):
    return {**_query(catalog), "seats": seats}


def _checkout(client, gateway, headers, catalog, seats, payment_id="pay_1"):
    """Order + verify, the way the frontend does after the checkout widget closes."""
    intent = client.post("/api/booking/intent", json=_intent_body(catalog, seats), headers=headers)
    assert intent.status_code == 200, intent.text
    order = client.post("/api/payment/order", json={"amount": intent.json()["amount"]}, headers=headers)
    assert order.status_code == 200, order.text
    order_id = order.json()["externalOrderId"]
    return client.post(
        "/api/payment/verify",
        json={
            "externalOrderId": order_id,
            "paymentId": payment_id,
            "signature": gateway.sign(order_id, payment_id),
            "intent": _intent_body(catalog, seats),
        },
        headers=headers,
    )


def test_occupied_seats_are_public_and_sorted(client, catalog, add_booking):
    add_booking(catalog.bob.id, ["A10", "A2"])

    r = client.get("/api/seats/occupied", params=_query(catalog))

    assert r.status_code == 200
    assert r.json()["seats"] == ["A2", "A10", "J1", "J2"]


def test_intent_requires_a_token(client, catalog):
    r = client.post("/api/booking/intent", json=_intent_body(catalog, ["A1"]))

    assert r.status_code == 401


def test_intent_quotes_the_selection(client, catalog, auth_headers):
    r = client.post("/api/booking/intent", json=_intent_body(catalog, ["a1", "A2"]), headers=auth_headers(catalog.alice))

    assert r.status_code == 200
    body = r.json()
    assert body["seats"] == ["A1", "A2"]
    assert body["amount"] == 500
    assert body["currency"] == "INR"
    assert body["theater"] == {"name": catalog.theater_name, "location": "Downtown"}


def test_intent_conflict_names_the_seats(client, catalog, auth_headers):
    r = client.post("/api/booking/intent", json=_intent_body(catalog, ["J1", "A1"]), headers=auth_headers(catalog.alice))

    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "seat_conflict"
    assert body["seats"] == ["J1"]
    assert "request_id" in body


def test_request_id_is_echoed(client, catalog):
    r = client.get("/api/seats/occupied", params=_query(catalog), headers={REQUEST_ID_HEADER: "abc123"})

    assert r.headers[REQUEST_ID_HEADER] == "abc123"


@pytest.mark.parametrize("amount", [0, -100])
def test_order_rejects_non_positive_amounts(client, catalog, auth_headers, amount):
    r = client.post("/api/payment/order", json={"amount": amount}, headers=auth_headers(catalog.alice))

    assert r.status_code == 400
    assert r.json()["code"] == "invalid_amount"


def test_full_booking_flow(client, gateway, notifier, catalog, auth_headers):
    headers = auth_headers(catalog.alice)

    r = _checkout(client, gateway, headers, catalog, ["C1", "C2"])

    assert r.status_code == 200, r.text
    body = r.json()
    booking_id = body["bookingId"]
    assert body["booking"]["status"] == "confirmed"
    assert body["booking"]["payment_status"] == "paid"
    notifier.dispatch.assert_called_once()

    occupied = client.get("/api/seats/occupied", params=_query(catalog)).json()["seats"]
    assert {"C1", "C2"} <= set(occupied)

    mine = client.get("/api/booking/my-bookings", headers=headers).json()
    assert mine["count"] == 1
    assert mine["bookings"][0]["id"] == booking_id
    assert client.get(f"/api/booking/{booking_id}", headers=headers).status_code == 200
    assert client.get(f"/api/booking/{booking_id}", headers=auth_headers(catalog.bob)).status_code == 404

    cancelled = client.patch(f"/api/booking/{booking_id}/cancel", headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["booking"]["status"] == "cancelled"

    occupied = client.get("/api/seats/occupied", params=_query(catalog)).json()["seats"]
    assert not {"C1", "C2"} & set(occupied)

    again = client.patch(f"/api/booking/{booking_id}/cancel", headers=headers)
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_state"


def test_forged_signature_is_rejected(client, gateway, catalog, auth_headers, session_factory):
    headers = auth_headers(catalog.alice)
    order = client.post("/api/payment/order", json={"amount": 250}, headers=headers).json()

    r = client.post(
        "/api/payment/verify",
        json={
            "externalOrderId": order["externalOrderId"],
            "paymentId": "pay_1",
            "signature": "0" * 64,
            "intent": _intent_body(catalog, ["D1"]),
        },
        headers=headers,
    )

    assert r.status_code == 400
    assert r.json()["code"] == "invalid_signature"
    check = session_factory()
    try:
        assert check.query(models.Booking).count() == 0
    finally:
        check.close()


def test_tampered_intent_amount_is_rejected(client, gateway, catalog, auth_headers):
    headers = auth_headers(catalog.alice)
    order = client.post("/api/payment/order", json={"amount": 250}, headers=headers).json()
    order_id = order["externalOrderId"]

    r = client.post(
        "/api/payment/verify",
        json={
            "externalOrderId": order_id,
            "paymentId": "pay_1",
            "signature": gateway.sign(order_id, "pay_1"),
            "intent": _intent_body(catalog, ["D1", "D2"]),
        },
        headers=headers,
    )

    assert r.status_code == 400
    assert r.json()["code"] == "amount_mismatch"


def test_seats_taken_after_payment_return_refund_guidance(
    client, gateway, catalog, auth_headers, add_booking, session_factory
):
    headers = auth_headers(catalog.alice)
    intent = client.post("/api/booking/intent", json=_intent_body(catalog, ["E1"]), headers=headers)
    assert intent.status_code == 200
    order_id = client.post("/api/payment/order", json={"amount": 250}, headers=headers).json()["externalOrderId"]
    add_booking(catalog.bob.id, ["E1"])

    r = client.post(
        "/api/payment/verify",
        json={
            "externalOrderId": order_id,
            "paymentId": "pay_1",
            "signature": gateway.sign(order_id, "pay_1"),
            "intent": _intent_body(catalog, ["E1"]),
        },
        headers=headers,
    )

    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "seat_conflict"
    assert body["refund_required"] is True
    assert body["seats"] == ["E1"]
    check = session_factory()
    try:
        order = check.query(PaymentOrder).filter(PaymentOrder.order_id == order_id).one()
        assert order.status == ORDER_ORPHANED
    finally:
        check.close()


def test_gateway_status_reports_mode(client):
    r = client.get("/api/payment/gateway-status")

    assert r.json() == {"gateway": "fallback", "configured": True, "key_id": None, "currency": "INR"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/health/redis").json() == {"status": "disabled"}


def test_show_starting_during_payment_flags_order_for_refund(
    client, gateway, notifier, catalog, auth_headers, session_factory
):
    headers = auth_headers(catalog.alice)
    intent = client.post("/api/booking/intent", json=_intent_body(catalog, ["F1"]), headers=headers)
    assert intent.status_code == 200
    order_id = client.post("/api/payment/order", json={"amount": 250}, headers=headers).json()["externalOrderId"]

    with patch("cinebook.services.intent_service.utcnow", return_value=catalog.start + timedelta(minutes=1)):
        r = client.post(
            "/api/payment/verify",
            json={
                "externalOrderId": order_id,
                "paymentId": "pay_1",
                "signature": gateway.sign(order_id, "pay_1"),
                "intent": _intent_body(catalog, ["F1"]),
            },
            headers=headers,
        )

    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "payment_not_bookable"
    assert body["reason"] == "invalid_showtime"
    assert body["refund_required"] is True
    assert "refund" in body["detail"]
    notifier.dispatch.assert_not_called()
    check = session_factory()
    try:
        order = check.query(PaymentOrder).filter(PaymentOrder.order_id == order_id).one()
        assert order.status == ORDER_ORPHANED
        assert order.meta["error"] == "invalid_showtime"
        assert check.query(models.Booking).count() == 0
    finally:
        check.close()


def test_replayed_verify_after_cancellation_is_rejected(client, gateway, catalog, auth_headers):
    headers = auth_headers(catalog.alice)
    intent = client.post("/api/booking/intent", json=_intent_body(catalog, ["G5"]), headers=headers).json()
    order_id = client.post("/api/payment/order", json={"amount": intent["amount"]}, headers=headers).json()[
        "externalOrderId"
    ]
    verify_body = {
        "externalOrderId": order_id,
        "paymentId": "pay_1",
        "signature": gateway.sign(order_id, "pay_1"),
        "intent": _intent_body(catalog, ["G5"]),
    }
    booking_id = client.post("/api/payment/verify", json=verify_body, headers=headers).json()["bookingId"]
    assert client.patch(f"/api/booking/{booking_id}/cancel", headers=headers).status_code == 200

    r = client.post("/api/payment/verify", json=verify_body, headers=headers)

    assert r.status_code == 409
    assert r.json()["code"] == "invalid_state"
