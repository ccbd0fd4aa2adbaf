import pytest
from fastapi.testclient import TestClient

from storefront.api.delivery.router.dependencies import get_checkout_service, get_session_registry
from storefront.api.delivery.services.checkout_service import CheckoutService
from storefront.main import app

from conftest import DESKTOP_UA, MOBILE_UA, MOBILE_URL, PC_URL, make_registry

HOME = "Hwagok-ro 100, Gangseo-gu, Seoul"


@pytest.fixture
def client(clock, backend, geocoding, pending_orders):
    registry = make_registry(clock)

    def override_service():
        return CheckoutService(
            registry=registry,
            backend=backend,
            geocoding=geocoding,
            pending_orders=pending_orders,
        )

    app.dependency_overrides[get_checkout_service] = override_service
    app.dependency_overrides[get_session_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


def open_session(client, session_id=None):
    headers = {"X-Session-Id": session_id} if session_id else {}
    response = client.post("/api/delivery/checkout/session", headers=headers)
    assert response.status_code == 201
    return response.json()


def prepare(client):
    """Opens a session and fills it until it can be submitted."""
    state = open_session(client)
    headers = {"X-Session-Id": state["session_id"]}
    client.put(
        "/api/delivery/checkout/address",
        json={"phone": "010-1234-5678", "postalCode": "07552", "address1": HOME},
        headers=headers,
    )
    client.post("/api/delivery/checkout/selection/A-101", headers=headers)
    state = client.post("/api/delivery/checkout/selection/A-102", headers=headers).json()
    return headers, state


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_metrics_are_exposed(client):
    response = client.get("/api/monitoring/metrics")
    assert response.status_code == 200
    assert "delivery_payment_ready_total" in response.text


def test_open_session_returns_initial_state(client):
    state = open_session(client)

    assert state["session_id"]
    assert state["today"] == "2026-10-17"
    assert [c["display_code"] for c in state["candidates"]] == ["A-101", "A-102", "A-103"]
    assert state["window"]["label"] == "12:00 ~ 19:30"
    assert state["config"]["feePer100m"] == 50
    assert state["can_submit"] is False
    assert "Select at least one reservation to deliver." in state["blockers"]


def test_state_requires_a_known_session(client):
    response = client.get("/api/delivery/checkout/state", headers={"X-Session-Id": "missing"})

    assert response.status_code == 404
    assert response.json()["code"] == "DLV_404"


def test_address_update_estimates_fee(client):
    state = open_session(client)
    response = client.put(
        "/api/delivery/checkout/address",
        json={"phone": "010-1234-5678", "postalCode": "07552", "address1": HOME},
        headers={"X-Session-Id": state["session_id"]},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["info"]["phone"] == "01012345678"
    assert body["fee_summary"]["delivery_fee"] == 2900
    assert body["estimate"]["coordinates"]["latitude"] == 37.5485


def test_undeliverable_selection_is_rejected(client):
    state = open_session(client)
    response = client.post(
        "/api/delivery/checkout/selection/A-103",
        headers={"X-Session-Id": state["session_id"]},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "This item cannot be delivered."


def test_scheduled_delivery_and_slot(client):
    state = open_session(client)
    headers = {"X-Session-Id": state["session_id"]}

    state = client.put(
        "/api/delivery/checkout/delivery-type", json={"deliveryType": "scheduled"}, headers=headers
    ).json()
    assert state["slot"] == {"hour": 15, "minute": 0, "label": "14:00 ~ 15:00"}

    state = client.put("/api/delivery/checkout/slot", json={"hour": 17, "minute": 0}, headers=headers).json()
    assert state["slot"]["label"] == "16:00 ~ 17:00"


def test_invalid_slot_body_is_422(client):
    state = open_session(client)
    response = client.put(
        "/api/delivery/checkout/slot",
        json={"hour": 25, "minute": 0},
        headers={"X-Session-Id": state["session_id"]},
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Invalid request data."


def test_postcode_search(client):
    response = client.get("/api/delivery/checkout/postcode", params={"query": "Hwagok"})

    body = response.json()
    assert body["total"] == 1
    assert body["results"][0]["address1"] == HOME


def test_blocked_submit_lists_every_reason(client, backend):
    state = open_session(client)
    response = client.post(
        "/api/delivery/checkout/submit",
        headers={"X-Session-Id": state["session_id"], "User-Agent": DESKTOP_UA},
    )

    body = response.json()
    assert response.status_code == 422
    assert body["code"] == "DLV_BLOCKED"
    assert len(body["details"]["blockers"]) >= 3
    assert "payment_ready" not in backend.calls


def test_desktop_submit(client, pending_orders):
    headers, state = prepare(client)
    assert state["can_submit"] is True
    assert state["fee_summary"]["total_amount"] == 17900

    response = client.post("/api/delivery/checkout/submit", headers={**headers, "User-Agent": DESKTOP_UA})

    assert response.status_code == 200
    assert response.json() == {"order_code": "ORD-1", "redirect": {"kind": "desktop", "url": PC_URL}}
    assert pending_orders.get(headers["X-Session-Id"]) == "ORD-1"


def test_mobile_submit_and_leaving_the_page(client):
    headers, _ = prepare(client)

    redirect = client.post(
        "/api/delivery/checkout/submit", headers={**headers, "User-Agent": MOBILE_UA}
    ).json()["redirect"]
    assert redirect["kind"] == "mobile_with_fallback"
    assert redirect["deep_link"] == MOBILE_URL

    state = client.post("/api/delivery/checkout/payment/left", headers=headers).json()
    assert state["payment_fallback_url"] is None


def test_payment_cancel_cancels_pending_order(client, backend, pending_orders):
    headers, _ = prepare(client)
    client.post("/api/delivery/checkout/submit", headers={**headers, "User-Agent": DESKTOP_UA})

    response = client.post("/api/delivery/checkout/payment/cancel", headers=headers)

    assert response.status_code == 200
    assert backend.cancelled == ["ORD-1"]
    assert pending_orders.get(headers["X-Session-Id"]) is None


def test_reopening_a_session_cancels_its_stale_order(client, backend, pending_orders):
    pending_orders.save("visitor-1", "ORD-OLD")

    state = open_session(client, "visitor-1")

    assert state["session_id"] == "visitor-1"
    assert backend.cancelled == ["ORD-OLD"]


def test_approved_payment_survives_reopening_the_session(client, backend, pending_orders):
    headers, _ = prepare(client)
    client.post("/api/delivery/checkout/submit", headers={**headers, "User-Agent": DESKTOP_UA})

    response = client.post("/api/delivery/checkout/payment/approve", headers=headers)
    assert response.status_code == 200
    assert response.json()["payment_fallback_url"] is None

    open_session(client, headers["X-Session-Id"])

    assert backend.cancelled == []
    assert pending_orders.get(headers["X-Session-Id"]) is None


def test_failed_payment_return_does_not_cancel(client, backend):
    headers, _ = prepare(client)
    client.post("/api/delivery/checkout/submit", headers={**headers, "User-Agent": DESKTOP_UA})

    response = client.post("/api/delivery/checkout/payment/fail", headers=headers)
    assert response.status_code == 200

    open_session(client, headers["X-Session-Id"])
    assert backend.cancelled == []
