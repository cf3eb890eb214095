import uuid
from urllib.parse import parse_qs, urlparse

from photocommerce.domain.types import Actor
from photocommerce.utils.security import get_current_actor


def _checkout_body(session_id, photo_ids, method="robokassa", **extra):
    body = {
        "sessionId": session_id,
        "guestEmail": "guest@example.com",
        "guestName": "Guest",
        "photoIds": photo_ids,
        "paymentMethod": method,
    }
    body.update(extra)
    return body


def test_create_robokassa_order_returns_payment_link(client, core):
    session_id, photo_ids = core.orders.add_session(core.studio_id, 3)
    r = client.post("/api/v1/orders", json=_checkout_body(session_id, photo_ids))
    assert r.status_code == 201
    data = r.json()
    assert data["finalAmount"] == "15.00"
    assert data["paymentMethod"] == "robokassa"
    params = parse_qs(urlparse(data["paymentLink"]).query)
    assert params["InvId"] == [data["orderId"]]
    assert params["OutSum"] == ["15.00"]


def test_create_cash_order_has_no_payment_link(client, core):
    session_id, photo_ids = core.orders.add_session(core.studio_id, 1)
    data = client.post("/api/v1/orders", json=_checkout_body(session_id, photo_ids, "cash")).json()
    assert "paymentLink" not in data
    assert core.emitter.types() == ["new_order"]


def test_checkout_ignores_client_supplied_prices(client, core):
    session_id, photo_ids = core.orders.add_session(core.studio_id, 2)
    r = client.post("/api/v1/orders", json=_checkout_body(session_id, photo_ids, finalAmount="0.01", studioId="other"))
    assert r.json()["finalAmount"] == "10.00"
    order = core.orders.get_order(r.json()["orderId"])
    assert order.studio_id == core.studio_id


def test_checkout_errors(client, core):
    session_id, photo_ids = core.orders.add_session(core.studio_id, 2)

    r = client.post("/api/v1/orders", json=_checkout_body(session_id, photo_ids, "paypal"))
    assert r.status_code == 400
    assert r.json()["code"] == "UNSUPPORTED_PAYMENT_METHOD"

    r = client.post("/api/v1/orders", json=_checkout_body(session_id, photo_ids + [str(uuid.uuid4())]))
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_SELECTION"

    r = client.post("/api/v1/orders", json=_checkout_body(session_id, []))
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"

    r = client.post("/api/v1/orders", json=_checkout_body(session_id, photo_ids, guestEmail="not-an-email"))
    assert r.status_code == 422
    assert core.orders.orders == {}


def test_checkout_store_outage_is_503(client, core):
    session_id, photo_ids = core.orders.add_session(core.studio_id, 1)
    core.orders.unavailable = True
    r = client.post("/api/v1/orders", json=_checkout_body(session_id, photo_ids))
    assert r.status_code == 503
    assert r.json()["code"] == "TRANSIENT_STORE_ERROR"


def test_quote_preview(client, core):
    session_id, photo_ids = core.orders.add_session(core.studio_id, 4)
    r = client.post("/api/v1/orders/quote", json={"sessionId": session_id, "photoIds": photo_ids})
    assert r.status_code == 200
    assert r.json()["finalAmount"] == "20.00"


def test_list_and_get_orders(client, make_order):
    order = make_order("cash")
    listed = client.get("/api/v1/orders").json()["orders"]
    assert [o["id"] for o in listed] == [order.id]
    assert client.get("/api/v1/orders", params={"status": "completed"}).json()["orders"] == []

    detail = client.get(f"/api/v1/orders/{order.id}").json()
    assert detail["finalAmount"] == "15.00"
    assert len(detail["items"]) == 3
    assert client.get(f"/api/v1/orders/{uuid.uuid4()}").status_code == 404


def test_manual_status_endpoints(client, make_order):
    order = make_order("cash")
    r = client.patch(f"/api/v1/orders/{order.id}/status", json={"status": "processing"})
    assert r.status_code == 200
    assert r.json()["status"] == "processing"

    r = client.patch(f"/api/v1/orders/{order.id}/status", json={"status": "pending"})
    assert r.status_code == 409
    assert r.json()["code"] == "INVALID_TRANSITION"
    assert r.json()["details"]["reason"] == "illegal_transition"

    r = client.patch(f"/api/v1/orders/{order.id}/payment-status", json={"paymentStatus": "paid"})
    assert r.status_code == 200
    assert r.json()["paymentStatus"] == "paid"


def test_payment_status_only_for_cash(client, make_order):
    order = make_order("tinkoff")
    r = client.patch(f"/api/v1/orders/{order.id}/payment-status", json={"paymentStatus": "paid"})
    assert r.status_code == 409
    assert r.json()["details"]["reason"] == "provider_managed"


def test_staff_endpoints_reject_other_roles(app, client, make_order, core):
    order = make_order("cash")
    app.dependency_overrides[get_current_actor] = lambda: Actor(user_id="g", role="guest", tenant_id=core.studio_id)
    assert client.get("/api/v1/orders").status_code == 403
    assert client.patch(f"/api/v1/orders/{order.id}/status", json={"status": "processing"}).status_code == 403


def test_other_studio_cannot_see_order(app, client, make_order):
    order = make_order("cash")
    app.dependency_overrides[get_current_actor] = lambda: Actor(
        user_id="x", role="studio-admin", tenant_id=str(uuid.uuid4())
    )
    assert client.get(f"/api/v1/orders/{order.id}").status_code == 404
    assert client.get("/api/v1/orders").json()["orders"] == []
