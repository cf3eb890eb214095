from decimal import Decimal

from photocommerce.domain.types import Actor
from photocommerce.utils.security import get_current_actor


def test_default_policy_when_none_active(client, core):
    data = client.get("/api/v1/pricing").json()
    assert Decimal(data["pricePerUnit"]) == Decimal("5")
    assert data["studioId"] == core.studio_id
    assert data["bulkDiscountThreshold"] == 0


def test_publish_new_policy_version(client, core):
    r = client.post("/api/v1/pricing", json={"pricePerUnit": "5", "bulkDiscountThreshold": 20, "bulkDiscountPercent": "15"})
    assert r.status_code == 201
    client.post("/api/v1/pricing", json={"pricePerUnit": "6"})

    assert Decimal(client.get("/api/v1/pricing").json()["pricePerUnit"]) == Decimal("6")
    assert [p.is_active for p in core.pricing_store.policies] == [False, True]


def test_policy_bounds_are_validated(client, core):
    assert client.post("/api/v1/pricing", json={"pricePerUnit": "-1"}).status_code == 422
    assert client.post("/api/v1/pricing", json={"pricePerUnit": "5", "bulkDiscountPercent": "150"}).status_code == 422
    assert core.pricing_store.policies == []


def test_photographer_cannot_change_pricing(app, client, core):
    app.dependency_overrides[get_current_actor] = lambda: Actor(user_id="p", role="photographer", tenant_id=core.studio_id)
    assert client.get("/api/v1/pricing").status_code == 200
    assert client.post("/api/v1/pricing", json={"pricePerUnit": "1"}).status_code == 403


def test_new_policy_applies_to_next_checkout(client, core):
    client.post("/api/v1/pricing", json={"pricePerUnit": "5", "bulkDiscountThreshold": 20, "bulkDiscountPercent": "15"})
    session_id, photo_ids = core.orders.add_session(core.studio_id, 25)
    r = client.post("/api/v1/orders", json={
        "sessionId": session_id, "guestEmail": "g@example.com", "photoIds": photo_ids, "paymentMethod": "cash",
    })
    assert r.json()["finalAmount"] == "106.25"
