import base64
import hashlib
import hmac
import json

from sqlalchemy import select

from conftest import (
    RAZORPAY_SECRET,
    RAZORPAY_WEBHOOK_SECRET,
    WEBHOOK_SECRETS,
    auth_header,
    make_product,
    make_user,
)
from podshop.data.models.order import OrderModel
from podshop.data.models.setting import SettingModel
from podshop.data.models.webhook_event import WebhookEventModel


def order_body(product_id, quantity=1):
    return {
        "items": [{"productId": product_id, "quantity": quantity}],
        "email": "buyer@example.com",
        "phone": "9999999999",
        "shippingAddress": {
            "name": "Buyer",
            "line1": "MG Road 1",
            "city": "Pune",
            "state": "MH",
            "pincode": "411001",
        },
    }


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_register_login_and_me(client):
    resp = client.post("/api/auth/register", json={"email": "New@Example.com", "password": "secret123", "name": "New"})
    assert resp.status_code == 201
    assert resp.json()["data"]["user"]["email"] == "new@example.com"

    resp = client.post("/api/auth/login", json={"email": "new@example.com", "password": "secret123"})
    token = resp.json()["data"]["token"]

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.json()["data"]["user"]["role"] == "USER"


def test_duplicate_registration_and_bad_login(client, db):
    make_user(db, email="taken@example.com")

    resp = client.post("/api/auth/register", json={"email": "taken@example.com", "password": "secret123"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "User already exists"}

    resp = client.post("/api/auth/login", json={"email": "taken@example.com", "password": "wrong"})
    assert resp.status_code == 401


def test_invalid_token_and_validation_errors(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401

    resp = client.post("/api/auth/register", json={"email": "not-an-email", "password": "secret123"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_product_listing_hides_products_without_active_mapping(client, db):
    make_product(db, "Mug", [("PRINTROVE", "pr-1", 249), ("PRINTIFY", "pf-1", 699)], tags=["mug"])
    make_product(db, "Ghost", [("PRINTROVE", "pr-2", 100, False)])

    data = client.get("/api/products").json()["data"]
    assert [p["title"] for p in data["products"]] == ["Mug"]
    assert data["products"][0]["minPrice"] == "249.00"
    assert data["pagination"]["total"] == 1

    assert client.get("/api/products", params={"tags": "gift, mug"}).json()["data"]["pagination"]["total"] == 1
    assert client.get("/api/products", params={"search": "ghost"}).json()["data"]["products"] == []


def test_product_like_toggle(client, db):
    mug = make_product(db, "Mug", [("PRINTROVE", "pr-1", 249)])
    headers = auth_header(make_user(db))

    assert client.post(f"/api/products/{mug.id}/like", headers=headers).json()["data"]["liked"] is True
    assert client.get(f"/api/products/{mug.id}").json()["data"]["product"]["likesCount"] == 1
    assert client.post(f"/api/products/{mug.id}/like", headers=headers).json()["data"]["liked"] is False


def test_cart_drops_unavailable_products(client, db):
    mug = make_product(db, "Mug", [("PRINTROVE", "pr-1", 249), ("PRINTIFY", "pf-1", 699)])
    headers = auth_header(make_user(db))

    resp = client.put(
        "/api/cart",
        headers=headers,
        json={"items": [
            {"productId": mug.id, "quantity": 2, "selectedProvider": "PRINTIFY"},
            {"productId": 9999, "quantity": 1},
        ]},
    )
    cart = resp.json()["data"]["cart"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["selectedMapping"]["provider"] == "PRINTIFY"
    assert cart["total"] == "1398.00"

    assert client.delete("/api/cart", headers=headers).json()["message"] == "Cart cleared"
    assert client.get("/api/cart", headers=headers).json()["data"]["cart"]["items"] == []


def test_checkout_and_verify_payment(client, db, job_queue):
    mug = make_product(db, "Mug", [("PRINTROVE", "pr-1", 249)])
    user = make_user(db)

    resp = client.post("/api/orders", json=order_body(mug.id), headers=auth_header(user))
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["order"]["total"] == "343.82"
    gateway_order_id = data["payment"]["orderId"]

    signature = hmac.new(RAZORPAY_SECRET.encode(), f"{gateway_order_id}|pay_1".encode(), hashlib.sha256).hexdigest()
    resp = client.post(
        "/api/orders/verify-payment",
        json={"orderId": data["order"]["id"], "paymentId": "pay_1", "signature": signature},
    )
    assert resp.json()["data"]["order"]["status"] == "PAID"
    assert job_queue.fanouts == [data["order"]["id"]]

    mine = client.get("/api/orders/my-orders", headers=auth_header(user)).json()["data"]["orders"]
    assert [o["id"] for o in mine] == [data["order"]["id"]]


def test_order_visible_to_owner_and_admin_only(client, db):
    mug = make_product(db, "Mug", [("PRINTROVE", "pr-1", 249)])
    owner = make_user(db, email="owner@example.com")
    stranger = make_user(db, email="stranger@example.com")
    admin = make_user(db, email="admin@example.com", role="ADMIN")

    order_id = client.post("/api/orders", json=order_body(mug.id), headers=auth_header(owner)).json()["data"]["order"]["id"]

    assert client.get(f"/api/orders/{order_id}", headers=auth_header(owner)).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers=auth_header(stranger)).status_code == 403
    assert client.get(f"/api/orders/{order_id}", headers=auth_header(admin)).status_code == 200


def test_provider_webhook_always_acknowledged(client, db):
    resp = client.post(
        "/api/webhooks/printrove",
        content=json.dumps({"event": "order.status_changed", "event_id": "evt-1", "order_id": "x", "status": "shipped"}),
        headers={"x-printrove-signature": "forged"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    event = db.execute(select(WebhookEventModel)).scalar_one()
    assert event.provider == "PRINTROVE"
    assert event.event_key == "evt-1"
    assert event.processed is False

    assert client.post("/api/webhooks/acme", content=b"{}").status_code == 200
    assert client.post("/api/webhooks/printful", content=b"not json").status_code == 200


def test_malformed_provider_payload_is_logged_and_acknowledged(client, db):
    body = json.dumps({"type": "order_updated", "created": 1, "data": [1]}).encode()
    signature = base64.b64encode(
        hmac.new(WEBHOOK_SECRETS["PRINTFUL_WEBHOOK_SECRET"].encode(), body, hashlib.sha256).digest()
    ).decode()

    resp = client.post("/api/webhooks/printful", content=body, headers={"x-printful-signature": signature})
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    event = db.execute(select(WebhookEventModel)).scalar_one()
    assert event.provider == "PRINTFUL"
    assert event.event == "order_updated"
    assert event.event_key == "order_updated:None:1"
    assert event.processed is True


def test_non_string_event_name_is_stored_as_text(client, db):
    resp = client.post("/api/webhooks/printrove", content=json.dumps({"event": ["x"], "event_id": {"a": 1}}))
    assert resp.status_code == 200

    event = db.execute(select(WebhookEventModel)).scalar_one()
    assert event.event == "['x']"
    assert event.event_key.startswith("sha256:")


def test_razorpay_webhook_marks_order_paid(client, db, job_queue):
    mug = make_product(db, "Mug", [("PRINTROVE", "pr-1", 249)])
    order_id = client.post("/api/orders", json=order_body(mug.id)).json()["data"]["order"]["id"]

    body = json.dumps({
        "event": "payment.captured",
        "payload": {"payment": {"entity": {"id": "pay_7", "notes": {"orderId": str(order_id)}}}},
    }).encode()
    signature = hmac.new(RAZORPAY_WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()

    assert client.post("/api/webhooks/razorpay", content=body, headers={"x-razorpay-signature": signature}).status_code == 200
    db.expire_all()
    assert db.get(OrderModel, order_id).status == "PAID"
    assert job_queue.fanouts == [order_id]


def test_admin_routes_require_admin(client, db):
    headers = auth_header(make_user(db))
    assert client.get("/api/admin/dashboard", headers=headers).status_code == 403
    assert client.get("/api/admin/dashboard").status_code == 401


def test_admin_sync_catalog_enqueues_one_job_per_provider(client, db, job_queue):
    headers = auth_header(make_user(db, role="ADMIN"))

    client.post("/api/admin/sync-catalog", headers=headers, json={"provider": "PRINTFUL"})
    assert job_queue.syncs == ["PRINTFUL"]

    client.post("/api/admin/sync-catalog", headers=headers)
    assert job_queue.syncs == ["PRINTFUL", "PRINTROVE", "PRINTFUL", "PRINTIFY"]


def test_admin_credentials_are_encrypted_at_rest(client, db):
    headers = auth_header(make_user(db, role="ADMIN"))

    resp = client.put("/api/admin/settings", headers=headers, json={"settings": {"PRINTFUL_API_KEY": "pf-live-key", "OTHER": "x"}})
    assert resp.json()["data"]["updated"] == ["PRINTFUL_API_KEY"]

    stored = db.get(SettingModel, "PRINTFUL_API_KEY")
    assert stored.encrypted is True
    assert stored.value != "pf-live-key"

    settings = client.get("/api/admin/settings", headers=headers).json()["data"]["settings"]
    assert settings == [{"key": "PRINTFUL_API_KEY", "value": "pf-live-key", "hasValue": True}]


def test_admin_dashboard_and_status_update(client, db):
    mug = make_product(db, "Mug", [("PRINTROVE", "pr-1", 249)])
    headers = auth_header(make_user(db, role="ADMIN"))
    order_id = client.post("/api/orders", json=order_body(mug.id)).json()["data"]["order"]["id"]

    resp = client.patch(f"/api/admin/orders/{order_id}/status", headers=headers, json={"status": "CANCELLED"})
    assert resp.json()["data"]["order"]["status"] == "CANCELLED"
    resp = client.patch(f"/api/admin/orders/{order_id}/status", headers=headers, json={"status": "PAID"})
    assert resp.status_code == 400

    stats = client.get("/api/admin/dashboard", headers=headers).json()["data"]
    assert stats["totalOrders"] == 1
    assert stats["totalProducts"] == 1
    assert stats["totalRevenue"] == "0.00"
    assert len(stats["recentOrders"]) == 1


def test_admin_product_upsert_replaces_mappings(client, db):
    headers = auth_header(make_user(db, role="ADMIN"))
    body = {
        "title": "Poster (India)",
        "category": "Wall Art",
        "providerMappings": [{"provider": "PRINTROVE", "providerProductId": "pr-9", "price": "199"}],
    }
    product = client.post("/api/admin/products", headers=headers, json=body).json()["data"]["product"]
    assert product["baseTitle"] == "Poster"
    assert product["providerMappings"][0]["cost"] == "119.40"

    body["id"] = product["id"]
    body["providerMappings"] = [{"provider": "PRINTIFY", "providerProductId": "pf-9", "price": "299"}]
    product = client.post("/api/admin/products", headers=headers, json=body).json()["data"]["product"]
    assert [m["provider"] for m in product["providerMappings"]] == ["PRINTIFY"]
