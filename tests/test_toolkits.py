import hashlib
import hmac
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import pytest

from opportunity_hub.api.routes import toolkit_routes
from opportunity_hub.core.config import get_settings
from opportunity_hub.services.coupon_service import CouponError, check_coupon, final_price, normalize_code
from opportunity_hub.services.razorpay_client import (
    PaymentGatewayError, RazorpayClient, build_receipt, verify_payment_signature
)

SECRET = "rzp_test_secret"


def _sign(order_id: str, payment_id: str) -> str:
    return hmac.new(SECRET.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def orders(monkeypatch):
    """Replaces the Razorpay order call; returns the list of created orders."""
    created = []

    def fake_create_order(self, amount, receipt, currency="INR"):
        order = {"id": f"order_{len(created) + 1}", "amount": amount, "currency": currency, "receipt": receipt}
        created.append(order)
        return order

    monkeypatch.setattr(RazorpayClient, "create_order", fake_create_order)
    return created


@pytest.fixture
def toolkit(client, admin):
    response = client.post(
        "/api/admin/toolkits",
        json={"title": "Resume Kit", "description": "Templates and videos", "price": 500, "highlights": ["3 videos"]},
        headers=admin["headers"],
    )
    assert response.status_code == 201, response.text
    created = response.json()["toolkit"]

    for index, (title, kind) in enumerate((("Intro", "video"), ("Template", "article"))):
        item = client.post(
            f"/api/admin/toolkits/{created['id']}/content",
            json={
                "title": title, "type": kind, "content": f"{title} body",
                "videoUrl": "https://video.dev/1" if kind == "video" else None, "orderIndex": index,
            },
            headers=admin["headers"],
        )
        assert item.status_code == 201, item.text
    return created


def _coupon(client, admin, **overrides):
    body = {"code": " save100 ", "discountAmount": 100}
    body.update(overrides)
    response = client.post("/api/admin/coupons", json=body, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()["coupon"]


# ============================================================
# COUPON RULES
# ============================================================

def _row(**overrides):
    row = {
        "id": "c1", "code": "SAVE", "discount_amount": 100, "max_uses": None,
        "max_uses_per_user": 1, "current_uses": 0, "is_active": True, "expires_at": None,
    }
    row.update(overrides)
    return row


@pytest.mark.parametrize("row,user_uses,message", [
    (None, 0, "Invalid coupon code"),
    (_row(is_active=False), 0, "Coupon is not active"),
    (_row(expires_at="2020-01-01 00:00:00"), 0, "Coupon has expired"),
    (_row(max_uses=5, current_uses=5), 0, "Coupon usage limit reached"),
    (_row(max_uses_per_user=2), 2, "You have already used this coupon"),
])
def test_check_coupon_failures(row, user_uses, message):
    with pytest.raises(CouponError, match=message):
        check_coupon(row, user_uses)


def test_check_coupon_accepts_valid_row():
    future = datetime.now(timezone.utc) + timedelta(days=1)
    row = _row(max_uses=5, current_uses=4, expires_at=future)
    assert check_coupon(row, 0) is row


def test_price_helpers():
    assert normalize_code("  save10 ") == "SAVE10"
    assert final_price(500, 100) == 400
    assert final_price(50, 100) == 0


def test_signature_and_receipt():
    assert verify_payment_signature("order_1", "pay_1", _sign("order_1", "pay_1"), SECRET)
    assert not verify_payment_signature("order_1", "pay_2", _sign("order_1", "pay_1"), SECRET)
    assert not verify_payment_signature("order_1", "pay_1", "sig-\u00e9\u00e8", SECRET)
    assert len(build_receipt("1234567890abcdef")) <= 40


def test_client_requires_keys(monkeypatch):
    monkeypatch.setattr(get_settings(), "razorpay_key_id", None)
    with pytest.raises(PaymentGatewayError, match="RAZORPAY_KEY_ID"):
        RazorpayClient().create_order(100, "r1")


# ============================================================
# CATALOG
# ============================================================

def test_public_catalog_hides_lesson_bodies(client, toolkit):
    listing = client.get("/api/toolkits").json()["toolkits"]
    assert [t["id"] for t in listing] == [toolkit["id"]]
    assert listing[0]["lesson_count"] == 2
    assert listing[0]["creator_name"] == "Admin"

    detail = client.get(f"/api/toolkits/{toolkit['id']}").json()
    assert [i["title"] for i in detail["content_items"]] == ["Intro", "Template"]
    assert all(i["content"] is None and i["video_url"] is None for i in detail["content_items"])
    assert detail["has_purchased"] is False


def test_admin_sees_lesson_bodies(client, admin, toolkit):
    detail = client.get(f"/api/toolkits/{toolkit['id']}", headers=admin["headers"]).json()
    assert detail["content_items"][0]["content"] == "Intro body"


def test_inactive_toolkit_hidden(client, admin, toolkit):
    client.put(f"/api/admin/toolkits/{toolkit['id']}", json={"isActive": False}, headers=admin["headers"])

    assert client.get("/api/toolkits").json()["toolkits"] == []
    assert client.get(f"/api/toolkits/{toolkit['id']}").status_code == 404
    assert len(client.get("/api/admin/toolkits", headers=admin["headers"]).json()["toolkits"]) == 1


# ============================================================
# PURCHASE FLOW
# ============================================================

def test_purchase_with_coupon_and_verify(client, admin, student, toolkit, orders):
    coupon = _coupon(client, admin)
    assert coupon["code"] == "SAVE100"

    preview = client.post(
        "/api/coupons/validate", json={"code": "save100", "toolkitId": toolkit["id"]}, headers=student["headers"]
    ).json()
    assert preview["valid"] is True
    assert preview["final_price"] == 400

    checkout = client.post(
        f"/api/toolkits/{toolkit['id']}/purchase", json={"couponCode": "save100"}, headers=student["headers"]
    )
    assert checkout.status_code == 200
    body = checkout.json()
    assert body["final_price"] == 400
    assert body["discount_amount"] == 100
    assert body["order"] == {"id": "order_1", "amount": 40000, "currency": "INR"}
    assert body["key"] == "rzp_test_key"

    coupons = client.get("/api/admin/coupons", headers=admin["headers"]).json()["coupons"]
    assert coupons[0]["current_uses"] == 1

    bad = client.post(
        f"/api/toolkits/{toolkit['id']}/verify",
        json={"razorpay_order_id": "order_1", "razorpay_payment_id": "pay_1", "razorpay_signature": "forged"},
        headers=student["headers"],
    )
    assert bad.status_code == 400

    verified = client.post(
        f"/api/toolkits/{toolkit['id']}/verify",
        json={"razorpay_order_id": "order_1", "razorpay_payment_id": "pay_1", "razorpay_signature": _sign("order_1", "pay_1")},
        headers=student["headers"],
    )
    assert verified.json() == {"success": True}

    detail = client.get(f"/api/toolkits/{toolkit['id']}", headers=student["headers"]).json()
    assert detail["has_purchased"] is True
    assert detail["content_items"][1]["content"] == "Template body"

    purchased = client.get("/api/toolkits/purchased", headers=student["headers"]).json()["toolkits"]
    assert [t["id"] for t in purchased] == [toolkit["id"]]

    again = client.post(f"/api/toolkits/{toolkit['id']}/purchase", json={}, headers=student["headers"])
    assert again.status_code == 400
    assert again.json()["detail"] == "Toolkit already purchased"

    reused = client.post(
        "/api/coupons/validate", json={"code": "SAVE100", "toolkitId": toolkit["id"]}, headers=student["headers"]
    ).json()
    assert reused == {"valid": False, "error": "You have already used this coupon"}


def test_purchase_with_bad_coupon(client, student, toolkit, orders):
    response = client.post(
        f"/api/toolkits/{toolkit['id']}/purchase", json={"couponCode": "NOPE"}, headers=student["headers"]
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid coupon code"
    assert orders == []


def test_gateway_failure_is_502(client, student, toolkit, monkeypatch):
    def failing_create_order(self, amount, receipt, currency="INR"):
        raise PaymentGatewayError("Failed to create payment order")

    monkeypatch.setattr(RazorpayClient, "create_order", failing_create_order)
    response = client.post(f"/api/toolkits/{toolkit['id']}/purchase", json={}, headers=student["headers"])
    assert response.status_code == 502


def test_gateway_called_with_no_open_session(client, student, toolkit, monkeypatch):
    open_sessions = []
    sessions_during_call = []
    real_session = toolkit_routes.get_db_session

    @contextmanager
    def tracking_session():
        open_sessions.append(True)
        try:
            with real_session() as db:
                yield db
        finally:
            open_sessions.pop()

    def fake_create_order(self, amount, receipt, currency="INR"):
        sessions_during_call.append(len(open_sessions))
        return {"id": "order_1", "amount": amount, "currency": currency}

    monkeypatch.setattr(toolkit_routes, "get_db_session", tracking_session)
    monkeypatch.setattr(RazorpayClient, "create_order", fake_create_order)

    response = client.post(f"/api/toolkits/{toolkit['id']}/purchase", json={}, headers=student["headers"])
    assert response.status_code == 200
    assert sessions_during_call == [0]


def test_verify_unknown_order(client, student, toolkit):
    response = client.post(
        f"/api/toolkits/{toolkit['id']}/verify",
        json={"razorpay_order_id": "order_x", "razorpay_payment_id": "pay_x", "razorpay_signature": _sign("order_x", "pay_x")},
        headers=student["headers"],
    )
    assert response.status_code == 404


def test_verify_non_ascii_signature_is_400(client, student, toolkit):
    response = client.post(
        f"/api/toolkits/{toolkit['id']}/verify",
        json={"razorpay_order_id": "order_1", "razorpay_payment_id": "pay_1", "razorpay_signature": "ünïcode"},
        headers=student["headers"],
    )
    assert response.status_code == 400


def test_validate_coupon_unknown_toolkit(client, admin):
    _coupon(client, admin)
    response = client.post("/api/coupons/validate", json={"code": "SAVE100", "toolkitId": "missing"})
    assert response.status_code == 404


def test_progress_is_idempotent(client, admin, student, toolkit):
    items = client.get(f"/api/admin/toolkits/{toolkit['id']}/content", headers=admin["headers"]).json()["content_items"]
    url = f"/api/toolkits/{toolkit['id']}/progress"

    first = client.post(url, json={"contentItemId": items[0]["id"]}, headers=student["headers"]).json()
    second = client.post(url, json={"contentItemId": items[0]["id"]}, headers=student["headers"]).json()
    assert first == {"success": True, "already_completed": False}
    assert second == {"success": True, "already_completed": True}

    assert client.post(url, json={"contentItemId": "missing"}, headers=student["headers"]).status_code == 404


# ============================================================
# ADMIN CRUD
# ============================================================

def test_coupon_admin_crud(client, admin):
    coupon = _coupon(client, admin)

    duplicate = client.post("/api/admin/coupons", json={"code": "SAVE100", "discountAmount": 5}, headers=admin["headers"])
    assert duplicate.status_code == 400

    updated = client.put(
        f"/api/admin/coupons/{coupon['id']}", json={"discountAmount": 150, "isActive": False}, headers=admin["headers"]
    ).json()["coupon"]
    assert updated["discount_amount"] == 150
    assert updated["is_active"] is False

    assert client.delete(f"/api/admin/coupons/{coupon['id']}", headers=admin["headers"]).status_code == 200
    assert client.delete(f"/api/admin/coupons/{coupon['id']}", headers=admin["headers"]).status_code == 404


def test_content_item_admin_crud(client, admin, toolkit):
    items = client.get(f"/api/admin/toolkits/{toolkit['id']}/content", headers=admin["headers"]).json()["content_items"]

    renamed = client.put(
        f"/api/admin/toolkit-content-items/{items[1]['id']}", json={"title": "Resume template"}, headers=admin["headers"]
    ).json()["content_item"]
    assert renamed["title"] == "Resume template"

    assert client.delete(f"/api/admin/toolkit-content-items/{items[0]['id']}", headers=admin["headers"]).status_code == 200
    assert client.get("/api/toolkits").json()["toolkits"][0]["lesson_count"] == 1


def test_toolkit_delete(client, admin, toolkit):
    assert client.delete(f"/api/admin/toolkits/{toolkit['id']}", headers=admin["headers"]).status_code == 200
    assert client.get(f"/api/toolkits/{toolkit['id']}").status_code == 404
    assert client.delete(f"/api/admin/toolkits/{toolkit['id']}", headers=admin["headers"]).status_code == 404


def test_updates_reject_null_for_required_columns(client, admin, toolkit):
    headers = admin["headers"]
    coupon = _coupon(client, admin)
    items = client.get(f"/api/admin/toolkits/{toolkit['id']}/content", headers=headers).json()["content_items"]

    assert client.put(f"/api/admin/toolkits/{toolkit['id']}", json={"price": None}, headers=headers).status_code == 400
    assert client.put(f"/api/admin/toolkits/{toolkit['id']}", json={"isActive": None}, headers=headers).status_code == 400
    assert client.put(
        f"/api/admin/toolkit-content-items/{items[0]['id']}", json={"orderIndex": None}, headers=headers
    ).status_code == 400
    assert client.put(
        f"/api/admin/coupons/{coupon['id']}", json={"maxUsesPerUser": None}, headers=headers
    ).status_code == 400

    # nullable columns can still be cleared
    cleared = client.put(f"/api/admin/coupons/{coupon['id']}", json={"maxUses": None}, headers=headers)
    assert cleared.status_code == 200
    assert cleared.json()["coupon"]["max_uses"] is None
    assert client.get(f"/api/toolkits/{toolkit['id']}").json()["toolkit"]["price"] == 500
