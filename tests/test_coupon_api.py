from datetime import timedelta
from decimal import Decimal

import pytest

from aquaroom.errors import ConflictError
from aquaroom.extensions import db
from aquaroom.model import Coupon, CouponUsage
from aquaroom.services.coupon_service import redeem_coupon
from aquaroom.utils.parsing import utcnow

from .conftest import make_coupon, make_user

BASE = "/api/admin/coupons"


def _new(**kw):
    now = utcnow()
    data = {
        "code": "welcome",
        "name": "Welcome",
        "discount_type": "percentage",
        "discount_value": 15,
        "max_discount_amount": 100,
        "start_date": (now - timedelta(days=1)).isoformat(),
        "end_date": (now + timedelta(days=10)).isoformat(),
    }
    data.update(kw)
    return data


def test_requires_admin(client):
    r = client.get(BASE)
    assert r.status_code == 401
    assert r.get_json()["success"] is False


def test_create_and_get(admin_client):
    r = admin_client.post(BASE, json=_new())
    assert r.status_code == 201
    body = r.get_json()
    assert body["success"] is True
    assert body["data"]["code"] == "WELCOME"
    assert body["data"]["status"] == "active"
    assert body["data"]["status_label"] == "ใช้งานได้"

    r = admin_client.get(f"{BASE}/{body['data']['id']}")
    assert r.get_json()["data"]["max_discount_amount"] == 100.0


def test_duplicate_code_case_insensitive(admin_client):
    make_coupon(code="WELCOME")
    r = admin_client.post(BASE, json=_new(code="Welcome"))
    assert r.status_code == 409
    assert r.get_json()["message"] == "รหัสคูปองนี้มีอยู่แล้ว"


def test_invalid_payload_reports_field(admin_client):
    r = admin_client.post(BASE, json=_new(discount_value=150))
    assert r.status_code == 400
    assert r.get_json()["field"] == "discount_value"
    assert Coupon.query.count() == 0


def test_disabled_past_coupon_is_not_counted_as_expired(admin_client):
    now = utcnow()
    make_coupon(code="OLD", start_date=now - timedelta(days=5), end_date=now - timedelta(days=1))
    make_coupon(code="GONE", is_active=False, start_date=now - timedelta(days=5), end_date=now - timedelta(days=1))

    body = admin_client.get(BASE, query_string={"status": "expired"}).get_json()
    assert [c["code"] for c in body["data"]] == ["OLD"]
    assert admin_client.get(f"{BASE}/stats").get_json()["data"]["expired_coupons"] == 1
    codes = {c["code"] for c in admin_client.get(BASE, query_string={"status": "inactive"}).get_json()["data"]}
    assert codes == {"GONE"}


def test_list_filters_and_derived_status(admin_client):
    now = utcnow()
    make_coupon(code="LIVE")
    make_coupon(code="OLD", end_date=now - timedelta(days=1), start_date=now - timedelta(days=5))
    make_coupon(code="OFF", is_active=False)
    make_coupon(code="FLAT", discount_type="fixed_amount", discount_value=Decimal("50"))

    body = admin_client.get(BASE, query_string={"limit": 50}).get_json()
    statuses = {c["code"]: c["status"] for c in body["data"]}
    assert statuses == {"LIVE": "active", "OLD": "expired", "OFF": "disabled", "FLAT": "active"}
    assert body["pagination"]["total_count"] == 4

    codes = {c["code"] for c in admin_client.get(BASE, query_string={"status": "expired"}).get_json()["data"]}
    assert codes == {"OLD"}
    codes = {c["code"] for c in admin_client.get(BASE, query_string={"type": "fixed_amount"}).get_json()["data"]}
    assert codes == {"FLAT"}


def test_toggle_status_requires_bool(admin_client):
    c = make_coupon()
    r = admin_client.put(f"{BASE}/{c.id}/status", json={"is_active": "no"})
    assert r.status_code == 400
    r = admin_client.put(f"{BASE}/{c.id}/status", json={"is_active": False})
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "disabled"


def test_update_keeps_unsent_fields(admin_client):
    c = make_coupon(min_order_amount=Decimal("300"))
    r = admin_client.put(f"{BASE}/{c.id}", json={"name": "Renamed"})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["name"] == "Renamed"
    assert data["min_order_amount"] == 300.0


def test_delete_blocked_after_use(admin_client):
    c = make_coupon()
    redeem_coupon(c, Decimal("200"), Decimal("20"), email="a@example.com")
    r = admin_client.delete(f"{BASE}/{c.id}")
    assert r.status_code == 409
    unused = make_coupon(code="UNUSED")
    assert admin_client.delete(f"{BASE}/{unused.id}").status_code == 200
    assert db.session.get(Coupon, unused.id) is None


def test_validate_endpoint(client):
    make_coupon(code="MIN500", min_order_amount=Decimal("500"))
    r = client.post("/api/coupons/validate", json={"code": "min500", "order_amount": 400})
    assert r.status_code == 400
    assert r.get_json()["message"] == "ยอดสั่งซื้อขั้นต่ำ 500 บาท"

    r = client.post("/api/coupons/validate", json={"code": "MIN500", "order_amount": 1000})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["discount_amount"] == 100.0
    assert data["final_amount"] == 900.0


def test_validate_unknown_code(client):
    r = client.post("/api/coupons/validate", json={"code": "NOPE", "order_amount": 100})
    assert r.status_code == 404


def test_use_increments_count_and_records_usage(client, app):
    user = make_user()
    c = make_coupon(usage_limit=2)
    r = client.post("/api/coupons/use", json={
        "coupon_id": c.id, "order_amount": 500, "discount_amount": 50, "user_id": user.id,
    })
    assert r.status_code == 201
    assert r.get_json()["data"]["user_name"] == user.name
    assert db.session.get(Coupon, c.id).usage_count == 1
    assert CouponUsage.query.filter_by(coupon_id=c.id).count() == 1


def test_usage_limit_is_never_exceeded(app):
    c = make_coupon(usage_limit=1)
    redeem_coupon(c, Decimal("100"), Decimal("10"), email="first@example.com")
    with pytest.raises(ConflictError):
        redeem_coupon(c, Decimal("100"), Decimal("10"), email="second@example.com")
    assert db.session.get(Coupon, c.id).usage_count == 1
    assert CouponUsage.query.count() == 1


def test_per_user_limit(app):
    user = make_user()
    c = make_coupon(usage_limit_per_user=1)
    redeem_coupon(c, Decimal("100"), Decimal("10"), user_id=user.id)
    with pytest.raises(ConflictError):
        redeem_coupon(c, Decimal("100"), Decimal("10"), user_id=user.id)


def test_usage_history_and_stats(admin_client):
    user = make_user()
    c = make_coupon()
    redeem_coupon(c, Decimal("300"), Decimal("30"), user_id=user.id)

    body = admin_client.get(f"{BASE}/{c.id}/usage").get_json()
    assert body["data"]["coupon"]["usage_count"] == 1
    assert body["data"]["usages"][0]["email"] == user.email

    stats = admin_client.get(f"{BASE}/stats").get_json()["data"]
    assert stats["total_coupons"] == 1
    assert stats["active_coupons"] == 1
    assert stats["used_count"] == 1
