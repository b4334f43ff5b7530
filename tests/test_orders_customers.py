from aquaroom.extensions import db
from aquaroom.model import User, UserAddress

from .conftest import make_order, make_product, make_user


def test_list_orders_filters(admin_client):
    buyer = make_user()
    make_order(buyer, total="300", payment_status="paid")
    make_order(buyer, total="200", payment_status="pending")

    body = admin_client.get("/api/admin/orders", query_string={"payment_status": "paid"}).get_json()
    assert [o["total_amount"] for o in body["data"]] == [300.0]

    r = admin_client.get("/api/admin/orders", query_string={"status": "lost"})
    assert r.status_code == 400


def test_update_order_status(admin_client):
    order = make_order(make_user())
    r = admin_client.put(f"/api/admin/orders/{order.id}/status", json={
        "orderStatus": "shipped",
        "trackingNumber": " TH123 ",
        "shippingCompany": "Kerry",
    })
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["order_status"] == "shipped"
    assert data["tracking_number"] == "TH123"

    r = admin_client.put(f"/api/admin/orders/{order.id}/status", json={"paymentStatus": "stolen"})
    assert r.status_code == 400
    r = admin_client.put(f"/api/admin/orders/{order.id}/status", json={})
    assert r.status_code == 400
    assert admin_client.put("/api/admin/orders/999/status", json={"orderStatus": "shipped"}).status_code == 404


def test_export_csv(admin_client):
    make_order(make_user(), number="AQ-EXPORT-1")
    r = admin_client.get("/api/admin/orders/export", query_string={"format": "csv"})
    assert r.status_code == 200
    text = r.data.decode("utf-8-sig")
    assert text.splitlines()[0].startswith("Order Number,")
    assert "AQ-EXPORT-1" in text


def test_export_xlsx(admin_client):
    make_order(make_user())
    r = admin_client.get("/api/admin/orders/export", query_string={"format": "xlsx"})
    assert r.status_code == 200
    assert r.data[:2] == b"PK"


def test_customers_exclude_admins(admin_client):
    buyer = make_user()
    db.session.add(UserAddress(user_id=buyer.id, recipient_name="S", province="Chiang Mai", is_default=True))
    db.session.commit()
    make_order(buyer, total="250")

    body = admin_client.get("/api/admin/customers").get_json()
    assert [c["email"] for c in body["data"]] == [buyer.email]
    row = body["data"][0]
    assert row["total_orders"] == 1
    assert row["total_spent"] == 250.0
    assert row["default_address"]["province"] == "Chiang Mai"


def test_customer_detail(admin_client):
    buyer = make_user()
    tetra = make_product(name="Tetra")
    make_order(buyer, total="100", items=[(tetra, 2)])
    make_order(buyer, total="300", items=[(tetra, 1)], order_status="delivered")

    data = admin_client.get(f"/api/admin/customers/{buyer.id}").get_json()["data"]
    stats = data["statistics"]
    assert stats["total_orders"] == 2
    assert stats["total_spent"] == 400.0
    assert stats["average_order_value"] == 200.0
    assert stats["orders_by_status"] == {"pending": 1, "delivered": 1}
    assert data["favorite_products"][0]["total_quantity"] == 3


def test_admin_is_not_a_customer(admin_client, admin):
    assert admin_client.get(f"/api/admin/customers/{admin.id}").status_code == 404


def test_customer_status_requires_bool(admin_client):
    buyer = make_user()
    assert admin_client.put(f"/api/admin/customers/{buyer.id}/status", json={"is_active": "false"}).status_code == 400
    r = admin_client.put(f"/api/admin/customers/{buyer.id}/status", json={"is_active": False})
    assert r.get_json()["data"]["is_active"] is False


def test_delete_customer_with_orders_deactivates(admin_client):
    buyer = make_user()
    make_order(buyer)
    r = admin_client.delete(f"/api/admin/customers/{buyer.id}")
    assert r.get_json()["data"]["type"] == "deactivated"
    assert db.session.get(User, buyer.id).is_active is False

    lone = make_user(name="Lone")
    r = admin_client.delete(f"/api/admin/customers/{lone.id}")
    assert r.get_json()["data"]["type"] == "deleted"
    assert db.session.get(User, lone.id) is None


def test_customer_stats(admin_client):
    make_user(name="A")
    make_user(name="B", is_active=False)
    data = admin_client.get("/api/admin/customers/stats").get_json()["data"]
    assert data["total_customers"] == 2
    assert data["inactive_customers"] == 1
