"""Shared fixtures: a fresh in-memory app per test plus small model factories."""
from datetime import timedelta
from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from aquaroom import create_app
from aquaroom.extensions import db
from aquaroom.model import Category, Coupon, Order, OrderItem, Product, User
from aquaroom.utils.parsing import utcnow

ADMIN_EMAIL = "admin@aquaroom.test"
ADMIN_PASSWORD = "secret-pass"


@pytest.fixture()
def app(tmp_path):
    app = create_app("testing", overrides={"UPLOAD_FOLDER": str(tmp_path / "uploads")})
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin(app):
    return make_user(
        name="admin",
        email=ADMIN_EMAIL,
        password=ADMIN_PASSWORD,
        role="admin",
    )


@pytest.fixture()
def admin_client(client, admin):
    r = client.post("/api/admin/login", json={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.get_json()
    return client


# ---------- factories ----------

def make_user(name="Somchai", email=None, password="pw", role="customer", **kw):
    u = User(
        name=name,
        email=email or f"{name.lower()}@example.com",
        password_hash=generate_password_hash(password),
        role=role,
        **kw,
    )
    db.session.add(u)
    db.session.commit()
    return u


def make_category(name="Fish"):
    c = Category(name=name)
    db.session.add(c)
    db.session.commit()
    return c


def make_product(name="Neon Tetra", price="50", stock=20, **kw):
    kw.setdefault("shipping_cost_bangkok", Decimal("40"))
    kw.setdefault("shipping_cost_provinces", Decimal("60"))
    kw.setdefault("shipping_cost_remote", Decimal("100"))
    p = Product(name=name, slug=name.lower().replace(" ", "-"), price=Decimal(price), stock=stock, **kw)
    db.session.add(p)
    db.session.commit()
    return p


def make_coupon(code="SAVE10", **kw):
    now = utcnow()
    values = {
        "name": "Save 10%",
        "discount_type": "percentage",
        "discount_value": Decimal("10"),
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=30),
        "is_active": True,
        "usage_count": 0,
    }
    values.update(kw)
    c = Coupon(code=code, **values)
    db.session.add(c)
    db.session.commit()
    return c


def make_order(user=None, total="500", payment_status="paid", order_status="pending",
               items=(), created_at=None, number=None):
    o = Order(
        order_number=number or f"AQ-{Order.query.count() + 1:04d}",
        user_id=user.id if user else None,
        customer_name=user.name if user else "Guest",
        email=user.email if user else "guest@example.com",
        subtotal=Decimal(total),
        total_amount=Decimal(total),
        payment_status=payment_status,
        order_status=order_status,
    )
    if created_at is not None:
        o.created_at = created_at
    for product, qty in items:
        o.items.append(OrderItem(
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            quantity=qty,
            line_total=product.price * qty,
        ))
    db.session.add(o)
    db.session.commit()
    return o
