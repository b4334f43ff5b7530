from datetime import timedelta

from sqlalchemy.exc import OperationalError

from aquaroom.services import analytics
from aquaroom.utils.parsing import utcnow

from .conftest import make_order, make_product, make_user


def test_sales_chart_fills_every_day(admin_client):
    now = utcnow()
    make_order(total="100", created_at=now - timedelta(days=2))
    make_order(total="50", created_at=now - timedelta(days=2))
    make_order(total="999", payment_status="pending", created_at=now - timedelta(days=1))

    start = (now - timedelta(days=3)).date().isoformat()
    end = now.isoformat()
    rows = admin_client.get(
        "/api/admin/analytics/sales-chart", query_string={"startDate": start, "endDate": end}
    ).get_json()["data"]
    assert len(rows) == 4
    by_day = {r["date"]: r for r in rows}
    two_days_ago = by_day[(now - timedelta(days=2)).strftime("%Y-%m-%d")]
    assert two_days_ago["total_sales"] == 150.0
    assert two_days_ago["order_count"] == 2
    assert by_day[(now - timedelta(days=1)).strftime("%Y-%m-%d")]["total_sales"] == 0


def test_overview_growth(admin_client):
    now = utcnow()
    make_order(total="200", created_at=now - timedelta(days=1))
    make_order(total="100", created_at=now - timedelta(days=10))

    data = admin_client.get("/api/admin/analytics/overview").get_json()["data"]
    assert data["totalOrders"] == 1
    assert data["totalRevenue"] == 200.0
    assert data["growth"]["revenue"] == 100.0


def test_top_products_counts_paid_only(admin_client):
    tetra = make_product(name="Tetra")
    fern = make_product(name="Fern")
    make_order(items=[(tetra, 5)])
    make_order(items=[(fern, 2)])
    make_order(payment_status="pending", items=[(fern, 10)])

    rows = admin_client.get("/api/admin/analytics/top-products").get_json()["data"]
    assert [(r["name"], r["total_quantity"]) for r in rows] == [("Tetra", 5), ("Fern", 2)]


def test_customer_stats_returning(admin_client):
    loyal = make_user(name="Loyal")
    once = make_user(name="Once")
    make_order(loyal)
    make_order(loyal)
    make_order(once)

    data = admin_client.get("/api/admin/analytics/customers-stats").get_json()["data"]
    assert data["returningCustomers"] == 1
    assert data["topCustomers"][0]["name"] == "Loyal"


def test_inventory_report(admin_client):
    make_product(name="Low", stock=3)
    make_product(name="Out", stock=0)
    make_product(name="Edge", stock=10)

    data = admin_client.get("/api/admin/analytics/inventory-report").get_json()["data"]
    assert [p["name"] for p in data["lowStockProducts"]] == ["Low"]
    assert [p["name"] for p in data["outOfStockProducts"]] == ["Out"]
    assert data["lowStockThreshold"] == 10


def test_dashboard_stats(admin_client, admin):
    make_product()
    make_order(make_user(), total="120")
    make_order(total="80", payment_status="refunded")
    data = admin_client.get("/api/admin/dashboard/stats").get_json()["data"]
    assert data == {"products": 1, "orders": 2, "customers": 1, "revenue": 120.0}

    recent = admin_client.get("/api/admin/dashboard/recent-orders").get_json()["data"]
    assert len(recent) == 2
    assert "items" not in recent[0]


def test_dashboard_stats_zero_on_db_failure(app, monkeypatch):
    class Broken:
        @property
        def query(self):
            raise OperationalError("SELECT 1", {}, Exception("db down"))

    monkeypatch.setattr(analytics, "Product", Broken())
    assert analytics.dashboard_stats() == {"products": 0, "orders": 0, "customers": 0, "revenue": 0.0}
