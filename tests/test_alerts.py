from aquaroom.extensions import db
from aquaroom.model import InventoryAlert
from aquaroom.services.inventory_alerts import generate_alerts

from .conftest import make_product

BASE = "/api/admin/alerts"


def _active(product):
    return InventoryAlert.query.filter_by(product_id=product.id, is_active=True).all()


def test_generate_classifies_stock(app):
    out = make_product(name="Gone", stock=0)
    low = make_product(name="Few", stock=3, min_stock=5)
    fine = make_product(name="Plenty", stock=50)
    default_min = make_product(name="Default", stock=5)

    result = generate_alerts()
    assert result == {"products_checked": 4, "alerts_created": 3}

    [a] = _active(out)
    assert (a.alert_type, a.alert_level, a.priority) == ("out_of_stock", "critical", 5)
    [a] = _active(low)
    assert a.alert_type == "low_stock"
    assert a.message == "สต็อกเหลือ 3 ชิ้น (ขั้นต่ำ 5 ชิ้น)"
    assert _active(fine) == []
    assert len(_active(default_min)) == 1


def test_rescan_does_not_duplicate(app):
    p = make_product(stock=2, min_stock=5)
    generate_alerts()
    assert generate_alerts()["alerts_created"] == 0
    assert len(_active(p)) == 1


def test_restock_deactivates_alert(app):
    p = make_product(stock=0)
    generate_alerts()
    p.stock = 100
    db.session.commit()
    generate_alerts()
    assert _active(p) == []
    assert InventoryAlert.query.filter_by(product_id=p.id).count() == 1


def test_type_change_replaces_alert(app):
    p = make_product(stock=2, min_stock=5)
    generate_alerts()
    p.stock = 0
    db.session.commit()
    generate_alerts()
    [a] = _active(p)
    assert a.alert_type == "out_of_stock"


def test_read_alert_is_replaced_on_rescan(app):
    p = make_product(stock=1, min_stock=5)
    generate_alerts()
    [first] = _active(p)
    first.is_read = True
    db.session.commit()
    assert generate_alerts()["alerts_created"] == 1
    [current] = _active(p)
    assert current.id != first.id


def test_alert_endpoints(admin_client):
    make_product(name="Gone", stock=0)
    make_product(name="Few", stock=2, min_stock=5)

    r = admin_client.post(f"{BASE}/generate")
    assert r.get_json()["data"]["alerts_created"] == 2

    body = admin_client.get(BASE).get_json()
    assert [a["alert_type"] for a in body["data"]] == ["out_of_stock", "low_stock"]
    ids = [a["id"] for a in body["data"]]

    r = admin_client.put(f"{BASE}/{ids[0]}/read")
    assert r.get_json()["data"]["is_read"] is True

    summary = admin_client.get(f"{BASE}/summary").get_json()["data"]
    assert summary["total_alerts"] == 2
    assert summary["unread_alerts"] == 1
    assert summary["critical_alerts"] == 1

    r = admin_client.put(f"{BASE}/bulk-read", json={"alertIds": ids})
    assert r.get_json()["data"]["updated_count"] == 1

    unread = admin_client.get(BASE, query_string={"is_read": "false"}).get_json()["data"]
    assert unread == []


def test_bulk_read_validates_ids(admin_client):
    assert admin_client.put(f"{BASE}/bulk-read", json={"alertIds": ["1"]}).status_code == 400
    assert admin_client.put(f"{BASE}/bulk-read", json={"alertIds": []}).status_code == 400
    assert admin_client.put(f"{BASE}/999/read").status_code == 404
