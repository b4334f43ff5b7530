from flask import current_app

from ..extensions import db
from ..model import InventoryAlert, Product
from ..utils.logger import get_logger
from ..utils.parsing import utcnow

logger = get_logger("alerts")

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"


def _classify(product, default_min):
    min_stock = product.min_stock if product.min_stock is not None else default_min
    stock = product.stock or 0
    if stock <= 0:
        return {
            "alert_type": OUT_OF_STOCK,
            "alert_level": "critical",
            "title": "สินค้าหมด",
            "message": f"{product.name} หมดสต็อกแล้ว",
            "current_stock": stock,
            "threshold_value": min_stock,
            "priority": 5,
        }
    if stock <= min_stock:
        return {
            "alert_type": LOW_STOCK,
            "alert_level": "warning",
            "title": "สต็อกเหลือน้อย",
            "message": f"สต็อกเหลือ {stock} ชิ้น (ขั้นต่ำ {min_stock} ชิ้น)",
            "current_stock": stock,
            "threshold_value": min_stock,
            "priority": 3,
        }
    return None


def generate_alerts():
    """
    Scans every product. A product keeps at most one active alert: an unread
    alert of the same type is refreshed in place, anything else active for
    that product is deactivated.
    """
    default_min = current_app.config.get("DEFAULT_MIN_STOCK", 5)
    products = Product.query.order_by(Product.id.asc()).all()
    created = 0
    for p in products:
        wanted = _classify(p, default_min)
        active = InventoryAlert.query.filter_by(product_id=p.id, is_active=True).all()
        keep = None
        for a in active:
            if wanted and keep is None and a.alert_type == wanted["alert_type"] and not a.is_read:
                keep = a
            else:
                a.is_active = False
        if wanted is None:
            continue
        if keep is not None:
            for k, v in wanted.items():
                setattr(keep, k, v)
        else:
            db.session.add(InventoryAlert(product_id=p.id, **wanted))
            created += 1
    db.session.commit()
    logger.info("Inventory scan: %s products checked, %s alerts created", len(products), created)
    return {"products_checked": len(products), "alerts_created": created}


def mark_read(alert):
    if not alert.is_read:
        alert.is_read = True
        alert.read_at = utcnow()
        db.session.commit()
    return alert


def bulk_mark_read(ids):
    now = utcnow()
    count = (
        InventoryAlert.query
        .filter(InventoryAlert.id.in_(ids), InventoryAlert.is_read.is_(False))
        .update({"is_read": True, "read_at": now}, synchronize_session=False)
    )
    db.session.commit()
    logger.info("Marked %s alerts read", count)
    return count


def alert_summary():
    base = InventoryAlert.query.filter(InventoryAlert.is_active.is_(True))
    recent = (
        base.order_by(InventoryAlert.priority.desc(), InventoryAlert.created_at.desc(), InventoryAlert.id.desc())
        .limit(5).all()
    )
    return {
        "total_alerts": base.count(),
        "unread_alerts": base.filter(InventoryAlert.is_read.is_(False)).count(),
        "critical_alerts": base.filter(InventoryAlert.alert_level == "critical").count(),
        "warning_alerts": base.filter(InventoryAlert.alert_level == "warning").count(),
        "recent_alerts": [a.as_dict() for a in recent],
    }
