from collections import Counter

from flask import request
from sqlalchemy import func, or_

from . import bp
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..model import ADMIN_ROLES, Order, User
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger
from ..utils.pagination import page_args, paginate, resolve_sort
from ..utils.parsing import utcnow

logger = get_logger("customers")

SORT_COLUMNS = {
    "created_at": User.created_at,
    "name": User.name,
    "email": User.email,
    "last_login": User.last_login,
}


# ---------- helpers ----------
def _get_customer(uid) -> User:
    user = User.customers().filter(User.id == uid).first()
    if not user:
        raise NotFoundError("ไม่พบลูกค้า")
    return user


def _order_totals(user_ids):
    """{user_id: (count, spent, last_order_at)} for the given users."""
    if not user_ids:
        return {}
    rows = (
        db.session.query(
            Order.user_id,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
            func.max(Order.created_at),
        )
        .filter(Order.user_id.in_(user_ids))
        .group_by(Order.user_id)
        .all()
    )
    return {uid: (n, spent, last) for uid, n, spent, last in rows}


def _summary(user, totals):
    n, spent, last = totals.get(user.id, (0, 0, None))
    addr = user.default_address
    return {
        **user.as_dict(),
        "total_orders": int(n),
        "total_spent": round(float(spent or 0), 2),
        "last_order_date": last.isoformat() if last else None,
        "default_address": addr.as_dict() if addr else None,
    }


# ---------- routes ----------
@bp.get("")
@admin_required
def list_customers():
    page, limit = page_args(default_limit=20)
    search = (request.args.get("search") or "").strip()

    q = User.customers()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.name.ilike(like), User.email.ilike(like)))
    q = q.order_by(resolve_sort(SORT_COLUMNS, "created_at"), User.id.desc())
    items, pagination = paginate(q, page, limit)

    totals = _order_totals([u.id for u in items])
    return ok("ok", [_summary(u, totals) for u in items], pagination=pagination)


@bp.get("/stats")
@admin_required
def customer_stats():
    now = utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    base = User.customers()

    spent = func.sum(Order.total_amount).label("total_spent")
    top = (
        db.session.query(User, func.count(Order.id), spent)
        .join(Order, Order.user_id == User.id)
        .filter(User.role.notin_(ADMIN_ROLES))
        .group_by(User.id)
        .order_by(spent.desc())
        .limit(5)
        .all()
    )
    return ok("ok", {
        "total_customers": base.count(),
        "active_customers": base.filter(User.is_active.is_(True)).count(),
        "inactive_customers": base.filter(User.is_active.is_(False)).count(),
        "new_customers_this_month": base.filter(User.created_at >= month_start).count(),
        "top_customers": [
            {
                "id": u.id,
                "name": u.name,
                "email": u.email,
                "total_orders": int(n),
                "total_spent": round(float(s or 0), 2),
            }
            for u, n, s in top
        ],
    })


@bp.get("/<int:uid>")
@admin_required
def get_customer(uid):
    user = _get_customer(uid)
    orders = user.orders.order_by(Order.created_at.desc(), Order.id.desc()).all()

    total_spent = sum(float(o.total_amount or 0) for o in orders)
    by_status = Counter(o.order_status for o in orders)

    products = {}
    for o in orders:
        for item in o.items:
            key = item.product_id or item.name
            row = products.setdefault(key, {
                "product_id": item.product_id,
                "product_name": item.name,
                "image_url": item.image_url,
                "total_quantity": 0,
                "purchase_count": 0,
            })
            row["total_quantity"] += item.quantity
            row["purchase_count"] += 1
    favorites = sorted(products.values(), key=lambda r: r["total_quantity"], reverse=True)[:5]

    return ok("ok", {
        **user.as_dict(),
        "statistics": {
            "total_orders": len(orders),
            "total_spent": round(total_spent, 2),
            "average_order_value": round(total_spent / len(orders), 2) if orders else 0,
            "orders_by_status": dict(by_status),
            "first_order_date": orders[-1].created_at.isoformat() if orders and orders[-1].created_at else None,
            "last_order_date": orders[0].created_at.isoformat() if orders and orders[0].created_at else None,
        },
        "orders": [o.as_api() for o in orders],
        "addresses": [a.as_dict() for a in user.addresses],
        "favorite_products": favorites,
    })


@bp.put("/<int:uid>/status")
@admin_required
def set_customer_status(uid):
    user = _get_customer(uid)
    data = request.get_json(silent=True) or {}
    is_active = data.get("is_active")
    if not isinstance(is_active, bool):
        raise ValidationError("is_active ต้องเป็น true หรือ false", field="is_active")
    user.is_active = is_active
    db.session.commit()
    logger.info("Customer %s is_active=%s", uid, is_active)
    word = "เปิด" if is_active else "ปิด"
    return ok(f"{word}ใช้งานบัญชีลูกค้าเรียบร้อยแล้ว", user.as_dict())


@bp.delete("/<int:uid>")
@admin_required
def delete_customer(uid):
    """Customers with order history are deactivated; the rest are deleted."""
    user = _get_customer(uid)
    if user.orders.count() > 0:
        user.is_active = False
        db.session.commit()
        logger.info("Customer %s deactivated (has orders)", uid)
        return ok("ลูกค้ามีประวัติการสั่งซื้อ จึงปิดใช้งานบัญชีแทนการลบ", {"id": uid, "type": "deactivated"})

    db.session.delete(user)
    db.session.commit()
    logger.info("Customer %s deleted", uid)
    return ok("ลบลูกค้าเรียบร้อยแล้ว", {"id": uid, "type": "deleted"})
