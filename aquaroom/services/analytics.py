# aquaroom/services/analytics.py
from __future__ import annotations

from datetime import timedelta

import pandas as pd
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..model import Order, OrderItem, Product, User
from ..utils.logger import get_logger
from ..utils.parsing import parse_iso8601, utcnow

logger = get_logger("analytics")

PAID = "paid"


def date_range(start_raw, end_raw, default_days):
    """Resolves startDate/endDate query values; missing ends default to now and now - N days."""
    end = parse_iso8601(end_raw) or utcnow()
    start = parse_iso8601(start_raw) or (end - timedelta(days=default_days))
    if start > end:
        start, end = end, start
    return start, end


def _growth(current, previous):
    if not previous:
        return 0.0
    return round((float(current) - float(previous)) / float(previous) * 100, 2)


def _paid_revenue(start, end):
    total = (
        db.session.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.payment_status == PAID, Order.created_at >= start, Order.created_at <= end)
        .scalar()
    )
    return float(total or 0)


def _order_count(start, end):
    return Order.query.filter(Order.created_at >= start, Order.created_at <= end).count()


def overview(start, end):
    total_orders = _order_count(start, end)
    revenue = _paid_revenue(start, end)
    new_customers = User.customers().filter(User.created_at >= start, User.created_at <= end).count()

    span = end - start
    prev_start, prev_end = start - span, start
    prev_orders = _order_count(prev_start, prev_end)
    prev_revenue = _paid_revenue(prev_start, prev_end)

    return {
        "totalOrders": total_orders,
        "totalRevenue": round(revenue, 2),
        "totalCustomers": new_customers,
        "totalProducts": Product.query.count(),
        "growth": {
            "orders": _growth(total_orders, prev_orders),
            "revenue": _growth(revenue, prev_revenue),
        },
        "period": {"start": start.isoformat(), "end": end.isoformat()},
    }


def sales_chart(start, end):
    """Daily paid sales; every calendar day in the range appears, zero-filled."""
    rows = (
        db.session.query(Order.created_at, Order.total_amount)
        .filter(Order.payment_status == PAID, Order.created_at >= start, Order.created_at <= end)
        .all()
    )
    days = pd.date_range(pd.Timestamp(start).normalize(), pd.Timestamp(end).normalize(), freq="D")

    if rows:
        df = pd.DataFrame(rows, columns=["created_at", "total_amount"])
        df["date"] = pd.to_datetime(df["created_at"]).dt.normalize()
        df["total_amount"] = df["total_amount"].astype(float)
        daily = df.groupby("date").agg(
            total_sales=("total_amount", "sum"),
            order_count=("total_amount", "size"),
        )
    else:
        daily = pd.DataFrame(columns=["total_sales", "order_count"])
    daily = daily.reindex(days, fill_value=0)

    return [
        {
            "date": day.strftime("%Y-%m-%d"),
            "total_sales": round(float(row["total_sales"]), 2),
            "order_count": int(row["order_count"]),
        }
        for day, row in daily.iterrows()
    ]


def top_products(start, end, limit=10):
    total_qty = func.sum(OrderItem.quantity).label("total_quantity")
    rows = (
        db.session.query(
            Product,
            total_qty,
            func.sum(OrderItem.line_total).label("total_revenue"),
            func.count(func.distinct(Order.id)).label("order_count"),
        )
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, OrderItem.order_id == Order.id)
        .filter(Order.payment_status == PAID, Order.created_at >= start, Order.created_at <= end)
        .group_by(Product.id)
        .order_by(total_qty.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": p.id,
            "name": p.name,
            "image_url": p.main_image,
            "price": float(p.price or 0),
            "stock": p.stock,
            "total_quantity": int(qty or 0),
            "total_revenue": round(float(revenue or 0), 2),
            "order_count": int(count or 0),
        }
        for p, qty, revenue, count in rows
    ]


def customer_stats(start, end):
    new_customers = User.customers().filter(User.created_at >= start, User.created_at <= end).count()

    paid_per_user = (
        db.session.query(Order.user_id)
        .filter(Order.payment_status == PAID, Order.user_id.isnot(None))
        .group_by(Order.user_id)
        .having(func.count(Order.id) > 1)
        .subquery()
    )
    returning = db.session.query(func.count()).select_from(paid_per_user).scalar() or 0

    spent = func.sum(Order.total_amount).label("total_spent")
    rows = (
        db.session.query(User, func.count(Order.id).label("total_orders"), spent)
        .join(Order, Order.user_id == User.id)
        .filter(Order.payment_status == PAID, Order.created_at >= start, Order.created_at <= end)
        .group_by(User.id)
        .order_by(spent.desc())
        .limit(10)
        .all()
    )
    return {
        "newCustomers": new_customers,
        "returningCustomers": int(returning),
        "topCustomers": [
            {
                "user_id": u.id,
                "name": u.name,
                "email": u.email,
                "total_orders": int(n),
                "total_spent": round(float(total or 0), 2),
            }
            for u, n, total in rows
        ],
    }


def _stock_row(p):
    return {
        "id": p.id,
        "name": p.name,
        "stock_quantity": p.stock,
        "price": float(p.price or 0),
        "image_url": p.main_image,
    }


def inventory_report():
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    low = Product.query.filter(Product.stock > 0, Product.stock < threshold).order_by(Product.stock.asc()).all()
    out = Product.query.filter(Product.stock <= 0).order_by(Product.name.asc()).all()
    return {
        "lowStockProducts": [_stock_row(p) for p in low],
        "outOfStockProducts": [_stock_row(p) for p in out],
        "totalProducts": Product.query.count(),
        "lowStockCount": len(low),
        "outOfStockCount": len(out),
        "lowStockThreshold": threshold,
    }


def dashboard_stats():
    """Read-only; a failing query leaves its figure at zero instead of failing the page."""
    stats = {"products": 0, "orders": 0, "customers": 0, "revenue": 0.0}
    try:
        stats["products"] = Product.query.count()
        stats["orders"] = Order.query.count()
        stats["customers"] = User.customers().count()
        revenue = (
            db.session.query(func.coalesce(func.sum(Order.total_amount), 0))
            .filter(Order.payment_status == PAID)
            .scalar()
        )
        stats["revenue"] = round(float(revenue or 0), 2)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Dashboard stats query failed: %s", e)
    return stats


def recent_orders(limit=5):
    orders = Order.query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
    return [o.as_api(with_items=False) for o in orders]
