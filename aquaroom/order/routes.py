from io import BytesIO

import pandas as pd
from flask import request, send_file
from sqlalchemy import or_

from . import bp
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..model import ORDER_STATUSES, PAYMENT_STATUSES, Order
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger
from ..utils.pagination import page_args, paginate, resolve_sort
from ..utils.parsing import utcnow

logger = get_logger("orders")

SORT_COLUMNS = {
    "created_at": Order.created_at,
    "order_number": Order.order_number,
    "total_amount": Order.total_amount,
}


def _get_order(oid) -> Order:
    order = db.session.get(Order, oid)
    if not order:
        raise NotFoundError("ไม่พบคำสั่งซื้อ")
    return order


def _filtered_query():
    status = request.args.get("status") or "all"
    payment_status = request.args.get("payment_status") or request.args.get("paymentStatus") or "all"
    search = (request.args.get("search") or "").strip()

    q = Order.query
    if status != "all":
        if status not in ORDER_STATUSES:
            raise ValidationError("สถานะคำสั่งซื้อไม่ถูกต้อง", field="status")
        q = q.filter(Order.order_status == status)
    if payment_status != "all":
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError("สถานะการชำระเงินไม่ถูกต้อง", field="payment_status")
        q = q.filter(Order.payment_status == payment_status)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            Order.order_number.ilike(like),
            Order.customer_name.ilike(like),
            Order.email.ilike(like),
        ))
    return q.order_by(resolve_sort(SORT_COLUMNS, "created_at"), Order.id.desc())


# GET /api/admin/orders
@bp.get("")
@admin_required
def list_orders():
    page, limit = page_args()
    items, pagination = paginate(_filtered_query(), page, limit)
    return ok("ok", [o.as_api() for o in items], pagination=pagination)


# GET /api/admin/orders/export?format=csv|xlsx
@bp.get("/export")
@admin_required
def export_orders():
    fmt = (request.args.get("format") or "csv").lower()
    if fmt not in ("csv", "xlsx"):
        raise ValidationError("format ต้องเป็น csv หรือ xlsx", field="format")

    orders = _filtered_query().all()
    rows = [{
        "Order Number": o.order_number,
        "Customer": o.customer_name,
        "Email": o.email,
        "Phone": o.phone,
        "Items": sum(i.quantity for i in o.items),
        "Subtotal": float(o.subtotal or 0),
        "Shipping Fee": float(o.shipping_fee or 0),
        "Discount": float(o.discount or 0),
        "Total": float(o.total_amount or 0),
        "Coupon": o.coupon_code,
        "Order Status": o.order_status,
        "Payment Status": o.payment_status,
        "Payment Method": o.payment_method,
        "Tracking Number": o.tracking_number,
        "Shipping Company": o.shipping_company,
        "Created At": o.created_at,
    } for o in orders]
    df = pd.DataFrame(rows, columns=[
        "Order Number", "Customer", "Email", "Phone", "Items", "Subtotal",
        "Shipping Fee", "Discount", "Total", "Coupon", "Order Status",
        "Payment Status", "Payment Method", "Tracking Number", "Shipping Company", "Created At",
    ])

    stamp = utcnow().strftime("%Y%m%d")
    output = BytesIO()
    if fmt == "xlsx":
        df.to_excel(output, index=False)
        mimetype = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    else:
        # BOM so Excel opens Thai text correctly
        output.write(df.to_csv(index=False).encode("utf-8-sig"))
        mimetype = "text/csv"
    output.seek(0)
    logger.info("Exported %s orders as %s", len(rows), fmt)

    return send_file(
        output,
        as_attachment=True,
        download_name=f"orders_{stamp}.{fmt}",
        mimetype=mimetype,
    )


# GET /api/admin/orders/<id>
@bp.get("/<int:oid>")
@admin_required
def get_order(oid):
    return ok("ok", _get_order(oid).as_api())


# PUT /api/admin/orders/<id>/status
@bp.put("/<int:oid>/status")
@admin_required
def update_order_status(oid):
    order = _get_order(oid)
    data = request.get_json(silent=True) or {}

    order_status = data.get("orderStatus")
    payment_status = data.get("paymentStatus")
    if order_status is not None and order_status not in ORDER_STATUSES:
        raise ValidationError("สถานะคำสั่งซื้อไม่ถูกต้อง", field="orderStatus")
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise ValidationError("สถานะการชำระเงินไม่ถูกต้อง", field="paymentStatus")

    changes = {}
    if order_status is not None:
        changes["order_status"] = order_status
    if payment_status is not None:
        changes["payment_status"] = payment_status
    if "trackingNumber" in data:
        changes["tracking_number"] = (data.get("trackingNumber") or "").strip() or None
    if "shippingCompany" in data:
        changes["shipping_company"] = (data.get("shippingCompany") or "").strip() or None
    if not changes:
        raise ValidationError("ไม่มีข้อมูลที่ต้องการอัปเดต")

    for k, v in changes.items():
        setattr(order, k, v)
    db.session.commit()
    logger.info("Order %s updated %s", order.order_number, changes)
    return ok("อัพเดทสถานะเรียบร้อยแล้ว", order.as_api())
