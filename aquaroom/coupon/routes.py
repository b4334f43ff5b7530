# aquaroom/coupon/routes.py
from __future__ import annotations

from flask import request
from sqlalchemy import or_

from . import bp, public_bp
from ..errors import NotFoundError, ValidationError
from ..model import Coupon, CouponUsage, DISCOUNT_TYPES
from ..services import coupon_service as svc
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.money import format_baht
from ..utils.pagination import page_args, paginate, resolve_sort
from ..utils.parsing import parse_opt_decimal, parse_opt_int, parse_opt_strict_int, utcnow

SORT_COLUMNS = {
    "created_at": Coupon.created_at,
    "code": Coupon.code,
    "name": Coupon.name,
    "discount_value": Coupon.discount_value,
    "start_date": Coupon.start_date,
    "end_date": Coupon.end_date,
    "usage_count": Coupon.usage_count,
}


@bp.get("")
@admin_required
def list_coupons():
    page, limit = page_args()
    search = (request.args.get("search") or "").strip()
    status = request.args.get("status") or "all"
    ctype = request.args.get("type") or "all"
    now = utcnow()

    q = Coupon.query
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Coupon.code.ilike(like), Coupon.name.ilike(like), Coupon.description.ilike(like)))
    if status == "active":
        q = q.filter(
            Coupon.is_active.is_(True),
            Coupon.start_date <= now,
            Coupon.end_date >= now,
            or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
        )
    elif status == "inactive":
        q = q.filter(Coupon.is_active.is_(False))
    elif status == "expired":
        q = q.filter(Coupon.is_active.is_(True), Coupon.end_date < now)
    elif status != "all":
        raise ValidationError("status ต้องเป็น all, active, inactive หรือ expired", field="status")
    if ctype != "all":
        if ctype not in DISCOUNT_TYPES:
            raise ValidationError("ประเภทส่วนลดไม่ถูกต้อง", field="type")
        q = q.filter(Coupon.discount_type == ctype)

    q = q.order_by(resolve_sort(SORT_COLUMNS, "created_at"), Coupon.id.desc())
    items, pagination = paginate(q, page, limit)
    return ok("ok", [svc.status_payload(c, now) for c in items], pagination=pagination)


@bp.post("")
@admin_required
def create_coupon():
    data = request.get_json(silent=True) or {}
    c = svc.create_coupon(data)
    return ok("สร้างคูปองเรียบร้อยแล้ว", svc.status_payload(c), status_code=201)


@bp.get("/stats")
@admin_required
def coupon_stats():
    return ok("ok", svc.coupon_stats())


@bp.get("/<int:cid>")
@admin_required
def get_coupon(cid):
    return ok("ok", svc.status_payload(svc.get_coupon(cid)))


@bp.put("/<int:cid>")
@admin_required
def update_coupon(cid):
    c = svc.get_coupon(cid)
    data = request.get_json(silent=True) or {}
    svc.update_coupon(c, data)
    return ok("อัปเดตคูปองเรียบร้อยแล้ว", svc.status_payload(c))


@bp.delete("/<int:cid>")
@admin_required
def delete_coupon(cid):
    svc.delete_coupon(svc.get_coupon(cid))
    return ok("ลบคูปองเรียบร้อยแล้ว", {"id": cid})


@bp.put("/<int:cid>/status")
@admin_required
def set_status(cid):
    c = svc.get_coupon(cid)
    data = request.get_json(silent=True) or {}
    svc.set_coupon_active(c, data.get("is_active"))
    word = "เปิด" if c.is_active else "ปิด"
    return ok(f"{word}ใช้งานคูปองเรียบร้อยแล้ว", svc.status_payload(c))


@bp.get("/<int:cid>/usage")
@admin_required
def coupon_usage(cid):
    c = svc.get_coupon(cid)
    page, limit = page_args()
    q = CouponUsage.query.filter_by(coupon_id=cid).order_by(CouponUsage.used_at.desc(), CouponUsage.id.desc())
    items, pagination = paginate(q, page, limit)
    return ok(
        "ok",
        {
            "coupon": {
                "id": c.id,
                "code": c.code,
                "name": c.name,
                "usage_limit": c.usage_limit,
                "usage_count": c.usage_count,
            },
            "usages": [u.as_dict() for u in items],
        },
        pagination=pagination,
    )


# ---------- storefront ----------

def _order_amount(data):
    amount = parse_opt_decimal(data.get("order_amount"), "order_amount")
    if amount is None or amount <= 0:
        raise ValidationError("ยอดสั่งซื้อไม่ถูกต้อง", field="order_amount")
    return amount


@public_bp.post("/validate")
def validate_coupon():
    data = request.get_json(silent=True) or {}
    code = (data.get("code") or "").strip()
    if not code:
        raise ValidationError("กรุณาใส่รหัสคูปอง", field="code")
    amount = _order_amount(data)
    coupon = svc.find_by_code(code)
    if not coupon:
        raise NotFoundError("ไม่พบรหัสคูปองที่ระบุ")

    result = svc.check_coupon(
        coupon,
        amount,
        item_quantity=parse_opt_strict_int(data.get("item_quantity"), "item_quantity"),
        user_id=parse_opt_int(data.get("user_id")),
        email=data.get("email"),
    )
    if not result.eligible:
        raise ValidationError(result.customer_message(coupon), field="code")

    return ok(
        f"ใช้คูปอง {coupon.code} ประหยัด {format_baht(result.discount)} บาท",
        {
            "coupon_id": coupon.id,
            "code": coupon.code,
            "name": coupon.name,
            "discount_type": coupon.discount_type,
            "discount_value": float(coupon.discount_value),
            "discount_amount": float(result.discount),
            "final_amount": float(result.final_amount),
        },
    )


@public_bp.post("/use")
def use_coupon():
    data = request.get_json(silent=True) or {}
    coupon_id = parse_opt_int(data.get("coupon_id"))
    if coupon_id is None:
        raise ValidationError("ข้อมูลไม่ครบถ้วน", field="coupon_id")
    amount = _order_amount(data)
    discount = parse_opt_decimal(data.get("discount_amount"), "discount_amount")
    if discount is None or discount < 0 or discount > amount:
        raise ValidationError("ส่วนลดไม่ถูกต้อง", field="discount_amount")

    coupon = svc.get_coupon(coupon_id)
    usage = svc.redeem_coupon(
        coupon,
        amount,
        discount,
        user_id=parse_opt_int(data.get("user_id")),
        email=data.get("email"),
        order_id=parse_opt_int(data.get("order_id")),
    )
    return ok("บันทึกการใช้คูปองเรียบร้อยแล้ว", usage.as_dict(), status_code=201)
