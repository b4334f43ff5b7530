# aquaroom/services/coupon_service.py
"""
Coupon rules: derived status, eligibility, discount amount, and the admin
write paths that guard them.

Status is never stored. It is recomputed from the stored fields and ``now``
on every read, so a coupon whose ``is_active`` flag is still set can
resolve to EXPIRED.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import func, or_, update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..model import Coupon, CouponUsage, DISCOUNT_TYPES
from ..utils.logger import get_logger
from ..utils.money import D, ZERO, format_baht, round_money
from ..utils.parsing import (
    parse_bool,
    parse_opt_decimal,
    parse_opt_strict_int,
    require_datetime,
    utcnow,
)

logger = get_logger("coupons")


class CouponStatus(Enum):
    DISABLED = ("disabled", "ปิดใช้งาน", "คูปองนี้ถูกปิดใช้งานแล้ว")
    NOT_STARTED = ("not_started", "ยังไม่เริ่ม", "คูปองนี้ยังไม่เริ่มใช้งาน")
    EXPIRED = ("expired", "หมดอายุ", "คูปองนี้หมดอายุแล้ว")
    EXHAUSTED = ("exhausted", "ใช้หมดแล้ว", "คูปองนี้ถูกใช้งานครบจำนวนแล้ว")
    USER_LIMIT_REACHED = ("user_limit_reached", "ครบสิทธิ์ผู้ใช้", "คุณใช้คูปองนี้ครบจำนวนแล้ว")
    BELOW_MINIMUM = ("below_minimum", "ยอดไม่ถึงขั้นต่ำ", "ยอดสั่งซื้อไม่ถึงขั้นต่ำ")
    BELOW_MIN_QUANTITY = ("below_min_quantity", "จำนวนไม่ถึงขั้นต่ำ", "จำนวนสินค้าไม่ถึงขั้นต่ำ")
    ACTIVE = ("active", "ใช้งานได้", "ใช้คูปองได้")

    def __init__(self, key, label, message):
        self.key = key
        self.label = label
        self.message = message


@dataclass
class OrderContext:
    subtotal: Decimal
    item_quantity: int | None = None
    user_usage_count: int = 0
    now: datetime = field(default_factory=utcnow)


@dataclass
class CouponEvaluation:
    status: CouponStatus
    discount: Decimal = ZERO
    final_amount: Decimal = ZERO

    @property
    def eligible(self):
        return self.status is CouponStatus.ACTIVE

    def customer_message(self, coupon):
        if self.status is CouponStatus.BELOW_MINIMUM:
            return f"ยอดสั่งซื้อขั้นต่ำ {format_baht(coupon.min_order_amount)} บาท"
        if self.status is CouponStatus.BELOW_MIN_QUANTITY:
            return f"ต้องซื้อสินค้าอย่างน้อย {coupon.minimum_quantity} ชิ้น"
        return self.status.message


# ---------- pure rules ----------

def lifecycle_status(coupon, now: datetime | None = None) -> CouponStatus:
    now = now or utcnow()
    if not coupon.is_active:
        return CouponStatus.DISABLED
    if now < coupon.start_date:
        return CouponStatus.NOT_STARTED
    if now > coupon.end_date:
        return CouponStatus.EXPIRED
    if coupon.usage_limit is not None and (coupon.usage_count or 0) >= coupon.usage_limit:
        return CouponStatus.EXHAUSTED
    return CouponStatus.ACTIVE


def compute_discount(discount_type, value, subtotal, max_discount=None) -> Decimal:
    subtotal = D(subtotal)
    value = D(value)
    if discount_type == "fixed_amount":
        discount = min(value, subtotal)
    elif discount_type == "percentage":
        discount = subtotal * value / Decimal(100)
        if max_discount is not None:
            discount = min(discount, D(max_discount))
    else:
        raise ValidationError("ประเภทส่วนลดไม่ถูกต้อง", field="discount_type")
    discount = min(discount, subtotal)
    return round_money(max(discount, ZERO))


def evaluate(coupon, ctx: OrderContext) -> CouponEvaluation:
    subtotal = D(ctx.subtotal)
    status = lifecycle_status(coupon, ctx.now)
    if status is CouponStatus.ACTIVE:
        if coupon.usage_limit_per_user is not None and ctx.user_usage_count >= coupon.usage_limit_per_user:
            status = CouponStatus.USER_LIMIT_REACHED
        elif coupon.min_order_amount is not None and subtotal < D(coupon.min_order_amount):
            status = CouponStatus.BELOW_MINIMUM
        elif coupon.minimum_quantity is not None and (ctx.item_quantity or 0) < coupon.minimum_quantity:
            status = CouponStatus.BELOW_MIN_QUANTITY

    if status is not CouponStatus.ACTIVE:
        return CouponEvaluation(status, ZERO, round_money(subtotal))

    discount = compute_discount(
        coupon.discount_type, coupon.discount_value, subtotal, coupon.max_discount_amount
    )
    return CouponEvaluation(status, discount, round_money(subtotal - discount))


def status_payload(coupon, now: datetime | None = None) -> dict:
    status = lifecycle_status(coupon, now)
    return {**coupon.as_dict(), "status": status.key, "status_label": status.label}


# ---------- validation ----------

COUPON_FIELDS = (
    "code", "name", "description", "discount_type", "discount_value",
    "min_order_amount", "max_discount_amount", "usage_limit",
    "usage_limit_per_user", "minimum_quantity", "start_date", "end_date", "is_active",
)


def validate_coupon_payload(data: dict, existing: Coupon | None = None) -> dict:
    """
    Returns column values ready to assign. On update, missing keys keep the
    stored value, and the merged record is validated as a whole.
    """
    def pick(key):
        if key in data:
            return data[key]
        return getattr(existing, key) if existing is not None else None

    code = (pick("code") or "").strip().upper()
    if len(code) < 3:
        raise ValidationError("รหัสคูปองต้องมีอย่างน้อย 3 ตัวอักษร", field="code")

    name = (pick("name") or "").strip()
    if not name:
        raise ValidationError("กรุณาระบุชื่อคูปอง", field="name")

    discount_type = (pick("discount_type") or "").strip()
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError("ประเภทส่วนลดต้องเป็น percentage หรือ fixed_amount", field="discount_type")

    value = parse_opt_decimal(pick("discount_value"), "discount_value")
    if value is None or value <= 0:
        raise ValidationError("ค่าส่วนลดต้องมากกว่า 0", field="discount_value")
    if discount_type == "percentage" and value > 100:
        raise ValidationError("ส่วนลดแบบเปอร์เซ็นต์ต้องไม่เกิน 100%", field="discount_value")

    start = require_datetime(pick("start_date"), "start_date", "กรุณาระบุวันเริ่มใช้งาน")
    end = require_datetime(pick("end_date"), "end_date", "กรุณาระบุวันหมดอายุ")
    if end <= start:
        raise ValidationError("วันหมดอายุต้องหลังจากวันเริ่มใช้งาน", field="end_date")

    out = {
        "code": code,
        "name": name,
        "description": (pick("description") or "").strip() or None,
        "discount_type": discount_type,
        "discount_value": value,
        "start_date": start,
        "end_date": end,
        "is_active": parse_bool(pick("is_active"), True),
    }
    for key in ("min_order_amount", "max_discount_amount"):
        amount = parse_opt_decimal(pick(key), key)
        if amount is not None and amount < 0:
            raise ValidationError(f"{key} ต้องไม่ติดลบ", field=key)
        out[key] = amount
    for key in ("usage_limit", "usage_limit_per_user", "minimum_quantity"):
        n = parse_opt_strict_int(pick(key), key)
        if n is not None and n <= 0:
            raise ValidationError(f"{key} ต้องมากกว่า 0", field=key)
        out[key] = n
    if discount_type == "fixed_amount":
        out["max_discount_amount"] = None
    return out


def _ensure_unique_code(code, exclude_id=None):
    q = Coupon.query.filter(func.upper(Coupon.code) == code)
    if exclude_id is not None:
        q = q.filter(Coupon.id != exclude_id)
    if q.first():
        raise ConflictError("รหัสคูปองนี้มีอยู่แล้ว", field="code")


# ---------- write paths ----------

def get_coupon(coupon_id) -> Coupon:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFoundError("ไม่พบคูปองที่ต้องการ")
    return c


def find_by_code(code) -> Coupon | None:
    code = (code or "").strip().upper()
    if not code:
        return None
    return Coupon.query.filter(func.upper(Coupon.code) == code).first()


def create_coupon(data: dict) -> Coupon:
    values = validate_coupon_payload(data)
    _ensure_unique_code(values["code"])
    c = Coupon(usage_count=0, **values)
    db.session.add(c)
    db.session.commit()
    logger.info("Coupon created id=%s code=%s", c.id, c.code)
    return c


def update_coupon(coupon: Coupon, data: dict) -> Coupon:
    values = validate_coupon_payload(data, existing=coupon)
    if values["code"] != coupon.code:
        _ensure_unique_code(values["code"], exclude_id=coupon.id)
    for k, v in values.items():
        setattr(coupon, k, v)
    db.session.commit()
    logger.info("Coupon updated id=%s code=%s", coupon.id, coupon.code)
    return coupon


def set_coupon_active(coupon: Coupon, is_active) -> Coupon:
    if not isinstance(is_active, bool):
        raise ValidationError("is_active ต้องเป็น true หรือ false", field="is_active")
    coupon.is_active = is_active
    db.session.commit()
    logger.info("Coupon %s is_active=%s", coupon.code, is_active)
    return coupon


def delete_coupon(coupon: Coupon):
    if coupon.usages.count() > 0:
        raise ConflictError("ไม่สามารถลบคูปองที่มีการใช้งานแล้ว")
    db.session.delete(coupon)
    db.session.commit()
    logger.info("Coupon deleted id=%s code=%s", coupon.id, coupon.code)


def coupon_stats(now: datetime | None = None) -> dict:
    now = now or utcnow()
    total = Coupon.query.count()
    active = Coupon.query.filter(
        Coupon.is_active.is_(True),
        Coupon.start_date <= now,
        Coupon.end_date >= now,
        or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
    ).count()
    expired = Coupon.query.filter(Coupon.is_active.is_(True), Coupon.end_date < now).count()
    used = CouponUsage.query.count()
    top = Coupon.query.order_by(Coupon.usage_count.desc(), Coupon.id.asc()).limit(5).all()
    return {
        "total_coupons": total,
        "active_coupons": active,
        "expired_coupons": expired,
        "used_count": used,
        "top_used": [
            {"id": c.id, "code": c.code, "name": c.name, "usage_count": c.usage_count}
            for c in top
        ],
    }


def user_usage_count(coupon: Coupon, user_id=None, email=None) -> int:
    conds = []
    if user_id is not None:
        conds.append(CouponUsage.user_id == user_id)
    if email:
        conds.append(func.lower(CouponUsage.email) == email.strip().lower())
    if not conds:
        return 0
    return CouponUsage.query.filter(CouponUsage.coupon_id == coupon.id, or_(*conds)).count()


def check_coupon(coupon: Coupon, order_amount, item_quantity=None, user_id=None, email=None,
                 now: datetime | None = None) -> CouponEvaluation:
    ctx = OrderContext(
        subtotal=D(order_amount),
        item_quantity=item_quantity,
        user_usage_count=user_usage_count(coupon, user_id, email),
        now=now or utcnow(),
    )
    return evaluate(coupon, ctx)


def redeem_coupon(coupon: Coupon, order_amount, discount_amount, user_id=None, email=None,
                  order_id=None) -> CouponUsage:
    """
    Records one redemption. The usage_count increment is a single guarded
    UPDATE, so two concurrent redemptions can never both take the last use.
    """
    if coupon.usage_limit_per_user is not None and (user_id is not None or email):
        if user_usage_count(coupon, user_id, email) >= coupon.usage_limit_per_user:
            raise ConflictError(CouponStatus.USER_LIMIT_REACHED.message)

    result = db.session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
        )
        .values(usage_count=Coupon.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise ConflictError(CouponStatus.EXHAUSTED.message)

    usage = CouponUsage(
        coupon_id=coupon.id,
        user_id=user_id,
        email=email or None,
        order_id=order_id,
        order_amount=round_money(order_amount),
        discount_amount=round_money(discount_amount),
    )
    db.session.add(usage)
    db.session.commit()
    db.session.refresh(coupon)
    logger.info("Coupon %s redeemed usage_id=%s count=%s", coupon.code, usage.id, coupon.usage_count)
    return usage
