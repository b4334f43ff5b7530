# --- aquaroom/model/coupon.py ---
from sqlalchemy.sql import func

from ..extensions import db

DISCOUNT_TYPES = ("percentage", "fixed_amount")


class Coupon(db.Model):
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)  # stored uppercase
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)

    # "percentage" or "fixed_amount"
    discount_type = db.Column(db.String(16), nullable=False, default="percentage")
    discount_value = db.Column(db.Numeric(12, 2), nullable=False)

    # Optional constraints
    min_order_amount = db.Column(db.Numeric(12, 2), nullable=True)
    max_discount_amount = db.Column(db.Numeric(12, 2), nullable=True)  # percentage only
    usage_limit = db.Column(db.Integer, nullable=True)                 # global cap
    usage_limit_per_user = db.Column(db.Integer, nullable=True)
    minimum_quantity = db.Column(db.Integer, nullable=True)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    usage_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    usages = db.relationship("CouponUsage", back_populates="coupon", lazy="dynamic")

    def as_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value) if self.discount_value is not None else None,
            "min_order_amount": float(self.min_order_amount) if self.min_order_amount is not None else None,
            "max_discount_amount": float(self.max_discount_amount) if self.max_discount_amount is not None else None,
            "usage_limit": self.usage_limit,
            "usage_limit_per_user": self.usage_limit_per_user,
            "minimum_quantity": self.minimum_quantity,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_active": self.is_active,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class CouponUsage(db.Model):
    __tablename__ = "coupon_usage"

    id = db.Column(db.Integer, primary_key=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupon.id"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"), index=True, nullable=True)
    email = db.Column(db.String(255), index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    order_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    used_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    coupon = db.relationship("Coupon", back_populates="usages")
    user = db.relationship("User", lazy="joined")

    def as_dict(self):
        return {
            "id": self.id,
            "coupon_id": self.coupon_id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "email": self.email or (self.user.email if self.user else None),
            "order_id": self.order_id,
            "order_amount": float(self.order_amount or 0),
            "discount_amount": float(self.discount_amount or 0),
            "used_at": self.used_at.isoformat() if self.used_at else None,
        }
