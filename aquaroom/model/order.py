from sqlalchemy.sql import func

from ..extensions import db

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), unique=True, index=True)  # e.g. "AQ-20251022-0001"
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)

    # Customer snapshot
    customer_name = db.Column(db.String(180))
    phone = db.Column(db.String(50))
    email = db.Column(db.String(255))
    shipping_address = db.Column(db.JSON)

    # Money snapshot
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_fee = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    coupon_code = db.Column(db.String(64))

    order_status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    payment_method = db.Column(db.String(32))
    tracking_number = db.Column(db.String(64))
    shipping_company = db.Column(db.String(120))
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def as_api(self, with_items=True):
        d = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "customer": {
                "name": self.customer_name,
                "phone": self.phone,
                "email": self.email,
            },
            "shipping_address": self.shipping_address,
            "subtotal": float(self.subtotal or 0),
            "shipping_fee": float(self.shipping_fee or 0),
            "discount": float(self.discount or 0),
            "total_amount": float(self.total_amount or 0),
            "coupon_code": self.coupon_code,
            "order_status": self.order_status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "tracking_number": self.tracking_number,
            "shipping_company": self.shipping_company,
            "notes": self.notes,
            "items_count": sum(i.quantity for i in self.items),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_items:
            d["items"] = [i.as_api() for i in self.items]
        return d


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="SET NULL"), index=True)
    name = db.Column(db.String(255))
    image_url = db.Column(db.String(1024))

    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    def as_api(self):
        return {
            "product_id": self.product_id,
            "name": self.name,
            "image_url": self.image_url,
            "unit_price": float(self.unit_price or 0),
            "quantity": self.quantity,
            "line_total": float(self.line_total or 0),
        }
