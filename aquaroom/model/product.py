# aquaroom/model/product.py
from sqlalchemy.sql import func

from ..extensions import db


def _num(v):
    return float(v) if v is not None else None


class Product(db.Model):
    __tablename__ = "product"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(255), index=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text)

    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=True)  # alert threshold; falls back to DEFAULT_MIN_STOCK
    is_popular = db.Column(db.Boolean, default=False)

    category_id = db.Column(
        db.Integer,
        db.ForeignKey("category.id"),
        nullable=True
    )

    # Shipping: exactly one tier set is populated, chosen by has_special_shipping
    has_special_shipping = db.Column(db.Boolean, nullable=False, default=False)
    shipping_cost_bangkok = db.Column(db.Numeric(10, 2))
    shipping_cost_provinces = db.Column(db.Numeric(10, 2))
    shipping_cost_remote = db.Column(db.Numeric(10, 2))
    special_shipping_base = db.Column(db.Numeric(10, 2))
    special_shipping_qty = db.Column(db.Integer)
    special_shipping_extra = db.Column(db.Numeric(10, 2))
    special_shipping_notes = db.Column(db.Text)
    free_shipping_threshold = db.Column(db.Numeric(12, 2))
    delivery_time = db.Column(db.String(64))
    special_handling = db.Column(db.Boolean, default=False)  # display only
    shipping_notes = db.Column(db.Text)                     # display only

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    images = db.relationship(
        "ProductImage",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductImage.id.asc()",
    )

    @property
    def main_image(self):
        for img in self.images:
            if img.main:
                return img.image_url
        return self.images[0].image_url if self.images else None

    def shipping_dict(self):
        return {
            "has_special_shipping": self.has_special_shipping,
            "shipping_cost_bangkok": _num(self.shipping_cost_bangkok),
            "shipping_cost_provinces": _num(self.shipping_cost_provinces),
            "shipping_cost_remote": _num(self.shipping_cost_remote),
            "special_shipping_base": _num(self.special_shipping_base),
            "special_shipping_qty": self.special_shipping_qty,
            "special_shipping_extra": _num(self.special_shipping_extra),
            "special_shipping_notes": self.special_shipping_notes,
            "free_shipping_threshold": _num(self.free_shipping_threshold),
            "delivery_time": self.delivery_time,
            "special_handling": self.special_handling,
            "shipping_notes": self.shipping_notes,
        }

    def as_api(self):
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "price": _num(self.price),
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_popular": self.is_popular,
            "category_id": self.category_id,
            "category": self.category.as_dict() if self.category else None,
            "image": self.main_image,
            "images": [img.as_api() for img in self.images],
            **self.shipping_dict(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ProductImage(db.Model):
    __tablename__ = "product_image"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    name = db.Column(db.String(255))
    main = db.Column(db.Boolean, default=False)
    image_url = db.Column(db.String(1024), nullable=False)

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "main": self.main,
            "image_url": self.image_url,
        }
