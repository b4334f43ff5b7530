from sqlalchemy.sql import func

from ..extensions import db


class InventoryAlert(db.Model):
    __tablename__ = "inventory_alert"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type = db.Column(db.String(32), nullable=False, index=True)   # low_stock, out_of_stock
    alert_level = db.Column(db.String(16), nullable=False)              # warning, critical
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text)
    current_stock = db.Column(db.Integer)
    threshold_value = db.Column(db.Integer)
    priority = db.Column(db.Integer, nullable=False, default=1, index=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)
    read_at = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    product = db.relationship(
        "Product",
        backref=db.backref("alerts", cascade="all, delete-orphan", lazy="dynamic"),
        lazy="joined",
    )

    def as_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "alert_type": self.alert_type,
            "alert_level": self.alert_level,
            "title": self.title,
            "message": self.message,
            "current_stock": self.current_stock,
            "threshold_value": self.threshold_value,
            "priority": self.priority,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
