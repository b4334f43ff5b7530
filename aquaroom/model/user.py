# --- aquaroom/model/user.py ---
from sqlalchemy.sql import func

from ..extensions import db

ADMIN_ROLES = ("ADMIN", "admin", "ADMINISTRATOR")


class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(180), nullable=True, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    role = db.Column(db.String(50), nullable=False, default="customer", index=True)  # customer, admin
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    phone = db.Column(db.String(50))
    avatar = db.Column(db.String(1024))
    last_login = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    addresses = db.relationship(
        "UserAddress",
        backref="user",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="UserAddress.id.asc()",
    )
    orders = db.relationship("Order", backref="user", lazy="dynamic")

    @classmethod
    def customers(cls):
        return cls.query.filter(cls.role.notin_(ADMIN_ROLES))

    @property
    def default_address(self):
        for a in self.addresses:
            if a.is_default:
                return a
        return None

    def as_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "phone": self.phone,
            "avatar": self.avatar,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class UserAddress(db.Model):
    __tablename__ = "user_address"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_name = db.Column(db.String(180))
    phone = db.Column(db.String(50))
    address_line = db.Column(db.String(512))
    district = db.Column(db.String(120))
    province = db.Column(db.String(120))
    postal_code = db.Column(db.String(16))
    is_default = db.Column(db.Boolean, default=False)

    def as_dict(self):
        return {
            "id": self.id,
            "recipient_name": self.recipient_name,
            "phone": self.phone,
            "address_line": self.address_line,
            "district": self.district,
            "province": self.province,
            "postal_code": self.postal_code,
            "is_default": self.is_default,
        }
