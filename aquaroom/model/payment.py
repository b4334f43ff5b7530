from sqlalchemy.sql import func

from ..extensions import db


class PaymentSetting(db.Model):
    """Single row; created on first save."""
    __tablename__ = "payment_setting"

    id = db.Column(db.Integer, primary_key=True)
    promptpay_enabled = db.Column(db.Boolean, nullable=False, default=False)
    promptpay_id = db.Column(db.String(64), nullable=False, default="")
    promptpay_name = db.Column(db.String(180), nullable=False, default="")
    promptpay_qr_type = db.Column(db.String(16), nullable=False, default="phone")  # phone, national_id, ewallet
    bank_transfer_enabled = db.Column(db.Boolean, nullable=False, default=True)
    cod_enabled = db.Column(db.Boolean, nullable=False, default=False)
    cod_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    cod_max_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    credit_card_enabled = db.Column(db.Boolean, nullable=False, default=False)
    auto_verify_enabled = db.Column(db.Boolean, nullable=False, default=False)
    payment_timeout_hours = db.Column(db.Integer, nullable=False, default=24)
    require_payment_proof = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    bank_accounts = db.relationship(
        "BankAccount",
        backref="setting",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BankAccount.sort_order.asc()",
    )

    def as_dict(self):
        return {
            "promptpay_enabled": self.promptpay_enabled,
            "promptpay_id": self.promptpay_id,
            "promptpay_name": self.promptpay_name,
            "promptpay_qr_type": self.promptpay_qr_type,
            "bank_transfer_enabled": self.bank_transfer_enabled,
            "bank_accounts": [b.as_dict() for b in self.bank_accounts],
            "cod_enabled": self.cod_enabled,
            "cod_fee": float(self.cod_fee or 0),
            "cod_max_amount": float(self.cod_max_amount or 0),
            "credit_card_enabled": self.credit_card_enabled,
            "auto_verify_enabled": self.auto_verify_enabled,
            "payment_timeout_hours": self.payment_timeout_hours,
            "require_payment_proof": self.require_payment_proof,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class BankAccount(db.Model):
    __tablename__ = "bank_account"

    id = db.Column(db.Integer, primary_key=True)
    setting_id = db.Column(db.Integer, db.ForeignKey("payment_setting.id", ondelete="CASCADE"), nullable=False, index=True)
    bank_name = db.Column(db.String(120), nullable=False)
    account_name = db.Column(db.String(180), nullable=False)
    account_number = db.Column(db.String(64), nullable=False)
    branch = db.Column(db.String(120))
    bank_icon = db.Column(db.String(1024))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def as_dict(self):
        return {
            "id": self.id,
            "bank_name": self.bank_name,
            "account_name": self.account_name,
            "account_number": self.account_number,
            "branch": self.branch,
            "bank_icon": self.bank_icon,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
            "payment_setting_id": self.setting_id,
        }
