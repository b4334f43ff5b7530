from flask import current_app, request

from . import bp
from ..errors import ValidationError
from ..extensions import db
from ..model import BankAccount, PaymentSetting
from ..services.storage import store_image
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger
from ..utils.parsing import parse_bool, parse_int, parse_opt_decimal, parse_strict_int

logger = get_logger("payment")

QR_TYPES = ("phone", "national_id", "ewallet")

DEFAULTS = {
    "promptpay_enabled": False,
    "promptpay_id": "",
    "promptpay_name": "",
    "promptpay_qr_type": "phone",
    "bank_transfer_enabled": True,
    "bank_accounts": [],
    "cod_enabled": False,
    "cod_fee": 0,
    "cod_max_amount": 0,
    "credit_card_enabled": False,
    "auto_verify_enabled": False,
    "payment_timeout_hours": 24,
    "require_payment_proof": True,
}

BOOL_FIELDS = (
    "promptpay_enabled", "bank_transfer_enabled", "cod_enabled",
    "credit_card_enabled", "auto_verify_enabled", "require_payment_proof",
)


def current_setting(create=False):
    setting = PaymentSetting.query.order_by(PaymentSetting.id.desc()).first()
    if setting is None and create:
        setting = PaymentSetting()
        db.session.add(setting)
    return setting


def account_values(a: dict, sort_order: int = 0, field: str = "bank_accounts", label: str = "") -> dict:
    """Required bank/account name and number; everything else optional."""
    bank_name = (a.get("bank_name") or "").strip()
    account_name = (a.get("account_name") or "").strip()
    account_number = (a.get("account_number") or "").strip()
    if not bank_name or not account_name or not account_number:
        raise ValidationError(f"บัญชีธนาคาร{label}ข้อมูลไม่ครบถ้วน", field=field)
    return {
        "bank_name": bank_name,
        "account_name": account_name,
        "account_number": account_number,
        "branch": (a.get("branch") or "").strip() or None,
        "bank_icon": a.get("bank_icon") or None,
        "sort_order": parse_int(a.get("sort_order"), sort_order),
        "is_active": parse_bool(a.get("is_active"), True),
    }


def _bank_accounts(raw):
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("bank_accounts ต้องเป็นรายการ", field="bank_accounts")
    accounts = []
    for i, a in enumerate(raw):
        if not isinstance(a, dict):
            raise ValidationError("ข้อมูลบัญชีธนาคารไม่ถูกต้อง", field="bank_accounts")
        accounts.append(BankAccount(**account_values(a, i, label=f"ลำดับที่ {i + 1} ")))
    return accounts


def _validated(data: dict) -> dict:
    values = {k: parse_bool(data.get(k), DEFAULTS[k]) for k in BOOL_FIELDS}

    values["promptpay_id"] = (data.get("promptpay_id") or "").strip()
    values["promptpay_name"] = (data.get("promptpay_name") or "").strip()
    qr_type = data.get("promptpay_qr_type") or DEFAULTS["promptpay_qr_type"]
    if qr_type not in QR_TYPES:
        raise ValidationError("ประเภท PromptPay ไม่ถูกต้อง", field="promptpay_qr_type")
    values["promptpay_qr_type"] = qr_type
    if values["promptpay_enabled"] and not values["promptpay_id"]:
        raise ValidationError("กรุณาระบุหมายเลข PromptPay", field="promptpay_id")

    for k in ("cod_fee", "cod_max_amount"):
        amount = parse_opt_decimal(data.get(k), k)
        if amount is not None and amount < 0:
            raise ValidationError(f"{k} ต้องไม่ติดลบ", field=k)
        values[k] = amount if amount is not None else 0

    hours = data.get("payment_timeout_hours")
    hours = DEFAULTS["payment_timeout_hours"] if hours in (None, "") else parse_strict_int(hours, "payment_timeout_hours")
    if hours <= 0:
        raise ValidationError("payment_timeout_hours ต้องมากกว่า 0", field="payment_timeout_hours")
    values["payment_timeout_hours"] = hours
    return values


# GET /api/admin/payment-settings
@bp.get("")
@admin_required
def get_payment_settings():
    setting = current_setting()
    if not setting:
        return ok("ok", DEFAULTS)
    data = setting.as_dict()
    data["bank_accounts"] = [a for a in data["bank_accounts"] if a["is_active"]]
    return ok("ok", data)


# POST /api/admin/payment-settings
@bp.post("")
@admin_required
def save_payment_settings():
    data = request.get_json(silent=True) or {}
    values = _validated(data)
    accounts = _bank_accounts(data.get("bank_accounts"))

    setting = current_setting(create=True)
    for k, v in values.items():
        setattr(setting, k, v)
    setting.bank_accounts.clear()
    setting.bank_accounts.extend(accounts)
    db.session.commit()
    logger.info("Payment settings saved with %s bank accounts", len(accounts))
    return ok("บันทึกการตั้งค่าการชำระเงินเรียบร้อยแล้ว", setting.as_dict())


# POST /api/admin/payment-settings/upload-bank-icon
@bp.post("/upload-bank-icon")
@admin_required
def upload_bank_icon():
    files = list(request.files.values())
    if not files:
        raise ValidationError("ไม่พบไฟล์ที่อัปโหลด", field="file")
    index = parse_int(request.form.get("accountIndex"), 0)
    url = store_image(
        files[0],
        "bank-icons",
        current_app.config["MAX_ICON_SIZE"],
        prefix=f"bank-icon-{index}",
    )
    return ok("อัปโหลดไอคอนธนาคารสำเร็จ", {"iconUrl": url}, iconUrl=url)
