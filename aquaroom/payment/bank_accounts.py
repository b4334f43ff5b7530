from flask import current_app, request

from . import bank_bp
from .routes import account_values, current_setting
from ..errors import NotFoundError, StorageError, ValidationError
from ..extensions import db
from ..model import BankAccount, PaymentSetting
from ..services.storage import get_storage, store_image
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger
from ..utils.parsing import parse_strict_int

logger = get_logger("payment.bank_accounts")


def _get_account(aid) -> BankAccount:
    account = db.session.get(BankAccount, aid)
    if not account:
        raise NotFoundError("ไม่พบบัญชีธนาคาร")
    return account


# GET /api/admin/bank-accounts
@bank_bp.get("")
@admin_required
def list_bank_accounts():
    accounts = BankAccount.query.order_by(
        BankAccount.setting_id.desc(), BankAccount.sort_order.asc(), BankAccount.id.asc()
    ).all()
    return ok("ok", [a.as_dict() for a in accounts])


# POST /api/admin/bank-accounts
@bank_bp.post("")
@admin_required
def create_bank_account():
    data = request.get_json(silent=True) or {}
    values = account_values(data, field="bank_account")

    setting_id = data.get("payment_setting_id")
    if setting_id in (None, ""):
        setting = current_setting(create=True)
    else:
        setting = db.session.get(PaymentSetting, parse_strict_int(setting_id, "payment_setting_id"))
        if not setting:
            raise NotFoundError("ไม่พบการตั้งค่าการชำระเงิน")

    account = BankAccount(**values)
    setting.bank_accounts.append(account)
    db.session.commit()
    logger.info("Bank account %s added to payment setting %s", account.id, setting.id)
    return ok("เพิ่มบัญชีธนาคารเรียบร้อยแล้ว", account.as_dict(), status_code=201)


# PUT /api/admin/bank-accounts/<id>
@bank_bp.put("/<int:aid>")
@admin_required
def update_bank_account(aid):
    account = _get_account(aid)
    data = request.get_json(silent=True) or {}
    merged = {**account.as_dict(), **data}
    for k, v in account_values(merged, account.sort_order, field="bank_account").items():
        setattr(account, k, v)
    db.session.commit()
    return ok("อัปเดตบัญชีธนาคารเรียบร้อยแล้ว", account.as_dict())


# DELETE /api/admin/bank-accounts/<id>
@bank_bp.delete("/<int:aid>")
@admin_required
def delete_bank_account(aid):
    account = _get_account(aid)
    db.session.delete(account)
    db.session.commit()
    logger.info("Bank account %s deleted", aid)
    return ok("ลบบัญชีธนาคารเรียบร้อยแล้ว")


# POST /api/admin/bank-accounts/<id>/upload-icon
@bank_bp.post("/<int:aid>/upload-icon")
@admin_required
def upload_account_icon(aid):
    account = _get_account(aid)
    files = list(request.files.values())
    if not files:
        raise ValidationError("ไม่พบไฟล์ที่อัปโหลด", field="file")

    previous = account.bank_icon
    url = store_image(files[0], "bank-icons", current_app.config["MAX_ICON_SIZE"], prefix=f"bank-icon-{aid}")
    account.bank_icon = url
    db.session.commit()

    if previous:
        try:
            get_storage().delete(previous)
        except StorageError:
            logger.warning("Could not remove old bank icon %s", previous)
    return ok("อัปโหลดไอคอนธนาคารสำเร็จ", {"iconUrl": url, "bank_account": account.as_dict()})
