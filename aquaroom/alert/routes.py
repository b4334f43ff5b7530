from flask import request

from . import bp
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..model import InventoryAlert
from ..services import inventory_alerts
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.pagination import page_args, paginate
from ..utils.parsing import parse_bool


@bp.get("")
@admin_required
def list_alerts():
    """
    alert_type -> low_stock | out_of_stock
    is_read    -> true | false
    include_inactive -> also show alerts superseded by a later scan
    """
    page, limit = page_args(default_limit=20)
    q = InventoryAlert.query
    if not parse_bool(request.args.get("include_inactive")):
        q = q.filter(InventoryAlert.is_active.is_(True))
    alert_type = request.args.get("alert_type")
    if alert_type:
        q = q.filter(InventoryAlert.alert_type == alert_type)
    if request.args.get("is_read") is not None:
        q = q.filter(InventoryAlert.is_read.is_(parse_bool(request.args.get("is_read"))))

    q = q.order_by(InventoryAlert.priority.desc(), InventoryAlert.created_at.desc(), InventoryAlert.id.desc())
    items, pagination = paginate(q, page, limit)
    return ok("ok", [a.as_dict() for a in items], pagination=pagination)


@bp.get("/summary")
@admin_required
def alert_summary():
    return ok("ok", inventory_alerts.alert_summary())


@bp.post("/generate")
@admin_required
def generate_alerts():
    result = inventory_alerts.generate_alerts()
    return ok(f"ตรวจสอบสินค้า {result['products_checked']} รายการ สร้างการแจ้งเตือน {result['alerts_created']} รายการ", result)


@bp.put("/bulk-read")
@admin_required
def bulk_read():
    data = request.get_json(silent=True) or {}
    ids = data.get("alertIds")
    if not isinstance(ids, list) or not ids or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        raise ValidationError("alertIds ต้องเป็นรายการรหัสการแจ้งเตือน", field="alertIds")
    count = inventory_alerts.bulk_mark_read(ids)
    return ok(f"อ่านการแจ้งเตือน {count} รายการแล้ว", {"updated_count": count})


@bp.put("/<int:aid>/read")
@admin_required
def mark_read(aid):
    alert = db.session.get(InventoryAlert, aid)
    if not alert:
        raise NotFoundError("ไม่พบการแจ้งเตือน")
    inventory_alerts.mark_read(alert)
    return ok("อ่านการแจ้งเตือนแล้ว", alert.as_dict())
