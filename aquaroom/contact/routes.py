from flask import request

from . import bp
from ..errors import NotFoundError
from ..extensions import db
from ..model import ContactMessage
from ..services.settings_service import get_setting, save_setting
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger
from ..utils.pagination import page_args, paginate
from ..utils.parsing import parse_bool, utcnow

logger = get_logger("contact")


def _get_message(mid) -> ContactMessage:
    m = db.session.get(ContactMessage, mid)
    if not m:
        raise NotFoundError("ไม่พบข้อความ")
    return m


# ---------- messages ----------
@bp.get("/contact-messages")
@admin_required
def list_messages():
    page, limit = page_args(default_limit=20)
    q = ContactMessage.query
    if request.args.get("is_read") is not None:
        q = q.filter(ContactMessage.is_read.is_(parse_bool(request.args.get("is_read"))))
    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(
            ContactMessage.name.ilike(like)
            | ContactMessage.email.ilike(like)
            | ContactMessage.subject.ilike(like)
        )
    q = q.order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
    items, pagination = paginate(q, page, limit)
    unread = ContactMessage.query.filter(ContactMessage.is_read.is_(False)).count()
    return ok("ok", [m.as_dict() for m in items], pagination=pagination, unread_count=unread)


@bp.get("/contact-messages/<int:mid>")
@admin_required
def get_message(mid):
    return ok("ok", _get_message(mid).as_dict())


@bp.put("/contact-messages/<int:mid>/read")
@admin_required
def read_message(mid):
    m = _get_message(mid)
    if not m.is_read:
        m.is_read = True
        m.read_at = utcnow()
        db.session.commit()
    return ok("อ่านข้อความแล้ว", m.as_dict())


@bp.delete("/contact-messages/<int:mid>")
@admin_required
def delete_message(mid):
    m = _get_message(mid)
    db.session.delete(m)
    db.session.commit()
    logger.info("Contact message deleted id=%s", mid)
    return ok("ลบข้อความเรียบร้อยแล้ว", {"id": mid})


# ---------- contact setting ----------
@bp.get("/contact-setting")
@admin_required
def get_contact_setting():
    return ok("ok", get_setting("contact"))


@bp.post("/contact-setting")
@admin_required
def save_contact_setting():
    data = request.get_json(silent=True) or {}
    return ok("บันทึกข้อมูลติดต่อเรียบร้อยแล้ว", save_setting("contact", data))
