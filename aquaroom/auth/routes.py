from flask import request, session
from flask_jwt_extended import create_access_token
from sqlalchemy import func, or_
from werkzeug.security import check_password_hash

from . import bp
from ..errors import AuthError, ForbiddenError, ValidationError
from ..extensions import db
from ..model import User
from ..utils.api import ok
from ..utils.decorators import admin_required, current_admin, is_admin
from ..utils.logger import get_logger
from ..utils.parsing import utcnow

logger = get_logger("auth")


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    if not username or not password:
        raise ValidationError("กรุณาระบุชื่อผู้ใช้และรหัสผ่าน")

    user = User.query.filter(
        or_(User.name == username, func.lower(User.email) == username.lower())
    ).first()
    if not user or not check_password_hash(user.password_hash or "", password):
        logger.info("Failed admin login for %r", username)
        raise AuthError("ชื่อผู้ใช้หรือรหัสผ่านไม่ถูกต้อง")
    if not is_admin(user):
        raise ForbiddenError("บัญชีนี้ไม่ใช่ผู้ดูแลระบบ")
    if not user.is_active:
        raise ForbiddenError("บัญชีนี้ถูกปิดใช้งาน")

    user.last_login = utcnow()
    db.session.commit()

    session.clear()
    session["admin_id"] = user.id
    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    logger.info("Admin %s logged in", user.id)
    return ok("เข้าสู่ระบบสำเร็จ", {"user": user.as_dict(), "token": token}, token=token)


@bp.post("/logout")
def logout():
    session.pop("admin_id", None)
    return ok("ออกจากระบบแล้ว")


@bp.get("/me")
@admin_required
def me():
    return ok("ok", current_admin().as_dict())
