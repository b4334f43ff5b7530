# ------- aquaroom/utils/decorators.py -------
from functools import wraps

from flask import g, session
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..errors import AuthError, ForbiddenError
from ..extensions import db
from ..model.user import ADMIN_ROLES, User


def is_admin(user) -> bool:
    return bool(user) and user.role in ADMIN_ROLES


def _session_user():
    uid = session.get("admin_id")
    return db.session.get(User, uid) if uid else None


def _token_user():
    verify_jwt_in_request(optional=True)
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(User, uid) if uid else None


def current_admin():
    """The admin resolved by admin_required for this request, if any."""
    return g.get("admin")


def admin_required(fn):
    """Session cookie first, then an Authorization: Bearer token."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = _session_user() or _token_user()
        if not user:
            raise AuthError("กรุณาเข้าสู่ระบบ")
        if not is_admin(user) or not user.is_active:
            raise ForbiddenError("ไม่มีสิทธิ์เข้าถึง")
        g.admin = user
        return fn(*args, **kwargs)
    return wrapper
