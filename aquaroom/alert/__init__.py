from flask import Blueprint

bp = Blueprint("alert", __name__, url_prefix="/api/admin/alerts")

from . import routes  # noqa: E402,F401
