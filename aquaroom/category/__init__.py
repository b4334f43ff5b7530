from flask import Blueprint

bp = Blueprint("category", __name__, url_prefix="/api/admin/categories")

from . import routes  # noqa: E402,F401
