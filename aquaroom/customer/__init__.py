from flask import Blueprint

bp = Blueprint("customer", __name__, url_prefix="/api/admin/customers")

from . import routes  # noqa: E402,F401
