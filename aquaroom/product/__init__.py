from flask import Blueprint

bp = Blueprint("product", __name__, url_prefix="/api/admin/products")

from . import routes  # noqa: E402,F401
