from flask import Blueprint

bp = Blueprint("coupon", __name__, url_prefix="/api/admin/coupons")
# storefront redemption helpers, no admin gate
public_bp = Blueprint("coupon_public", __name__, url_prefix="/api/coupons")

from . import routes  # noqa: E402,F401
