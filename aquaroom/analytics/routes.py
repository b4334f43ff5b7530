from flask import request

from . import bp
from ..services import analytics
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.parsing import parse_int


def _range(default_days):
    return analytics.date_range(request.args.get("startDate"), request.args.get("endDate"), default_days)


@bp.get("/analytics/overview")
@admin_required
def overview():
    start, end = _range(7)
    return ok("ok", analytics.overview(start, end))


@bp.get("/analytics/sales-chart")
@admin_required
def sales_chart():
    start, end = _range(30)
    return ok("ok", analytics.sales_chart(start, end))


@bp.get("/analytics/top-products")
@admin_required
def top_products():
    start, end = _range(30)
    limit = min(max(parse_int(request.args.get("limit"), 10), 1), 100)
    return ok("ok", analytics.top_products(start, end, limit))


@bp.get("/analytics/customers-stats")
@admin_required
def customers_stats():
    start, end = _range(30)
    return ok("ok", analytics.customer_stats(start, end))


@bp.get("/analytics/inventory-report")
@admin_required
def inventory_report():
    return ok("ok", analytics.inventory_report())


# ---------- dashboard ----------
@bp.get("/dashboard/stats")
@admin_required
def dashboard_stats():
    return ok("ok", analytics.dashboard_stats())


@bp.get("/dashboard/recent-orders")
@admin_required
def recent_orders():
    limit = min(max(parse_int(request.args.get("limit"), 5), 1), 50)
    return ok("ok", analytics.recent_orders(limit))
