# aquaroom/utils/pagination.py
from flask import request
from sqlalchemy import asc, desc

from .parsing import parse_int

MAX_LIMIT = 100


def page_args(default_limit=10):
    page = max(parse_int(request.args.get("page"), 1), 1)
    limit = min(max(parse_int(request.args.get("limit"), default_limit), 1), MAX_LIMIT)
    return page, limit


def pagination_meta(page, limit, total):
    total_pages = (total + limit - 1) // limit if total else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_count": total,
        "limit": limit,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def paginate(query, page, limit):
    """Returns (items, pagination dict) for a Flask-SQLAlchemy query."""
    result = query.paginate(page=page, per_page=limit, error_out=False)
    return result.items, pagination_meta(page, limit, result.total or 0)


def resolve_sort(columns: dict, default_key: str, default_order="desc"):
    """
    Reads sort/sortBy and order/sortOrder from the query string.
    Unknown keys fall back to the resource default.
    """
    key = request.args.get("sort") or request.args.get("sortBy") or default_key
    order = (request.args.get("order") or request.args.get("sortOrder") or default_order).lower()
    col = columns.get(key, columns[default_key])
    return asc(col) if order == "asc" else desc(col)
