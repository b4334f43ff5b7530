# --- category/routes.py ---
from flask import request
from sqlalchemy import func

from . import bp
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..model import Category, Product
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger
from ..utils.pagination import page_args, paginate, resolve_sort

logger = get_logger("categories")

SORT_COLUMNS = {"id": Category.id, "name": Category.name, "created_at": Category.created_at}


# ------------------------ helpers ------------------------
def _get_category(cid) -> Category:
    c = db.session.get(Category, cid)
    if not c:
        raise NotFoundError("ไม่พบหมวดหมู่")
    return c


def _products_count(cid):
    return Product.query.filter_by(category_id=cid).count()


def _check_name(name, exclude_id=None):
    if not name:
        raise ValidationError("กรุณาระบุชื่อหมวดหมู่", field="name")
    q = Category.query.filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise ConflictError("ชื่อหมวดหมู่นี้มีอยู่แล้ว", field="name")


# ------------------------ CATEGORY ROUTES ------------------------

@bp.get("")
@admin_required
def list_categories():
    """
    search -> substring match on name
    sort   -> id, name, created_at (default name asc)
    """
    page, limit = page_args(default_limit=50)
    search = (request.args.get("search") or "").strip()

    qry = Category.query
    if search:
        qry = qry.filter(Category.name.ilike(f"%{search}%"))
    qry = qry.order_by(resolve_sort(SORT_COLUMNS, "name", default_order="asc"))
    items, pagination = paginate(qry, page, limit)

    counts = dict(
        db.session.query(Product.category_id, func.count(Product.id))
        .filter(Product.category_id.in_([c.id for c in items]))
        .group_by(Product.category_id)
        .all()
    ) if items else {}
    return ok(
        "ok",
        [c.as_dict(products_count=counts.get(c.id, 0)) for c in items],
        pagination=pagination,
    )


@bp.post("")
@admin_required
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    _check_name(name)
    c = Category(name=name, description=data.get("description"))
    db.session.add(c)
    db.session.commit()
    logger.info("Category created id=%s name=%s", c.id, c.name)
    return ok("เพิ่มหมวดหมู่เรียบร้อยแล้ว", c.as_dict(products_count=0), status_code=201)


@bp.get("/<int:cid>")
@admin_required
def get_category(cid):
    c = _get_category(cid)
    return ok("ok", c.as_dict(products_count=_products_count(cid)))


@bp.put("/<int:cid>")
@admin_required
def update_category(cid):
    c = _get_category(cid)
    data = request.get_json(silent=True) or {}
    if "name" in data:
        name = (data.get("name") or "").strip()
        _check_name(name, exclude_id=cid)
        c.name = name
    if "description" in data:
        c.description = data.get("description")
    db.session.commit()
    logger.info("Category updated id=%s", cid)
    return ok("อัปเดตหมวดหมู่เรียบร้อยแล้ว", c.as_dict(products_count=_products_count(cid)))


@bp.delete("/<int:cid>")
@admin_required
def delete_category(cid):
    c = _get_category(cid)
    if _products_count(cid):
        raise ConflictError("ไม่สามารถลบหมวดหมู่ที่มีสินค้าอยู่")
    db.session.delete(c)
    db.session.commit()
    logger.info("Category deleted id=%s", cid)
    return ok("ลบหมวดหมู่เรียบร้อยแล้ว", {"id": cid})
