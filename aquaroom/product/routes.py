from flask import request, url_for
from sqlalchemy import or_

from . import bp
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..model import Category, Product, ProductImage
from ..services.shipping import FORM_DEFAULTS, ShippingConfig, quote, validate_shipping_payload
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.logger import get_logger
from ..utils.pagination import page_args, paginate, resolve_sort
from ..utils.parsing import (
    parse_bool,
    parse_opt_decimal,
    parse_opt_int,
    parse_opt_strict_int,
    parse_strict_int,
    require_decimal,
    slugify,
)

logger = get_logger("products")

SORT_COLUMNS = {
    "id": Product.id,
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
    "created_at": Product.created_at,
}


# ---------- helpers ----------
def _get_product(pid) -> Product:
    product = db.session.get(Product, pid)
    if not product:
        raise NotFoundError("ไม่พบสินค้า")
    return product


def _image_urls(raw):
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValidationError("images ต้องเป็นรายการ URL", field="images")
    urls = []
    for img in raw:
        url = img.get("image_url") if isinstance(img, dict) else img
        if not isinstance(url, str) or not url.strip():
            raise ValidationError("images ต้องเป็นรายการ URL", field="images")
        urls.append(url.strip())
    return urls


def _apply_payload(product: Product, data: dict, creating: bool):
    if creating or "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("กรุณาระบุชื่อสินค้า", field="name")
        product.name = name
        product.slug = (data.get("slug") or "").strip() or slugify(name)
    elif "slug" in data:
        product.slug = (data.get("slug") or "").strip() or slugify(product.name)

    if creating or "price" in data:
        price = require_decimal(data.get("price"), "price", "กรุณาระบุราคา")
        if price < 0:
            raise ValidationError("ราคาต้องไม่ติดลบ", field="price")
        product.price = price

    if creating or "stock" in data:
        stock = parse_strict_int(data.get("stock"), "stock", "สต็อกต้องเป็นจำนวนเต็ม")
        if stock < 0:
            raise ValidationError("สต็อกต้องไม่ติดลบ", field="stock")
        product.stock = stock

    if "min_stock" in data:
        min_stock = parse_opt_strict_int(data.get("min_stock"), "min_stock")
        if min_stock is not None and min_stock < 0:
            raise ValidationError("สต็อกขั้นต่ำต้องไม่ติดลบ", field="min_stock")
        product.min_stock = min_stock

    if "description" in data:
        product.description = data.get("description")
    if "is_popular" in data:
        product.is_popular = parse_bool(data.get("is_popular"))

    if "category_id" in data:
        category_id = parse_opt_int(data.get("category_id"))
        if category_id is not None and not db.session.get(Category, category_id):
            raise ValidationError("ไม่พบหมวดหมู่ที่เลือก", field="category_id")
        product.category_id = category_id

    current = None if creating else product.shipping_dict()
    for k, v in validate_shipping_payload(data, current).items():
        setattr(product, k, v)

    urls = _image_urls(data.get("images"))
    if urls is not None:
        product.images.clear()
        for i, url in enumerate(urls):
            product.images.append(ProductImage(name=f"image_{i}", image_url=url, main=(i == 0)))


# ---------- routes ----------
# GET /api/admin/products
@bp.get("")
@admin_required
def list_products():
    """
    Query params:
      search       -> substring match on name/description
      category_id  -> int
      sort|sortBy  -> id, name, price, stock, created_at (default created_at)
      order|sortOrder -> asc | desc
      page, limit  -> default 1, 10 (cap 100)
    """
    page, limit = page_args()
    search = (request.args.get("search") or "").strip()
    category_id = parse_opt_int(request.args.get("category_id"))

    query = Product.query
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)

    query = query.order_by(resolve_sort(SORT_COLUMNS, "created_at"), Product.id.desc())
    items, pagination = paginate(query, page, limit)
    return ok("ok", [p.as_api() for p in items], pagination=pagination)


# GET /api/admin/products/shipping-defaults
@bp.get("/shipping-defaults")
@admin_required
def shipping_defaults():
    return ok("ok", FORM_DEFAULTS)


# GET /api/admin/products/<id>
@bp.get("/<int:pid>")
@admin_required
def get_product(pid):
    return ok("ok", _get_product(pid).as_api())


# POST /api/admin/products
@bp.post("")
@admin_required
def create_product():
    data = request.get_json(silent=True) or {}
    product = Product()
    _apply_payload(product, data, creating=True)
    db.session.add(product)
    db.session.commit()
    logger.info("Product created id=%s name=%s", product.id, product.name)

    resp = ok("เพิ่มสินค้าเรียบร้อยแล้ว", product.as_api(), status_code=201)
    resp.headers["Location"] = url_for("product.get_product", pid=product.id)
    return resp


# PUT /api/admin/products/<id>
@bp.put("/<int:pid>")
@admin_required
def update_product(pid):
    product = _get_product(pid)
    data = request.get_json(silent=True) or {}
    _apply_payload(product, data, creating=False)
    db.session.commit()
    logger.info("Product updated id=%s", product.id)
    return ok("อัปเดตสินค้าเรียบร้อยแล้ว", product.as_api())


# DELETE /api/admin/products/<id>
@bp.delete("/<int:pid>")
@admin_required
def delete_product(pid):
    product = _get_product(pid)
    db.session.delete(product)
    db.session.commit()
    logger.info("Product deleted id=%s", pid)
    return ok("ลบสินค้าเรียบร้อยแล้ว", {"id": pid})


# PATCH /api/admin/products/<id>/toggle-popular
@bp.patch("/<int:pid>/toggle-popular")
@admin_required
def toggle_popular(pid):
    product = _get_product(pid)
    product.is_popular = not product.is_popular
    db.session.commit()
    logger.info("Product %s is_popular=%s", pid, product.is_popular)
    return ok("อัปเดตสินค้าแนะนำแล้ว", {"id": pid, "is_popular": product.is_popular})


# POST /api/admin/products/<id>/shipping-quote
@bp.post("/<int:pid>/shipping-quote")
@admin_required
def shipping_quote(pid):
    """Fee preview for the product form: quantity, zone, optional subtotal."""
    product = _get_product(pid)
    data = request.get_json(silent=True) or {}
    quantity = parse_strict_int(data.get("quantity"), "quantity", "จำนวนสินค้าต้องเป็นจำนวนเต็ม")
    subtotal = parse_opt_decimal(data.get("subtotal"), "subtotal")
    q = quote(ShippingConfig.from_product(product), quantity, data.get("zone"), subtotal)
    return ok("ok", {"product_id": pid, "quantity": quantity, **q.as_dict()})
