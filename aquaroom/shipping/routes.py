from flask import request

from . import bp
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..model import Product
from ..services.shipping import ShippingConfig, quote_cart
from ..utils.api import ok
from ..utils.money import ZERO
from ..utils.parsing import parse_strict_int, require_decimal


# POST /api/calculate-shipping
@bp.post("/calculate-shipping")
def calculate_shipping():
    data = request.get_json(silent=True) or {}
    items = data.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("กรุณาระบุรายการสินค้า", field="items")

    lines = []
    order_total = ZERO
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("ข้อมูลสินค้าไม่ถูกต้อง", field="items")
        product_id = parse_strict_int(item.get("productId"), "productId")
        quantity = parse_strict_int(item.get("quantity"), "quantity")
        if quantity <= 0:
            raise ValidationError("จำนวนสินค้าต้องมากกว่า 0", field="quantity")
        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f"ไม่พบสินค้า {product_id}")
        price = item.get("price")
        price = product.price if price is None else require_decimal(price, "price")
        order_total += price * quantity
        lines.append((product.name, ShippingConfig.from_product(product), quantity))

    result = quote_cart(lines, data.get("destination") or "bangkok", order_total)
    return ok("คำนวณค่าจัดส่งสำเร็จ", result)
