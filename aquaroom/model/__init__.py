# ------ aquaroom/model/__init__.py ------

from .user import User, UserAddress, ADMIN_ROLES
from .category import Category
from .product import Product, ProductImage
from .order import Order, OrderItem, ORDER_STATUSES, PAYMENT_STATUSES
from .coupon import Coupon, CouponUsage, DISCOUNT_TYPES
from .alert import InventoryAlert
from .contact import ContactMessage
from .payment import PaymentSetting, BankAccount
from .setting import SiteSetting

__all__ = [
    "User",
    "UserAddress",
    "ADMIN_ROLES",
    "Category",
    "Product",
    "ProductImage",
    "Order",
    "OrderItem",
    "ORDER_STATUSES",
    "PAYMENT_STATUSES",
    "Coupon",
    "CouponUsage",
    "DISCOUNT_TYPES",
    "InventoryAlert",
    "ContactMessage",
    "PaymentSetting",
    "BankAccount",
    "SiteSetting",
]
