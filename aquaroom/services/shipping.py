# aquaroom/services/shipping.py
"""
Shipping fee rules for a cart line.

A product ships in one of two modes, selected by ``has_special_shipping``:

* default mode: a flat fee per destination zone, independent of quantity;
* tiered (special) mode: ``base`` covers up to ``qty`` units, every unit
  beyond that adds ``extra``.

An order subtotal at or above ``free_shipping_threshold`` waives the fee in
either mode. Nothing here reads the clock or the database.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..errors import ShippingConfigError, ValidationError
from ..utils.money import D, ZERO, format_baht, round_money
from ..utils.parsing import parse_bool, parse_opt_decimal, parse_opt_strict_int


class Zone(str, Enum):
    BANGKOK = "bangkok"
    PROVINCES = "provinces"
    REMOTE = "remote"

    @property
    def label(self):
        return ZONE_LABELS[self]

    @classmethod
    def parse(cls, value) -> "Zone":
        if isinstance(value, Zone):
            return value
        key = (str(value) if value is not None else "").strip()
        zone = ZONE_ALIASES.get(key) or ZONE_ALIASES.get(key.lower())
        if zone is None:
            raise ValidationError("พื้นที่จัดส่งไม่ถูกต้อง", field="zone")
        return zone


ZONE_LABELS = {
    Zone.BANGKOK: "กรุงเทพฯ",
    Zone.PROVINCES: "ต่างจังหวัด",
    Zone.REMOTE: "เกาะ",
}

ZONE_ALIASES = {
    "bangkok": Zone.BANGKOK,
    "กรุงเทพฯ": Zone.BANGKOK,
    "กรุงเทพ": Zone.BANGKOK,
    "provinces": Zone.PROVINCES,
    "ต่างจังหวัด": Zone.PROVINCES,
    "remote": Zone.REMOTE,
    "เกาะ": Zone.REMOTE,
}

# Placeholders offered by the product form. The calculator never falls back to these.
FORM_DEFAULTS = {
    "special_shipping_base": 80,
    "special_shipping_qty": 4,
    "special_shipping_extra": 10,
    "shipping_cost_bangkok": 0,
    "shipping_cost_provinces": 50,
    "shipping_cost_remote": 100,
    "delivery_time": "2-3 วัน",
}

DEFAULT_FIELDS = ("shipping_cost_bangkok", "shipping_cost_provinces", "shipping_cost_remote")
SPECIAL_FIELDS = ("special_shipping_base", "special_shipping_qty", "special_shipping_extra")


@dataclass(frozen=True)
class ShippingConfig:
    has_special_shipping: bool = False
    shipping_cost_bangkok: Decimal | None = None
    shipping_cost_provinces: Decimal | None = None
    shipping_cost_remote: Decimal | None = None
    special_shipping_base: Decimal | None = None
    special_shipping_qty: int | None = None
    special_shipping_extra: Decimal | None = None
    free_shipping_threshold: Decimal | None = None
    delivery_time: str | None = None
    special_handling: bool = False
    shipping_notes: str | None = None
    special_shipping_notes: str | None = None

    @classmethod
    def from_product(cls, product) -> "ShippingConfig":
        return cls(
            has_special_shipping=bool(product.has_special_shipping),
            shipping_cost_bangkok=_opt_d(product.shipping_cost_bangkok),
            shipping_cost_provinces=_opt_d(product.shipping_cost_provinces),
            shipping_cost_remote=_opt_d(product.shipping_cost_remote),
            special_shipping_base=_opt_d(product.special_shipping_base),
            special_shipping_qty=product.special_shipping_qty,
            special_shipping_extra=_opt_d(product.special_shipping_extra),
            free_shipping_threshold=_opt_d(product.free_shipping_threshold),
            delivery_time=product.delivery_time,
            special_handling=bool(product.special_handling),
            shipping_notes=product.shipping_notes,
            special_shipping_notes=product.special_shipping_notes,
        )

    @classmethod
    def from_mapping(cls, data: dict) -> "ShippingConfig":
        return cls(
            has_special_shipping=parse_bool(data.get("has_special_shipping")),
            shipping_cost_bangkok=parse_opt_decimal(data.get("shipping_cost_bangkok"), "shipping_cost_bangkok"),
            shipping_cost_provinces=parse_opt_decimal(data.get("shipping_cost_provinces"), "shipping_cost_provinces"),
            shipping_cost_remote=parse_opt_decimal(data.get("shipping_cost_remote"), "shipping_cost_remote"),
            special_shipping_base=parse_opt_decimal(data.get("special_shipping_base"), "special_shipping_base"),
            special_shipping_qty=parse_opt_strict_int(data.get("special_shipping_qty"), "special_shipping_qty"),
            special_shipping_extra=parse_opt_decimal(data.get("special_shipping_extra"), "special_shipping_extra"),
            free_shipping_threshold=parse_opt_decimal(data.get("free_shipping_threshold"), "free_shipping_threshold"),
            delivery_time=data.get("delivery_time"),
            special_handling=parse_bool(data.get("special_handling")),
            shipping_notes=data.get("shipping_notes"),
            special_shipping_notes=data.get("special_shipping_notes"),
        )

    def zone_fee(self, zone: Zone):
        return getattr(self, f"shipping_cost_{zone.value}")


@dataclass(frozen=True)
class ShippingQuote:
    fee: Decimal
    mode: str  # special | normal | free
    calculation: str

    def as_dict(self):
        return {"fee": float(self.fee), "mode": self.mode, "calculation": self.calculation}


def _opt_d(v):
    return D(v) if v is not None else None


def _check_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("จำนวนสินค้าต้องเป็นจำนวนเต็ม", field="quantity")
    if quantity <= 0:
        raise ValidationError("จำนวนสินค้าต้องมากกว่า 0", field="quantity")
    return quantity


def _tiers(config: ShippingConfig):
    base, qty, extra = config.special_shipping_base, config.special_shipping_qty, config.special_shipping_extra
    if base is None or qty is None or extra is None:
        raise ShippingConfigError("สินค้านี้ยังไม่ได้ตั้งค่าการจัดส่งพิเศษครบถ้วน", field="special_shipping")
    return base, qty, extra


def _free(config: ShippingConfig, order_subtotal) -> bool:
    return (
        order_subtotal is not None
        and config.free_shipping_threshold is not None
        and D(order_subtotal) >= config.free_shipping_threshold
    )


def quote(config: ShippingConfig, quantity, zone=None, order_subtotal=None) -> ShippingQuote:
    quantity = _check_quantity(quantity)
    zone = Zone.parse(zone) if zone is not None else None

    if _free(config, order_subtotal):
        return ShippingQuote(
            ZERO, "free",
            f"ส่งฟรี (ยอดสั่งซื้อ {format_baht(order_subtotal)} ≥ {format_baht(config.free_shipping_threshold)} บาท)",
        )

    if not config.has_special_shipping:
        if zone is None:
            raise ValidationError("กรุณาระบุพื้นที่จัดส่ง", field="zone")
        fee = config.zone_fee(zone)
        if fee is None:
            raise ShippingConfigError(f"สินค้านี้ยังไม่ได้ตั้งค่าค่าจัดส่ง{zone.label}", field=f"shipping_cost_{zone.value}")
        fee = round_money(fee)
        return ShippingQuote(fee, "normal", f"{zone.label} = {format_baht(fee)} บาท")

    base, threshold, extra = _tiers(config)
    if quantity <= threshold:
        fee = round_money(base)
        return ShippingQuote(fee, "special", f"{quantity} ตัว = {format_baht(base)} บาท (ค่าพื้นฐาน)")

    extra_items = quantity - threshold
    fee = round_money(base + extra_items * extra)
    return ShippingQuote(
        fee, "special",
        f"{quantity} ตัว = {format_baht(base)} + ({extra_items}×{format_baht(extra)}) = {format_baht(fee)} บาท",
    )


def calculate_fee(config: ShippingConfig, quantity, zone=None, order_subtotal=None) -> Decimal:
    return quote(config, quantity, zone, order_subtotal).fee


def quote_cart(lines, zone, order_total) -> dict:
    """
    ``lines`` is an iterable of ``(name, config, quantity)``. A cart whose
    total reaches any line's free-shipping threshold ships free as a whole.
    """
    zone = Zone.parse(zone)
    order_total = round_money(order_total)
    lines = list(lines)

    free = any(_free(cfg, order_total) for _, cfg, _ in lines)
    total = ZERO
    details = []
    for name, cfg, qty in lines:
        if free and not _free(cfg, order_total):
            # covered by another line's threshold; its own fee settings are not consulted
            q = ShippingQuote(ZERO, "free", "ส่งฟรีทั้งคำสั่งซื้อ")
        else:
            q = quote(cfg, qty, zone, order_total)
        total += q.fee
        details.append({
            "productName": name,
            "quantity": qty,
            "shippingType": q.mode,
            "cost": float(q.fee),
            "calculation": q.calculation,
        })

    if free:
        total = ZERO
    message = (
        "จัดส่งฟรี เนื่องจากยอดสั่งซื้อเกินเงื่อนไข"
        if free else f"ค่าจัดส่งรวม {format_baht(total)} บาท"
    )
    return {
        "totalShippingCost": float(total),
        "orderTotal": float(order_total),
        "freeShippingApplied": free,
        "destination": zone.value,
        "details": details,
        "summary": {"message": message},
    }


def validate_shipping_payload(data: dict, current: dict | None = None) -> dict:
    """
    Normalises product-form shipping input into column values.

    ``current`` holds the product's stored values for partial updates. The
    inactive tier set is nulled so exactly one set is ever populated.
    """
    merged = dict(current or {})
    merged.update({k: v for k, v in data.items() if k in ShippingConfig.__dataclass_fields__})
    cfg = ShippingConfig.from_mapping(merged)

    for name in DEFAULT_FIELDS + ("special_shipping_base", "special_shipping_extra", "free_shipping_threshold"):
        value = getattr(cfg, name)
        if value is not None and value < 0:
            raise ValidationError("ค่าจัดส่งต้องไม่ติดลบ", field=name)

    out = {
        "has_special_shipping": cfg.has_special_shipping,
        "free_shipping_threshold": cfg.free_shipping_threshold,
        "delivery_time": (cfg.delivery_time or "").strip() or None,
        "special_handling": cfg.special_handling,
        "shipping_notes": cfg.shipping_notes,
    }

    if cfg.has_special_shipping:
        if cfg.special_shipping_base is None:
            raise ValidationError("กรุณาระบุค่าจัดส่งพื้นฐาน", field="special_shipping_base")
        if cfg.special_shipping_qty is None or cfg.special_shipping_qty <= 0:
            raise ValidationError("จำนวนตัวที่รวมในค่าพื้นฐานต้องมากกว่า 0", field="special_shipping_qty")
        if cfg.special_shipping_extra is None:
            raise ValidationError("กรุณาระบุค่าจัดส่งต่อตัวที่เกิน", field="special_shipping_extra")
        out.update({
            "special_shipping_base": cfg.special_shipping_base,
            "special_shipping_qty": cfg.special_shipping_qty,
            "special_shipping_extra": cfg.special_shipping_extra,
            "special_shipping_notes": cfg.special_shipping_notes,
            **{f: None for f in DEFAULT_FIELDS},
        })
    else:
        out.update({
            "shipping_cost_bangkok": cfg.shipping_cost_bangkok,
            "shipping_cost_provinces": cfg.shipping_cost_provinces,
            "shipping_cost_remote": cfg.shipping_cost_remote,
            "special_shipping_notes": None,
            **{f: None for f in SPECIAL_FIELDS},
        })
    return out
