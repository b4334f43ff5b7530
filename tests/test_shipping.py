from decimal import Decimal

import pytest

from aquaroom.errors import ShippingConfigError, ValidationError
from aquaroom.services.shipping import (
    ShippingConfig,
    Zone,
    calculate_fee,
    quote,
    quote_cart,
    validate_shipping_payload,
)

TIERED = ShippingConfig(
    has_special_shipping=True,
    special_shipping_base=Decimal("80"),
    special_shipping_qty=4,
    special_shipping_extra=Decimal("10"),
)

FLAT = ShippingConfig(
    shipping_cost_bangkok=Decimal("40"),
    shipping_cost_provinces=Decimal("60"),
    shipping_cost_remote=Decimal("100"),
)


@pytest.mark.parametrize("qty,fee", [(1, 80), (4, 80), (5, 90), (9, 130)])
def test_tiered_fee(qty, fee):
    assert calculate_fee(TIERED, qty) == Decimal(fee)


def test_tiered_calculation_text():
    assert quote(TIERED, 3).calculation == "3 ตัว = 80 บาท (ค่าพื้นฐาน)"
    assert quote(TIERED, 6).calculation == "6 ตัว = 80 + (2×10) = 100 บาท"


def test_tiered_ignores_zone():
    assert calculate_fee(TIERED, 6, "remote") == calculate_fee(TIERED, 6, "bangkok")


def test_flat_fee_by_zone_ignores_quantity():
    assert calculate_fee(FLAT, 1, "bangkok") == Decimal("40")
    assert calculate_fee(FLAT, 50, "bangkok") == Decimal("40")
    assert calculate_fee(FLAT, 2, "provinces") == Decimal("60")
    assert calculate_fee(FLAT, 2, Zone.REMOTE) == Decimal("100")


def test_thai_zone_aliases():
    assert Zone.parse("กรุงเทพฯ") is Zone.BANGKOK
    assert Zone.parse("ต่างจังหวัด") is Zone.PROVINCES
    assert Zone.parse("เกาะ") is Zone.REMOTE
    assert Zone.parse("Bangkok") is Zone.BANGKOK


def test_unknown_zone_rejected():
    with pytest.raises(ValidationError) as e:
        calculate_fee(FLAT, 1, "mars")
    assert e.value.field == "zone"


def test_flat_mode_requires_zone():
    with pytest.raises(ValidationError):
        calculate_fee(FLAT, 1)


def test_free_threshold_is_inclusive():
    cfg = ShippingConfig(
        has_special_shipping=True,
        special_shipping_base=Decimal("80"),
        special_shipping_qty=4,
        special_shipping_extra=Decimal("10"),
        free_shipping_threshold=Decimal("1000"),
    )
    q = quote(cfg, 10, order_subtotal=Decimal("1000"))
    assert q.fee == 0
    assert q.mode == "free"
    assert calculate_fee(cfg, 10, order_subtotal=Decimal("999.99")) == Decimal("140")


@pytest.mark.parametrize("qty", [0, -1, 2.5, "3", True, None])
def test_invalid_quantity(qty):
    with pytest.raises(ValidationError) as e:
        calculate_fee(TIERED, qty)
    assert e.value.field == "quantity"


def test_missing_tier_values_is_config_error():
    cfg = ShippingConfig(has_special_shipping=True, special_shipping_base=Decimal("80"))
    with pytest.raises(ShippingConfigError) as e:
        calculate_fee(cfg, 2)
    assert e.value.status_code == 422


def test_missing_zone_fee_is_config_error():
    cfg = ShippingConfig(shipping_cost_bangkok=Decimal("40"))
    with pytest.raises(ShippingConfigError):
        calculate_fee(cfg, 1, "remote")


def test_zero_fee_is_not_missing():
    cfg = ShippingConfig(shipping_cost_bangkok=Decimal("0"))
    assert calculate_fee(cfg, 3, "bangkok") == 0


def test_cart_sums_lines_and_reports_details():
    result = quote_cart([("Tetra", TIERED, 6), ("Plant", FLAT, 2)], "provinces", Decimal("700"))
    assert result["totalShippingCost"] == 160.0
    assert result["freeShippingApplied"] is False
    assert result["destination"] == "provinces"
    assert [d["cost"] for d in result["details"]] == [100.0, 60.0]
    assert result["summary"]["message"] == "ค่าจัดส่งรวม 160 บาท"


def test_cart_free_when_any_threshold_reached():
    free_cfg = ShippingConfig(shipping_cost_bangkok=Decimal("40"), free_shipping_threshold=Decimal("500"))
    result = quote_cart([("Tetra", TIERED, 6), ("Plant", free_cfg, 1)], "bangkok", Decimal("500"))
    assert result["totalShippingCost"] == 0
    assert result["freeShippingApplied"] is True
    assert [d["shippingType"] for d in result["details"]] == ["free", "free"]


def test_cart_free_line_needs_no_zone_fees():
    threshold_only = ShippingConfig(free_shipping_threshold=Decimal("500"))
    result = quote_cart([("Fern", threshold_only, 1)], "bangkok", Decimal("600"))
    assert result["totalShippingCost"] == 0
    assert result["freeShippingApplied"] is True
    assert result["details"][0]["cost"] == 0

    with pytest.raises(ShippingConfigError):
        quote_cart([("Fern", threshold_only, 1)], "bangkok", Decimal("400"))


def test_payload_nulls_inactive_tier_set():
    out = validate_shipping_payload({
        "has_special_shipping": True,
        "special_shipping_base": "80",
        "special_shipping_qty": 4,
        "special_shipping_extra": "10",
        "shipping_cost_bangkok": "40",
    })
    assert out["special_shipping_base"] == Decimal("80")
    assert out["shipping_cost_bangkok"] is None
    assert out["shipping_cost_remote"] is None

    out = validate_shipping_payload({"shipping_cost_bangkok": "40", "special_shipping_base": "80"})
    assert out["shipping_cost_bangkok"] == Decimal("40")
    assert out["special_shipping_base"] is None


def test_payload_special_requires_positive_qty():
    with pytest.raises(ValidationError) as e:
        validate_shipping_payload({
            "has_special_shipping": True,
            "special_shipping_base": "80",
            "special_shipping_qty": 0,
            "special_shipping_extra": "10",
        })
    assert e.value.field == "special_shipping_qty"


def test_payload_rejects_negative_fee():
    with pytest.raises(ValidationError):
        validate_shipping_payload({"shipping_cost_provinces": "-5"})


def test_payload_partial_update_keeps_stored_values():
    current = {
        "has_special_shipping": True,
        "special_shipping_base": 80,
        "special_shipping_qty": 4,
        "special_shipping_extra": 10,
    }
    out = validate_shipping_payload({"special_shipping_extra": "15"}, current)
    assert out["special_shipping_base"] == Decimal("80")
    assert out["special_shipping_extra"] == Decimal("15")
