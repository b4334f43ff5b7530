# aquaroom/utils/money.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

Money = Decimal
ZERO = Decimal("0")


def D(x) -> Money:
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x if x is not None else "0"))
    except InvalidOperation:
        raise ValueError(f"not a number: {x!r}")


def round_money(x: Money) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_baht(x) -> str:
    n = round_money(x)
    if n == n.to_integral_value():
        return f"{int(n):,}"
    return f"{n:,.2f}"
