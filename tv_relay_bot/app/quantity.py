"""Order size helpers working in Decimal to avoid float step drift."""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal


def to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_decimal(value: Decimal) -> str:
    """Plain notation without trailing zeros, as the exchange expects."""
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def round_to_step(value: object, step: object) -> Decimal:
    """Floor ``value`` to a multiple of ``step``."""
    step_dec = to_decimal(step)
    if step_dec <= 0:
        raise ValueError(f"step size must be positive, got {step}")
    steps = (to_decimal(value) / step_dec).to_integral_value(rounding=ROUND_FLOOR)
    if steps <= 0:
        return Decimal("0")
    return steps * step_dec


def compute_quantity(notional_usdt: object, price: object, step: object) -> Decimal:
    """Quantity bought by ``notional_usdt`` at ``price``, rounded down to ``step``."""
    price_dec = to_decimal(price)
    if price_dec <= 0:
        raise ValueError(f"price must be positive, got {price}")
    return round_to_step(to_decimal(notional_usdt) / price_dec, step)
