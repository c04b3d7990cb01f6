"""Price helpers for dollar-denominated order prices.

Prices are Decimal with two decimal places (NUMERIC(10, 2) in PostgreSQL).
Floats never touch a price: JSON numbers are parsed straight into Decimal.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MIN_PRICE_EXCLUSIVE = Decimal("0")
MAX_PRICE = Decimal("1000000")
CENT = Decimal("0.01")


def is_valid_price(price: Decimal) -> bool:
    """True iff 0 < price <= 1,000,000 with at most two decimal places."""
    if not price.is_finite():
        return False
    if not MIN_PRICE_EXCLUSIVE < price <= MAX_PRICE:
        return False
    return price == price.quantize(CENT)


def to_price(value: object) -> Decimal:
    """Parse a raw value into a two-place Decimal. Raises ValueError if not numeric."""
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"price must be a number, got {value!r}") from exc
    if not dec.is_finite():
        raise ValueError("price must be a finite number")
    return dec


def round_price(value: Decimal) -> Decimal:
    """Round to cents. Used for aggregates such as an average trade price."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_price(value: Decimal) -> str:
    """Decimal -> display string with exactly two places, e.g. "150.00"."""
    return f"{value:.2f}"
