from decimal import Decimal

from src.sx_common.errors import PriceOutOfRangeError
from src.sx_common.money import is_valid_price


def check_price_range(price: Decimal) -> None:
    """Raise PriceOutOfRangeError unless 0 < price <= 1,000,000 in whole cents."""
    if not is_valid_price(price):
        raise PriceOutOfRangeError(price)
