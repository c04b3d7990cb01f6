"""Listing: read-only view of the external catalog entity orders reference."""
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Listing:
    id: str
    name: str
    seller_id: str
    retail_price: Decimal | None = None
