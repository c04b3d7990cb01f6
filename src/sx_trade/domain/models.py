"""Trade ledger domain models: immutable once written."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Trade:
    """One settled match between a bid and an ask on a listing."""

    id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    price: Decimal  # settlement price = maker's price
    bid_order_id: str
    ask_order_id: str
    maker_order_id: str
    taker_order_id: str
    created_at: datetime
    # Read-model only: joined display names
    buyer_name: str | None = None
    seller_name: str | None = None
    listing_name: str | None = None


@dataclass
class TradeStats:
    count: int
    avg_price: Decimal | None
    min_price: Decimal | None
    max_price: Decimal | None
