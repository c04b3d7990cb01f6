"""Order book snapshot: derived on demand from ACTIVE orders, never cached."""
from dataclasses import dataclass, field

from src.sx_order.domain.models import Order


@dataclass
class BookSnapshot:
    listing_id: str
    active_orders: list[Order] = field(default_factory=list)  # price desc, then FIFO
    best_bid: Order | None = None  # highest bid, earliest on ties
    best_ask: Order | None = None  # lowest ask, earliest on ties
