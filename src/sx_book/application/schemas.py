from pydantic import BaseModel

from src.sx_book.domain.models import BookSnapshot
from src.sx_order.application.schemas import OrderResponse


class OrderBookResponse(BaseModel):
    listing_id: str
    active_orders: list[OrderResponse]
    best_bid: OrderResponse | None
    best_ask: OrderResponse | None

    @classmethod
    def from_snapshot(cls, snapshot: BookSnapshot) -> "OrderBookResponse":
        return cls(
            listing_id=snapshot.listing_id,
            active_orders=[OrderResponse.from_domain(o) for o in snapshot.active_orders],
            best_bid=OrderResponse.from_domain(snapshot.best_bid) if snapshot.best_bid else None,
            best_ask=OrderResponse.from_domain(snapshot.best_ask) if snapshot.best_ask else None,
        )
