"""Price-time priority rules for unit-quantity, all-or-nothing orders."""
from collections.abc import Iterable
from datetime import datetime, timezone

from src.sx_common.enums import OrderSide
from src.sx_order.domain.models import Order
from src.sx_trade.domain.models import Trade

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def crosses(incoming: Order, resting: Order) -> bool:
    """True if the incoming order is marketable against the resting one."""
    if incoming.side == resting.side:
        return False
    if incoming.side == OrderSide.BID:
        return resting.price <= incoming.price
    return resting.price >= incoming.price


def _priority_key(order: Order) -> tuple:
    # Best price first (highest bid / lowest ask), then FIFO, then id for stability.
    price_rank = -order.price if order.side == OrderSide.BID else order.price
    return (price_rank, order.created_at or _EARLIEST, order.id)


def best_order(orders: Iterable[Order], side: OrderSide) -> Order | None:
    """Best ACTIVE order on one side: highest bid or lowest ask, earliest first on ties."""
    candidates = [o for o in orders if o.side == side and o.is_active]
    if not candidates:
        return None
    return min(candidates, key=_priority_key)


def make_trade(taker: Order, maker: Order, trade_id: str, executed_at: datetime) -> Trade:
    """Settle taker against maker. The maker (resting) order's price always wins."""
    bid, ask = (taker, maker) if taker.side == OrderSide.BID else (maker, taker)
    return Trade(
        id=trade_id,
        listing_id=taker.listing_id,
        buyer_id=bid.owner_id,
        seller_id=ask.owner_id,
        price=maker.price,
        bid_order_id=bid.id,
        ask_order_id=ask.id,
        maker_order_id=maker.id,
        taker_order_id=taker.id,
        created_at=executed_at,
    )
