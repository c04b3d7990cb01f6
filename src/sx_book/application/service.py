"""OrderBookQueryService: read-only view of one listing's ACTIVE orders.

The book is a pure function of the order store at read time: there is no
in-memory book to drift out of sync with committed state.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_book.domain.models import BookSnapshot
from src.sx_common.enums import OrderSide
from src.sx_listing.domain.repository import ListingDirectoryProtocol
from src.sx_listing.infrastructure.persistence import ListingRepository
from src.sx_matching.engine.matching_algo import best_order
from src.sx_order.domain.models import Order
from src.sx_order.domain.repository import OrderRepositoryProtocol
from src.sx_order.infrastructure.persistence import OrderRepository
from src.sx_risk.rules.listing_exists import require_listing


def _display_key(order: Order) -> tuple:
    # Price descending, then oldest first
    created = order.created_at.timestamp() if order.created_at else 0.0
    return (-order.price, created, order.id)


class OrderBookQueryService:
    def __init__(
        self,
        order_repo: OrderRepositoryProtocol | None = None,
        listings: ListingDirectoryProtocol | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._listings: ListingDirectoryProtocol = listings or ListingRepository()

    async def get_book(self, listing_id: str, db: AsyncSession) -> BookSnapshot:
        await require_listing(listing_id, self._listings, db)
        active = [o for o in await self._orders.list_active_by_listing(listing_id, db) if o.is_active]
        return BookSnapshot(
            listing_id=listing_id,
            active_orders=sorted(active, key=_display_key),
            best_bid=best_order(active, OrderSide.BID),
            best_ask=best_order(active, OrderSide.ASK),
        )


_service: OrderBookQueryService | None = None


def get_book_service() -> OrderBookQueryService:
    global _service  # noqa: PLW0603
    if _service is None:
        _service = OrderBookQueryService()
    return _service
