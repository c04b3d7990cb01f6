"""TradeHistoryService: read-only views over the trade ledger.

Callers pass the db session; nothing here writes.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sx_listing.domain.repository import ListingDirectoryProtocol
from src.sx_listing.infrastructure.persistence import ListingRepository
from src.sx_risk.rules.listing_exists import require_listing
from src.sx_trade.application.schemas import (
    ListingHistoryResponse,
    TradeListResponse,
    TradeResponse,
    TradeStatsResponse,
)
from src.sx_trade.domain.repository import TradeRepositoryProtocol
from src.sx_trade.infrastructure.persistence import TradeRepository


class TradeHistoryService:
    def __init__(
        self,
        trade_repo: TradeRepositoryProtocol | None = None,
        listings: ListingDirectoryProtocol | None = None,
        history_limit: int | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()
        self._listings: ListingDirectoryProtocol = listings or ListingRepository()
        self._history_limit = history_limit or settings.HISTORY_LIMIT

    async def get_history(self, listing_id: str, db: AsyncSession) -> ListingHistoryResponse:
        """Most recent trades (capped), all-time stats, and the last trade for a listing."""
        await require_listing(listing_id, self._listings, db)
        trades = await self._trades.list_by_listing(listing_id, self._history_limit, db)
        stats = await self._trades.stats_for_listing(listing_id, db)
        items = [TradeResponse.from_domain(t) for t in trades]
        return ListingHistoryResponse(
            listing_id=listing_id,
            trades=items,
            stats=TradeStatsResponse.from_domain(stats),
            last_trade=items[0] if items else None,
        )

    async def list_user_trades(
        self, user_id: str, limit: int, cursor: str | None, db: AsyncSession
    ) -> TradeListResponse:
        # Fetch limit+1 to detect has_more without COUNT(*)
        trades = await self._trades.list_by_user(user_id, limit + 1, cursor, db)
        has_more = len(trades) > limit
        page = trades[:limit]
        next_cursor = page[-1].id if has_more and page else None
        return TradeListResponse(
            items=[TradeResponse.from_domain(t) for t in page],
            has_more=has_more,
            next_cursor=next_cursor,
        )


_service: TradeHistoryService | None = None


def get_trade_history_service() -> TradeHistoryService:
    global _service  # noqa: PLW0603
    if _service is None:
        _service = TradeHistoryService()
    return _service
