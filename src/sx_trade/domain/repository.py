"""TradeRepository Protocol: append-only ledger plus read queries."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_trade.domain.models import Trade, TradeStats


class TradeRepositoryProtocol(Protocol):
    async def save(self, trade: Trade, db: AsyncSession) -> None: ...

    async def list_by_listing(
        self, listing_id: str, limit: int, db: AsyncSession
    ) -> list[Trade]: ...

    async def stats_for_listing(self, listing_id: str, db: AsyncSession) -> TradeStats: ...

    async def list_by_user(
        self,
        user_id: str,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Trade]: ...
