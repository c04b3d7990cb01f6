# src/sx_trade/infrastructure/persistence.py
"""TradeRepository: append-only trades table plus history/stats queries."""
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_trade.domain.models import Trade, TradeStats

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (
        id, listing_id, buyer_id, seller_id, price,
        bid_order_id, ask_order_id, maker_order_id, taker_order_id,
        created_at
    ) VALUES (
        :id, :listing_id, :buyer_id, :seller_id, :price,
        :bid_order_id, :ask_order_id, :maker_order_id, :taker_order_id,
        :created_at
    )
""")

_SELECT_JOINED = """
    SELECT t.id, t.listing_id, t.buyer_id, t.seller_id, t.price,
           t.bid_order_id, t.ask_order_id, t.maker_order_id, t.taker_order_id,
           t.created_at,
           buyer.username AS buyer_name, seller.username AS seller_name,
           l.name AS listing_name
    FROM trades t
    LEFT JOIN users buyer ON buyer.id = t.buyer_id
    LEFT JOIN users seller ON seller.id = t.seller_id
    LEFT JOIN listings l ON l.id = t.listing_id
"""

_LIST_BY_LISTING_SQL = text(f"""
    {_SELECT_JOINED}
    WHERE t.listing_id = :listing_id
    ORDER BY t.created_at DESC, t.id DESC
    LIMIT :limit
""")

_STATS_BY_LISTING_SQL = text("""
    SELECT COUNT(*) AS trade_count,
           AVG(price) AS avg_price,
           MIN(price) AS min_price,
           MAX(price) AS max_price
    FROM trades
    WHERE listing_id = :listing_id
""")

_LIST_BY_USER_SQL = text(f"""
    {_SELECT_JOINED}
    WHERE (t.buyer_id = :user_id OR t.seller_id = :user_id)
      AND (CAST(:cursor_id AS TEXT) IS NULL
           OR CAST(t.id AS BIGINT) < CAST(CAST(:cursor_id AS TEXT) AS BIGINT))
    ORDER BY CAST(t.id AS BIGINT) DESC
    LIMIT :limit
""")


def _row_to_trade(row: Any) -> Trade:
    return Trade(
        id=str(row.id),
        listing_id=str(row.listing_id),
        buyer_id=str(row.buyer_id),
        seller_id=str(row.seller_id),
        price=Decimal(row.price),
        bid_order_id=str(row.bid_order_id),
        ask_order_id=str(row.ask_order_id),
        maker_order_id=str(row.maker_order_id),
        taker_order_id=str(row.taker_order_id),
        created_at=row.created_at,
        buyer_name=row.buyer_name,
        seller_name=row.seller_name,
        listing_name=row.listing_name,
    )


def _optional_decimal(value: Any) -> Decimal | None:
    return Decimal(value) if value is not None else None


class TradeRepository:
    async def save(self, trade: Trade, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_TRADE_SQL,
            {
                "id": trade.id,
                "listing_id": trade.listing_id,
                "buyer_id": trade.buyer_id,
                "seller_id": trade.seller_id,
                "price": trade.price,
                "bid_order_id": trade.bid_order_id,
                "ask_order_id": trade.ask_order_id,
                "maker_order_id": trade.maker_order_id,
                "taker_order_id": trade.taker_order_id,
                "created_at": trade.created_at,
            },
        )

    async def list_by_listing(
        self, listing_id: str, limit: int, db: AsyncSession
    ) -> list[Trade]:
        rows = (
            await db.execute(_LIST_BY_LISTING_SQL, {"listing_id": listing_id, "limit": limit})
        ).fetchall()
        return [_row_to_trade(r) for r in rows]

    async def stats_for_listing(self, listing_id: str, db: AsyncSession) -> TradeStats:
        row = (await db.execute(_STATS_BY_LISTING_SQL, {"listing_id": listing_id})).fetchone()
        if row is None:
            return TradeStats(count=0, avg_price=None, min_price=None, max_price=None)
        return TradeStats(
            count=int(row.trade_count),
            avg_price=_optional_decimal(row.avg_price),
            min_price=_optional_decimal(row.min_price),
            max_price=_optional_decimal(row.max_price),
        )

    async def list_by_user(
        self,
        user_id: str,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[Trade]:
        rows = (
            await db.execute(
                _LIST_BY_USER_SQL,
                {"user_id": user_id, "limit": limit, "cursor_id": cursor_id},
            )
        ).fetchall()
        return [_row_to_trade(r) for r in rows]
