# src/sx_order/infrastructure/persistence.py
"""OrderRepository: raw SQL persistence implementation."""
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import OrderSide, OrderState
from src.sx_order.domain.models import Order

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COLUMNS = "id, listing_id, owner_id, side, price, state, created_at, updated_at"

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, listing_id, owner_id, side, price, state, created_at, updated_at)
    VALUES (:id, :listing_id, :owner_id, :side, :price, :state, :created_at, :created_at)
""")

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM orders WHERE id = :id
""")

_FIND_ACTIVE_DUPLICATE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM orders
    WHERE listing_id = :listing_id AND owner_id = :owner_id
      AND side = :side AND price = :price AND state = 'ACTIVE'
    LIMIT 1
""")

# Price-time priority: best price first, then earliest arrival.
_BEST_BID_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM orders
    WHERE listing_id = :listing_id AND side = 'BID' AND state = 'ACTIVE'
      AND owner_id <> :exclude_owner_id
      AND id <> ALL(CAST(:exclude_ids AS VARCHAR[]))
    ORDER BY price DESC, created_at ASC, id ASC
    LIMIT 1
""")

_BEST_ASK_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM orders
    WHERE listing_id = :listing_id AND side = 'ASK' AND state = 'ACTIVE'
      AND owner_id <> :exclude_owner_id
      AND id <> ALL(CAST(:exclude_ids AS VARCHAR[]))
    ORDER BY price ASC, created_at ASC, id ASC
    LIMIT 1
""")

# Compare-and-swap: only an ACTIVE row can move, so a concurrent match/cancel
# that committed first leaves this statement with zero rows.
_TRANSITION_SQL = text(f"""
    UPDATE orders
    SET state = :to_state, updated_at = NOW()
    WHERE id = :id AND state = 'ACTIVE'
    RETURNING {_COLUMNS}
""")

_LIST_ACTIVE_BY_LISTING_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM orders
    WHERE listing_id = :listing_id AND state = 'ACTIVE'
    ORDER BY price DESC, created_at ASC, id ASC
""")

_CANCEL_ALL_BY_LISTING_SQL = text("""
    UPDATE orders
    SET state = 'CANCELLED', updated_at = NOW()
    WHERE listing_id = :listing_id AND state = 'ACTIVE'
    RETURNING id
""")

_LIST_BY_OWNER_SQL = text("""
    SELECT o.id, o.listing_id, o.owner_id, o.side, o.price, o.state,
           o.created_at, o.updated_at, l.name AS listing_name
    FROM orders o
    LEFT JOIN listings l ON l.id = o.listing_id
    WHERE o.owner_id = :owner_id
      AND (CAST(:state AS TEXT) IS NULL OR o.state = CAST(:state AS TEXT))
    ORDER BY o.created_at DESC, o.id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any, listing_name: str | None = None) -> Order:
    """Convert a DB result row to an Order domain object."""
    return Order(
        id=str(row.id),
        listing_id=str(row.listing_id),
        owner_id=str(row.owner_id),
        side=OrderSide(row.side),
        price=Decimal(row.price),
        state=OrderState(row.state),
        created_at=row.created_at,
        updated_at=row.updated_at,
        listing_name=listing_name,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def save(self, order: Order, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "listing_id": order.listing_id,
                "owner_id": order.owner_id,
                "side": order.side.value,
                "price": order.price,
                "state": order.state.value,
                "created_at": order.created_at,
            },
        )

    async def get_by_id(self, order_id: str, db: AsyncSession) -> Order | None:
        row = (await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def find_active_duplicate(
        self,
        listing_id: str,
        owner_id: str,
        side: OrderSide,
        price: Decimal,
        db: AsyncSession,
    ) -> Order | None:
        row = (
            await db.execute(
                _FIND_ACTIVE_DUPLICATE_SQL,
                {
                    "listing_id": listing_id,
                    "owner_id": owner_id,
                    "side": side.value,
                    "price": price,
                },
            )
        ).fetchone()
        return _row_to_order(row) if row else None

    async def best_active(
        self,
        listing_id: str,
        side: OrderSide,
        exclude_owner_id: str,
        exclude_ids: set[str],
        db: AsyncSession,
    ) -> Order | None:
        sql = _BEST_BID_SQL if side == OrderSide.BID else _BEST_ASK_SQL
        row = (
            await db.execute(
                sql,
                {
                    "listing_id": listing_id,
                    "exclude_owner_id": exclude_owner_id,
                    "exclude_ids": sorted(exclude_ids),
                },
            )
        ).fetchone()
        return _row_to_order(row) if row else None

    async def transition(
        self, order_id: str, to_state: OrderState, db: AsyncSession
    ) -> Order | None:
        row = (
            await db.execute(_TRANSITION_SQL, {"id": order_id, "to_state": to_state.value})
        ).fetchone()
        return _row_to_order(row) if row else None

    async def list_active_by_listing(self, listing_id: str, db: AsyncSession) -> list[Order]:
        rows = (
            await db.execute(_LIST_ACTIVE_BY_LISTING_SQL, {"listing_id": listing_id})
        ).fetchall()
        return [_row_to_order(row) for row in rows]

    async def cancel_all_active_by_listing(
        self, listing_id: str, db: AsyncSession
    ) -> list[str]:
        rows = (
            await db.execute(_CANCEL_ALL_BY_LISTING_SQL, {"listing_id": listing_id})
        ).fetchall()
        return [str(row.id) for row in rows]

    async def list_by_owner(
        self,
        owner_id: str,
        state: OrderState | None,
        limit: int,
        db: AsyncSession,
    ) -> list[Order]:
        rows = (
            await db.execute(
                _LIST_BY_OWNER_SQL,
                {
                    "owner_id": owner_id,
                    "state": state.value if state else None,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_order(row, listing_name=row.listing_name) for row in rows]
