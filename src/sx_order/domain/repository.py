"""OrderRepository Protocol: interface contract for the order store."""
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import OrderSide, OrderState
from src.sx_order.domain.models import Order


class OrderRepositoryProtocol(Protocol):
    async def save(self, order: Order, db: AsyncSession) -> None: ...

    async def get_by_id(self, order_id: str, db: AsyncSession) -> Order | None: ...

    async def find_active_duplicate(
        self,
        listing_id: str,
        owner_id: str,
        side: OrderSide,
        price: Decimal,
        db: AsyncSession,
    ) -> Order | None: ...

    async def best_active(
        self,
        listing_id: str,
        side: OrderSide,
        exclude_owner_id: str,
        exclude_ids: set[str],
        db: AsyncSession,
    ) -> Order | None:
        """Highest-priced ACTIVE bid or lowest-priced ACTIVE ask, FIFO within a price.

        Orders owned by exclude_owner_id never match their own owner's orders."""
        ...

    async def transition(
        self, order_id: str, to_state: OrderState, db: AsyncSession
    ) -> Order | None:
        """Compare-and-swap ACTIVE -> to_state. Returns the updated order, or None
        if the order was no longer ACTIVE when the write happened."""
        ...

    async def list_active_by_listing(self, listing_id: str, db: AsyncSession) -> list[Order]: ...

    async def cancel_all_active_by_listing(
        self, listing_id: str, db: AsyncSession
    ) -> list[str]: ...

    async def list_by_owner(
        self,
        owner_id: str,
        state: OrderState | None,
        limit: int,
        db: AsyncSession,
    ) -> list[Order]: ...
