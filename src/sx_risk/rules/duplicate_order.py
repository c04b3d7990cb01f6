from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import OrderSide
from src.sx_common.errors import DuplicateOrderError
from src.sx_order.domain.repository import OrderRepositoryProtocol


async def check_no_active_duplicate(
    listing_id: str,
    owner_id: str,
    side: OrderSide,
    price: Decimal,
    repo: OrderRepositoryProtocol,
    db: AsyncSession,
) -> None:
    """Raise DuplicateOrderError if the owner already has this exact order ACTIVE.

    Cancelled or matched orders at the same price do not count. The partial
    unique index on orders is the final guard across processes.
    """
    existing = await repo.find_active_duplicate(listing_id, owner_id, side, price, db)
    if existing is not None:
        raise DuplicateOrderError(side.value, price)
