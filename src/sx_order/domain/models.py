"""Order domain model: pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.sx_common.enums import OrderSide, OrderState


@dataclass
class Order:
    id: str
    listing_id: str
    owner_id: str
    side: OrderSide
    price: Decimal  # 0 < price <= 1_000_000, two decimal places
    state: OrderState = OrderState.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Read-model only: filled by queries that join the listing directory
    listing_name: str | None = None

    @property
    def is_active(self) -> bool:
        return self.state == OrderState.ACTIVE
