# src/sx_order/application/schemas.py
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.sx_common.datetime_utils import isoformat_or_none
from src.sx_common.money import format_price, to_price
from src.sx_order.domain.models import Order
from src.sx_trade.application.schemas import TradeResponse


class SubmitOrderRequest(BaseModel):
    """Body of POST /orders/bid and POST /orders/ask. Unknown fields are ignored.

    Only the numeric shape of price is checked here; the 0 < price <= 1,000,000
    whole-cents rule is enforced by the engine's risk checks.
    """

    listing_id: str = Field(min_length=1, max_length=64)
    price: Decimal

    @field_validator("listing_id")
    @classmethod
    def listing_id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("listing_id must not be blank")
        return v.strip()

    @field_validator("price", mode="before")
    @classmethod
    def price_is_numeric(cls, v: object) -> Decimal:
        return to_price(v)


class OrderResponse(BaseModel):
    id: str
    listing_id: str
    owner_id: str
    side: str
    price: str
    state: str
    created_at: str | None = None
    updated_at: str | None = None
    listing_name: str | None = None

    @classmethod
    def from_domain(cls, o: Order) -> "OrderResponse":
        return cls(
            id=o.id,
            listing_id=o.listing_id,
            owner_id=o.owner_id,
            side=o.side.value,
            price=format_price(o.price),
            state=o.state.value,
            created_at=isoformat_or_none(o.created_at),
            updated_at=isoformat_or_none(o.updated_at),
            listing_name=o.listing_name,
        )


class SubmitOrderResponse(BaseModel):
    order: OrderResponse
    matched: bool
    trade: TradeResponse | None


class CancelOrderResponse(BaseModel):
    order: OrderResponse


class ListingWithdrawResponse(BaseModel):
    listing_id: str
    cancelled_count: int
