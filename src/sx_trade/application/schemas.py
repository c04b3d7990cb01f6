# src/sx_trade/application/schemas.py
"""Pydantic schemas for trade history responses.

Prices are rendered as two-place decimal strings ("150.00") so no client ever
sees a binary float.
"""
from pydantic import BaseModel

from src.sx_common.datetime_utils import isoformat_or_none
from src.sx_common.money import format_price, round_price
from src.sx_trade.domain.models import Trade, TradeStats


class TradeResponse(BaseModel):
    id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    price: str
    bid_order_id: str
    ask_order_id: str
    maker_order_id: str
    taker_order_id: str
    created_at: str | None
    buyer_name: str | None = None
    seller_name: str | None = None
    listing_name: str | None = None

    @classmethod
    def from_domain(cls, t: Trade) -> "TradeResponse":
        return cls(
            id=t.id,
            listing_id=t.listing_id,
            buyer_id=t.buyer_id,
            seller_id=t.seller_id,
            price=format_price(t.price),
            bid_order_id=t.bid_order_id,
            ask_order_id=t.ask_order_id,
            maker_order_id=t.maker_order_id,
            taker_order_id=t.taker_order_id,
            created_at=isoformat_or_none(t.created_at),
            buyer_name=t.buyer_name,
            seller_name=t.seller_name,
            listing_name=t.listing_name,
        )


class TradeStatsResponse(BaseModel):
    count: int
    avg: str | None
    min: str | None
    max: str | None

    @classmethod
    def from_domain(cls, s: TradeStats) -> "TradeStatsResponse":
        # avg/min/max are null when the listing has never traded
        return cls(
            count=s.count,
            avg=format_price(round_price(s.avg_price)) if s.avg_price is not None else None,
            min=format_price(s.min_price) if s.min_price is not None else None,
            max=format_price(s.max_price) if s.max_price is not None else None,
        )


class ListingHistoryResponse(BaseModel):
    listing_id: str
    trades: list[TradeResponse]  # newest first
    stats: TradeStatsResponse
    last_trade: TradeResponse | None


class TradeListResponse(BaseModel):
    items: list[TradeResponse]
    has_more: bool
    next_cursor: str | None
