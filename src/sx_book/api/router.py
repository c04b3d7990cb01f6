# src/sx_book/api/router.py
"""Public order book for a listing.

GET /orders/listing/{listing_id}: every ACTIVE order plus best bid / best ask
"""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_book.application.schemas import OrderBookResponse
from src.sx_book.application.service import OrderBookQueryService, get_book_service
from src.sx_common.database import get_db_session

router = APIRouter(prefix="/orders", tags=["orderbook"])


@router.get("/listing/{listing_id}", response_model=OrderBookResponse)
async def get_order_book(
    listing_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderBookQueryService, Depends(get_book_service)],
) -> OrderBookResponse:
    snapshot = await service.get_book(listing_id, db)
    return OrderBookResponse.from_snapshot(snapshot)
