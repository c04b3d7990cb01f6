# src/sx_trade/api/history_router.py
"""Public price history for a listing."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.database import get_db_session
from src.sx_trade.application.schemas import ListingHistoryResponse
from src.sx_trade.application.service import TradeHistoryService, get_trade_history_service

router = APIRouter(prefix="/listings", tags=["trades"])


@router.get("/{listing_id}/history", response_model=ListingHistoryResponse)
async def get_listing_history(
    listing_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[TradeHistoryService, Depends(get_trade_history_service)],
) -> ListingHistoryResponse:
    return await service.get_history(listing_id, db)
