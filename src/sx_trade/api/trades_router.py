# src/sx_trade/api/trades_router.py
"""Trades REST API."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.database import get_db_session
from src.sx_gateway.auth.dependencies import get_current_user_id
from src.sx_trade.application.schemas import TradeListResponse
from src.sx_trade.application.service import TradeHistoryService, get_trade_history_service

router = APIRouter(prefix="/trades", tags=["trades"])


@router.get("/mine", response_model=TradeListResponse)
async def list_my_trades(
    caller_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[TradeHistoryService, Depends(get_trade_history_service)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, pattern=r"^\d{1,19}$", description="Trade id of the last item seen"),
) -> TradeListResponse:
    return await service.list_user_trades(caller_id, limit, cursor, db)
