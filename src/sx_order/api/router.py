# src/sx_order/api/router.py
"""Order lifecycle endpoints.

POST   /orders/bid                   submit a bid, match against the best ask
POST   /orders/ask                   submit an ask, match against the best bid
GET    /orders/mine                  caller's orders, newest first
GET    /orders/{order_id}            one order (owner only)
DELETE /orders/{order_id}            cancel an ACTIVE order (owner only)
DELETE /orders/listing/{listing_id}  seller withdraws every ACTIVE order on a listing
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.database import get_db_session
from src.sx_common.enums import OrderState
from src.sx_gateway.auth.dependencies import get_current_user_id
from src.sx_order.application.schemas import (
    CancelOrderResponse,
    ListingWithdrawResponse,
    OrderResponse,
    SubmitOrderRequest,
    SubmitOrderResponse,
)
from src.sx_order.application.service import OrderApplicationService, get_order_service

router = APIRouter(prefix="/orders", tags=["orders"])

CallerId = Annotated[str, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
OrderService = Annotated[OrderApplicationService, Depends(get_order_service)]


@router.post("/bid", response_model=SubmitOrderResponse, status_code=201)
async def submit_bid(
    req: SubmitOrderRequest,
    caller_id: CallerId,
    db: DbSession,
    service: OrderService,
) -> SubmitOrderResponse:
    return await service.submit_bid(req, caller_id, db)


@router.post("/ask", response_model=SubmitOrderResponse, status_code=201)
async def submit_ask(
    req: SubmitOrderRequest,
    caller_id: CallerId,
    db: DbSession,
    service: OrderService,
) -> SubmitOrderResponse:
    return await service.submit_ask(req, caller_id, db)


# Declared before /{order_id} so "mine" is not captured as an order id
@router.get("/mine", response_model=list[OrderResponse])
async def list_my_orders(
    caller_id: CallerId,
    db: DbSession,
    service: OrderService,
    state: OrderState | None = Query(None, description="Filter by order state"),
    limit: int = Query(50, ge=1, le=200),
) -> list[OrderResponse]:
    return await service.list_mine(caller_id, state, limit, db)


@router.delete("/listing/{listing_id}", response_model=ListingWithdrawResponse)
async def withdraw_listing_orders(
    listing_id: str,
    caller_id: CallerId,
    db: DbSession,
    service: OrderService,
) -> ListingWithdrawResponse:
    return await service.withdraw_listing(listing_id, caller_id, db)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    caller_id: CallerId,
    db: DbSession,
    service: OrderService,
) -> OrderResponse:
    return await service.get_order(order_id, caller_id, db)


@router.delete("/{order_id}", response_model=CancelOrderResponse)
async def cancel_order(
    order_id: str,
    caller_id: CallerId,
    db: DbSession,
    service: OrderService,
) -> CancelOrderResponse:
    return await service.cancel_order(order_id, caller_id, db)
