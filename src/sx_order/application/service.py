# src/sx_order/application/service.py
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.enums import OrderState
from src.sx_common.errors import OrderForbiddenError, OrderNotFoundError
from src.sx_matching.application.service import get_matching_engine
from src.sx_matching.domain.models import MatchOutcome
from src.sx_matching.engine.engine import MatchingEngine
from src.sx_order.application.schemas import (
    CancelOrderResponse,
    ListingWithdrawResponse,
    OrderResponse,
    SubmitOrderRequest,
    SubmitOrderResponse,
)
from src.sx_order.domain.repository import OrderRepositoryProtocol
from src.sx_order.infrastructure.persistence import OrderRepository
from src.sx_trade.application.schemas import TradeResponse


def _build_submit_response(outcome: MatchOutcome) -> SubmitOrderResponse:
    return SubmitOrderResponse(
        order=OrderResponse.from_domain(outcome.order),
        matched=outcome.matched,
        trade=TradeResponse.from_domain(outcome.trade) if outcome.trade else None,
    )


class OrderApplicationService:
    """Thin composition layer between the order routers and the matching engine.

    Writes go through the engine; reads go straight to the order store.
    """

    def __init__(
        self,
        engine: MatchingEngine | None = None,
        repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._engine = engine
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()

    @property
    def engine(self) -> MatchingEngine:
        return self._engine or get_matching_engine()

    async def submit_bid(
        self, req: SubmitOrderRequest, caller_id: str, db: AsyncSession
    ) -> SubmitOrderResponse:
        outcome = await self.engine.submit_bid(req.listing_id, caller_id, req.price, db)
        return _build_submit_response(outcome)

    async def submit_ask(
        self, req: SubmitOrderRequest, caller_id: str, db: AsyncSession
    ) -> SubmitOrderResponse:
        outcome = await self.engine.submit_ask(req.listing_id, caller_id, req.price, db)
        return _build_submit_response(outcome)

    async def cancel_order(
        self, order_id: str, caller_id: str, db: AsyncSession
    ) -> CancelOrderResponse:
        order = await self.engine.cancel_order(order_id, caller_id, db)
        return CancelOrderResponse(order=OrderResponse.from_domain(order))

    async def withdraw_listing(
        self, listing_id: str, caller_id: str, db: AsyncSession
    ) -> ListingWithdrawResponse:
        cancelled = await self.engine.cancel_listing_orders(listing_id, caller_id, db)
        return ListingWithdrawResponse(listing_id=listing_id, cancelled_count=len(cancelled))

    async def get_order(
        self, order_id: str, caller_id: str, db: AsyncSession
    ) -> OrderResponse:
        order = await self._repo.get_by_id(order_id, db)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.owner_id != caller_id:
            raise OrderForbiddenError(order_id)
        return OrderResponse.from_domain(order)

    async def list_mine(
        self,
        caller_id: str,
        state: OrderState | None,
        limit: int,
        db: AsyncSession,
    ) -> list[OrderResponse]:
        """Caller's orders, newest first, each carrying its listing's display name."""
        orders = await self._repo.list_by_owner(caller_id, state, limit, db)
        return [OrderResponse.from_domain(o) for o in orders]


_service: OrderApplicationService | None = None


def get_order_service() -> OrderApplicationService:
    global _service  # noqa: PLW0603
    if _service is None:
        _service = OrderApplicationService()
    return _service
