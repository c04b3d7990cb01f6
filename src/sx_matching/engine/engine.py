"""MatchingEngine: per-listing serialized order submission, matching and cancellation.

Concurrency model:
  * an in-process asyncio.Lock per listing serializes requests handled by this worker;
  * the listing row is locked (SELECT ... FOR UPDATE) inside the transaction, which
    serializes submissions across workers;
  * every order state change is a compare-and-swap on state = 'ACTIVE', so a cancel
    and a match racing for the same order resolve to exactly one winner.

The read of the best counterpart, both MATCHED transitions and the trade insert
run inside one transaction: either all of them commit or none do.
"""
import asyncio
import logging
import weakref
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sx_common.datetime_utils import utc_now
from src.sx_common.enums import OrderSide, OrderState
from src.sx_common.errors import (
    DuplicateOrderError,
    InternalError,
    ListingForbiddenError,
    OrderForbiddenError,
    OrderNotCancellableError,
    OrderNotFoundError,
)
from src.sx_common.id_generator import generate_id
from src.sx_common.money import round_price
from src.sx_listing.domain.repository import ListingDirectoryProtocol
from src.sx_listing.infrastructure.persistence import ListingRepository
from src.sx_matching.domain.models import MatchOutcome
from src.sx_matching.engine.matching_algo import crosses, make_trade
from src.sx_order.domain.models import Order
from src.sx_order.domain.repository import OrderRepositoryProtocol
from src.sx_order.infrastructure.persistence import OrderRepository
from src.sx_risk.rules.duplicate_order import check_no_active_duplicate
from src.sx_risk.rules.listing_exists import require_listing
from src.sx_risk.rules.price_range import check_price_range
from src.sx_risk.rules.self_trade import check_not_self_bid
from src.sx_trade.domain.models import Trade
from src.sx_trade.domain.repository import TradeRepositoryProtocol
from src.sx_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)

# Partial unique index backing the one-active-order-per-(listing, owner, side, price) rule
ACTIVE_ORDER_UNIQUE_INDEX = "uq_orders_one_active"


class MatchingEngine:
    def __init__(
        self,
        order_repo: OrderRepositoryProtocol | None = None,
        trade_repo: TradeRepositoryProtocol | None = None,
        listings: ListingDirectoryProtocol | None = None,
        max_match_attempts: int | None = None,
    ) -> None:
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()
        self._listings: ListingDirectoryProtocol = listings or ListingRepository()
        self._max_match_attempts = max_match_attempts or settings.MATCH_MAX_ATTEMPTS
        # Entries vanish once no coroutine holds or waits on the lock
        self._listing_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _get_or_create_lock(self, listing_id: str) -> asyncio.Lock:
        lock = self._listing_locks.get(listing_id)
        if lock is None:
            lock = asyncio.Lock()
            self._listing_locks[listing_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_bid(
        self, listing_id: str, owner_id: str, price: Decimal, db: AsyncSession
    ) -> MatchOutcome:
        return await self._submit(listing_id, owner_id, OrderSide.BID, price, db)

    async def submit_ask(
        self, listing_id: str, owner_id: str, price: Decimal, db: AsyncSession
    ) -> MatchOutcome:
        return await self._submit(listing_id, owner_id, OrderSide.ASK, price, db)

    async def _submit(
        self,
        listing_id: str,
        owner_id: str,
        side: OrderSide,
        price: Decimal,
        db: AsyncSession,
    ) -> MatchOutcome:
        check_price_range(price)
        price = round_price(price)
        lock = self._get_or_create_lock(listing_id)
        async with lock:
            try:
                async with db.begin():
                    return await self._submit_inner(listing_id, owner_id, side, price, db)
            except IntegrityError as exc:
                if ACTIVE_ORDER_UNIQUE_INDEX in str(exc.orig):
                    raise DuplicateOrderError(side.value, price) from exc
                logger.exception("Integrity failure submitting %s on listing %s", side.value, listing_id)
                raise InternalError("Order could not be saved; nothing was written") from exc
            except SQLAlchemyError as exc:
                logger.exception("Store failure submitting %s on listing %s", side.value, listing_id)
                raise InternalError("Order could not be saved; nothing was written") from exc

    async def _submit_inner(
        self,
        listing_id: str,
        owner_id: str,
        side: OrderSide,
        price: Decimal,
        db: AsyncSession,
    ) -> MatchOutcome:
        # Risk checks (all before the first write)
        listing = await require_listing(listing_id, self._listings, db, lock=True)
        check_not_self_bid(side, owner_id, listing)
        await check_no_active_duplicate(listing_id, owner_id, side, price, self._orders, db)

        now = utc_now()
        order = Order(
            id=generate_id(),
            listing_id=listing_id,
            owner_id=owner_id,
            side=side,
            price=price,
            state=OrderState.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        await self._orders.save(order, db)

        trade = await self._match(order, db)
        return MatchOutcome(order=order, matched=trade is not None, trade=trade)

    async def _match(self, taker: Order, db: AsyncSession) -> Trade | None:
        """Match the freshly saved taker against the best resting counterpart.

        A counterpart whose CAS misses (cancelled or matched by another worker since it
        was read) is skipped and the next best one is tried.
        """
        skipped: set[str] = set()
        for _ in range(self._max_match_attempts):
            maker = await self._orders.best_active(
                taker.listing_id, taker.side.opposite, taker.owner_id, skipped, db
            )
            if maker is None or not crosses(taker, maker):
                return None

            matched_maker = await self._orders.transition(maker.id, OrderState.MATCHED, db)
            if matched_maker is None:
                logger.warning(
                    "Resting order %s left the book before settlement; re-evaluating %s",
                    maker.id,
                    taker.id,
                )
                skipped.add(maker.id)
                continue

            matched_taker = await self._orders.transition(taker.id, OrderState.MATCHED, db)
            if matched_taker is None:
                # Only this transaction can see the taker, so this means the store misbehaved
                raise InternalError(f"Order {taker.id} changed state during matching")
            taker.state = OrderState.MATCHED
            taker.updated_at = matched_taker.updated_at

            trade = make_trade(taker, matched_maker, generate_id(), utc_now())
            await self._trades.save(trade, db)
            logger.info(
                "Matched %s %s with resting %s on listing %s at %s",
                taker.side.value,
                taker.id,
                maker.id,
                taker.listing_id,
                trade.price,
            )
            return trade

        logger.warning(
            "Order %s left resting after %d contested match attempts",
            taker.id,
            self._max_match_attempts,
        )
        return None

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel_order(self, order_id: str, caller_id: str, db: AsyncSession) -> Order:
        try:
            async with db.begin():
                order = await self._orders.get_by_id(order_id, db)
            if order is None:
                raise OrderNotFoundError(order_id)
            if order.owner_id != caller_id:
                raise OrderForbiddenError(order_id)
            if not order.is_active:
                raise OrderNotCancellableError(order_id, order.state.value)

            lock = self._get_or_create_lock(order.listing_id)
            async with lock:
                async with db.begin():
                    cancelled = await self._orders.transition(order_id, OrderState.CANCELLED, db)
                    if cancelled is None:
                        # Lost the race: a match (or another cancel) committed first
                        current = await self._orders.get_by_id(order_id, db)
                        state = current.state.value if current else "UNKNOWN"
                        raise OrderNotCancellableError(order_id, state)
        except SQLAlchemyError as exc:
            logger.exception("Store failure cancelling order %s", order_id)
            raise InternalError("Order could not be cancelled; nothing was written") from exc

        logger.info("Cancelled order %s on listing %s", order_id, cancelled.listing_id)
        return cancelled

    async def cancel_listing_orders(
        self, listing_id: str, caller_id: str, db: AsyncSession
    ) -> list[str]:
        """Cancel every ACTIVE order on a listing being withdrawn by its seller."""
        lock = self._get_or_create_lock(listing_id)
        async with lock:
            try:
                async with db.begin():
                    listing = await require_listing(listing_id, self._listings, db, lock=True)
                    if listing.seller_id != caller_id:
                        raise ListingForbiddenError(listing_id)
                    cancelled_ids = await self._orders.cancel_all_active_by_listing(
                        listing_id, db
                    )
            except SQLAlchemyError as exc:
                logger.exception("Store failure withdrawing orders on listing %s", listing_id)
                raise InternalError("Orders could not be cancelled; nothing was written") from exc

        logger.info("Withdrew %d active orders on listing %s", len(cancelled_ids), listing_id)
        return cancelled_ids
