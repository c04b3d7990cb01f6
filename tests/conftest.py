"""Shared test fixtures.

Unit tests run without PostgreSQL or Redis: the stores are replaced by
in-memory fakes that honour the same contracts as the SQL repositories
(compare-and-swap transitions, the one-ACTIVE-order unique index, rollback of
everything written inside ``db.begin()`` when the block raises).
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import asyncio
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError, InvalidRequestError, OperationalError

from src.main import app
from src.sx_book.application.service import OrderBookQueryService, get_book_service
from src.sx_common.database import get_db_session
from src.sx_common.datetime_utils import utc_now
from src.sx_common.enums import OrderSide, OrderState
from src.sx_gateway.auth.jwt_handler import create_access_token
from src.sx_listing.domain.models import Listing
from src.sx_matching.engine.engine import MatchingEngine
from src.sx_order.application.service import OrderApplicationService, get_order_service
from src.sx_order.domain.models import Order
from src.sx_trade.application.service import TradeHistoryService, get_trade_history_service
from src.sx_trade.domain.models import Trade, TradeStats

SELLER = "user-seller"
BUYER = "user-buyer"
OTHER_BUYER = "user-buyer-2"
LISTING_ID = "lst-jordan-1"


# ---------------------------------------------------------------------------
# In-memory store + transactional session
# ---------------------------------------------------------------------------


class FakeSession:
    """Stands in for AsyncSession: ``begin()`` undoes this session's writes on error."""

    def __init__(self) -> None:
        self._undo: list[Callable[[], None]] | None = None

    @asynccontextmanager
    async def begin(self) -> AsyncGenerator["FakeSession", None]:
        if self._undo is not None:
            raise InvalidRequestError("A transaction is already begun on this Session.")
        self._undo = []
        try:
            yield self
        except BaseException:
            for undo in reversed(self._undo):
                undo()
            raise
        finally:
            self._undo = None

    def record_undo(self, undo: Callable[[], None]) -> None:
        if self._undo is not None:
            self._undo.append(undo)

    async def close(self) -> None:
        pass


class InMemoryStore:
    def __init__(self) -> None:
        self.users: dict[str, str] = {}
        self.listings: dict[str, Listing] = {}
        self.orders: dict[str, Order] = {}
        self.trades: list[Trade] = []

    def add_user(self, user_id: str, username: str) -> None:
        self.users[user_id] = username

    def add_listing(self, listing: Listing) -> Listing:
        self.listings[listing.id] = listing
        return listing

    def put_order(self, order: Order) -> Order:
        self.orders[order.id] = replace(order)
        return order

    def orders_in(self, state: OrderState) -> list[Order]:
        return [o for o in self.orders.values() if o.state == state]


class FakeListingRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self.locked: list[str] = []

    async def get_listing(self, listing_id: str, db: Any) -> Listing | None:
        await asyncio.sleep(0)
        return self._store.listings.get(listing_id)

    async def lock_listing(self, listing_id: str, db: Any) -> Listing | None:
        await asyncio.sleep(0)
        self.locked.append(listing_id)
        return self._store.listings.get(listing_id)


class FakeOrderRepo:
    """Dict-backed OrderRepositoryProtocol. Yields to the loop on every call."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        # Called with the order id right before a transition is applied
        self.before_transition: Callable[[str], None] | None = None
        self.fail_next_transition = False

    async def save(self, order: Order, db: Any) -> None:
        await asyncio.sleep(0)
        for o in self._store.orders.values():
            if o.state == OrderState.ACTIVE and (o.listing_id, o.owner_id, o.side, o.price) == (
                order.listing_id,
                order.owner_id,
                order.side,
                order.price,
            ):
                raise IntegrityError(
                    "INSERT INTO orders",
                    {},
                    Exception('duplicate key value violates unique constraint "uq_orders_one_active"'),
                )
        self._store.orders[order.id] = replace(order, listing_name=None)
        db.record_undo(lambda: self._store.orders.pop(order.id, None))

    async def get_by_id(self, order_id: str, db: Any) -> Order | None:
        await asyncio.sleep(0)
        o = self._store.orders.get(order_id)
        return replace(o) if o else None

    async def find_active_duplicate(
        self, listing_id: str, owner_id: str, side: OrderSide, price: Decimal, db: Any
    ) -> Order | None:
        await asyncio.sleep(0)
        for o in self._store.orders.values():
            if (
                o.state == OrderState.ACTIVE
                and o.listing_id == listing_id
                and o.owner_id == owner_id
                and o.side == side
                and o.price == price
            ):
                return replace(o)
        return None

    async def best_active(
        self,
        listing_id: str,
        side: OrderSide,
        exclude_owner_id: str,
        exclude_ids: set[str],
        db: Any,
    ) -> Order | None:
        await asyncio.sleep(0)
        candidates = [
            o
            for o in self._store.orders.values()
            if o.listing_id == listing_id
            and o.side == side
            and o.state == OrderState.ACTIVE
            and o.owner_id != exclude_owner_id
            and o.id not in exclude_ids
        ]
        if not candidates:
            return None
        if side == OrderSide.BID:
            best = min(candidates, key=lambda o: (-o.price, o.created_at, o.id))
        else:
            best = min(candidates, key=lambda o: (o.price, o.created_at, o.id))
        return replace(best)

    async def transition(self, order_id: str, to_state: OrderState, db: Any) -> Order | None:
        await asyncio.sleep(0)
        if self.fail_next_transition:
            self.fail_next_transition = False
            raise OperationalError("UPDATE orders", {}, Exception("connection reset"))
        if self.before_transition is not None:
            self.before_transition(order_id)
        o = self._store.orders.get(order_id)
        if o is None or o.state != OrderState.ACTIVE:
            return None
        previous = (o.state, o.updated_at)
        o.state = to_state
        o.updated_at = utc_now()

        def undo() -> None:
            o.state, o.updated_at = previous

        db.record_undo(undo)
        return replace(o)

    async def list_active_by_listing(self, listing_id: str, db: Any) -> list[Order]:
        await asyncio.sleep(0)
        active = [
            replace(o)
            for o in self._store.orders.values()
            if o.listing_id == listing_id and o.state == OrderState.ACTIVE
        ]
        return sorted(active, key=lambda o: (-o.price, o.created_at, o.id))

    async def cancel_all_active_by_listing(self, listing_id: str, db: Any) -> list[str]:
        ids = [
            o.id
            for o in self._store.orders.values()
            if o.listing_id == listing_id and o.state == OrderState.ACTIVE
        ]
        for order_id in ids:
            await self.transition(order_id, OrderState.CANCELLED, db)
        return ids

    async def list_by_owner(
        self, owner_id: str, state: OrderState | None, limit: int, db: Any
    ) -> list[Order]:
        await asyncio.sleep(0)
        mine = [
            o
            for o in self._store.orders.values()
            if o.owner_id == owner_id and (state is None or o.state == state)
        ]
        mine.sort(key=lambda o: (o.created_at, o.id), reverse=True)
        result = []
        for o in mine[:limit]:
            listing = self._store.listings.get(o.listing_id)
            result.append(replace(o, listing_name=listing.name if listing else None))
        return result


class FakeTradeRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self.fail_next_save = False

    def _joined(self, t: Trade) -> Trade:
        listing = self._store.listings.get(t.listing_id)
        return replace(
            t,
            buyer_name=self._store.users.get(t.buyer_id),
            seller_name=self._store.users.get(t.seller_id),
            listing_name=listing.name if listing else None,
        )

    async def save(self, trade: Trade, db: Any) -> None:
        await asyncio.sleep(0)
        if self.fail_next_save:
            self.fail_next_save = False
            raise OperationalError("INSERT INTO trades", {}, Exception("connection reset"))
        if trade.buyer_id == trade.seller_id:
            raise IntegrityError(
                "INSERT INTO trades",
                {},
                Exception('new row violates check constraint "ck_trades_diff_users"'),
            )
        self._store.trades.append(trade)
        db.record_undo(lambda: self._store.trades.remove(trade))

    async def list_by_listing(self, listing_id: str, limit: int, db: Any) -> list[Trade]:
        await asyncio.sleep(0)
        rows = [t for t in self._store.trades if t.listing_id == listing_id]
        rows.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        return [self._joined(t) for t in rows[:limit]]

    async def stats_for_listing(self, listing_id: str, db: Any) -> TradeStats:
        await asyncio.sleep(0)
        prices = [t.price for t in self._store.trades if t.listing_id == listing_id]
        if not prices:
            return TradeStats(count=0, avg_price=None, min_price=None, max_price=None)
        return TradeStats(
            count=len(prices),
            avg_price=sum(prices, Decimal("0")) / len(prices),
            min_price=min(prices),
            max_price=max(prices),
        )

    async def list_by_user(
        self, user_id: str, limit: int, cursor_id: str | None, db: Any
    ) -> list[Trade]:
        await asyncio.sleep(0)
        rows = [
            t
            for t in self._store.trades
            if user_id in (t.buyer_id, t.seller_id)
            and (cursor_id is None or int(t.id) < int(cursor_id))
        ]
        rows.sort(key=lambda t: int(t.id), reverse=True)
        return [self._joined(t) for t in rows[:limit]]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_user(SELLER, "sole_seller")
    s.add_user(BUYER, "kick_buyer")
    s.add_user(OTHER_BUYER, "second_buyer")
    s.add_listing(
        Listing(id=LISTING_ID, name="Air Jordan 1 Chicago", seller_id=SELLER, retail_price=Decimal("180.00"))
    )
    return s


@pytest.fixture
def listing_repo(store: InMemoryStore) -> FakeListingRepo:
    return FakeListingRepo(store)


@pytest.fixture
def order_repo(store: InMemoryStore) -> FakeOrderRepo:
    return FakeOrderRepo(store)


@pytest.fixture
def trade_repo(store: InMemoryStore) -> FakeTradeRepo:
    return FakeTradeRepo(store)


@pytest.fixture
def engine(
    order_repo: FakeOrderRepo, trade_repo: FakeTradeRepo, listing_repo: FakeListingRepo
) -> MatchingEngine:
    return MatchingEngine(
        order_repo=order_repo, trade_repo=trade_repo, listings=listing_repo, max_match_attempts=3
    )


@pytest.fixture
def db() -> FakeSession:
    return FakeSession()


@pytest.fixture
def new_session() -> Callable[[], FakeSession]:
    return FakeSession


@pytest.fixture
def make_order() -> Callable[..., Order]:
    """Order factory; ``age_seconds`` pushes created_at into the past for FIFO tests."""
    counter = iter(range(1, 10_000))

    def _make(
        side: OrderSide = OrderSide.ASK,
        price: str = "150.00",
        owner_id: str = SELLER,
        listing_id: str = LISTING_ID,
        state: OrderState = OrderState.ACTIVE,
        age_seconds: int = 60,
        order_id: str | None = None,
    ) -> Order:
        created = utc_now() - timedelta(seconds=age_seconds)
        return Order(
            id=order_id or f"{next(counter):06d}",
            listing_id=listing_id,
            owner_id=owner_id,
            side=side,
            price=Decimal(price),
            state=state,
            created_at=created,
            updated_at=created,
        )

    return _make


@pytest.fixture
def auth_header() -> Callable[[str], dict[str, str]]:
    def _header(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _header


@pytest.fixture
async def client(
    engine: MatchingEngine,
    order_repo: FakeOrderRepo,
    trade_repo: FakeTradeRepo,
    listing_repo: FakeListingRepo,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the in-memory stores."""

    async def _fake_db_session() -> AsyncGenerator[FakeSession, None]:
        yield FakeSession()

    app.dependency_overrides[get_db_session] = _fake_db_session
    app.dependency_overrides[get_order_service] = lambda: OrderApplicationService(
        engine=engine, repo=order_repo
    )
    app.dependency_overrides[get_book_service] = lambda: OrderBookQueryService(
        order_repo=order_repo, listings=listing_repo
    )
    app.dependency_overrides[get_trade_history_service] = lambda: TradeHistoryService(
        trade_repo=trade_repo, listings=listing_repo
    )
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
