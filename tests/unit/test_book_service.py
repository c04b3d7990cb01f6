"""Unit tests for OrderBookQueryService."""
from decimal import Decimal

import pytest

from src.sx_book.application.schemas import OrderBookResponse
from src.sx_book.application.service import OrderBookQueryService
from src.sx_common.enums import OrderSide, OrderState
from src.sx_common.errors import ListingNotFoundError

LISTING_ID = "lst-jordan-1"


@pytest.fixture
def service(order_repo, listing_repo) -> OrderBookQueryService:
    return OrderBookQueryService(order_repo=order_repo, listings=listing_repo)


async def test_empty_book(service, db) -> None:
    snapshot = await service.get_book(LISTING_ID, db)
    assert snapshot.listing_id == LISTING_ID
    assert snapshot.active_orders == []
    assert snapshot.best_bid is None
    assert snapshot.best_ask is None


async def test_unknown_listing(service, db) -> None:
    with pytest.raises(ListingNotFoundError):
        await service.get_book("missing", db)


async def test_best_bid_and_ask(service, store, db, make_order) -> None:
    store.put_order(make_order(OrderSide.BID, "140.00", owner_id="b1"))
    top_bid = store.put_order(make_order(OrderSide.BID, "150.00", owner_id="b2"))
    top_ask = store.put_order(make_order(OrderSide.ASK, "200.00", owner_id="s1"))
    store.put_order(make_order(OrderSide.ASK, "210.00", owner_id="s2"))

    snapshot = await service.get_book(LISTING_ID, db)

    assert snapshot.best_bid.id == top_bid.id
    assert snapshot.best_ask.id == top_ask.id


async def test_tie_goes_to_earliest(service, store, db, make_order) -> None:
    early = store.put_order(make_order(OrderSide.BID, "150.00", owner_id="b1", age_seconds=500))
    store.put_order(make_order(OrderSide.BID, "150.00", owner_id="b2", age_seconds=5))
    snapshot = await service.get_book(LISTING_ID, db)
    assert snapshot.best_bid.id == early.id


async def test_only_active_orders_listed_price_desc(service, store, db, make_order) -> None:
    store.put_order(make_order(OrderSide.BID, "100.00", owner_id="b1"))
    store.put_order(make_order(OrderSide.ASK, "300.00", owner_id="s1"))
    store.put_order(make_order(OrderSide.BID, "250.00", owner_id="b2", state=OrderState.CANCELLED))
    store.put_order(make_order(OrderSide.ASK, "120.00", owner_id="s2", state=OrderState.MATCHED))

    snapshot = await service.get_book(LISTING_ID, db)

    assert [o.price for o in snapshot.active_orders] == [Decimal("300.00"), Decimal("100.00")]


async def test_scenario_c_book(service, engine, db) -> None:
    await engine.submit_ask(LISTING_ID, "user-seller", Decimal("200"), db)
    await engine.submit_bid(LISTING_ID, "user-buyer", Decimal("150"), db)

    book = OrderBookResponse.from_snapshot(await service.get_book(LISTING_ID, db))

    assert book.best_ask.price == "200.00"
    assert book.best_bid.price == "150.00"
    assert len(book.active_orders) == 2
