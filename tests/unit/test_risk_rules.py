"""Unit tests for the pre-submission risk rules."""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.sx_common.enums import OrderSide
from src.sx_common.errors import (
    DuplicateOrderError,
    ListingNotFoundError,
    PriceOutOfRangeError,
    SelfTradeError,
)
from src.sx_listing.domain.models import Listing
from src.sx_risk.rules.duplicate_order import check_no_active_duplicate
from src.sx_risk.rules.listing_exists import require_listing
from src.sx_risk.rules.price_range import check_price_range
from src.sx_risk.rules.self_trade import check_not_self_bid, is_self_bid

LISTING = Listing(id="lst-1", name="Yeezy 350", seller_id="seller-1")


class TestPriceRange:
    def test_valid_price_passes(self) -> None:
        check_price_range(Decimal("150.00"))

    @pytest.mark.parametrize("raw", ["0", "-5", "1000000.01", "10.005"])
    def test_invalid_price_raises_4001(self, raw: str) -> None:
        with pytest.raises(PriceOutOfRangeError) as exc:
            check_price_range(Decimal(raw))
        assert exc.value.code == 4001


class TestSelfBid:
    def test_seller_bidding_own_listing_rejected(self) -> None:
        with pytest.raises(SelfTradeError):
            check_not_self_bid(OrderSide.BID, "seller-1", LISTING)

    def test_other_user_may_bid(self) -> None:
        check_not_self_bid(OrderSide.BID, "buyer-1", LISTING)

    def test_seller_ask_on_own_listing_allowed(self) -> None:
        assert not is_self_bid(OrderSide.ASK, "seller-1", LISTING)
        check_not_self_bid(OrderSide.ASK, "seller-1", LISTING)


class TestRequireListing:
    async def test_returns_listing(self) -> None:
        listings = AsyncMock()
        listings.get_listing.return_value = LISTING
        assert await require_listing("lst-1", listings, AsyncMock()) is LISTING
        listings.lock_listing.assert_not_awaited()

    async def test_lock_uses_row_lock_query(self) -> None:
        listings = AsyncMock()
        listings.lock_listing.return_value = LISTING
        await require_listing("lst-1", listings, AsyncMock(), lock=True)
        listings.lock_listing.assert_awaited_once()
        listings.get_listing.assert_not_awaited()

    async def test_missing_listing_raises_3001(self) -> None:
        listings = AsyncMock()
        listings.get_listing.return_value = None
        with pytest.raises(ListingNotFoundError) as exc:
            await require_listing("nope", listings, AsyncMock())
        assert exc.value.http_status == 404


class TestDuplicateOrder:
    async def test_no_duplicate_passes(self) -> None:
        repo = AsyncMock()
        repo.find_active_duplicate.return_value = None
        await check_no_active_duplicate("lst-1", "u-1", OrderSide.BID, Decimal("140"), repo, AsyncMock())

    async def test_active_duplicate_raises_conflict(self) -> None:
        repo = AsyncMock()
        repo.find_active_duplicate.return_value = object()
        with pytest.raises(DuplicateOrderError) as exc:
            await check_no_active_duplicate(
                "lst-1", "u-1", OrderSide.BID, Decimal("140"), repo, AsyncMock()
            )
        assert exc.value.http_status == 409
