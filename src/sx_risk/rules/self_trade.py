"""Self-bid prevention.

Only BIDs are checked: a buyer may not bid on a listing they sell. Asks by the
seller are accepted, matching the marketplace's historical behaviour (a seller
re-asking their own listing). Pending product-owner confirmation before this is
made symmetric.
"""
from src.sx_common.enums import OrderSide
from src.sx_common.errors import SelfTradeError
from src.sx_listing.domain.models import Listing


def is_self_bid(side: OrderSide, owner_id: str, listing: Listing) -> bool:
    return side == OrderSide.BID and str(owner_id) == str(listing.seller_id)


def check_not_self_bid(side: OrderSide, owner_id: str, listing: Listing) -> None:
    if is_self_bid(side, owner_id, listing):
        raise SelfTradeError()
