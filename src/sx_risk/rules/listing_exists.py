from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.errors import ListingNotFoundError
from src.sx_listing.domain.models import Listing
from src.sx_listing.domain.repository import ListingDirectoryProtocol


async def require_listing(
    listing_id: str,
    listings: ListingDirectoryProtocol,
    db: AsyncSession,
    *,
    lock: bool = False,
) -> Listing:
    """Resolve the listing or raise ListingNotFoundError.

    With lock=True the listing row stays locked until the caller's transaction
    ends, serializing order submission on this listing across processes.
    """
    if lock:
        listing = await listings.lock_listing(listing_id, db)
    else:
        listing = await listings.get_listing(listing_id, db)
    if listing is None:
        raise ListingNotFoundError(listing_id)
    return listing
