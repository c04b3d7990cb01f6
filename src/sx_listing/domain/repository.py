"""ListingDirectory Protocol: the only surface the core needs from listing CRUD."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_listing.domain.models import Listing


class ListingDirectoryProtocol(Protocol):
    async def get_listing(self, listing_id: str, db: AsyncSession) -> Listing | None: ...

    async def lock_listing(self, listing_id: str, db: AsyncSession) -> Listing | None:
        """Same as get_listing but takes a row lock held until the transaction ends."""
        ...
