"""ListingRepository: raw SQL lookups against the catalog's listings table."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_listing.domain.models import Listing

_GET_LISTING_SQL = text("""
    SELECT id, name, seller_id, retail_price
    FROM listings WHERE id = :listing_id
""")

# Row lock doubles as the cross-process per-listing mutex for order submission.
_LOCK_LISTING_SQL = text("""
    SELECT id, name, seller_id, retail_price
    FROM listings WHERE id = :listing_id FOR UPDATE
""")


def _row_to_listing(row: Any) -> Listing:
    return Listing(
        id=str(row.id),
        name=row.name,
        seller_id=str(row.seller_id),
        retail_price=row.retail_price,
    )


class ListingRepository:
    async def get_listing(self, listing_id: str, db: AsyncSession) -> Listing | None:
        row = (await db.execute(_GET_LISTING_SQL, {"listing_id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None

    async def lock_listing(self, listing_id: str, db: AsyncSession) -> Listing | None:
        row = (await db.execute(_LOCK_LISTING_SQL, {"listing_id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None
