"""Store Protocols for listings, library items and purchase records.

One record per call. The Listing / LibraryItem pair is kept consistent by the
Catalog, never by the store.
"""

from datetime import datetime
from typing import Protocol

from src.bw_catalog.domain.models import LibraryItem, Listing, PurchaseRecord


class ListingStoreProtocol(Protocol):
    async def insert_listing(self, listing: Listing) -> Listing: ...

    async def get_listing(self, listing_id: str) -> Listing | None: ...

    async def claim_listing(self, listing_id: str, operation_id: str) -> Listing:
        """Conditional AVAILABLE -> SOLD.

        Raises ListingNotFoundError, or ListingAlreadySoldError when another
        operation holds the claim. A replay by the claiming operation returns
        the listing.
        """
        ...

    async def release_listing(self, listing_id: str, operation_id: str) -> Listing | None:
        """Conditional SOLD -> AVAILABLE, only for the claiming operation."""
        ...

    async def delete_available_matching(
        self, seller_id: str, title: str, author: str
    ) -> str | None:
        """Delete one AVAILABLE listing by seller/title/author; return its id."""
        ...

    async def list_available(
        self, city: str | None, query: str | None, now: datetime, limit: int
    ) -> list[Listing]:
        """AVAILABLE listings in marketplace order as of `now`."""
        ...


class LibraryStoreProtocol(Protocol):
    async def insert_item(self, item: LibraryItem) -> LibraryItem: ...

    async def get_item(self, item_id: str) -> LibraryItem | None: ...

    async def list_items(self, owner_id: str) -> list[LibraryItem]: ...

    async def claim_for_marketplace(
        self, item_id: str, price: int, listing_id: str
    ) -> LibraryItem:
        """Conditional in_marketplace false -> true, linking the listing that mirrors it.

        Raises ItemNotFoundError / AlreadyPublishedError.
        """
        ...

    async def clear_marketplace(self, item_id: str) -> LibraryItem: ...

    async def clear_for_sold_listing(self, listing_id: str) -> LibraryItem | None:
        """Clear the item linked to listing_id; None when no item is linked."""
        ...

    async def delete_item(self, item_id: str) -> bool: ...


class PurchaseStoreProtocol(Protocol):
    async def insert_purchase(self, record: PurchaseRecord) -> PurchaseRecord:
        """Insert once per listing; a duplicate returns the stored record."""
        ...

    async def get_by_listing(self, listing_id: str) -> PurchaseRecord | None: ...

    async def list_purchases(self, buyer_id: str) -> list[PurchaseRecord]: ...
