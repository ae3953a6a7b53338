"""In-memory catalog stores with the PostgreSQL stores' conditional-update contract."""

import asyncio
import copy
import logging
from datetime import datetime

from src.bw_catalog.domain.models import LibraryItem, Listing, PurchaseRecord
from src.bw_catalog.domain.ordering import marketplace_sort_key, matches_filters
from src.bw_common.datetime_utils import utc_now
from src.bw_common.enums import ListingStatus
from src.bw_common.errors import (
    AlreadyPublishedError,
    ItemNotFoundError,
    ListingAlreadySoldError,
    ListingNotFoundError,
)

logger = logging.getLogger(__name__)


class InMemoryListingStore:
    def __init__(self) -> None:
        self.listings: dict[str, Listing] = {}

    async def insert_listing(self, listing: Listing) -> Listing:
        await asyncio.sleep(0)
        self.listings[listing.id] = copy.deepcopy(listing)
        return copy.deepcopy(listing)

    async def get_listing(self, listing_id: str) -> Listing | None:
        await asyncio.sleep(0)
        listing = self.listings.get(listing_id)
        return copy.deepcopy(listing) if listing else None

    async def claim_listing(self, listing_id: str, operation_id: str) -> Listing:
        await asyncio.sleep(0)
        listing = self.listings.get(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if listing.status == ListingStatus.SOLD.value:
            if listing.sold_operation_id == operation_id:
                logger.info("Listing claim idempotency hit: listing=%s op=%s", listing_id, operation_id)
                return copy.deepcopy(listing)
            raise ListingAlreadySoldError(listing_id)
        listing.status = ListingStatus.SOLD.value
        listing.sold_operation_id = operation_id
        listing.updated_at = utc_now()
        return copy.deepcopy(listing)

    async def release_listing(self, listing_id: str, operation_id: str) -> Listing | None:
        await asyncio.sleep(0)
        listing = self.listings.get(listing_id)
        if (
            listing is None
            or listing.status != ListingStatus.SOLD.value
            or listing.sold_operation_id != operation_id
        ):
            return None
        listing.status = ListingStatus.AVAILABLE.value
        listing.sold_operation_id = None
        listing.updated_at = utc_now()
        return copy.deepcopy(listing)

    async def delete_available_matching(
        self, seller_id: str, title: str, author: str
    ) -> str | None:
        await asyncio.sleep(0)
        for listing in self.listings.values():
            if (
                listing.seller_id == seller_id
                and listing.title == title
                and listing.author == author
                and listing.status == ListingStatus.AVAILABLE.value
            ):
                del self.listings[listing.id]
                return listing.id
        return None

    async def list_available(
        self, city: str | None, query: str | None, now: datetime, limit: int
    ) -> list[Listing]:
        await asyncio.sleep(0)
        rows = [
            lst for lst in self.listings.values()
            if lst.status == ListingStatus.AVAILABLE.value and matches_filters(lst, city, query)
        ]
        rows.sort(key=lambda lst: marketplace_sort_key(lst, now))
        return [copy.deepcopy(lst) for lst in rows[:limit]]


class InMemoryLibraryStore:
    def __init__(self) -> None:
        self.items: dict[str, LibraryItem] = {}

    async def insert_item(self, item: LibraryItem) -> LibraryItem:
        await asyncio.sleep(0)
        self.items[item.id] = copy.deepcopy(item)
        return copy.deepcopy(item)

    async def get_item(self, item_id: str) -> LibraryItem | None:
        await asyncio.sleep(0)
        item = self.items.get(item_id)
        return copy.deepcopy(item) if item else None

    async def list_items(self, owner_id: str) -> list[LibraryItem]:
        await asyncio.sleep(0)
        rows = [i for i in self.items.values() if i.owner_id == owner_id]
        rows.sort(key=lambda i: i.created_at, reverse=True)
        return [copy.deepcopy(i) for i in rows]

    async def claim_for_marketplace(
        self, item_id: str, price: int, listing_id: str
    ) -> LibraryItem:
        await asyncio.sleep(0)
        item = self.items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        if item.in_marketplace:
            raise AlreadyPublishedError(item_id)
        item.in_marketplace = True
        item.marketplace_price = price
        item.listing_id = listing_id
        item.updated_at = utc_now()
        return copy.deepcopy(item)

    async def clear_marketplace(self, item_id: str) -> LibraryItem:
        await asyncio.sleep(0)
        item = self.items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        _take_off_market(item)
        return copy.deepcopy(item)

    async def clear_for_sold_listing(self, listing_id: str) -> LibraryItem | None:
        await asyncio.sleep(0)
        for item in self.items.values():
            if item.listing_id == listing_id:
                _take_off_market(item)
                return copy.deepcopy(item)
        return None

    async def delete_item(self, item_id: str) -> bool:
        await asyncio.sleep(0)
        return self.items.pop(item_id, None) is not None


class InMemoryPurchaseStore:
    def __init__(self) -> None:
        self.records: dict[str, PurchaseRecord] = {}   # keyed by listing_id

    async def insert_purchase(self, record: PurchaseRecord) -> PurchaseRecord:
        await asyncio.sleep(0)
        existing = self.records.get(record.listing_id)
        if existing is not None:
            logger.info("Purchase record idempotency hit: listing=%s", record.listing_id)
            return copy.deepcopy(existing)
        self.records[record.listing_id] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def get_by_listing(self, listing_id: str) -> PurchaseRecord | None:
        await asyncio.sleep(0)
        record = self.records.get(listing_id)
        return copy.deepcopy(record) if record else None

    async def list_purchases(self, buyer_id: str) -> list[PurchaseRecord]:
        await asyncio.sleep(0)
        rows = [r for r in self.records.values() if r.buyer_id == buyer_id]
        rows.sort(key=lambda r: r.purchase_date, reverse=True)
        return [copy.deepcopy(r) for r in rows]


def _take_off_market(item: LibraryItem) -> None:
    item.in_marketplace = False
    item.marketplace_price = None
    item.listing_id = None
    item.updated_at = utc_now()
