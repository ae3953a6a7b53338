"""Catalog: listings, personal libraries and purchase history.

A LibraryItem published to the marketplace is mirrored by an AVAILABLE Listing.
There is no transaction spanning the two records: publish claims the item
first (conditional update) and releases the claim when the listing insert
fails; unpublish removes the listing first and then clears the item. The item
records the id of its listing, and a sale of that listing clears the item
(settle_sold_item).

mark_sold is the single claim point for a sale: a conditional
AVAILABLE -> SOLD update tagged with the purchasing operation. revert_sale
undoes it only for that same operation.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from src.bw_catalog.domain.models import BookFields, LibraryItem, Listing, PurchaseRecord
from src.bw_catalog.domain.ordering import (
    ad_expiry,
    order_for_marketplace,
    parse_ad_duration,
)
from src.bw_catalog.domain.repository import (
    LibraryStoreProtocol,
    ListingStoreProtocol,
    PurchaseStoreProtocol,
)
from src.bw_common.datetime_utils import utc_now
from src.bw_common.enums import ListingStatus, PurchaseStatus
from src.bw_common.errors import (
    AlreadyPublishedError,
    InvalidListingError,
    ItemNotFoundError,
    ListingNotFoundError,
    NotItemOwnerError,
)
from src.bw_common.identifiers import new_id
from src.bw_common.store_call import bounded, bounded_idempotent, bounded_read

logger = logging.getLogger(__name__)


def _validate_fields(fields: BookFields) -> None:
    for name in ("title", "author", "city"):
        if not (getattr(fields, name) or "").strip():
            raise InvalidListingError(f"{name} must not be blank")


def _validate_price(price: int) -> None:
    if price <= 0:
        raise InvalidListingError("price must be positive")


class Catalog:
    def __init__(
        self,
        listings: ListingStoreProtocol,
        library: LibraryStoreProtocol,
        purchases: PurchaseStoreProtocol,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._listings = listings
        self._library = library
        self._purchases = purchases
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def get_listing(self, listing_id: str) -> Listing:
        listing = await bounded_read(
            "get_listing", lambda: self._listings.get_listing(listing_id)
        )
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    async def list_marketplace(
        self, city: str | None = None, query: str | None = None, limit: int = 50
    ) -> list[Listing]:
        now = self._clock()
        listings = await bounded_read(
            "list_available",
            lambda: self._listings.list_available(city, query, now, limit),
        )
        return order_for_marketplace(listings, now)

    async def create_direct_listing(
        self,
        seller_id: str,
        fields: BookFields,
        price: int,
        advertisement: str | int | None = None,
    ) -> Listing:
        _validate_fields(fields)
        _validate_price(price)
        days = parse_ad_duration(advertisement) if advertisement is not None else None
        listing = self._new_listing(seller_id, fields, price, days)
        stored = await bounded("insert_listing", self._listings.insert_listing(listing))
        logger.info("Listing created: id=%s seller=%s ad_days=%s", stored.id, seller_id, days)
        return stored

    async def mark_sold(self, listing_id: str, operation_id: str) -> Listing:
        return await bounded(
            "claim_listing", self._listings.claim_listing(listing_id, operation_id)
        )

    async def revert_sale(self, listing_id: str, operation_id: str) -> bool:
        released = await bounded(
            "release_listing", self._listings.release_listing(listing_id, operation_id)
        )
        if released is None:
            logger.warning(
                "Sale revert skipped, claim not held: listing=%s op=%s",
                listing_id, operation_id,
            )
            return False
        logger.warning("Sale reverted: listing=%s op=%s", listing_id, operation_id)
        return True

    def _new_listing(
        self, seller_id: str, fields: BookFields, price: int, ad_days: int | None
    ) -> Listing:
        now = self._clock()
        return Listing(
            id=new_id(),
            title=fields.title.strip(),
            author=fields.author.strip(),
            price=price,
            seller_id=seller_id,
            city=fields.city.strip(),
            status=ListingStatus.AVAILABLE.value,
            created_at=now,
            image_ref=fields.image_ref,
            description=fields.description or f"Condition: {fields.condition}",
            is_advertisement=ad_days is not None,
            ad_duration_days=ad_days,
            ad_expires_at=ad_expiry(now, ad_days) if ad_days is not None else None,
        )

    # ------------------------------------------------------------------
    # Library
    # ------------------------------------------------------------------

    async def create_library_item(self, owner_id: str, fields: BookFields) -> LibraryItem:
        _validate_fields(fields)
        item = LibraryItem(
            id=new_id(),
            owner_id=owner_id,
            title=fields.title.strip(),
            author=fields.author.strip(),
            city=fields.city.strip(),
            condition=fields.condition,
            description=fields.description,
            image_ref=fields.image_ref,
            created_at=self._clock(),
        )
        return await bounded("insert_item", self._library.insert_item(item))

    async def list_library(self, owner_id: str) -> list[LibraryItem]:
        return await bounded_read("list_items", lambda: self._library.list_items(owner_id))

    async def get_owned_item(self, item_id: str, owner_id: str | None = None) -> LibraryItem:
        """Load an item; when owner_id is given it must own the item."""
        item = await bounded_read("get_item", lambda: self._library.get_item(item_id))
        if item is None:
            raise ItemNotFoundError(item_id)
        if owner_id is not None and item.owner_id != owner_id:
            raise NotItemOwnerError(item_id)
        return item

    async def publish_to_marketplace(
        self,
        item_id: str,
        price: int,
        advertisement: str | int | None = None,
        *,
        owner_id: str | None = None,
    ) -> Listing:
        """Put a library item up for sale.

        Validation happens before any write. The item claim is the conflict
        point for concurrent publishes of the same item.
        """
        _validate_price(price)
        days = parse_ad_duration(advertisement) if advertisement is not None else None
        item = await self.get_owned_item(item_id, owner_id)
        if item.in_marketplace:
            raise AlreadyPublishedError(item_id)

        fields = BookFields(
            title=item.title,
            author=item.author,
            city=item.city,
            condition=item.condition,
            description=item.description,
            image_ref=item.image_ref,
        )
        listing = self._new_listing(item.owner_id, fields, price, days)
        await bounded(
            "claim_item", self._library.claim_for_marketplace(item_id, price, listing.id)
        )
        try:
            stored = await bounded("insert_listing", self._listings.insert_listing(listing))
        except Exception:
            logger.warning("Listing insert failed, releasing item claim: item=%s", item_id)
            await bounded("clear_item", self._library.clear_marketplace(item_id))
            raise
        logger.info(
            "Item published: item=%s listing=%s price=%d ad_days=%s",
            item_id, stored.id, price, days,
        )
        return stored

    async def unpublish(self, item_id: str, *, owner_id: str | None = None) -> LibraryItem:
        """Withdraw an item from sale. A missing listing is logged, not raised."""
        item = await self.get_owned_item(item_id, owner_id)
        removed = await bounded(
            "delete_listing",
            self._listings.delete_available_matching(item.owner_id, item.title, item.author),
        )
        if removed is None:
            logger.warning(
                "No AVAILABLE listing matched on unpublish: item=%s owner=%s",
                item_id, item.owner_id,
            )
        return await bounded("clear_item", self._library.clear_marketplace(item_id))

    async def delete_library_item(self, item_id: str, *, owner_id: str | None = None) -> None:
        item = await self.get_owned_item(item_id, owner_id)
        if item.in_marketplace:
            await self.unpublish(item_id)
        await bounded("delete_item", self._library.delete_item(item_id))
        logger.info("Library item deleted: item=%s owner=%s", item_id, item.owner_id)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    async def record_purchase(
        self, buyer_id: str, listing: Listing, operation_id: str
    ) -> PurchaseRecord:
        record = PurchaseRecord(
            id=new_id(),
            buyer_id=buyer_id,
            listing_id=listing.id,
            operation_id=operation_id,
            title=listing.title,
            author=listing.author,
            price=listing.price,
            status=PurchaseStatus.OWNED.value,
            purchase_date=self._clock(),
        )
        return await bounded_idempotent(
            "insert_purchase", lambda: self._purchases.insert_purchase(record)
        )

    async def settle_sold_item(self, listing_id: str) -> LibraryItem | None:
        """Take the seller's library item off the marketplace once its listing sold.

        Direct listings have no library item and return None, as does a repeat
        call after the item was already cleared.
        """
        item = await bounded_idempotent(
            "clear_sold_item", lambda: self._library.clear_for_sold_listing(listing_id)
        )
        if item is not None:
            logger.info("Library item settled after sale: item=%s listing=%s", item.id, listing_id)
        return item

    async def list_purchases(self, buyer_id: str) -> list[PurchaseRecord]:
        return await bounded_read(
            "list_purchases", lambda: self._purchases.list_purchases(buyer_id)
        )
