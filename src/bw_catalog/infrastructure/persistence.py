"""PostgreSQL listing / library / purchase stores.

All queries use raw text() SQL (no ORM), one statement per call.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

import logging
from datetime import datetime

from sqlalchemy import text

from src.bw_catalog.domain.models import LibraryItem, Listing, PurchaseRecord
from src.bw_common.database import SingleStatementStore
from src.bw_common.errors import (
    AlreadyPublishedError,
    ItemNotFoundError,
    ListingAlreadySoldError,
    ListingNotFoundError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL: listings
# ---------------------------------------------------------------------------

_LISTING_COLUMNS = """
    id, title, author, price, seller_id, city, status, image_ref, description,
    is_advertisement, ad_duration_days, ad_expires_at, sold_operation_id,
    created_at, updated_at
"""

_INSERT_LISTING_SQL = text(f"""
    INSERT INTO listings
        (id, title, author, price, seller_id, city, status, image_ref, description,
         is_advertisement, ad_duration_days, ad_expires_at, created_at)
    VALUES
        (:id, :title, :author, :price, :seller_id, :city, :status, :image_ref, :description,
         :is_advertisement, :ad_duration_days, :ad_expires_at, :created_at)
    RETURNING {_LISTING_COLUMNS}
""")

_GET_LISTING_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE id = :listing_id
""")

_CLAIM_LISTING_SQL = text(f"""
    UPDATE listings
    SET status = 'SOLD',
        sold_operation_id = :operation_id
    WHERE id = :listing_id
      AND status = 'AVAILABLE'
    RETURNING {_LISTING_COLUMNS}
""")

_RELEASE_LISTING_SQL = text(f"""
    UPDATE listings
    SET status = 'AVAILABLE',
        sold_operation_id = NULL
    WHERE id = :listing_id
      AND status = 'SOLD'
      AND sold_operation_id = :operation_id
    RETURNING {_LISTING_COLUMNS}
""")

_DELETE_MATCHING_SQL = text("""
    DELETE FROM listings
    WHERE id = (
        SELECT id FROM listings
        WHERE seller_id = :seller_id
          AND title = :title
          AND author = :author
          AND status = 'AVAILABLE'
        ORDER BY created_at DESC
        LIMIT 1
    )
    RETURNING id
""")

_LIST_AVAILABLE_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM listings
    WHERE status = 'AVAILABLE'
      AND (CAST(:city AS TEXT) IS NULL OR city = CAST(:city AS TEXT))
      AND (
          CAST(:query AS TEXT) IS NULL
          OR title ILIKE '%' || CAST(:query AS TEXT) || '%'
          OR author ILIKE '%' || CAST(:query AS TEXT) || '%'
      )
    ORDER BY
        CASE
            WHEN is_advertisement
                 AND (ad_expires_at IS NULL OR ad_expires_at >= CAST(:now AS TIMESTAMPTZ))
            THEN 0 ELSE 1
        END,
        created_at DESC,
        id
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: library_items
# ---------------------------------------------------------------------------

_ITEM_COLUMNS = """
    id, owner_id, title, author, city, condition, description, image_ref,
    in_marketplace, marketplace_price, listing_id, created_at, updated_at
"""

_INSERT_ITEM_SQL = text(f"""
    INSERT INTO library_items
        (id, owner_id, title, author, city, condition, description, image_ref, created_at)
    VALUES
        (:id, :owner_id, :title, :author, :city, :condition, :description, :image_ref, :created_at)
    RETURNING {_ITEM_COLUMNS}
""")

_GET_ITEM_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM library_items
    WHERE id = :item_id
""")

_LIST_ITEMS_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM library_items
    WHERE owner_id = :owner_id
    ORDER BY created_at DESC, id DESC
""")

_CLAIM_ITEM_SQL = text(f"""
    UPDATE library_items
    SET in_marketplace = TRUE,
        marketplace_price = :price,
        listing_id = :listing_id
    WHERE id = :item_id
      AND in_marketplace = FALSE
    RETURNING {_ITEM_COLUMNS}
""")

_CLEAR_ITEM_SQL = text(f"""
    UPDATE library_items
    SET in_marketplace = FALSE,
        marketplace_price = NULL,
        listing_id = NULL
    WHERE id = :item_id
    RETURNING {_ITEM_COLUMNS}
""")

_CLEAR_SOLD_ITEM_SQL = text(f"""
    UPDATE library_items
    SET in_marketplace = FALSE,
        marketplace_price = NULL,
        listing_id = NULL
    WHERE listing_id = :listing_id
    RETURNING {_ITEM_COLUMNS}
""")

_DELETE_ITEM_SQL = text("""
    DELETE FROM library_items
    WHERE id = :item_id
""")

# ---------------------------------------------------------------------------
# SQL: purchase_records
# ---------------------------------------------------------------------------

_PURCHASE_COLUMNS = """
    id, buyer_id, listing_id, operation_id, title, author, price, status, purchase_date
"""

_INSERT_PURCHASE_SQL = text(f"""
    INSERT INTO purchase_records
        (id, buyer_id, listing_id, operation_id, title, author, price, status, purchase_date)
    VALUES
        (:id, :buyer_id, :listing_id, :operation_id, :title, :author, :price, :status,
         :purchase_date)
    ON CONFLICT (listing_id) DO NOTHING
    RETURNING {_PURCHASE_COLUMNS}
""")

_GET_PURCHASE_BY_LISTING_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS}
    FROM purchase_records
    WHERE listing_id = :listing_id
""")

_LIST_PURCHASES_SQL = text(f"""
    SELECT {_PURCHASE_COLUMNS}
    FROM purchase_records
    WHERE buyer_id = :buyer_id
    ORDER BY purchase_date DESC, id DESC
""")


def _row_to_listing(row: object) -> Listing:
    return Listing(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        author=row.author,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        city=row.city,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        image_ref=row.image_ref,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        is_advertisement=row.is_advertisement,  # type: ignore[attr-defined]
        ad_duration_days=row.ad_duration_days,  # type: ignore[attr-defined]
        ad_expires_at=row.ad_expires_at,  # type: ignore[attr-defined]
        sold_operation_id=row.sold_operation_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_item(row: object) -> LibraryItem:
    return LibraryItem(
        id=row.id,  # type: ignore[attr-defined]
        owner_id=row.owner_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        author=row.author,  # type: ignore[attr-defined]
        city=row.city,  # type: ignore[attr-defined]
        condition=row.condition,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        image_ref=row.image_ref,  # type: ignore[attr-defined]
        in_marketplace=row.in_marketplace,  # type: ignore[attr-defined]
        marketplace_price=row.marketplace_price,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_purchase(row: object) -> PurchaseRecord:
    return PurchaseRecord(
        id=row.id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        operation_id=row.operation_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        author=row.author,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        purchase_date=row.purchase_date,  # type: ignore[attr-defined]
    )


class ListingStore(SingleStatementStore):
    async def insert_listing(self, listing: Listing) -> Listing:
        row = await self._fetch_one(
            _INSERT_LISTING_SQL,
            {
                "id": listing.id,
                "title": listing.title,
                "author": listing.author,
                "price": listing.price,
                "seller_id": listing.seller_id,
                "city": listing.city,
                "status": listing.status,
                "image_ref": listing.image_ref,
                "description": listing.description,
                "is_advertisement": listing.is_advertisement,
                "ad_duration_days": listing.ad_duration_days,
                "ad_expires_at": listing.ad_expires_at,
                "created_at": listing.created_at,
            },
        )
        return _row_to_listing(row)

    async def get_listing(self, listing_id: str) -> Listing | None:
        row = await self._fetch_one(_GET_LISTING_SQL, {"listing_id": listing_id})
        return _row_to_listing(row) if row else None

    async def claim_listing(self, listing_id: str, operation_id: str) -> Listing:
        row = await self._fetch_one(
            _CLAIM_LISTING_SQL, {"listing_id": listing_id, "operation_id": operation_id}
        )
        if row is not None:
            return _row_to_listing(row)
        listing = await self.get_listing(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if listing.sold_operation_id == operation_id:
            logger.info("Listing claim idempotency hit: listing=%s op=%s", listing_id, operation_id)
            return listing
        raise ListingAlreadySoldError(listing_id)

    async def release_listing(self, listing_id: str, operation_id: str) -> Listing | None:
        row = await self._fetch_one(
            _RELEASE_LISTING_SQL, {"listing_id": listing_id, "operation_id": operation_id}
        )
        return _row_to_listing(row) if row else None

    async def delete_available_matching(
        self, seller_id: str, title: str, author: str
    ) -> str | None:
        row = await self._fetch_one(
            _DELETE_MATCHING_SQL, {"seller_id": seller_id, "title": title, "author": author}
        )
        return row.id if row else None  # type: ignore[attr-defined]

    async def list_available(
        self, city: str | None, query: str | None, now: datetime, limit: int
    ) -> list[Listing]:
        rows = await self._fetch_all(
            _LIST_AVAILABLE_SQL,
            {"city": city, "query": query, "now": now, "limit": limit},
        )
        return [_row_to_listing(row) for row in rows]


class LibraryStore(SingleStatementStore):
    async def insert_item(self, item: LibraryItem) -> LibraryItem:
        row = await self._fetch_one(
            _INSERT_ITEM_SQL,
            {
                "id": item.id,
                "owner_id": item.owner_id,
                "title": item.title,
                "author": item.author,
                "city": item.city,
                "condition": item.condition,
                "description": item.description,
                "image_ref": item.image_ref,
                "created_at": item.created_at,
            },
        )
        return _row_to_item(row)

    async def get_item(self, item_id: str) -> LibraryItem | None:
        row = await self._fetch_one(_GET_ITEM_SQL, {"item_id": item_id})
        return _row_to_item(row) if row else None

    async def list_items(self, owner_id: str) -> list[LibraryItem]:
        rows = await self._fetch_all(_LIST_ITEMS_SQL, {"owner_id": owner_id})
        return [_row_to_item(row) for row in rows]

    async def claim_for_marketplace(
        self, item_id: str, price: int, listing_id: str
    ) -> LibraryItem:
        row = await self._fetch_one(
            _CLAIM_ITEM_SQL, {"item_id": item_id, "price": price, "listing_id": listing_id}
        )
        if row is not None:
            return _row_to_item(row)
        if await self.get_item(item_id) is None:
            raise ItemNotFoundError(item_id)
        raise AlreadyPublishedError(item_id)

    async def clear_marketplace(self, item_id: str) -> LibraryItem:
        row = await self._fetch_one(_CLEAR_ITEM_SQL, {"item_id": item_id})
        if row is None:
            raise ItemNotFoundError(item_id)
        return _row_to_item(row)

    async def clear_for_sold_listing(self, listing_id: str) -> LibraryItem | None:
        row = await self._fetch_one(_CLEAR_SOLD_ITEM_SQL, {"listing_id": listing_id})
        return _row_to_item(row) if row else None

    async def delete_item(self, item_id: str) -> bool:
        return await self._execute(_DELETE_ITEM_SQL, {"item_id": item_id}) > 0


class PurchaseStore(SingleStatementStore):
    async def insert_purchase(self, record: PurchaseRecord) -> PurchaseRecord:
        row = await self._fetch_one(
            _INSERT_PURCHASE_SQL,
            {
                "id": record.id,
                "buyer_id": record.buyer_id,
                "listing_id": record.listing_id,
                "operation_id": record.operation_id,
                "title": record.title,
                "author": record.author,
                "price": record.price,
                "status": record.status,
                "purchase_date": record.purchase_date,
            },
        )
        if row is None:
            logger.info("Purchase record idempotency hit: listing=%s", record.listing_id)
            existing = await self.get_by_listing(record.listing_id)
            if existing is None:
                logger.warning(
                    "Purchase record conflicted but is missing: listing=%s", record.listing_id
                )
                raise StoreUnavailableError("insert_purchase")
            return existing
        return _row_to_purchase(row)

    async def get_by_listing(self, listing_id: str) -> PurchaseRecord | None:
        row = await self._fetch_one(_GET_PURCHASE_BY_LISTING_SQL, {"listing_id": listing_id})
        return _row_to_purchase(row) if row else None

    async def list_purchases(self, buyer_id: str) -> list[PurchaseRecord]:
        rows = await self._fetch_all(_LIST_PURCHASES_SQL, {"buyer_id": buyer_id})
        return [_row_to_purchase(row) for row in rows]
