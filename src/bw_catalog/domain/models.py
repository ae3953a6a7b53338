"""Domain models for bw_catalog: pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Listing:
    id: str
    title: str
    author: str
    price: int                      # cents, > 0
    seller_id: str
    city: str
    status: str                     # ListingStatus value
    created_at: datetime
    image_ref: str | None = None
    description: str | None = None
    is_advertisement: bool = False
    ad_duration_days: int | None = None
    ad_expires_at: datetime | None = None
    sold_operation_id: str | None = None   # operation that claimed the listing
    updated_at: datetime | None = None

    def is_active_advertisement(self, now: datetime) -> bool:
        if not self.is_advertisement:
            return False
        return self.ad_expires_at is None or self.ad_expires_at >= now


@dataclass
class LibraryItem:
    id: str
    owner_id: str
    title: str
    author: str
    city: str
    condition: str
    created_at: datetime
    description: str | None = None
    image_ref: str | None = None
    in_marketplace: bool = False
    marketplace_price: int | None = None   # cents
    listing_id: str | None = None          # the AVAILABLE listing mirroring this item
    updated_at: datetime | None = None


@dataclass
class PurchaseRecord:
    id: str
    buyer_id: str
    listing_id: str
    operation_id: str
    title: str
    author: str
    price: int                      # cents
    status: str                     # PurchaseStatus value
    purchase_date: datetime


@dataclass
class BookFields:
    """User-entered book details shared by library items and direct listings."""

    title: str
    author: str
    city: str
    condition: str = "GOOD"
    description: str | None = None
    image_ref: str | None = None
