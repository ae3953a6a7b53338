"""Pydantic schemas for the marketplace and library APIs.

Prices arrive as decimals (at most two fraction digits) and leave as both
cents and a display string.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.bw_catalog.domain.models import BookFields, LibraryItem, Listing, PurchaseRecord
from src.bw_common.datetime_utils import isoformat_or_none
from src.bw_common.money import cents_to_display

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class BookFieldsRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    author: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    condition: str = Field("GOOD", max_length=40)
    description: str | None = Field(None, max_length=2000)
    image_ref: str | None = Field(None, max_length=500)

    def to_domain(self) -> BookFields:
        return BookFields(
            title=self.title,
            author=self.author,
            city=self.city,
            condition=self.condition,
            description=self.description,
            image_ref=self.image_ref,
        )


class CreateListingRequest(BookFieldsRequest):
    price: Decimal
    # Advertisement duration in days ("3", "7", "14", "30"); omit for a plain listing.
    advertisement_days: str | int | None = None


class PublishRequest(BaseModel):
    price: Decimal
    advertisement_days: str | int | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ListingResponse(BaseModel):
    id: str
    title: str
    author: str
    price_cents: int
    price_display: str
    seller_id: str
    city: str
    status: str
    image_ref: str | None
    description: str | None
    is_advertisement: bool
    is_active_advertisement: bool
    ad_duration_days: int | None
    ad_expires_at: str | None
    created_at: str

    @classmethod
    def from_domain(cls, lst: Listing, now: datetime) -> "ListingResponse":
        return cls(
            id=lst.id,
            title=lst.title,
            author=lst.author,
            price_cents=lst.price,
            price_display=cents_to_display(lst.price),
            seller_id=lst.seller_id,
            city=lst.city,
            status=lst.status,
            image_ref=lst.image_ref,
            description=lst.description,
            is_advertisement=lst.is_advertisement,
            is_active_advertisement=lst.is_active_advertisement(now),
            ad_duration_days=lst.ad_duration_days,
            ad_expires_at=isoformat_or_none(lst.ad_expires_at),
            created_at=lst.created_at.isoformat(),
        )


class MarketplaceResponse(BaseModel):
    items: list[ListingResponse]
    count: int


class LibraryItemResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    author: str
    city: str
    condition: str
    description: str | None
    image_ref: str | None
    in_marketplace: bool
    marketplace_price_cents: int | None
    listing_id: str | None
    created_at: str

    @classmethod
    def from_domain(cls, item: LibraryItem) -> "LibraryItemResponse":
        return cls(
            id=item.id,
            owner_id=item.owner_id,
            title=item.title,
            author=item.author,
            city=item.city,
            condition=item.condition,
            description=item.description,
            image_ref=item.image_ref,
            in_marketplace=item.in_marketplace,
            marketplace_price_cents=item.marketplace_price,
            listing_id=item.listing_id,
            created_at=item.created_at.isoformat(),
        )


class LibraryResponse(BaseModel):
    items: list[LibraryItemResponse]


class PurchaseRecordResponse(BaseModel):
    id: str
    listing_id: str
    title: str
    author: str
    price_cents: int
    price_display: str
    status: str
    purchase_date: str

    @classmethod
    def from_domain(cls, r: PurchaseRecord) -> "PurchaseRecordResponse":
        return cls(
            id=r.id,
            listing_id=r.listing_id,
            title=r.title,
            author=r.author,
            price_cents=r.price,
            price_display=cents_to_display(r.price),
            status=r.status,
            purchase_date=r.purchase_date.isoformat(),
        )


class PurchaseHistoryResponse(BaseModel):
    items: list[PurchaseRecordResponse]
