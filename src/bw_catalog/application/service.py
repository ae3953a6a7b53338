"""CatalogApplicationService: request/response translation around the Catalog."""

from src.bw_catalog.application.schemas import (
    BookFieldsRequest,
    CreateListingRequest,
    LibraryItemResponse,
    LibraryResponse,
    ListingResponse,
    MarketplaceResponse,
    PublishRequest,
    PurchaseHistoryResponse,
    PurchaseRecordResponse,
)
from src.bw_catalog.domain.catalog import Catalog
from src.bw_common.money import to_cents


class CatalogApplicationService:
    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog

    async def list_marketplace(
        self, city: str | None, query: str | None, limit: int
    ) -> MarketplaceResponse:
        listings = await self._catalog.list_marketplace(city, query, limit)
        now = self._catalog.now()
        items = [ListingResponse.from_domain(lst, now) for lst in listings]
        return MarketplaceResponse(items=items, count=len(items))

    async def get_listing(self, listing_id: str) -> ListingResponse:
        listing = await self._catalog.get_listing(listing_id)
        return ListingResponse.from_domain(listing, self._catalog.now())

    async def create_listing(
        self, seller_id: str, req: CreateListingRequest
    ) -> ListingResponse:
        listing = await self._catalog.create_direct_listing(
            seller_id, req.to_domain(), to_cents(req.price), req.advertisement_days
        )
        return ListingResponse.from_domain(listing, self._catalog.now())

    async def list_library(self, owner_id: str) -> LibraryResponse:
        items = await self._catalog.list_library(owner_id)
        return LibraryResponse(items=[LibraryItemResponse.from_domain(i) for i in items])

    async def create_library_item(
        self, owner_id: str, req: BookFieldsRequest
    ) -> LibraryItemResponse:
        item = await self._catalog.create_library_item(owner_id, req.to_domain())
        return LibraryItemResponse.from_domain(item)

    async def publish(
        self, owner_id: str, item_id: str, req: PublishRequest
    ) -> ListingResponse:
        listing = await self._catalog.publish_to_marketplace(
            item_id, to_cents(req.price), req.advertisement_days, owner_id=owner_id
        )
        return ListingResponse.from_domain(listing, self._catalog.now())

    async def unpublish(self, owner_id: str, item_id: str) -> LibraryItemResponse:
        item = await self._catalog.unpublish(item_id, owner_id=owner_id)
        return LibraryItemResponse.from_domain(item)

    async def delete_library_item(self, owner_id: str, item_id: str) -> None:
        await self._catalog.delete_library_item(item_id, owner_id=owner_id)

    async def list_purchases(self, buyer_id: str) -> PurchaseHistoryResponse:
        records = await self._catalog.list_purchases(buyer_id)
        return PurchaseHistoryResponse(
            items=[PurchaseRecordResponse.from_domain(r) for r in records]
        )
