"""Catalog tests: library lifecycle, publish claims, sale claims, marketplace order."""

import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.bw_catalog.domain.catalog import Catalog
from src.bw_catalog.domain.models import BookFields
from src.bw_catalog.infrastructure.memory import (
    InMemoryLibraryStore,
    InMemoryListingStore,
    InMemoryPurchaseStore,
)
from src.bw_common.enums import ListingStatus
from src.bw_common.errors import (
    AlreadyPublishedError,
    InvalidDurationError,
    InvalidListingError,
    ItemNotFoundError,
    ListingAlreadySoldError,
    ListingNotFoundError,
    NotItemOwnerError,
    StoreUnavailableError,
)

OWNER = "a0000000-0000-4000-8000-000000000001"
OTHER = "b0000000-0000-4000-8000-000000000002"
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def _fields(title: str = "Dune", author: str = "Frank Herbert", city: str = "Rabat") -> BookFields:
    return BookFields(title=title, author=author, city=city, condition="GOOD")


@pytest.fixture
def clock() -> _Clock:
    return _Clock(T0)


@pytest.fixture
def stores() -> tuple[InMemoryListingStore, InMemoryLibraryStore, InMemoryPurchaseStore]:
    return InMemoryListingStore(), InMemoryLibraryStore(), InMemoryPurchaseStore()


@pytest.fixture
def catalog(stores, clock) -> Catalog:  # type: ignore[no-untyped-def]
    return Catalog(*stores, clock=clock)


class TestLibrary:
    async def test_create_item_not_in_marketplace(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        assert item.in_marketplace is False
        assert item.marketplace_price is None
        assert [i.id for i in await catalog.list_library(OWNER)] == [item.id]
        assert await catalog.list_library(OTHER) == []

    async def test_blank_title_rejected(self, catalog: Catalog) -> None:
        with pytest.raises(InvalidListingError):
            await catalog.create_library_item(OWNER, _fields(title="  "))


class TestPublish:
    async def test_publish_creates_mirroring_listing(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        listing = await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)

        assert listing.status == ListingStatus.AVAILABLE.value
        assert listing.seller_id == OWNER
        assert (listing.title, listing.author, listing.price) == ("Dune", "Frank Herbert", 6000)
        assert listing.is_advertisement is False
        stored = await catalog.get_owned_item(item.id)
        assert stored.in_marketplace is True
        assert stored.marketplace_price == 6000
        assert stored.listing_id == listing.id

    async def test_advertisement_fourteen_days(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        listing = await catalog.publish_to_marketplace(item.id, 6000, "14", owner_id=OWNER)

        assert listing.is_advertisement is True
        assert listing.ad_duration_days == 14
        assert listing.ad_expires_at == T0 + timedelta(days=14)

    async def test_advertisement_nine_days_rejected_without_side_effects(
        self, catalog: Catalog, stores
    ) -> None:  # type: ignore[no-untyped-def]
        item = await catalog.create_library_item(OWNER, _fields())
        with pytest.raises(InvalidDurationError):
            await catalog.publish_to_marketplace(item.id, 6000, "9", owner_id=OWNER)

        assert stores[0].listings == {}
        assert (await catalog.get_owned_item(item.id)).in_marketplace is False

    async def test_already_published(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)
        with pytest.raises(AlreadyPublishedError):
            await catalog.publish_to_marketplace(item.id, 7000, owner_id=OWNER)

    async def test_missing_item(self, catalog: Catalog) -> None:
        with pytest.raises(ItemNotFoundError):
            await catalog.publish_to_marketplace("nope", 6000)

    async def test_not_owner(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        with pytest.raises(NotItemOwnerError):
            await catalog.publish_to_marketplace(item.id, 6000, owner_id=OTHER)

    @pytest.mark.parametrize("price", [0, -100])
    async def test_non_positive_price(self, catalog: Catalog, price: int) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        with pytest.raises(InvalidListingError):
            await catalog.publish_to_marketplace(item.id, price, owner_id=OWNER)

    async def test_failed_listing_insert_releases_claim(self, stores, clock) -> None:  # type: ignore[no-untyped-def]
        listings, library, purchases = stores
        broken = AsyncMock(wraps=listings)
        broken.insert_listing.side_effect = OSError("connection reset")
        catalog = Catalog(broken, library, purchases, clock=clock)
        item = await catalog.create_library_item(OWNER, _fields())

        with pytest.raises(StoreUnavailableError):
            await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)

        stored = await catalog.get_owned_item(item.id)
        assert stored.in_marketplace is False
        assert stored.marketplace_price is None
        assert stored.listing_id is None


class TestUnpublishAndDelete:
    async def test_unpublish_removes_listing(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)

        cleared = await catalog.unpublish(item.id, owner_id=OWNER)

        assert cleared.in_marketplace is False
        assert cleared.marketplace_price is None
        assert await catalog.list_marketplace() == []

    async def test_unpublish_without_listing_logs(
        self, catalog: Catalog, caplog: pytest.LogCaptureFixture
    ) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        with caplog.at_level(logging.WARNING):
            cleared = await catalog.unpublish(item.id)
        assert cleared.in_marketplace is False
        assert "No AVAILABLE listing matched" in caplog.text

    async def test_unpublish_keeps_sold_listing(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        listing = await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)
        await catalog.mark_sold(listing.id, "op-1")

        await catalog.unpublish(item.id)

        assert (await catalog.get_listing(listing.id)).status == ListingStatus.SOLD.value

    async def test_delete_published_item(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)

        await catalog.delete_library_item(item.id, owner_id=OWNER)

        assert await catalog.list_library(OWNER) == []
        assert await catalog.list_marketplace() == []

    async def test_delete_requires_owner(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        with pytest.raises(NotItemOwnerError):
            await catalog.delete_library_item(item.id, owner_id=OTHER)


class TestSaleClaim:
    async def test_mark_sold_once(self, catalog: Catalog) -> None:
        listing = await catalog.create_direct_listing(OWNER, _fields(), 6000)
        sold = await catalog.mark_sold(listing.id, "op-1")
        assert sold.status == ListingStatus.SOLD.value
        assert sold.sold_operation_id == "op-1"

        with pytest.raises(ListingAlreadySoldError):
            await catalog.mark_sold(listing.id, "op-2")

    async def test_mark_sold_replay_by_claimer(self, catalog: Catalog) -> None:
        listing = await catalog.create_direct_listing(OWNER, _fields(), 6000)
        await catalog.mark_sold(listing.id, "op-1")
        again = await catalog.mark_sold(listing.id, "op-1")
        assert again.sold_operation_id == "op-1"

    async def test_mark_sold_missing(self, catalog: Catalog) -> None:
        with pytest.raises(ListingNotFoundError):
            await catalog.mark_sold("missing", "op-1")

    async def test_revert_only_for_claimer(self, catalog: Catalog) -> None:
        listing = await catalog.create_direct_listing(OWNER, _fields(), 6000)
        await catalog.mark_sold(listing.id, "op-1")

        assert await catalog.revert_sale(listing.id, "op-2") is False
        assert (await catalog.get_listing(listing.id)).status == ListingStatus.SOLD.value

        assert await catalog.revert_sale(listing.id, "op-1") is True
        reverted = await catalog.get_listing(listing.id)
        assert reverted.status == ListingStatus.AVAILABLE.value
        assert reverted.sold_operation_id is None


class TestMarketplaceOrder:
    async def test_active_ads_first_then_newest(self, catalog: Catalog, clock: _Clock) -> None:
        old_plain = await catalog.create_direct_listing(OWNER, _fields("A"), 1000)
        clock.advance(hours=1)
        old_ad = await catalog.create_direct_listing(OWNER, _fields("B"), 1000, 30)
        clock.advance(hours=1)
        new_plain = await catalog.create_direct_listing(OWNER, _fields("C"), 1000)
        clock.advance(hours=1)
        new_ad = await catalog.create_direct_listing(OWNER, _fields("D"), 1000, "7")

        ordered = await catalog.list_marketplace()

        assert [lst.id for lst in ordered] == [new_ad.id, old_ad.id, new_plain.id, old_plain.id]

    async def test_expired_ad_sorts_as_ordinary(self, catalog: Catalog, clock: _Clock) -> None:
        short_ad = await catalog.create_direct_listing(OWNER, _fields("Ad"), 1000, 3)
        clock.advance(days=1)
        plain = await catalog.create_direct_listing(OWNER, _fields("Plain"), 1000)
        clock.advance(days=5)

        ordered = await catalog.list_marketplace()

        assert [lst.id for lst in ordered] == [plain.id, short_ad.id]
        assert ordered[1].is_advertisement is True

    async def test_sold_listings_hidden(self, catalog: Catalog) -> None:
        listing = await catalog.create_direct_listing(OWNER, _fields(), 1000)
        await catalog.mark_sold(listing.id, "op-1")
        assert await catalog.list_marketplace() == []

    async def test_city_and_query_filters(self, catalog: Catalog) -> None:
        await catalog.create_direct_listing(OWNER, _fields("Dune", city="Rabat"), 1000)
        await catalog.create_direct_listing(
            OWNER, _fields("Emma", author="Jane Austen", city="Fes"), 1000
        )

        assert [lst.title for lst in await catalog.list_marketplace(city="Fes")] == ["Emma"]
        assert [lst.title for lst in await catalog.list_marketplace(query="austen")] == ["Emma"]
        assert [lst.title for lst in await catalog.list_marketplace(query="DUNE")] == ["Dune"]

    async def test_limit(self, catalog: Catalog) -> None:
        for i in range(5):
            await catalog.create_direct_listing(OWNER, _fields(f"Book {i}"), 1000)
        assert len(await catalog.list_marketplace(limit=3)) == 3


class TestPurchaseRecords:
    async def test_record_once_per_listing(self, catalog: Catalog) -> None:
        listing = await catalog.create_direct_listing(OWNER, _fields(), 6000)
        first = await catalog.record_purchase(OTHER, listing, "op-1")
        second = await catalog.record_purchase(OTHER, listing, "op-1")

        assert first.id == second.id
        assert first.status == "OWNED"
        assert [r.id for r in await catalog.list_purchases(OTHER)] == [first.id]


class TestSettleSoldItem:
    async def test_clears_item_of_sold_listing(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        listing = await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)
        await catalog.mark_sold(listing.id, "op-1")

        settled = await catalog.settle_sold_item(listing.id)

        assert settled is not None
        assert settled.id == item.id
        stored = await catalog.get_owned_item(item.id)
        assert stored.in_marketplace is False
        assert stored.marketplace_price is None
        assert stored.listing_id is None
        assert (await catalog.get_listing(listing.id)).status == ListingStatus.SOLD.value

    async def test_repeat_is_noop(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        listing = await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)
        await catalog.settle_sold_item(listing.id)

        assert await catalog.settle_sold_item(listing.id) is None

    async def test_direct_listing_has_no_item(self, catalog: Catalog) -> None:
        listing = await catalog.create_direct_listing(OWNER, _fields(), 6000)
        assert await catalog.settle_sold_item(listing.id) is None

    async def test_item_can_be_published_again(self, catalog: Catalog) -> None:
        item = await catalog.create_library_item(OWNER, _fields())
        first = await catalog.publish_to_marketplace(item.id, 6000, owner_id=OWNER)
        await catalog.settle_sold_item(first.id)

        second = await catalog.publish_to_marketplace(item.id, 7000, owner_id=OWNER)

        assert second.id != first.id
        assert (await catalog.get_owned_item(item.id)).listing_id == second.id
