"""Marketplace display order and advertisement durations."""

from datetime import datetime, timedelta

from src.bw_catalog.domain.models import Listing
from src.bw_common.enums import AD_DURATIONS_DAYS
from src.bw_common.errors import InvalidDurationError


def parse_ad_duration(value: str | int) -> int:
    """'14' or 14 -> 14. Anything outside {3, 7, 14, 30} raises InvalidDurationError."""
    if isinstance(value, bool):
        raise InvalidDurationError(value)
    try:
        days = int(str(value).strip())
    except ValueError:
        raise InvalidDurationError(value) from None
    if days not in AD_DURATIONS_DAYS:
        raise InvalidDurationError(value)
    return days


def ad_expiry(created_at: datetime, days: int) -> datetime:
    return created_at + timedelta(days=days)


def marketplace_sort_key(listing: Listing, now: datetime) -> tuple[int, float, str]:
    # Active ads first, then newest first; id keeps the order total.
    rank = 0 if listing.is_active_advertisement(now) else 1
    return rank, -listing.created_at.timestamp(), listing.id


def order_for_marketplace(listings: list[Listing], now: datetime) -> list[Listing]:
    """Active advertisements first (newest first), then everything else newest first.

    An expired advertisement sorts as an ordinary listing.
    """
    return sorted(listings, key=lambda lst: marketplace_sort_key(lst, now))


def matches_filters(listing: Listing, city: str | None, query: str | None) -> bool:
    if city and listing.city != city:
        return False
    if query:
        needle = query.lower()
        return needle in listing.title.lower() or needle in listing.author.lower()
    return True
