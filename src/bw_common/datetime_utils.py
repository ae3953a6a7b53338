"""UTC datetime utilities.

Every timestamp the engine stores or compares is timezone-aware UTC. API
payloads carry ISO-8601 strings.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def isoformat_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_utc(value: str) -> datetime:
    """Parse an ISO-8601 string from a client cursor; a naive value is read as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
