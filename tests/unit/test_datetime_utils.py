"""UTC helpers used by the cursors and response schemas."""

from datetime import datetime, timedelta, timezone

from src.bw_common.datetime_utils import isoformat_or_none, parse_utc, utc_now


def test_utc_now_is_aware() -> None:
    assert utc_now().utcoffset() == timedelta(0)


def test_isoformat_or_none() -> None:
    ts = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)
    assert isoformat_or_none(ts) == "2026-03-01T12:30:00+00:00"
    assert isoformat_or_none(None) is None


def test_parse_utc_reads_naive_as_utc() -> None:
    parsed = parse_utc("2026-03-01T12:30:00")
    assert parsed == datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)


def test_parse_utc_keeps_offset() -> None:
    parsed = parse_utc("2026-03-01T14:30:00+02:00")
    assert parsed == datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)
    assert parsed.utcoffset() == timedelta(hours=2)
