"""Pydantic schemas and cursor utilities for the wallet API."""

import base64
import json

from pydantic import BaseModel

from src.bw_common.datetime_utils import isoformat_or_none
from src.bw_common.money import cents_to_display
from src.bw_ledger.domain.models import LedgerEntry, ReconciliationReport

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(entry: LedgerEntry) -> str:
    """Encode (created_at, id) of the last entry into an opaque Base64 cursor."""
    created = isoformat_or_none(entry.created_at) or ""
    payload = json.dumps({"ts": created, "id": entry.id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str, str] | None:
    """Decode a cursor string back to (created_at, id). Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return str(payload["ts"]), str(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance_cents: int
    balance_display: str
    books_owned: int

    @classmethod
    def from_cents(cls, user_id: str, balance: int, books_owned: int) -> "BalanceResponse":
        return cls(
            user_id=user_id,
            balance_cents=balance,
            balance_display=cents_to_display(balance),
            books_owned=books_owned,
        )


class LedgerEntryItem(BaseModel):
    id: str
    kind: str
    amount_cents: int
    amount_display: str
    description: str
    related_listing_id: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=e.id,
            kind=e.kind,
            amount_cents=e.amount,
            amount_display=cents_to_display(e.amount),
            description=e.description,
            related_listing_id=e.related_listing_id,
            created_at=isoformat_or_none(e.created_at) or "",
        )


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class WalletSummaryResponse(BaseModel):
    """Lifetime totals per movement kind, all in cents and non-negative."""

    user_id: str
    balance_cents: int
    books_owned: int
    total_spent_cents: int
    total_earned_cents: int
    total_sent_cents: int
    total_received_cents: int
    total_added_cents: int


class ReconciliationResponse(BaseModel):
    user_id: str
    balance_cents: int
    initial_balance_cents: int
    entries_total_cents: int
    entry_count: int
    drift_cents: int
    consistent: bool

    @classmethod
    def from_report(cls, r: ReconciliationReport) -> "ReconciliationResponse":
        return cls(
            user_id=r.user_id,
            balance_cents=r.balance,
            initial_balance_cents=r.initial_balance,
            entries_total_cents=r.entries_total,
            entry_count=r.entry_count,
            drift_cents=r.drift,
            consistent=r.consistent,
        )
