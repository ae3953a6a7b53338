"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class ListingStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    SOLD = "SOLD"


class PurchaseStatus(str, Enum):
    OWNED = "OWNED"
    FOR_SALE = "FOR_SALE"
    SOLD = "SOLD"


class LedgerEntryKind(str, Enum):
    # Marketplace (buyer + seller paired)
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    # Admin top-up
    BALANCE_ADD = "BALANCE_ADD"
    # P2P (sender + recipient paired)
    TRANSFER_SENT = "TRANSFER_SENT"
    TRANSFER_RECEIVED = "TRANSFER_RECEIVED"


# Advertisement durations a seller may pick, in days
AD_DURATIONS_DAYS: frozenset[int] = frozenset({3, 7, 14, 30})
