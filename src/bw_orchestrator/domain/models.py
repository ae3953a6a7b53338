"""Receipts returned by orchestrated operations. Balances are re-read, never cached."""

from dataclasses import dataclass

from src.bw_catalog.domain.models import Listing, PurchaseRecord
from src.bw_ledger.domain.models import LedgerEntry


@dataclass
class PurchaseReceipt:
    operation_id: str
    listing: Listing
    record: PurchaseRecord
    buyer_balance: int
    seller_balance: int
    books_owned: int
    resumed: bool = False


@dataclass
class TransferOutcome:
    operation_id: str
    sender_id: str
    recipient_id: str
    amount: int
    sender_balance: int
    recipient_balance: int
    sent_entry: LedgerEntry
    received_entry: LedgerEntry


@dataclass
class BalanceAdded:
    operation_id: str
    user_id: str
    amount: int
    balance: int
    entry: LedgerEntry
