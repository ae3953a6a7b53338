"""Domain models for bw_ledger: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    user_id: str
    phone: str
    balance: int              # cents
    initial_balance: int      # cents, opening balance the log is reconciled against
    books_owned: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class LedgerEntry:
    id: str
    user_id: str
    kind: str                        # LedgerEntryKind value
    amount: int                      # cents, positive=credit negative=debit
    description: str
    related_listing_id: str | None = None
    operation_key: str | None = None
    created_at: datetime | None = None


@dataclass
class TransferReceipt:
    """Outcome of Ledger.transfer_atomic, balances as returned by the store."""

    from_user_id: str
    to_user_id: str
    amount: int
    from_balance: int
    to_balance: int
    debit_entry: LedgerEntry
    credit_entry: LedgerEntry


@dataclass
class ReconciliationReport:
    user_id: str
    balance: int
    initial_balance: int
    entries_total: int
    entry_count: int

    @property
    def expected_balance(self) -> int:
        return self.initial_balance + self.entries_total

    @property
    def drift(self) -> int:
        return self.balance - self.expected_balance

    @property
    def consistent(self) -> bool:
        return self.drift == 0
