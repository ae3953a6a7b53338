"""Store Protocols: dependency inversion for testability.

Every method is ONE independent single-record operation against the store.
No method may span two records; cross-record consistency belongs to the
Ledger and the Orchestrator.
"""

from typing import Protocol

from src.bw_ledger.domain.models import Account, LedgerEntry


class AccountStoreProtocol(Protocol):
    async def get_account(self, user_id: str) -> Account | None: ...

    async def get_account_by_phone(self, phone: str) -> Account | None: ...

    async def open_account(
        self, user_id: str, phone: str, initial_balance: int
    ) -> Account: ...

    async def debit(
        self, user_id: str, amount: int, operation_id: str | None
    ) -> Account:
        """Conditional decrement (balance >= amount).

        Raises AccountNotFoundError / InsufficientFundsError. A replayed
        operation_id returns the account unchanged.
        """
        ...

    async def credit(
        self, user_id: str, amount: int, operation_id: str | None
    ) -> Account: ...

    async def increment_books_owned(
        self, user_id: str, operation_id: str | None
    ) -> Account: ...

    async def has_applied(self, user_id: str, operation_id: str) -> bool:
        """True once a mutation keyed by operation_id has landed on this account."""
        ...


class LedgerEntryStoreProtocol(Protocol):
    async def insert_entry(self, entry: LedgerEntry) -> LedgerEntry:
        """Append one entry. A duplicate operation_key returns the stored entry."""
        ...

    async def list_entries(
        self,
        user_id: str,
        cursor: tuple[str, str] | None,
        limit: int,
        kind: str | None,
    ) -> list[LedgerEntry]:
        """Newest first. cursor = (created_at ISO, id) of the last entry seen."""
        ...

    async def sum_entries(self, user_id: str) -> tuple[int, int]:
        """Return (signed total in cents, entry count) for one user."""
        ...

    async def totals_by_kind(self, user_id: str) -> dict[str, int]: ...
