"""In-memory Account / LedgerEntry stores.

Same contract as the PostgreSQL stores: one record per call, conditional
updates, applied-operation tracking. Each call yields to the event loop once
before touching state, like a network round trip would, so concurrent
operations interleave the way they do against the real store.

Used by the test suite and by STORE_BACKEND=memory local runs.
"""

import asyncio
import copy
import logging
from datetime import datetime, timezone

from src.bw_common.datetime_utils import parse_utc, utc_now
from src.bw_common.errors import AccountNotFoundError, InsufficientFundsError
from src.bw_ledger.domain.models import Account, LedgerEntry

logger = logging.getLogger(__name__)


class InMemoryAccountStore:
    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.applied: set[tuple[str, str]] = set()

    async def get_account(self, user_id: str) -> Account | None:
        await asyncio.sleep(0)
        account = self.accounts.get(user_id)
        return copy.deepcopy(account) if account else None

    async def get_account_by_phone(self, phone: str) -> Account | None:
        await asyncio.sleep(0)
        for account in self.accounts.values():
            if account.phone == phone:
                return copy.deepcopy(account)
        return None

    async def has_applied(self, user_id: str, operation_id: str) -> bool:
        await asyncio.sleep(0)
        return (user_id, operation_id) in self.applied

    async def open_account(
        self, user_id: str, phone: str, initial_balance: int
    ) -> Account:
        await asyncio.sleep(0)
        existing = self.accounts.get(user_id)
        if existing is None:
            now = utc_now()
            existing = Account(
                user_id=user_id,
                phone=phone,
                balance=initial_balance,
                initial_balance=initial_balance,
                created_at=now,
                updated_at=now,
            )
            self.accounts[user_id] = existing
        return copy.deepcopy(existing)

    async def debit(
        self, user_id: str, amount: int, operation_id: str | None
    ) -> Account:
        await asyncio.sleep(0)
        account = self._require(user_id)
        if self._seen(user_id, operation_id):
            logger.info("Debit idempotency hit: user=%s key=%s", user_id, operation_id)
            return copy.deepcopy(account)
        if account.balance < amount:
            raise InsufficientFundsError(amount, account.balance)
        account.balance -= amount
        self._touch(account, operation_id)
        return copy.deepcopy(account)

    async def credit(
        self, user_id: str, amount: int, operation_id: str | None
    ) -> Account:
        await asyncio.sleep(0)
        account = self._require(user_id)
        if self._seen(user_id, operation_id):
            logger.info("Credit idempotency hit: user=%s key=%s", user_id, operation_id)
            return copy.deepcopy(account)
        account.balance += amount
        self._touch(account, operation_id)
        return copy.deepcopy(account)

    async def increment_books_owned(
        self, user_id: str, operation_id: str | None
    ) -> Account:
        await asyncio.sleep(0)
        account = self._require(user_id)
        if not self._seen(user_id, operation_id):
            account.books_owned += 1
            self._touch(account, operation_id)
        return copy.deepcopy(account)

    def _require(self, user_id: str) -> Account:
        account = self.accounts.get(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return account

    def _seen(self, user_id: str, operation_id: str | None) -> bool:
        return operation_id is not None and (user_id, operation_id) in self.applied

    def _touch(self, account: Account, operation_id: str | None) -> None:
        if operation_id is not None:
            self.applied.add((account.user_id, operation_id))
        account.updated_at = utc_now()


class InMemoryLedgerEntryStore:
    def __init__(self) -> None:
        self.entries: list[LedgerEntry] = []

    async def insert_entry(self, entry: LedgerEntry) -> LedgerEntry:
        await asyncio.sleep(0)
        if entry.operation_key is not None:
            for existing in self.entries:
                if existing.operation_key == entry.operation_key:
                    logger.info("Ledger entry idempotency hit: key=%s", entry.operation_key)
                    return copy.deepcopy(existing)
        stored = copy.deepcopy(entry)
        if stored.created_at is None:
            stored.created_at = utc_now()
        self.entries.append(stored)
        return copy.deepcopy(stored)

    async def list_entries(
        self,
        user_id: str,
        cursor: tuple[str, str] | None,
        limit: int,
        kind: str | None,
    ) -> list[LedgerEntry]:
        await asyncio.sleep(0)
        rows = [
            e for e in self.entries
            if e.user_id == user_id and (kind is None or e.kind == kind)
        ]
        rows.sort(key=_entry_sort_key, reverse=True)
        if cursor is not None:
            cursor_key = (parse_utc(cursor[0]), cursor[1])
            rows = [e for e in rows if _entry_sort_key(e) < cursor_key]
        return [copy.deepcopy(e) for e in rows[:limit]]

    async def sum_entries(self, user_id: str) -> tuple[int, int]:
        await asyncio.sleep(0)
        amounts = [e.amount for e in self.entries if e.user_id == user_id]
        return sum(amounts), len(amounts)

    async def totals_by_kind(self, user_id: str) -> dict[str, int]:
        await asyncio.sleep(0)
        totals: dict[str, int] = {}
        for e in self.entries:
            if e.user_id == user_id:
                totals[e.kind] = totals.get(e.kind, 0) + e.amount
        return totals


_UNSTAMPED = datetime.min.replace(tzinfo=timezone.utc)


def _entry_sort_key(entry: LedgerEntry) -> tuple[datetime, str]:
    return entry.created_at or _UNSTAMPED, entry.id
