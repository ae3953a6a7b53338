"""PostgreSQL Account / LedgerEntry stores.

Each public method is ONE statement in its own short-lived session, committed
immediately. Balance mutations are conditional UPDATE ... RETURNING; a result
of 0 rows means a business constraint held the update back (insufficient
funds, missing account, or an operation id that was already applied), and
the account is re-read to tell which.

Applied operation ids live in account_operations, keyed by
(user_id, operation_id) and written by the same statement as the balance
change. A concurrent duplicate of the same operation fails on that primary
key and its whole statement rolls back.
"""

import logging
from datetime import datetime

from sqlalchemy import text

from src.bw_common.database import SingleStatementStore
from src.bw_common.datetime_utils import parse_utc
from src.bw_common.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    StoreUnavailableError,
)
from src.bw_ledger.domain.models import Account, LedgerEntry

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = """
    user_id, phone, balance, initial_balance, books_owned,
    created_at, updated_at
"""

_NOT_APPLIED = """(
    CAST(:op AS TEXT) IS NULL
    OR NOT EXISTS (
        SELECT 1 FROM account_operations ao
        WHERE ao.user_id = accounts.user_id
          AND ao.operation_id = CAST(:op AS TEXT)
    )
)"""

# Wraps a conditional UPDATE so the operation id is recorded only when the
# update matched a row.
_MARK_APPLIED = f"""
    marked AS (
        INSERT INTO account_operations (user_id, operation_id)
        SELECT user_id, CAST(:op AS TEXT) FROM moved
        WHERE CAST(:op AS TEXT) IS NOT NULL
    )
    SELECT {_ACCOUNT_COLUMNS} FROM moved
"""

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE user_id = :user_id
""")

_GET_ACCOUNT_BY_PHONE_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE phone = :phone
""")

_HAS_APPLIED_SQL = text("""
    SELECT 1 AS applied
    FROM account_operations
    WHERE user_id = :user_id AND operation_id = :op
""")

_OPEN_ACCOUNT_SQL = text(f"""
    INSERT INTO accounts (user_id, phone, balance, initial_balance)
    VALUES (:user_id, :phone, :initial_balance, :initial_balance)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING {_ACCOUNT_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    WITH moved AS (
        UPDATE accounts
        SET balance = balance - :amount,
            updated_at = NOW()
        WHERE user_id = :user_id
          AND balance >= :amount
          AND {_NOT_APPLIED}
        RETURNING {_ACCOUNT_COLUMNS}
    ),
    {_MARK_APPLIED}
""")

_CREDIT_SQL = text(f"""
    WITH moved AS (
        UPDATE accounts
        SET balance = balance + :amount,
            updated_at = NOW()
        WHERE user_id = :user_id
          AND {_NOT_APPLIED}
        RETURNING {_ACCOUNT_COLUMNS}
    ),
    {_MARK_APPLIED}
""")

_INCREMENT_BOOKS_SQL = text(f"""
    WITH moved AS (
        UPDATE accounts
        SET books_owned = books_owned + 1,
            updated_at = NOW()
        WHERE user_id = :user_id
          AND {_NOT_APPLIED}
        RETURNING {_ACCOUNT_COLUMNS}
    ),
    {_MARK_APPLIED}
""")

# ---------------------------------------------------------------------------
# SQL: ledger_entries (append-only)
# ---------------------------------------------------------------------------

_ENTRY_COLUMNS = """
    id, user_id, kind, amount, description,
    related_listing_id, operation_key, created_at
"""

_INSERT_ENTRY_SQL = text(f"""
    INSERT INTO ledger_entries
        (id, user_id, kind, amount, description, related_listing_id, operation_key)
    VALUES
        (:id, :user_id, :kind, :amount, :description, :related_listing_id, :operation_key)
    ON CONFLICT (operation_key) DO NOTHING
    RETURNING {_ENTRY_COLUMNS}
""")

_GET_ENTRY_BY_KEY_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries
    WHERE operation_key = :operation_key
""")

_LIST_ENTRIES_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:kind AS TEXT) IS NULL OR kind = CAST(:kind AS TEXT))
      AND (
          CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
          OR (created_at, id) < (CAST(:cursor_ts AS TIMESTAMPTZ), CAST(:cursor_id AS TEXT))
      )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_SUM_ENTRIES_SQL = text("""
    SELECT COALESCE(SUM(amount), 0) AS total, COUNT(*) AS entry_count
    FROM ledger_entries
    WHERE user_id = :user_id
""")

_TOTALS_BY_KIND_SQL = text("""
    SELECT kind, COALESCE(SUM(amount), 0) AS total
    FROM ledger_entries
    WHERE user_id = :user_id
    GROUP BY kind
""")


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        phone=row.phone,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        initial_balance=row.initial_balance,  # type: ignore[attr-defined]
        books_owned=row.books_owned,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        kind=row.kind,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        related_listing_id=row.related_listing_id,  # type: ignore[attr-defined]
        operation_key=row.operation_key,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountStore(SingleStatementStore):
    """Concrete Account Store: one conditional statement per call."""

    async def get_account(self, user_id: str) -> Account | None:
        row = await self._fetch_one(_GET_ACCOUNT_SQL, {"user_id": user_id})
        return _row_to_account(row) if row else None

    async def get_account_by_phone(self, phone: str) -> Account | None:
        row = await self._fetch_one(_GET_ACCOUNT_BY_PHONE_SQL, {"phone": phone})
        return _row_to_account(row) if row else None

    async def open_account(
        self, user_id: str, phone: str, initial_balance: int
    ) -> Account:
        row = await self._fetch_one(
            _OPEN_ACCOUNT_SQL,
            {"user_id": user_id, "phone": phone, "initial_balance": initial_balance},
        )
        if row is not None:
            return _row_to_account(row)
        existing = await self.get_account(user_id)
        if existing is None:
            raise AccountNotFoundError(user_id)
        return existing

    async def debit(
        self, user_id: str, amount: int, operation_id: str | None
    ) -> Account:
        row = await self._fetch_one(
            _DEBIT_SQL, {"user_id": user_id, "amount": amount, "op": operation_id}
        )
        if row is not None:
            return _row_to_account(row)
        account, replayed = await self._explain_refusal(user_id, operation_id, "Debit")
        if replayed:
            return account
        raise InsufficientFundsError(amount, account.balance)

    async def credit(
        self, user_id: str, amount: int, operation_id: str | None
    ) -> Account:
        row = await self._fetch_one(
            _CREDIT_SQL, {"user_id": user_id, "amount": amount, "op": operation_id}
        )
        if row is not None:
            return _row_to_account(row)
        account, _ = await self._explain_refusal(user_id, operation_id, "Credit")
        return account

    async def increment_books_owned(
        self, user_id: str, operation_id: str | None
    ) -> Account:
        row = await self._fetch_one(
            _INCREMENT_BOOKS_SQL, {"user_id": user_id, "op": operation_id}
        )
        if row is not None:
            return _row_to_account(row)
        account, _ = await self._explain_refusal(user_id, operation_id, "Book count")
        return account

    async def has_applied(self, user_id: str, operation_id: str) -> bool:
        row = await self._fetch_one(
            _HAS_APPLIED_SQL, {"user_id": user_id, "op": operation_id}
        )
        return row is not None

    async def _explain_refusal(
        self, user_id: str, operation_id: str | None, what: str
    ) -> tuple[Account, bool]:
        """Re-read after a 0-row update: missing account raises.

        Returns the account and whether operation_id had already applied, so
        the caller can tell a replay from its own business refusal.
        """
        account = await self.get_account(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        replayed = operation_id is not None and await self.has_applied(user_id, operation_id)
        if replayed:
            logger.info("%s idempotency hit: user=%s key=%s", what, user_id, operation_id)
        return account, replayed


class LedgerEntryStore(SingleStatementStore):
    """Concrete append-only entry store."""

    async def insert_entry(self, entry: LedgerEntry) -> LedgerEntry:
        row = await self._fetch_one(
            _INSERT_ENTRY_SQL,
            {
                "id": entry.id,
                "user_id": entry.user_id,
                "kind": entry.kind,
                "amount": entry.amount,
                "description": entry.description,
                "related_listing_id": entry.related_listing_id,
                "operation_key": entry.operation_key,
            },
        )
        if row is None:
            logger.info("Ledger entry idempotency hit: key=%s", entry.operation_key)
            row = await self._fetch_one(
                _GET_ENTRY_BY_KEY_SQL, {"operation_key": entry.operation_key}
            )
            if row is None:
                # conflicting row not visible to this session yet
                logger.warning("Ledger entry conflicted but is missing: key=%s", entry.operation_key)
                raise StoreUnavailableError("insert_entry")
        return _row_to_entry(row)

    async def list_entries(
        self,
        user_id: str,
        cursor: tuple[str, str] | None,
        limit: int,
        kind: str | None,
    ) -> list[LedgerEntry]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters
        cursor_ts: datetime | None = None
        cursor_id: str | None = None
        if cursor is not None:
            cursor_ts = parse_utc(cursor[0])
            cursor_id = cursor[1]
        rows = await self._fetch_all(
            _LIST_ENTRIES_SQL,
            {
                "user_id": user_id,
                "kind": kind,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_entry(row) for row in rows]

    async def sum_entries(self, user_id: str) -> tuple[int, int]:
        row = await self._fetch_one(_SUM_ENTRIES_SQL, {"user_id": user_id})
        if row is None:
            return 0, 0
        return int(row.total), int(row.entry_count)  # type: ignore[attr-defined]

    async def totals_by_kind(self, user_id: str) -> dict[str, int]:
        rows = await self._fetch_all(_TOTALS_BY_KIND_SQL, {"user_id": user_id})
        return {row.kind: int(row.total) for row in rows}  # type: ignore[attr-defined]
