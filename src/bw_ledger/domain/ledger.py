"""Ledger: balance mutation primitives over a non-transactional Account Store.

Every store call touches exactly one record. The only multi-account primitive
is transfer_atomic, which is eventually atomic: debit, then credit, and on a
failed credit an equal compensating credit back to the payer.

Idempotency keys used per logical operation <op>:
  <op>:debit       payer debit + payer ledger entry
  <op>:credit      payee credit + payee ledger entry
  <op>:compensate  refund of the payer after a failed credit
A replay of <op> after its compensation applied is refused: the operation is
terminally failed and the caller must start a new one.

Once both legs applied the transfer is never undone. If its ledger entries
cannot be written, SettlementPendingError tells the caller to replay <op>,
which skips the applied legs and writes the missing entries.
"""

import logging

from src.bw_common.errors import (
    AccountNotFoundError,
    AppError,
    SettlementPendingError,
    StoreUnavailableError,
    TransferFailedError,
)
from src.bw_common.identifiers import new_id, sub_operation
from src.bw_common.money import require_positive
from src.bw_common.store_call import bounded, bounded_idempotent, bounded_read
from src.bw_ledger.domain.models import (
    Account,
    LedgerEntry,
    ReconciliationReport,
    TransferReceipt,
)
from src.bw_ledger.domain.repository import AccountStoreProtocol, LedgerEntryStoreProtocol

logger = logging.getLogger(__name__)


class Ledger:
    def __init__(
        self,
        accounts: AccountStoreProtocol,
        entries: LedgerEntryStoreProtocol,
    ) -> None:
        self._accounts = accounts
        self._entries = entries

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_account(self, user_id: str) -> Account:
        account = await bounded_read(
            "get_account", lambda: self._accounts.get_account(user_id)
        )
        if account is None:
            raise AccountNotFoundError(user_id)
        return account

    async def find_account_by_phone(self, phone: str) -> Account | None:
        return await bounded_read(
            "get_account_by_phone", lambda: self._accounts.get_account_by_phone(phone)
        )

    async def list_entries(
        self,
        user_id: str,
        cursor: tuple[str, str] | None,
        limit: int,
        kind: str | None = None,
    ) -> list[LedgerEntry]:
        return await bounded_read(
            "list_entries",
            lambda: self._entries.list_entries(user_id, cursor, limit, kind),
        )

    async def totals_by_kind(self, user_id: str) -> dict[str, int]:
        return await bounded_read(
            "totals_by_kind", lambda: self._entries.totals_by_kind(user_id)
        )

    async def has_applied(self, user_id: str, operation_id: str | None) -> bool:
        if operation_id is None:
            return False
        return await bounded_read(
            "has_applied", lambda: self._accounts.has_applied(user_id, operation_id)
        )

    async def open_account(
        self, user_id: str, phone: str, initial_balance: int = 0
    ) -> Account:
        """Create the account on first sight of a user; existing accounts are returned as-is."""
        return await bounded(
            "open_account", self._accounts.open_account(user_id, phone, initial_balance)
        )

    # ------------------------------------------------------------------
    # Single-account mutations
    # ------------------------------------------------------------------

    async def debit(
        self, account_id: str, amount: int, operation_id: str | None = None
    ) -> int:
        require_positive(amount)
        account = await bounded("debit", self._accounts.debit(account_id, amount, operation_id))
        return account.balance

    async def credit(
        self, account_id: str, amount: int, operation_id: str | None = None
    ) -> int:
        require_positive(amount)
        account = await bounded("credit", self._accounts.credit(account_id, amount, operation_id))
        return account.balance

    async def record_entry(self, entry: LedgerEntry) -> LedgerEntry:
        if entry.operation_key is None:
            return await bounded("insert_entry", self._entries.insert_entry(entry))
        return await bounded_idempotent(
            "insert_entry", lambda: self._entries.insert_entry(entry)
        )

    async def increment_books_owned(
        self, account_id: str, operation_id: str | None = None
    ) -> Account:
        if operation_id is None:
            return await bounded(
                "increment_books_owned",
                self._accounts.increment_books_owned(account_id, None),
            )
        return await bounded_idempotent(
            "increment_books_owned",
            lambda: self._accounts.increment_books_owned(account_id, operation_id),
        )

    async def credit_with_entry(
        self,
        account_id: str,
        amount: int,
        kind: str,
        description: str,
        operation_id: str | None = None,
    ) -> tuple[int, LedgerEntry]:
        """Single-sided credit (top-up) followed by its ledger entry."""
        balance = await self.credit(account_id, amount, operation_id)
        try:
            entry = await self.record_entry(
                LedgerEntry(
                    id=new_id(),
                    user_id=account_id,
                    kind=kind,
                    amount=amount,
                    description=description,
                    operation_key=operation_id,
                )
            )
        except AppError as exc:
            logger.error(
                "Credit applied but entry not written: user=%s amount=%d key=%s",
                account_id, amount, operation_id,
            )
            raise SettlementPendingError(operation_id) from exc
        return balance, entry

    # ------------------------------------------------------------------
    # Two-account transfer
    # ------------------------------------------------------------------

    async def transfer_atomic(
        self,
        from_id: str,
        to_id: str,
        amount: int,
        description: str,
        *,
        debit_kind: str,
        credit_kind: str,
        credit_description: str | None = None,
        related_listing_id: str | None = None,
        operation_id: str | None = None,
    ) -> TransferReceipt:
        """Move `amount` cents from one account to another.

        Raises InsufficientFundsError / AccountNotFoundError when the debit is
        refused (nothing changed), TransferFailedError when the credit failed
        after the debit applied (payer refunded, cause chained), and
        SettlementPendingError when both legs applied but the ledger entries
        could not be written (money moved, replay the operation to finish).
        """
        require_positive(amount)
        debit_key = sub_operation(operation_id, "debit")
        credit_key = sub_operation(operation_id, "credit")
        compensate_key = sub_operation(operation_id, "compensate")

        if await self.has_applied(from_id, compensate_key):
            logger.warning(
                "Replay of compensated transfer refused: op=%s from=%s to=%s",
                operation_id, from_id, to_id,
            )
            raise TransferFailedError(from_id, to_id, compensated=True)
        try:
            payer = await bounded("debit", self._accounts.debit(from_id, amount, debit_key))
        except StoreUnavailableError:
            confirmed = await self._applied_despite_error(from_id, debit_key)
            if confirmed is None:
                raise
            payer = confirmed

        try:
            payee = await bounded("credit", self._accounts.credit(to_id, amount, credit_key))
        except StoreUnavailableError as exc:
            confirmed = await self._applied_despite_error(to_id, credit_key)
            if confirmed is None:
                compensated = await self._compensate(from_id, to_id, amount, compensate_key)
                raise TransferFailedError(from_id, to_id, compensated=compensated) from exc
            payee = confirmed
        except Exception as exc:
            compensated = await self._compensate(from_id, to_id, amount, compensate_key)
            raise TransferFailedError(from_id, to_id, compensated=compensated) from exc

        try:
            debit_entry = await self.record_entry(
                LedgerEntry(
                    id=new_id(),
                    user_id=from_id,
                    kind=debit_kind,
                    amount=-amount,
                    description=description,
                    related_listing_id=related_listing_id,
                    operation_key=debit_key,
                )
            )
            credit_entry = await self.record_entry(
                LedgerEntry(
                    id=new_id(),
                    user_id=to_id,
                    kind=credit_kind,
                    amount=amount,
                    description=credit_description or description,
                    related_listing_id=related_listing_id,
                    operation_key=credit_key,
                )
            )
        except AppError as exc:
            logger.error(
                "Transfer applied but entries not written: op=%s from=%s to=%s amount=%d",
                operation_id, from_id, to_id, amount,
            )
            raise SettlementPendingError(operation_id) from exc
        return TransferReceipt(
            from_user_id=from_id,
            to_user_id=to_id,
            amount=amount,
            from_balance=payer.balance,
            to_balance=payee.balance,
            debit_entry=debit_entry,
            credit_entry=credit_entry,
        )

    async def _applied_despite_error(
        self, account_id: str, key: str | None
    ) -> Account | None:
        """Re-read after a store error to learn whether a keyed mutation applied."""
        if key is None:
            return None
        try:
            if not await self.has_applied(account_id, key):
                return None
            account = await self.get_account(account_id)
        except AppError:
            return None
        logger.warning("Store error but mutation applied: user=%s key=%s", account_id, key)
        return account

    async def _compensate(
        self, from_id: str, to_id: str, amount: int, compensate_key: str | None
    ) -> bool:
        try:
            await bounded("compensate", self._accounts.credit(from_id, amount, compensate_key))
        except Exception:
            logger.exception(
                "Compensation FAILED, payer left debited: from=%s to=%s amount=%d key=%s",
                from_id, to_id, amount, compensate_key,
            )
            return False
        logger.warning(
            "Transfer compensated: from=%s to=%s amount=%d key=%s",
            from_id, to_id, amount, compensate_key,
        )
        return True

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def reconcile(self, user_id: str) -> ReconciliationReport:
        """balance must equal initial_balance + signed sum of the user's entries."""
        account = await self.get_account(user_id)
        total, count = await bounded_read(
            "sum_entries", lambda: self._entries.sum_entries(user_id)
        )
        report = ReconciliationReport(
            user_id=user_id,
            balance=account.balance,
            initial_balance=account.initial_balance,
            entries_total=total,
            entry_count=count,
        )
        if not report.consistent:
            logger.error(
                "Reconciliation mismatch: user=%s balance=%d expected=%d drift=%d",
                user_id, report.balance, report.expected_balance, report.drift,
            )
        return report
