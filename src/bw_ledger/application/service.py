"""WalletApplicationService: thin read-side composition over the Ledger.

Balances are always re-read from the store; nothing here caches an account.
Money-moving operations live in the TransactionOrchestrator.
"""

from config.settings import settings
from src.bw_common.enums import LedgerEntryKind
from src.bw_ledger.application.schemas import (
    BalanceResponse,
    LedgerEntryItem,
    LedgerResponse,
    ReconciliationResponse,
    WalletSummaryResponse,
    cursor_decode,
    cursor_encode,
)
from src.bw_ledger.domain.ledger import Ledger


class WalletApplicationService:
    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    async def ensure_account(self, user_id: str, phone: str) -> None:
        await self._ledger.open_account(user_id, phone, settings.OPENING_BALANCE_CENTS)

    async def get_balance(self, user_id: str) -> BalanceResponse:
        account = await self._ledger.get_account(user_id)
        return BalanceResponse.from_cents(
            user_id=user_id,
            balance=account.balance,
            books_owned=account.books_owned,
        )

    async def list_ledger(
        self,
        user_id: str,
        cursor: str | None,
        limit: int,
        kind: str | None,
    ) -> LedgerResponse:
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._ledger.list_entries(
            user_id, cursor_decode(cursor), limit + 1, kind
        )
        has_more = len(entries) > limit
        page = entries[:limit]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return LedgerResponse(
            items=[LedgerEntryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def get_summary(self, user_id: str) -> WalletSummaryResponse:
        account = await self._ledger.get_account(user_id)
        totals = await self._ledger.totals_by_kind(user_id)
        return WalletSummaryResponse(
            user_id=user_id,
            balance_cents=account.balance,
            books_owned=account.books_owned,
            total_spent_cents=-totals.get(LedgerEntryKind.PURCHASE.value, 0),
            total_earned_cents=totals.get(LedgerEntryKind.SALE.value, 0),
            total_sent_cents=-totals.get(LedgerEntryKind.TRANSFER_SENT.value, 0),
            total_received_cents=totals.get(LedgerEntryKind.TRANSFER_RECEIVED.value, 0),
            total_added_cents=totals.get(LedgerEntryKind.BALANCE_ADD.value, 0),
        )

    async def reconcile(self, user_id: str) -> ReconciliationResponse:
        report = await self._ledger.reconcile(user_id)
        return ReconciliationResponse.from_report(report)
