"""WalletApplicationService over the in-memory ledger."""

from datetime import UTC, datetime

import pytest

from src.bw_common.enums import LedgerEntryKind
from src.bw_common.errors import AccountNotFoundError
from src.bw_ledger.application.schemas import cursor_decode, cursor_encode
from src.bw_ledger.application.service import WalletApplicationService
from src.bw_ledger.domain.ledger import Ledger
from src.bw_ledger.domain.models import LedgerEntry
from src.bw_ledger.infrastructure.memory import InMemoryAccountStore, InMemoryLedgerEntryStore

ALICE = "a0000000-0000-4000-8000-000000000001"
BOB = "b0000000-0000-4000-8000-000000000002"


@pytest.fixture
async def ledger() -> Ledger:
    ledger = Ledger(InMemoryAccountStore(), InMemoryLedgerEntryStore())
    await ledger.open_account(ALICE, "+212600000001", 10000)
    await ledger.open_account(BOB, "+212600000002", 10000)
    return ledger


@pytest.fixture
def service(ledger: Ledger) -> WalletApplicationService:
    return WalletApplicationService(ledger)


async def _send(ledger: Ledger, amount: int, op: str) -> None:
    await ledger.transfer_atomic(
        ALICE, BOB, amount, "Transfer",
        debit_kind=LedgerEntryKind.TRANSFER_SENT.value,
        credit_kind=LedgerEntryKind.TRANSFER_RECEIVED.value,
        operation_id=op,
    )


class TestEnsureAccount:
    async def test_opens_with_opening_balance(self) -> None:
        service = WalletApplicationService(Ledger(InMemoryAccountStore(), InMemoryLedgerEntryStore()))
        await service.ensure_account(ALICE, "+212600000001")
        balance = await service.get_balance(ALICE)
        assert balance.balance_cents == 10000
        assert balance.balance_display == "100.00 MAD"

    async def test_existing_account_untouched(
        self, ledger: Ledger, service: WalletApplicationService
    ) -> None:
        await _send(ledger, 2500, "op-1")
        await service.ensure_account(ALICE, "+212600000001")
        assert (await service.get_balance(ALICE)).balance_cents == 7500

    async def test_unknown_account(self, service: WalletApplicationService) -> None:
        with pytest.raises(AccountNotFoundError):
            await service.get_balance("c0000000-0000-4000-8000-000000000003")


class TestListLedger:
    async def test_walks_all_pages(self, ledger: Ledger, service: WalletApplicationService) -> None:
        for i in range(5):
            await _send(ledger, 100 * (i + 1), f"op-{i}")

        seen: list[int] = []
        cursor = None
        pages = 0
        while True:
            page = await service.list_ledger(ALICE, cursor, 2, None)
            seen.extend(item.amount_cents for item in page.items)
            pages += 1
            if not page.has_more:
                assert page.next_cursor is None
                break
            cursor = page.next_cursor

        assert pages == 3
        assert sorted(seen) == [-500, -400, -300, -200, -100]

    async def test_kind_filter(self, ledger: Ledger, service: WalletApplicationService) -> None:
        await _send(ledger, 100, "op-1")
        page = await service.list_ledger(ALICE, None, 20, LedgerEntryKind.TRANSFER_RECEIVED.value)
        assert page.items == []
        assert page.has_more is False

    async def test_garbage_cursor_starts_over(
        self, ledger: Ledger, service: WalletApplicationService
    ) -> None:
        await _send(ledger, 100, "op-1")
        page = await service.list_ledger(ALICE, "%%%not-base64", 20, None)
        assert len(page.items) == 1


class TestSummary:
    async def test_totals_are_positive_magnitudes(
        self, ledger: Ledger, service: WalletApplicationService
    ) -> None:
        await _send(ledger, 1500, "op-1")
        await _send(ledger, 500, "op-2")

        alice = await service.get_summary(ALICE)
        bob = await service.get_summary(BOB)

        assert alice.total_sent_cents == 2000
        assert alice.total_received_cents == 0
        assert alice.balance_cents == 8000
        assert bob.total_received_cents == 2000
        assert bob.total_spent_cents == 0


class TestReconcile:
    async def test_consistent_after_transfers(
        self, ledger: Ledger, service: WalletApplicationService
    ) -> None:
        await _send(ledger, 1500, "op-1")
        report = await service.reconcile(BOB)
        assert report.consistent is True
        assert report.entries_total_cents == 1500
        assert report.drift_cents == 0


def test_cursor_round_trip() -> None:
    entry = LedgerEntry(
        id="e-1", user_id=ALICE, kind="SALE", amount=1, description="",
        created_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
    )
    assert cursor_decode(cursor_encode(entry)) == ("2026-01-02T03:04:05+00:00", "e-1")
    assert cursor_decode(None) is None
