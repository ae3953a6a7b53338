"""TransactionOrchestrator: the only component that drives Ledger and Catalog together.

Purchase:
  1. listing must exist and be AVAILABLE (or already claimed by this operation)
  2. buyer must not be the seller
  3. buyer and seller accounts must exist, buyer must afford the price
  4. claim the listing (mark_sold); losers of a race stop here, no money moved
  5. move the money (Ledger.transfer_atomic); on failure release the listing
  6. purchase record, books_owned and the seller's library item, all
     idempotent on the operation id

Steps 1-3 are reads and never need undoing. The listing is released in step 5
only when no money moved. Once the payment applied nothing is rolled back:
a failure to write its ledger entries or any step-6 write is surfaced as
SettlementPendingError, and a replay with the same operation id finishes the
purchase.

Transfer:
  1. resolve the recipient by user id or phone
  2. refuse self-transfers, non-positive amounts, insufficient funds
  3. Ledger.transfer_atomic, which records both ledger entries
"""

import logging

from src.bw_catalog.domain.catalog import Catalog
from src.bw_catalog.domain.models import Listing, PurchaseRecord
from src.bw_common.enums import LedgerEntryKind, ListingStatus
from src.bw_common.errors import (
    AccountNotFoundError,
    AdminRequiredError,
    AppError,
    ErrorCategory,
    InsufficientFundsError,
    ListingUnavailableError,
    PurchaseFailedError,
    RecipientNotFoundError,
    SelfPurchaseNotAllowedError,
    SelfTransferNotAllowedError,
    SettlementPendingError,
)
from src.bw_common.identifiers import is_valid_uuid, new_id, sub_operation
from src.bw_common.money import cents_to_display, require_positive
from src.bw_gateway.auth.identity import Identity
from src.bw_ledger.domain.ledger import Ledger
from src.bw_ledger.domain.models import Account
from src.bw_orchestrator.domain.models import BalanceAdded, PurchaseReceipt, TransferOutcome
from src.bw_transfer.domain.payload import RecipientIdentity

logger = logging.getLogger(__name__)

# Debit refusals: the ledger changed nothing, so the original error is the answer.
_NOTHING_MOVED = (ErrorCategory.VALIDATION, ErrorCategory.PRECONDITION)


class TransactionOrchestrator:
    def __init__(self, ledger: Ledger, catalog: Catalog) -> None:
        self._ledger = ledger
        self._catalog = catalog

    # ------------------------------------------------------------------
    # Purchase
    # ------------------------------------------------------------------

    async def purchase(
        self, buyer_id: str, listing_id: str, operation_id: str | None = None
    ) -> PurchaseReceipt:
        op = operation_id or new_id()

        listing = await self._catalog.get_listing(listing_id)
        resumed = (
            listing.status == ListingStatus.SOLD.value and listing.sold_operation_id == op
        )
        if not resumed and listing.status != ListingStatus.AVAILABLE.value:
            raise ListingUnavailableError(listing_id)
        if listing.seller_id == buyer_id:
            raise SelfPurchaseNotAllowedError()

        buyer = await self._ledger.get_account(buyer_id)
        await self._ledger.get_account(listing.seller_id)
        if not resumed and buyer.balance < listing.price:
            raise InsufficientFundsError(listing.price, buyer.balance)

        if resumed:
            logger.info("Resuming purchase: listing=%s op=%s", listing_id, op)
        await self._catalog.mark_sold(listing_id, op)

        try:
            await self._ledger.transfer_atomic(
                buyer_id,
                listing.seller_id,
                listing.price,
                f"Purchase of {listing.title}",
                debit_kind=LedgerEntryKind.PURCHASE.value,
                credit_kind=LedgerEntryKind.SALE.value,
                credit_description=f"Sale of {listing.title}",
                related_listing_id=listing_id,
                operation_id=op,
            )
        except SettlementPendingError:
            logger.warning(
                "Purchase paid but not finalized, listing stays SOLD: listing=%s op=%s",
                listing_id, op,
            )
            raise
        except AppError as exc:
            await self._release_listing(listing_id, op)
            if exc.category in _NOTHING_MOVED:
                raise
            raise PurchaseFailedError(listing_id) from exc
        except Exception as exc:
            await self._release_listing(listing_id, op)
            raise PurchaseFailedError(listing_id) from exc

        record, books_owned = await self._complete_purchase(buyer_id, listing, op)

        sold = await self._catalog.get_listing(listing_id)
        buyer_after = await self._ledger.get_account(buyer_id)
        seller_after = await self._ledger.get_account(listing.seller_id)
        logger.info(
            "Purchase completed: listing=%s buyer=%s seller=%s price=%s op=%s",
            listing_id, buyer_id, listing.seller_id, cents_to_display(listing.price), op,
        )
        return PurchaseReceipt(
            operation_id=op,
            listing=sold,
            record=record,
            buyer_balance=buyer_after.balance,
            seller_balance=seller_after.balance,
            books_owned=books_owned,
            resumed=resumed,
        )

    async def _complete_purchase(
        self, buyer_id: str, listing: Listing, op: str
    ) -> tuple[PurchaseRecord, int]:
        try:
            record = await self._catalog.record_purchase(buyer_id, listing, op)
            account = await self._ledger.increment_books_owned(
                buyer_id, sub_operation(op, "book")
            )
            await self._catalog.settle_sold_item(listing.id)
        except AppError as exc:
            logger.warning(
                "Purchase paid but not finalized, replay op to finish: listing=%s op=%s",
                listing.id, op,
            )
            raise SettlementPendingError(op) from exc
        if record.operation_id != op:
            logger.error(
                "Purchase record belongs to another operation: listing=%s op=%s other=%s",
                listing.id, op, record.operation_id,
            )
        return record, account.books_owned

    async def _release_listing(self, listing_id: str, op: str) -> None:
        try:
            await self._catalog.revert_sale(listing_id, op)
        except AppError:
            logger.exception(
                "Listing release FAILED, left SOLD without payment: listing=%s op=%s",
                listing_id, op,
            )

    # ------------------------------------------------------------------
    # Peer-to-peer transfer
    # ------------------------------------------------------------------

    async def transfer(
        self,
        sender_id: str,
        recipient: RecipientIdentity,
        amount: int,
        operation_id: str | None = None,
    ) -> TransferOutcome:
        op = operation_id or new_id()

        target = await self._resolve_recipient(recipient)
        if target.user_id == sender_id:
            raise SelfTransferNotAllowedError()
        require_positive(amount)
        sender = await self._ledger.get_account(sender_id)
        if sender.balance < amount and not await self._ledger.has_applied(
            sender_id, sub_operation(op, "debit")
        ):
            raise InsufficientFundsError(amount, sender.balance)

        receipt = await self._ledger.transfer_atomic(
            sender_id,
            target.user_id,
            amount,
            f"Transfer to {target.phone}",
            debit_kind=LedgerEntryKind.TRANSFER_SENT.value,
            credit_kind=LedgerEntryKind.TRANSFER_RECEIVED.value,
            credit_description=f"Transfer from {sender.phone}",
            operation_id=op,
        )

        sender_after = await self._ledger.get_account(sender_id)
        recipient_after = await self._ledger.get_account(target.user_id)
        logger.info(
            "Transfer completed: from=%s to=%s amount=%s op=%s",
            sender_id, target.user_id, cents_to_display(amount), op,
        )
        return TransferOutcome(
            operation_id=op,
            sender_id=sender_id,
            recipient_id=target.user_id,
            amount=amount,
            sender_balance=sender_after.balance,
            recipient_balance=recipient_after.balance,
            sent_entry=receipt.debit_entry,
            received_entry=receipt.credit_entry,
        )

    async def _resolve_recipient(self, recipient: RecipientIdentity) -> Account:
        if recipient.user_id is not None:
            if not is_valid_uuid(recipient.user_id):
                raise RecipientNotFoundError(recipient.describe())
            try:
                return await self._ledger.get_account(recipient.user_id)
            except AccountNotFoundError:
                raise RecipientNotFoundError(recipient.describe()) from None
        account = await self._ledger.find_account_by_phone(recipient.phone or "")
        if account is None:
            raise RecipientNotFoundError(recipient.describe())
        return account

    # ------------------------------------------------------------------
    # Administrative top-up
    # ------------------------------------------------------------------

    async def add_balance(
        self,
        admin: Identity,
        user_id: str,
        amount: int,
        operation_id: str | None = None,
    ) -> BalanceAdded:
        if not admin.is_admin:
            raise AdminRequiredError()
        require_positive(amount)
        op = operation_id or new_id()
        await self._ledger.get_account(user_id)

        balance, entry = await self._ledger.credit_with_entry(
            user_id,
            amount,
            LedgerEntryKind.BALANCE_ADD.value,
            f"Balance added: {cents_to_display(amount)}",
            operation_id=sub_operation(op, "credit"),
        )
        logger.info(
            "Balance added: user=%s amount=%s admin=%s op=%s",
            user_id, cents_to_display(amount), admin.user_id, op,
        )
        return BalanceAdded(
            operation_id=op, user_id=user_id, amount=amount, balance=balance, entry=entry
        )
