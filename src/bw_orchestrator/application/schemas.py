"""Pydantic schemas for orchestrated operations (purchase, top-up)."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.bw_catalog.application.schemas import PurchaseRecordResponse
from src.bw_common.money import cents_to_display
from src.bw_orchestrator.domain.models import BalanceAdded, PurchaseReceipt


class PurchaseReceiptResponse(BaseModel):
    operation_id: str
    listing_id: str
    status: str
    purchase: PurchaseRecordResponse
    balance_cents: int
    balance_display: str
    books_owned: int
    resumed: bool

    @classmethod
    def from_domain(cls, r: PurchaseReceipt) -> "PurchaseReceiptResponse":
        return cls(
            operation_id=r.operation_id,
            listing_id=r.listing.id,
            status=r.listing.status,
            purchase=PurchaseRecordResponse.from_domain(r.record),
            balance_cents=r.buyer_balance,
            balance_display=cents_to_display(r.buyer_balance),
            books_owned=r.books_owned,
            resumed=r.resumed,
        )


class TopUpRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    amount: Decimal


class TopUpResponse(BaseModel):
    operation_id: str
    user_id: str
    amount_cents: int
    balance_cents: int
    balance_display: str
    entry_id: str

    @classmethod
    def from_domain(cls, r: BalanceAdded) -> "TopUpResponse":
        return cls(
            operation_id=r.operation_id,
            user_id=r.user_id,
            amount_cents=r.amount,
            balance_cents=r.balance,
            balance_display=cents_to_display(r.balance),
            entry_id=r.entry.id,
        )
