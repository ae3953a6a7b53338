"""Pydantic schemas for the transfer API."""

from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from src.bw_common.money import cents_to_display
from src.bw_orchestrator.domain.models import TransferOutcome
from src.bw_transfer.domain.payload import (
    RecipientIdentity,
    TransferIdentity,
    decode,
    encode,
)


class TransferRequest(BaseModel):
    """Exactly one of phone (typed) or payload (scanned code) names the recipient."""

    amount: Decimal
    phone: str | None = Field(None, max_length=32)
    payload: str | None = Field(None, max_length=2048)

    @model_validator(mode="after")
    def _one_recipient(self) -> "TransferRequest":
        if (self.phone is None) == (self.payload is None):
            raise ValueError("provide exactly one of phone or payload")
        return self

    def recipient(self) -> RecipientIdentity:
        if self.payload is not None:
            return RecipientIdentity.from_payload(decode(self.payload))
        return RecipientIdentity.from_phone(self.phone or "")


class TransferCodeResponse(BaseModel):
    payload: str
    user_id: str
    phone: str
    display_name: str

    @classmethod
    def from_identity(cls, identity: TransferIdentity) -> "TransferCodeResponse":
        return cls(
            payload=encode(identity),
            user_id=identity.user_id,
            phone=identity.phone,
            display_name=identity.display_name,
        )


class TransferResponse(BaseModel):
    operation_id: str
    recipient_id: str
    amount_cents: int
    amount_display: str
    balance_cents: int
    balance_display: str
    entry_id: str

    @classmethod
    def from_domain(cls, r: TransferOutcome) -> "TransferResponse":
        return cls(
            operation_id=r.operation_id,
            recipient_id=r.recipient_id,
            amount_cents=r.amount,
            amount_display=cents_to_display(r.amount),
            balance_cents=r.sender_balance,
            balance_display=cents_to_display(r.sender_balance),
            entry_id=r.sent_entry.id,
        )
