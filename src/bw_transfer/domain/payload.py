"""Peer-identification payload for wallet transfers.

The payload is a JSON object drawn by the client as a scannable code:

    {"kind": "wallet_transfer", "userId": "...", "phone": "...", "displayName": "..."}

decode() only ever raises MalformedPayloadError or WrongPayloadKindError.
A payload naming the caller decodes fine; the orchestrator refuses the
resulting self-transfer.
"""

import json
from dataclasses import dataclass

from src.bw_common.errors import InvalidPhoneError, MalformedPayloadError, WrongPayloadKindError
from src.bw_transfer.domain.phone import normalize_phone

PAYLOAD_KIND = "wallet_transfer"


@dataclass(frozen=True)
class TransferIdentity:
    user_id: str
    phone: str
    display_name: str = ""

    @classmethod
    def for_wallet(cls, user_id: str, phone: str) -> "TransferIdentity":
        return cls(user_id=user_id, phone=phone, display_name=f"Wallet {phone}")


@dataclass(frozen=True)
class RecipientIdentity:
    """Transfer target: a user id (scanned code) or a phone number (typed)."""

    user_id: str | None = None
    phone: str | None = None

    def __post_init__(self) -> None:
        if (self.user_id is None) == (self.phone is None):
            raise ValueError("RecipientIdentity needs exactly one of user_id or phone")

    @classmethod
    def from_payload(cls, identity: TransferIdentity) -> "RecipientIdentity":
        return cls(user_id=identity.user_id)

    @classmethod
    def from_phone(cls, raw: str) -> "RecipientIdentity":
        return cls(phone=normalize_phone(raw))

    def describe(self) -> str:
        return f"user {self.user_id}" if self.user_id is not None else f"phone {self.phone}"


def encode(identity: TransferIdentity) -> str:
    return json.dumps(
        {
            "kind": PAYLOAD_KIND,
            "userId": identity.user_id,
            "phone": identity.phone,
            "displayName": identity.display_name,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


def decode(raw: str) -> TransferIdentity:
    if not isinstance(raw, str):
        raise MalformedPayloadError("expected a string")
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        raise MalformedPayloadError() from None
    if not isinstance(data, dict):
        raise MalformedPayloadError("expected a JSON object")

    kind = data.get("kind")
    if kind != PAYLOAD_KIND:
        raise WrongPayloadKindError(kind)

    user_id = data.get("userId")
    phone = data.get("phone")
    display_name = data.get("displayName", "")
    if not isinstance(user_id, str) or not user_id:
        raise MalformedPayloadError("userId missing")
    if not isinstance(phone, str):
        raise MalformedPayloadError("phone missing")
    if not isinstance(display_name, str):
        raise MalformedPayloadError("displayName must be a string")
    try:
        normalize_phone(phone)
    except InvalidPhoneError:
        raise MalformedPayloadError("phone is not a phone number") from None
    return TransferIdentity(user_id=user_id, phone=phone, display_name=display_name)
