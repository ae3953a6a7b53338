"""Tests for the wallet transfer payload and phone normalisation."""

import json

import pytest

from src.bw_common.errors import InvalidPhoneError, MalformedPayloadError, WrongPayloadKindError
from src.bw_transfer.domain.payload import (
    PAYLOAD_KIND,
    RecipientIdentity,
    TransferIdentity,
    decode,
    encode,
)
from src.bw_transfer.domain.phone import normalize_phone

USER = "a0000000-0000-4000-8000-000000000001"


class TestEncodeDecode:
    @pytest.mark.parametrize(
        "identity",
        [
            TransferIdentity(USER, "+212600000001", "Wallet +212600000001"),
            TransferIdentity(USER, "0600000001"),
            TransferIdentity(USER, "+212600000001", "محفظة"),
        ],
    )
    def test_round_trip(self, identity: TransferIdentity) -> None:
        assert decode(encode(identity)) == identity

    def test_payload_shape(self) -> None:
        data = json.loads(encode(TransferIdentity.for_wallet(USER, "+212600000001")))
        assert data == {
            "kind": "wallet_transfer",
            "userId": USER,
            "phone": "+212600000001",
            "displayName": "Wallet +212600000001",
        }

    def test_display_name_optional(self) -> None:
        raw = json.dumps({"kind": PAYLOAD_KIND, "userId": USER, "phone": "0600000001"})
        assert decode(raw).display_name == ""


class TestDecodeErrors:
    @pytest.mark.parametrize("raw", ["", "not json", "{", "[1, 2]", "42", "null", '"text"'])
    def test_not_an_object(self, raw: str) -> None:
        with pytest.raises(MalformedPayloadError):
            decode(raw)

    @pytest.mark.parametrize("kind", ["bank_transfer", None, 1, ""])
    def test_wrong_kind(self, kind: object) -> None:
        raw = json.dumps({"kind": kind, "userId": USER, "phone": "0600000001"})
        with pytest.raises(WrongPayloadKindError):
            decode(raw)

    def test_missing_kind(self) -> None:
        with pytest.raises(WrongPayloadKindError):
            decode(json.dumps({"userId": USER, "phone": "0600000001"}))

    @pytest.mark.parametrize(
        "fields",
        [
            {"phone": "0600000001"},
            {"userId": "", "phone": "0600000001"},
            {"userId": 42, "phone": "0600000001"},
            {"userId": USER},
            {"userId": USER, "phone": "call me"},
            {"userId": USER, "phone": "0600000001", "displayName": ["x"]},
        ],
    )
    def test_bad_fields(self, fields: dict) -> None:
        with pytest.raises(MalformedPayloadError):
            decode(json.dumps({"kind": PAYLOAD_KIND, **fields}))

    def test_non_string_input(self) -> None:
        with pytest.raises(MalformedPayloadError):
            decode(b"{}")  # type: ignore[arg-type]

    def test_self_payload_decodes(self) -> None:
        # The orchestrator, not the decoder, refuses self-transfers
        identity = decode(encode(TransferIdentity(USER, "0600000001")))
        assert identity.user_id == USER


class TestNormalizePhone:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("+212 600-11.22.33", "+212600112233"),
            ("0600112233", "0600112233"),
            ("(0600) 11 22 33", "0600112233"),
        ],
    )
    def test_valid(self, raw: str, expected: str) -> None:
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["", "1234567", "+1234567890123456", "06OO112233", "++212600112233"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(InvalidPhoneError):
            normalize_phone(raw)


class TestRecipientIdentity:
    def test_from_phone_normalizes(self) -> None:
        assert RecipientIdentity.from_phone("0600 11 22 33").phone == "0600112233"

    def test_from_payload_uses_user_id(self) -> None:
        recipient = RecipientIdentity.from_payload(TransferIdentity(USER, "0600112233"))
        assert recipient.user_id == USER
        assert recipient.phone is None

    def test_exactly_one_reference(self) -> None:
        with pytest.raises(ValueError):
            RecipientIdentity()
        with pytest.raises(ValueError):
            RecipientIdentity(user_id=USER, phone="0600112233")
