"""Tests for bw_common.identifiers."""

import uuid

from src.bw_common.identifiers import (
    caller_operation_id,
    is_valid_uuid,
    new_id,
    sub_operation,
)


def test_new_id_is_uuid() -> None:
    assert is_valid_uuid(new_id())


def test_is_valid_uuid_rejects_garbage() -> None:
    assert not is_valid_uuid("user-1")
    assert not is_valid_uuid("")
    assert not is_valid_uuid(None)
    assert is_valid_uuid(str(uuid.uuid4()).upper())


def test_sub_operation() -> None:
    assert sub_operation("op-1", "debit") == "op-1:debit"
    assert sub_operation(None, "debit") is None


def test_caller_operation_id_scopes_by_user() -> None:
    assert caller_operation_id("u1", "k") == "u1:k"
    assert caller_operation_id("u1", "k") != caller_operation_id("u2", "k")
