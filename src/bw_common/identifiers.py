"""Identifier helpers.

All record ids are UUID4 strings. User ids come from the identity provider
and are checked for shape before the engine touches any record.
"""

import re
import uuid

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def new_id() -> str:
    return str(uuid.uuid4())


def is_valid_uuid(value: str | None) -> bool:
    return bool(value) and _UUID_RE.match(value) is not None  # type: ignore[arg-type]


def sub_operation(operation_id: str | None, step: str) -> str | None:
    """Derive the idempotency key of one step of a larger operation.

    sub_operation("op-1", "debit") -> "op-1:debit"; None stays None.
    """
    if operation_id is None:
        return None
    return f"{operation_id}:{step}"


def caller_operation_id(user_id: str, idempotency_key: str) -> str:
    """Scope a client Idempotency-Key to its caller so keys never collide across users."""
    return f"{user_id}:{idempotency_key}"
