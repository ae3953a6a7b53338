"""Identity helpers shared by the HTTP tests."""

import uuid

from src.bw_gateway.auth.jwt_handler import create_identity_token


def new_user_id() -> str:
    return str(uuid.uuid4())


def bearer(user_id: str, phone: str, is_admin: bool = False) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_identity_token(user_id, phone, is_admin)}"}
