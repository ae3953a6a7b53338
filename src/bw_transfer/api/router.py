"""Peer-to-peer transfer endpoints.

GET  /transfers/my-code    payload the client draws as the caller's scannable code
POST /transfers            send funds to a typed phone number or a scanned payload
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.bw_common.money import to_cents
from src.bw_common.response import ApiResponse, success_response
from src.bw_gateway.auth.dependencies import get_current_identity, get_operation_id
from src.bw_gateway.auth.identity import Identity
from src.bw_transfer.application.schemas import (
    TransferCodeResponse,
    TransferRequest,
    TransferResponse,
)
from src.bw_transfer.domain.payload import TransferIdentity
from src.wiring import Engine, get_engine

router = APIRouter(prefix="/transfers", tags=["transfers"])


@router.get("/my-code")
async def my_code(
    identity: Annotated[Identity, Depends(get_current_identity)],
    request: Request,
) -> ApiResponse:
    data = TransferCodeResponse.from_identity(
        TransferIdentity.for_wallet(identity.user_id, identity.phone)
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("")
async def send_transfer(
    body: TransferRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    operation_id: Annotated[str, Depends(get_operation_id)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    amount = to_cents(body.amount)
    recipient = body.recipient()
    await engine.wallet.ensure_account(identity.user_id, identity.phone)
    outcome = await engine.orchestrator.transfer(
        identity.user_id,
        recipient,
        amount,
        operation_id,
    )
    resp = success_response(TransferResponse.from_domain(outcome).model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
