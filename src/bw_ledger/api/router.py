"""Wallet REST API: balance, history, summary, reconciliation. JWT required."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.bw_common.enums import LedgerEntryKind
from src.bw_common.response import ApiResponse, success_response
from src.bw_gateway.auth.dependencies import get_current_identity
from src.bw_gateway.auth.identity import Identity
from src.wiring import Engine, get_engine

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/balance")
async def get_balance(
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    await engine.wallet.ensure_account(identity.user_id, identity.phone)
    data = await engine.wallet.get_balance(identity.user_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/ledger")
async def list_ledger(
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    kind: LedgerEntryKind | None = Query(None, description="Filter by entry kind"),
) -> ApiResponse:
    data = await engine.wallet.list_ledger(
        identity.user_id, cursor, limit, kind.value if kind else None
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/summary")
async def get_summary(
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    await engine.wallet.ensure_account(identity.user_id, identity.phone)
    data = await engine.wallet.get_summary(identity.user_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/reconcile")
async def reconcile(
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
    user_id: str | None = Query(None, description="Admins may reconcile any account"),
) -> ApiResponse:
    target = user_id if (user_id and identity.is_admin) else identity.user_id
    data = await engine.wallet.reconcile(target)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
