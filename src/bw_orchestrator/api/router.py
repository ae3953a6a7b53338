"""Money-moving endpoints that need both Ledger and Catalog.

POST /marketplace/listings/{listing_id}/purchase
POST /wallet/top-up                              (admin)

Both accept an Idempotency-Key header; replaying a key resumes or repeats the
same operation instead of starting a new one. Without the header a key is
generated and returned in the envelope of a retriable error.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.bw_common.money import to_cents
from src.bw_common.response import ApiResponse, success_response
from src.bw_gateway.auth.dependencies import (
    get_current_identity,
    get_operation_id,
    require_admin,
)
from src.bw_gateway.auth.identity import Identity
from src.bw_orchestrator.application.schemas import (
    PurchaseReceiptResponse,
    TopUpRequest,
    TopUpResponse,
)
from src.wiring import Engine, get_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transactions"])


@router.post("/marketplace/listings/{listing_id}/purchase")
async def purchase_listing(
    listing_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    operation_id: Annotated[str, Depends(get_operation_id)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    await engine.wallet.ensure_account(identity.user_id, identity.phone)
    receipt = await engine.orchestrator.purchase(identity.user_id, listing_id, operation_id)
    resp = success_response(PurchaseReceiptResponse.from_domain(receipt).model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/wallet/top-up")
async def top_up(
    body: TopUpRequest,
    admin: Annotated[Identity, Depends(require_admin)],
    operation_id: Annotated[str, Depends(get_operation_id)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    result = await engine.orchestrator.add_balance(
        admin, body.user_id, to_cents(body.amount), operation_id
    )
    resp = success_response(TopUpResponse.from_domain(result).model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
