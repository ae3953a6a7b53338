"""Marketplace and library REST endpoints.

GET    /marketplace/listings                  AVAILABLE listings, active ads first
GET    /marketplace/listings/{listing_id}     single listing
POST   /marketplace/listings                  direct listing (optionally advertised)
GET    /library/items                         caller's library
POST   /library/items                         add a book to the library
POST   /library/items/{item_id}/publish       put a library item up for sale
POST   /library/items/{item_id}/unpublish     withdraw it
DELETE /library/items/{item_id}               remove it (unpublishes first)
GET    /library/purchases                     caller's purchase history

Purchase itself is an orchestrated operation, see bw_orchestrator.api.router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.bw_catalog.application.schemas import (
    BookFieldsRequest,
    CreateListingRequest,
    PublishRequest,
)
from src.bw_common.response import ApiResponse, success_response
from src.bw_gateway.auth.dependencies import get_current_identity
from src.bw_gateway.auth.identity import Identity
from src.wiring import Engine, get_engine

marketplace_router = APIRouter(prefix="/marketplace", tags=["marketplace"])
library_router = APIRouter(prefix="/library", tags=["library"])


def _with_request_id(resp: ApiResponse, request: Request) -> ApiResponse:
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@marketplace_router.get("/listings")
async def list_listings(
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
    city: str | None = Query(None, description="Exact city match"),
    q: str | None = Query(None, description="Case-insensitive title/author search"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await engine.catalog_service.list_marketplace(city, q, limit)
    return _with_request_id(success_response(data.model_dump()), request)


@marketplace_router.get("/listings/{listing_id}")
async def get_listing(
    listing_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    data = await engine.catalog_service.get_listing(listing_id)
    return _with_request_id(success_response(data.model_dump()), request)


@marketplace_router.post("/listings", status_code=201)
async def create_listing(
    body: CreateListingRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    await engine.wallet.ensure_account(identity.user_id, identity.phone)
    data = await engine.catalog_service.create_listing(identity.user_id, body)
    return _with_request_id(success_response(data.model_dump()), request)


@library_router.get("/items")
async def list_library(
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    data = await engine.catalog_service.list_library(identity.user_id)
    return _with_request_id(success_response(data.model_dump()), request)


@library_router.post("/items", status_code=201)
async def create_library_item(
    body: BookFieldsRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    data = await engine.catalog_service.create_library_item(identity.user_id, body)
    return _with_request_id(success_response(data.model_dump()), request)


@library_router.post("/items/{item_id}/publish", status_code=201)
async def publish_item(
    item_id: str,
    body: PublishRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    await engine.wallet.ensure_account(identity.user_id, identity.phone)
    data = await engine.catalog_service.publish(identity.user_id, item_id, body)
    return _with_request_id(success_response(data.model_dump()), request)


@library_router.post("/items/{item_id}/unpublish")
async def unpublish_item(
    item_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    data = await engine.catalog_service.unpublish(identity.user_id, item_id)
    return _with_request_id(success_response(data.model_dump()), request)


@library_router.delete("/items/{item_id}")
async def delete_item(
    item_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    await engine.catalog_service.delete_library_item(identity.user_id, item_id)
    return _with_request_id(success_response({"id": item_id, "deleted": True}), request)


@library_router.get("/purchases")
async def list_purchases(
    identity: Annotated[Identity, Depends(get_current_identity)],
    engine: Annotated[Engine, Depends(get_engine)],
    request: Request,
) -> ApiResponse:
    data = await engine.catalog_service.list_purchases(identity.user_id)
    return _with_request_id(success_response(data.model_dump()), request)
