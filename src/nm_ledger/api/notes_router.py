"""Notes REST API: listing, purchase, rating and author controls.

Reads are public; every mutating endpoint requires a principal token.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.nm_common.database import get_db_session
from src.nm_common.response import ApiResponse, success_response
from src.nm_gateway.auth.dependencies import get_current_principal
from src.nm_ledger.api.dependencies import get_ledger_service
from src.nm_ledger.application.schemas import (
    CreateNoteRequest,
    PurchaseRequest,
    RateRequest,
    UpdatePriceRequest,
    UpdateSaleStatusRequest,
)
from src.nm_ledger.application.service import LedgerApplicationService

router = APIRouter(prefix="/notes", tags=["notes"])

Service = Annotated[LedgerApplicationService, Depends(get_ledger_service)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Caller = Annotated[str, Depends(get_current_principal)]


@router.post("")
async def create_note(
    body: CreateNoteRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.create_note(db, caller, body)
    return success_response(data.model_dump(), request)


@router.get("")
async def list_notes(
    db: Db,
    svc: Service,
    request: Request,
    subject: str | None = Query(None, description="Only notes in this subject"),
    author: str | None = Query(None, description="Only notes by this principal"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await svc.list_notes(db, subject, author, cursor, limit)
    return success_response(data.model_dump(), request)


@router.get("/count")
async def get_total_notes(db: Db, svc: Service, request: Request) -> ApiResponse:
    total = await svc.get_total_notes(db)
    return success_response({"total": total}, request)


@router.get("/{note_id}")
async def get_note(note_id: int, db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.get_note(db, note_id)
    return success_response(data.model_dump(), request)


@router.get("/{note_id}/owner")
async def get_note_owner(note_id: int, db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.get_token(db, note_id)
    return success_response({"note_id": note_id, "owner": data.owner}, request)


@router.get("/{note_id}/token-uri")
async def get_token_uri(note_id: int, db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.get_token(db, note_id)
    return success_response({"note_id": note_id, "token_uri": data.token_uri}, request)


@router.post("/{note_id}/purchase")
async def purchase_note(
    note_id: int, body: PurchaseRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.purchase_note(db, caller, note_id, body.payment_wei)
    return success_response(data.model_dump(), request)


@router.post("/{note_id}/rate")
async def rate_note(
    note_id: int, body: RateRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.rate_note(db, caller, note_id, body.rating)
    return success_response(data.model_dump(), request)


@router.patch("/{note_id}/price")
async def update_price(
    note_id: int, body: UpdatePriceRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.update_price(db, caller, note_id, body.new_price_wei)
    return success_response(data.model_dump(), request)


@router.patch("/{note_id}/sale-status")
async def update_sale_status(
    note_id: int,
    body: UpdateSaleStatusRequest,
    caller: Caller,
    db: Db,
    svc: Service,
    request: Request,
) -> ApiResponse:
    data = await svc.update_sale_status(db, caller, note_id, body.for_sale)
    return success_response(data.model_dump(), request)


@router.post("/{note_id}/toggle-sale")
async def toggle_sale_status(
    note_id: int, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.toggle_sale_status(db, caller, note_id)
    return success_response(data.model_dump(), request)
