"""Per-principal views: purchases, authored notes, profiles and earnings."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.nm_common.database import get_db_session
from src.nm_common.response import ApiResponse, success_response
from src.nm_gateway.auth.dependencies import get_current_principal
from src.nm_ledger.api.dependencies import get_ledger_service
from src.nm_ledger.application.schemas import UpdateProfileRequest
from src.nm_ledger.application.service import LedgerApplicationService

router = APIRouter(tags=["users"])

Service = Annotated[LedgerApplicationService, Depends(get_ledger_service)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Caller = Annotated[str, Depends(get_current_principal)]


@router.get("/users/{principal}/purchases")
async def get_user_purchases(
    principal: str, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.get_user_purchases(db, principal)
    return success_response(data.model_dump(), request)


@router.get("/users/{principal}/purchases/{note_id}")
async def get_purchase_status(
    principal: str, note_id: int, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.get_purchase_status(db, principal, note_id)
    return success_response(data.model_dump(), request)


@router.get("/users/{principal}/notes")
async def get_notes_by_author(
    principal: str, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.get_notes_by_author(db, principal)
    return success_response(data.model_dump(), request)


@router.get("/subjects/{subject}/notes")
async def get_notes_by_subject(
    subject: str, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.get_notes_by_subject(db, subject)
    return success_response(data.model_dump(), request)


# /profiles/me must be registered before /profiles/{principal}
@router.get("/profiles/me")
async def get_my_profile(caller: Caller, db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.get_profile(db, caller)
    return success_response(data.model_dump(), request)


@router.put("/profiles/me")
async def update_my_profile(
    body: UpdateProfileRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.update_profile(db, caller, body.name, body.bio)
    return success_response(data.model_dump(), request)


@router.get("/profiles/{principal}")
async def get_profile(principal: str, db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.get_profile(db, principal)
    return success_response(data.model_dump(), request)


@router.get("/earnings/me")
async def get_my_earnings(caller: Caller, db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.get_earnings(db, caller)
    return success_response(data.model_dump(), request)


@router.post("/earnings/withdraw")
async def withdraw_earnings(
    caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.withdraw_earnings(db, caller)
    return success_response(data.model_dump(), request)
