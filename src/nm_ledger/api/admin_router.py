"""Admin REST API: owner-only operations.

Owner checks happen inside the ledger, so a non-owner token reaches the
service and is rejected there with NotOwnerError (1102).
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.nm_common.database import get_db_session
from src.nm_common.response import ApiResponse, success_response
from src.nm_gateway.auth.dependencies import get_current_principal
from src.nm_ledger.api.dependencies import get_ledger_service
from src.nm_ledger.application.schemas import (
    SetPausedRequest,
    TransferOwnershipRequest,
    UpdateFeeRequest,
)
from src.nm_ledger.application.service import LedgerApplicationService

router = APIRouter(prefix="/admin", tags=["admin"])

Service = Annotated[LedgerApplicationService, Depends(get_ledger_service)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Caller = Annotated[str, Depends(get_current_principal)]


@router.get("/config")
async def get_config(db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.get_config(db)
    return success_response(data.model_dump(), request)


@router.put("/fee")
async def update_platform_fee(
    body: UpdateFeeRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.update_platform_fee(db, caller, body.fee_bps)
    return success_response(data.model_dump(), request)


@router.put("/paused")
async def set_paused(
    body: SetPausedRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.set_paused(db, caller, body.paused)
    return success_response(data.model_dump(), request)


@router.post("/users/{principal}/verify")
async def verify_user(
    principal: str, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.verify_user(db, caller, principal)
    return success_response(data.model_dump(), request)


@router.post("/fees/withdraw")
async def withdraw_platform_fees(
    caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.withdraw_platform_fees(db, caller)
    return success_response(data.model_dump(), request)


@router.put("/owner")
async def transfer_ownership(
    body: TransferOwnershipRequest, caller: Caller, db: Db, svc: Service, request: Request
) -> ApiResponse:
    data = await svc.transfer_ownership(db, caller, body.new_owner)
    return success_response(data.model_dump(), request)


@router.get("/invariants")
async def check_invariants(caller: Caller, db: Db, svc: Service, request: Request) -> ApiResponse:
    data = await svc.check_invariants(db, caller)
    return success_response(data.model_dump(), request)
