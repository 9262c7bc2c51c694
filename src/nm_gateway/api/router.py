"""Auth API router: development token issuing.

Production tokens come from the wallet-login service; this endpoint exists
for local development and is disabled unless ALLOW_DEV_TOKENS=True.
"""

from fastapi import APIRouter, Request, status

from config.settings import settings
from src.nm_common.errors import AppError
from src.nm_common.response import ApiResponse, success_response
from src.nm_gateway.api.schemas import TokenRequest, TokenResponse
from src.nm_gateway.auth.jwt_handler import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/token",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="Issue a development principal token",
)
async def issue_token(request: Request, body: TokenRequest) -> ApiResponse:
    if not settings.ALLOW_DEV_TOKENS:
        raise AppError(1002, "Token issuing is disabled", 403)
    data = TokenResponse(
        access_token=create_access_token(body.principal),
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        principal=body.principal,
    )
    resp = success_response(data.model_dump(), request)
    resp.message = "Token issued"
    return resp
