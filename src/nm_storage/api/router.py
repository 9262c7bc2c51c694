"""Content upload relay: one endpoint, requires a principal token."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pydantic import BaseModel

from src.nm_common.response import ApiResponse, success_response
from src.nm_gateway.auth.dependencies import get_current_principal
from src.nm_storage.pinning import PinningClient

router = APIRouter(prefix="/uploads", tags=["uploads"])

_client = PinningClient()


def get_pinning_client() -> PinningClient:
    return _client


class UploadResponse(BaseModel):
    content_hash: str
    url: str
    size: int
    filename: str


@router.post("")
async def upload_file(
    caller: Annotated[str, Depends(get_current_principal)],
    client: Annotated[PinningClient, Depends(get_pinning_client)],
    request: Request,
    file: UploadFile = File(...),
) -> ApiResponse:
    content = await file.read()
    filename = file.filename or "upload"
    content_hash = await client.pin_file(
        filename,
        content,
        file.content_type or "application/octet-stream",
        uploader=caller,
    )
    data = UploadResponse(
        content_hash=content_hash,
        url=client.gateway_url(content_hash),
        size=len(content),
        filename=filename,
    )
    return success_response(data.model_dump(), request)
