"""Pydantic schemas for nm_gateway auth."""

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    principal: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    principal: str
