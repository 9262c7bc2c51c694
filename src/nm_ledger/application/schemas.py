"""Pydantic schemas and cursor utilities for the nm_ledger API.

Amounts travel as integer wei (`*_wei`) with a display string next to them.
Business-rule bounds (positive price, rating 1-5, fee cap) are checked by the
ledger so that rejections carry the ledger's own reason; the schemas only
enforce types and sizes.
"""

import base64
import json

from pydantic import BaseModel, Field

from src.nm_common.amounts import wei_to_display
from src.nm_common.datetime_utils import to_unix
from src.nm_ledger.domain.models import (
    LedgerConfig,
    Note,
    PurchaseReceipt,
    UserProfile,
)

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a note id into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateNoteRequest(BaseModel):
    title: str = Field(..., max_length=200)
    description: str = Field("", max_length=5000)
    content_hash: str = Field(..., max_length=200, description="Content address of the file")
    price_wei: int
    subject: str = Field(..., max_length=100)
    metadata_uri: str = Field("", max_length=500)


class PurchaseRequest(BaseModel):
    payment_wei: int = Field(..., ge=0, description="Attached payment; excess is refunded")


class RateRequest(BaseModel):
    rating: int


class UpdatePriceRequest(BaseModel):
    new_price_wei: int


class UpdateSaleStatusRequest(BaseModel):
    for_sale: bool


class UpdateProfileRequest(BaseModel):
    name: str = Field("", max_length=100)
    bio: str = Field("", max_length=1000)


class UpdateFeeRequest(BaseModel):
    fee_bps: int


class SetPausedRequest(BaseModel):
    paused: bool


class TransferOwnershipRequest(BaseModel):
    new_owner: str = Field(..., max_length=128)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class NoteResponse(BaseModel):
    id: int
    title: str
    description: str
    content_hash: str
    author: str
    price_wei: int
    price_display: str
    for_sale: bool
    status: str
    subject: str
    metadata_uri: str
    average_rating: int
    rating_count: int
    rating_sum: int
    download_count: int
    created_at: str  # ISO8601 string
    created_at_unix: int

    @classmethod
    def from_domain(cls, note: Note) -> "NoteResponse":
        return cls(
            id=note.id,
            title=note.title,
            description=note.description,
            content_hash=note.content_hash,
            author=note.author,
            price_wei=note.price,
            price_display=wei_to_display(note.price),
            for_sale=note.for_sale,
            status=note.status.value,
            subject=note.subject,
            metadata_uri=note.metadata_uri,
            average_rating=note.average_rating,
            rating_count=note.rating_count,
            rating_sum=note.rating_sum,
            download_count=note.download_count,
            created_at=note.created_at.isoformat(),
            created_at_unix=to_unix(note.created_at),
        )


class NoteListResponse(BaseModel):
    items: list[NoteResponse]
    next_cursor: str | None
    has_more: bool


class NoteIdListResponse(BaseModel):
    note_ids: list[int]
    count: int

    @classmethod
    def from_ids(cls, ids: list[int]) -> "NoteIdListResponse":
        return cls(note_ids=ids, count=len(ids))


class PurchaseResponse(BaseModel):
    note_id: int
    buyer: str
    author: str
    price_wei: int
    price_display: str
    author_share_wei: int
    platform_fee_wei: int
    refund_wei: int

    @classmethod
    def from_receipt(cls, receipt: PurchaseReceipt) -> "PurchaseResponse":
        return cls(
            note_id=receipt.note_id,
            buyer=receipt.buyer,
            author=receipt.author,
            price_wei=receipt.price,
            price_display=wei_to_display(receipt.price),
            author_share_wei=receipt.author_share,
            platform_fee_wei=receipt.platform_fee,
            refund_wei=receipt.refund,
        )


class RatingResponse(BaseModel):
    note_id: int
    rating: int
    average_rating: int
    rating_count: int


class PurchaseStatusResponse(BaseModel):
    principal: str
    note_id: int
    has_purchased: bool
    rating: int  # 0 = not rated


class WithdrawalResponse(BaseModel):
    recipient: str
    amount_wei: int
    amount_display: str

    @classmethod
    def from_amount(cls, recipient: str, amount: int) -> "WithdrawalResponse":
        return cls(recipient=recipient, amount_wei=amount, amount_display=wei_to_display(amount))


class EarningsResponse(BaseModel):
    principal: str
    pending_wei: int
    pending_display: str
    total_earnings_wei: int


class ProfileResponse(BaseModel):
    principal: str
    name: str
    bio: str
    verified: bool
    total_earnings_wei: int
    notes_created: int

    @classmethod
    def from_domain(cls, profile: UserProfile) -> "ProfileResponse":
        return cls(
            principal=profile.principal,
            name=profile.name,
            bio=profile.bio,
            verified=profile.verified,
            total_earnings_wei=profile.total_earnings,
            notes_created=profile.notes_created,
        )


class ConfigResponse(BaseModel):
    owner: str
    platform_fee_bps: int
    max_platform_fee_bps: int
    paused: bool
    platform_fee_balance_wei: int
    platform_fee_balance_display: str
    total_notes: int

    @classmethod
    def from_domain(
        cls, config: LedgerConfig, fee_balance: int, total_notes: int
    ) -> "ConfigResponse":
        return cls(
            owner=config.owner,
            platform_fee_bps=config.platform_fee_bps,
            max_platform_fee_bps=config.max_platform_fee_bps,
            paused=config.paused,
            platform_fee_balance_wei=fee_balance,
            platform_fee_balance_display=wei_to_display(fee_balance),
            total_notes=total_notes,
        )


class TokenResponse(BaseModel):
    note_id: int
    owner: str
    token_uri: str


class InvariantReport(BaseModel):
    ok: bool
    violations: list[str]
