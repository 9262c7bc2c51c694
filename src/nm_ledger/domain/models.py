"""Domain models for nm_ledger: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.nm_common.enums import NoteStatus, PayoutKind


@dataclass
class Note:
    id: int
    title: str
    description: str
    content_hash: str        # opaque pointer to off-ledger file content
    author: str
    price: int               # wei, always > 0
    for_sale: bool
    created_at: datetime
    subject: str
    metadata_uri: str = ""
    rating_sum: int = 0
    rating_count: int = 0
    download_count: int = 0

    @property
    def average_rating(self) -> int:
        """Integer-truncated mean of accepted ratings, 0 when unrated."""
        if self.rating_count == 0:
            return 0
        return self.rating_sum // self.rating_count

    @property
    def status(self) -> NoteStatus:
        return NoteStatus.ACTIVE if self.for_sale else NoteStatus.DELISTED


@dataclass
class LedgerConfig:
    owner: str
    platform_fee_bps: int = 250
    max_platform_fee_bps: int = 1000
    paused: bool = False

    def __post_init__(self) -> None:
        if not (0 <= self.platform_fee_bps <= self.max_platform_fee_bps):
            raise ValueError(
                f"platform_fee_bps must be 0-{self.max_platform_fee_bps}, "
                f"got {self.platform_fee_bps}"
            )


@dataclass
class UserProfile:
    principal: str
    name: str = ""
    bio: str = ""
    verified: bool = False
    total_earnings: int = 0  # cumulative author credit, not reduced by withdrawals
    notes_created: int = 0


@dataclass(frozen=True)
class PurchaseReceipt:
    note_id: int
    buyer: str
    author: str
    price: int
    author_share: int
    platform_fee: int
    refund: int


@dataclass(frozen=True)
class Payout:
    recipient: str
    amount: int
    kind: PayoutKind


@dataclass(frozen=True)
class LedgerTotals:
    """Money counters used by the conservation check."""

    author_balances: int
    platform_fee_balance: int
    accepted: int    # sum of note prices retained by purchases
    withdrawn: int   # earnings + platform fees paid out
    refunded: int    # excess payment returned to buyers


@dataclass(frozen=True)
class AuditSnapshot:
    config: LedgerConfig
    totals: LedgerTotals
    notes: list[Note]
    purchasers: dict[int, int] = field(default_factory=dict)  # note_id -> buyer count
    raters: dict[int, int] = field(default_factory=dict)      # note_id -> rater count


@dataclass
class JournalEntry:
    id: int                       # BIGSERIAL
    operation: str                # LedgerOperation value
    caller: str
    payload: dict[str, Any]
    created_at: datetime
