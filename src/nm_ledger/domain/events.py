"""Typed ledger events and the in-process bus they are pushed to.

One event per successful mutating call, delivered after the call committed.
Subscribers are plain callables; the application layer forwards events to
Redis pub/sub for the UI and indexers.
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, ClassVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    name: ClassVar[str] = "LedgerEvent"

    def to_payload(self) -> dict[str, Any]:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True)
class NoteCreated(LedgerEvent):
    name: ClassVar[str] = "NoteCreated"
    note_id: int
    author: str
    title: str
    subject: str
    price: int
    content_hash: str


@dataclass(frozen=True)
class NotePurchased(LedgerEvent):
    name: ClassVar[str] = "NotePurchased"
    note_id: int
    buyer: str
    author: str
    price: int


@dataclass(frozen=True)
class NoteRated(LedgerEvent):
    name: ClassVar[str] = "NoteRated"
    note_id: int
    rater: str
    rating: int
    average_rating: int


@dataclass(frozen=True)
class PriceUpdated(LedgerEvent):
    name: ClassVar[str] = "PriceUpdated"
    note_id: int
    old_price: int
    new_price: int


@dataclass(frozen=True)
class SaleStatusUpdated(LedgerEvent):
    name: ClassVar[str] = "SaleStatusUpdated"
    note_id: int
    for_sale: bool


@dataclass(frozen=True)
class EarningsWithdrawn(LedgerEvent):
    name: ClassVar[str] = "EarningsWithdrawn"
    author: str
    amount: int


@dataclass(frozen=True)
class ProfileUpdated(LedgerEvent):
    name: ClassVar[str] = "ProfileUpdated"
    principal: str
    display_name: str
    bio: str


@dataclass(frozen=True)
class PlatformFeeUpdated(LedgerEvent):
    name: ClassVar[str] = "PlatformFeeUpdated"
    old_fee_bps: int
    new_fee_bps: int


@dataclass(frozen=True)
class ContractPaused(LedgerEvent):
    name: ClassVar[str] = "ContractPaused"
    paused: bool


@dataclass(frozen=True)
class UserVerified(LedgerEvent):
    name: ClassVar[str] = "UserVerified"
    principal: str


@dataclass(frozen=True)
class PlatformFeesWithdrawn(LedgerEvent):
    name: ClassVar[str] = "PlatformFeesWithdrawn"
    owner: str
    amount: int


@dataclass(frozen=True)
class OwnershipTransferred(LedgerEvent):
    name: ClassVar[str] = "OwnershipTransferred"
    previous_owner: str
    new_owner: str


EventHandler = Callable[[LedgerEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register handler; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: LedgerEvent) -> None:
        # A failing subscriber must not undo a committed ledger call.
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed on %s", handler, event.name)
