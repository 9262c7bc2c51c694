"""Repository / publisher Protocols: dependency inversion for testability.

Unit tests inject mocks that conform to these Protocols.
Infrastructure layer provides the real implementations.
"""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.nm_ledger.domain.events import LedgerEvent
from src.nm_ledger.domain.models import JournalEntry, Payout


class JournalRepositoryProtocol(Protocol):
    async def append_entry(
        self,
        db: AsyncSession,
        operation: str,
        caller: str,
        payload: dict[str, Any],
        created_at: datetime,
    ) -> int: ...

    async def add_payout(self, db: AsyncSession, journal_id: int, payout: Payout) -> None: ...

    async def load_journal(self, db: AsyncSession) -> list[JournalEntry]: ...


class EventPublisherProtocol(Protocol):
    async def publish(self, event: LedgerEvent) -> None: ...
