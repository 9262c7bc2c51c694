"""Integration-test fixtures.

The full FastAPI app runs in-process through ASGITransport. The database
session, journal repository, event publisher and pinning service are
replaced with in-memory fakes so the HTTP surface, error envelope and
ledger semantics are exercised end to end without PostgreSQL or Redis.
"""

from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.nm_common.database import get_db_session
from src.nm_ledger.api.dependencies import get_ledger_service
from src.nm_ledger.application.service import LedgerApplicationService
from src.nm_ledger.domain.events import LedgerEvent
from src.nm_ledger.domain.models import JournalEntry, LedgerConfig, Payout
from src.nm_storage.api.router import get_pinning_client
from src.nm_storage.pinning import PinningClient

OWNER = "0x00000000000000000000000000000000000000aa"


class InMemoryJournalRepository:
    def __init__(self) -> None:
        self.entries: list[JournalEntry] = []
        self.payouts: list[tuple[int, Payout]] = []

    async def append_entry(
        self,
        db: Any,
        operation: str,
        caller: str,
        payload: dict[str, Any],
        created_at: datetime,
    ) -> int:
        entry = JournalEntry(
            id=len(self.entries) + 1,
            operation=operation,
            caller=caller,
            payload=dict(payload),
            created_at=created_at,
        )
        self.entries.append(entry)
        return entry.id

    async def add_payout(self, db: Any, journal_id: int, payout: Payout) -> None:
        self.payouts.append((journal_id, payout))

    async def load_journal(self, db: Any) -> list[JournalEntry]:
        return list(self.entries)


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[LedgerEvent] = []

    async def publish(self, event: LedgerEvent) -> None:
        self.events.append(event)


def _pinning_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"IpfsHash": "QmUploadedNote", "PinSize": 12})


@pytest.fixture
def journal() -> InMemoryJournalRepository:
    return InMemoryJournalRepository()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(
    journal: InMemoryJournalRepository, publisher: RecordingPublisher
) -> LedgerApplicationService:
    return LedgerApplicationService(
        repo=journal,
        publisher=publisher,
        config_factory=lambda: LedgerConfig(owner=OWNER),
    )


@pytest.fixture
async def client(service: LedgerApplicationService) -> AsyncGenerator[AsyncClient, None]:
    async def _db() -> AsyncGenerator[AsyncMock, None]:
        yield AsyncMock()

    pinning = PinningClient(
        api_url="https://pin.example/pinFileToIPFS",
        jwt_token="test",
        gateway_url="https://gw.example/ipfs",
        max_bytes=1024,
        transport=httpx.MockTransport(_pinning_handler),
    )
    app.dependency_overrides[get_db_session] = _db
    app.dependency_overrides[get_ledger_service] = lambda: service
    app.dependency_overrides[get_pinning_client] = lambda: pinning
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
