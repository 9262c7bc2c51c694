"""Unit tests for JournalRepository SQL parameter binding."""

import json
from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from src.nm_common.enums import PayoutKind
from src.nm_ledger.domain.models import Payout
from src.nm_ledger.infrastructure.db_models import LedgerJournalORM, PayoutORM
from src.nm_ledger.infrastructure.persistence import JournalRepository

TS = datetime(2026, 6, 1, 8, 0, tzinfo=UTC)


class TestAppendEntry:
    async def test_binds_payload_as_json(self) -> None:
        db = AsyncMock()
        result = MagicMock()
        result.scalar_one.return_value = 42
        db.execute.return_value = result

        entry_id = await JournalRepository().append_entry(
            db, "PURCHASE_NOTE", "0xbob", {"note_id": 0, "payment": 10**20}, TS
        )

        assert entry_id == 42
        params = db.execute.await_args.args[1]
        assert params["operation"] == "PURCHASE_NOTE"
        assert params["caller"] == "0xbob"
        assert params["created_at"] == TS
        # wei amounts beyond 64 bits survive the JSON round trip
        assert json.loads(params["payload"]) == {"note_id": 0, "payment": 10**20}


class TestAddPayout:
    async def test_amount_bound_as_decimal(self) -> None:
        db = AsyncMock()
        payout = Payout(recipient="0xalice", amount=97_500_000_000_000_000, kind=PayoutKind.EARNINGS)

        await JournalRepository().add_payout(db, 7, payout)

        params = db.execute.await_args.args[1]
        assert params == {
            "journal_id": 7,
            "recipient": "0xalice",
            "amount": Decimal(97_500_000_000_000_000),
            "kind": "EARNINGS",
        }


class TestLoadJournal:
    async def test_rows_become_entries(self) -> None:
        rows = [
            SimpleNamespace(id=1, operation="CREATE_NOTE", caller="0xa", payload={"title": "x"}, created_at=TS),
            SimpleNamespace(id=2, operation="SET_PAUSED", caller="0xo", payload='{"paused": true}', created_at=TS),
        ]
        db = AsyncMock()
        result = MagicMock()
        result.fetchall.return_value = rows
        db.execute.return_value = result

        entries = await JournalRepository().load_journal(db)

        assert [e.id for e in entries] == [1, 2]
        assert entries[0].payload == {"title": "x"}
        assert entries[1].payload == {"paused": True}
        assert entries[1].created_at == TS


def test_orm_tables_match_migrations() -> None:
    journal_cols = set(LedgerJournalORM.__table__.columns.keys())
    payout_cols = set(PayoutORM.__table__.columns.keys())
    assert journal_cols == {"id", "operation", "caller", "payload", "created_at"}
    assert payout_cols == {"id", "journal_id", "recipient", "amount", "kind", "created_at"}
    assert PayoutORM.__table__.c.amount.type.precision == 78
