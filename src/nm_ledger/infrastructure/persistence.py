"""JournalRepository: concrete implementation of JournalRepositoryProtocol.

Both tables are append-only. Transaction ownership: the CALLER
(LedgerApplicationService) commits or rolls back.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.nm_ledger.domain.models import JournalEntry, Payout

_INSERT_JOURNAL_SQL = text("""
    INSERT INTO ledger_journal (operation, caller, payload, created_at)
    VALUES (:operation, :caller, CAST(:payload AS JSONB), :created_at)
    RETURNING id
""")

_INSERT_PAYOUT_SQL = text("""
    INSERT INTO payouts (journal_id, recipient, amount, kind)
    VALUES (:journal_id, :recipient, :amount, :kind)
""")

_LOAD_JOURNAL_SQL = text("""
    SELECT id, operation, caller, payload, created_at
    FROM ledger_journal
    ORDER BY id ASC
""")


class JournalRepository:
    async def append_entry(
        self,
        db: AsyncSession,
        operation: str,
        caller: str,
        payload: dict[str, Any],
        created_at: datetime,
    ) -> int:
        result = await db.execute(
            _INSERT_JOURNAL_SQL,
            {
                "operation": operation,
                "caller": caller,
                "payload": json.dumps(payload),
                "created_at": created_at,
            },
        )
        return int(result.scalar_one())

    async def add_payout(self, db: AsyncSession, journal_id: int, payout: Payout) -> None:
        await db.execute(
            _INSERT_PAYOUT_SQL,
            {
                "journal_id": journal_id,
                "recipient": payout.recipient,
                "amount": Decimal(payout.amount),
                "kind": payout.kind.value,
            },
        )

    async def load_journal(self, db: AsyncSession) -> list[JournalEntry]:
        rows = (await db.execute(_LOAD_JOURNAL_SQL)).fetchall()
        return [_row_to_entry(row) for row in rows]


def _row_to_entry(row: Any) -> JournalEntry:
    payload = row.payload
    if isinstance(payload, str):
        payload = json.loads(payload)
    return JournalEntry(
        id=row.id,
        operation=row.operation,
        caller=row.caller,
        payload=payload,
        created_at=row.created_at,
    )
