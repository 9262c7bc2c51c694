"""001: create ledger_journal table

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_journal (
            id              BIGSERIAL       PRIMARY KEY,
            operation       VARCHAR(40)     NOT NULL,
            caller          VARCHAR(128)    NOT NULL,
            payload         JSONB           NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_journal_operation CHECK (
                operation IN (
                    'INITIALIZE',
                    'CREATE_NOTE',
                    'PURCHASE_NOTE',
                    'RATE_NOTE',
                    'UPDATE_PRICE',
                    'UPDATE_SALE_STATUS',
                    'TOGGLE_SALE_STATUS',
                    'WITHDRAW_EARNINGS',
                    'UPDATE_PROFILE',
                    'UPDATE_PLATFORM_FEE',
                    'SET_PAUSED',
                    'VERIFY_USER',
                    'WITHDRAW_PLATFORM_FEES',
                    'TRANSFER_OWNERSHIP'
                )
            )
        );
    """)
    op.execute("CREATE INDEX idx_journal_caller ON ledger_journal (caller, id);")
    op.execute("COMMENT ON TABLE ledger_journal IS 'Accepted ledger commands, append-only; replayed on startup';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_journal CASCADE;")
