"""002: create payouts table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payouts (
            id              BIGSERIAL       PRIMARY KEY,
            journal_id      BIGINT          NOT NULL REFERENCES ledger_journal(id),
            recipient       VARCHAR(128)    NOT NULL,
            amount          NUMERIC(78, 0)  NOT NULL,
            kind            VARCHAR(20)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payout_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_payout_kind CHECK (
                kind IN ('REFUND', 'EARNINGS', 'PLATFORM_FEES')
            )
        );
    """)
    op.execute("CREATE INDEX idx_payouts_journal ON payouts (journal_id);")
    op.execute("CREATE INDEX idx_payouts_recipient ON payouts (recipient, created_at);")
    op.execute("COMMENT ON TABLE payouts IS 'Value owed to principals, settled by an external worker';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payouts CASCADE;")
