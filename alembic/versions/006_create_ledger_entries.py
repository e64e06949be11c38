"""006: create ledger_entries table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id                  BIGSERIAL       PRIMARY KEY,
            entry_type          VARCHAR(30)     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            amount              BIGINT          NOT NULL,
            platform_revenue    BIGINT          NOT NULL DEFAULT 0,
            from_user_id        VARCHAR(64),
            to_user_id          VARCHAR(64),
            transaction_id      VARCHAR(64)     NOT NULL REFERENCES transactions(id),
            description         VARCHAR(500),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            status_changed_at   TIMESTAMPTZ,
            CONSTRAINT ck_ledger_entry_type CHECK (
                entry_type IN (
                    'PLATFORM_FEE', 'PAYMENT_RECEIVED', 'CARD_FEE',
                    'SELLER_PAYOUT', 'REFUND'
                )
            ),
            CONSTRAINT ck_ledger_status CHECK (status IN ('PENDING', 'COMPLETED', 'FAILED')),
            CONSTRAINT ck_ledger_amount_gte_0 CHECK (amount >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_transaction ON ledger_entries (transaction_id, entry_type);")
    op.execute("CREATE INDEX idx_ledger_type_time ON ledger_entries (entry_type, created_at);")
    op.execute("CREATE INDEX idx_ledger_status ON ledger_entries (status, created_at);")
    op.execute("COMMENT ON TABLE ledger_entries IS 'Money movements: financial columns are never updated, amounts in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
