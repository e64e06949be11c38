"""003: create offers table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offers (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES listings(id),
            buyer_id        VARCHAR(64)     NOT NULL,
            amount          BIGINT          NOT NULL,
            message         VARCHAR(1000),
            status          VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            parent_offer_id VARCHAR(64)     REFERENCES offers(id),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            expires_at      TIMESTAMPTZ     NOT NULL,
            responded_at    TIMESTAMPTZ,
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_offers_amount CHECK (amount > 0),
            CONSTRAINT ck_offers_status CHECK (
                status IN ('PENDING', 'ACCEPTED', 'REJECTED', 'EXPIRED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_offers_listing_status ON offers (listing_id, status);")
    op.execute("CREATE INDEX idx_offers_pending_expiry ON offers (expires_at) WHERE status = 'PENDING';")
    # At most one counter-offer per original
    op.execute("""
        CREATE UNIQUE INDEX uq_offers_parent
        ON offers (parent_offer_id)
        WHERE parent_offer_id IS NOT NULL;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offers CASCADE;")
