"""002: create listings table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id              VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            seller_id       VARCHAR(64)     NOT NULL,
            title           VARCHAR(200)    NOT NULL,
            asking_price    BIGINT          NOT NULL,
            shipping_cost   BIGINT,
            status          VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_asking_price CHECK (asking_price >= 0),
            CONSTRAINT ck_listings_shipping_cost CHECK (shipping_cost IS NULL OR shipping_cost >= 0),
            CONSTRAINT ck_listings_status CHECK (
                status IN ('DRAFT', 'ACTIVE', 'SOLD', 'REMOVED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
        BEFORE UPDATE ON listings
        FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
