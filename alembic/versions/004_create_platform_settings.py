"""004: create platform_settings singleton

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE platform_settings (
            id                      VARCHAR(32)     PRIMARY KEY,
            marketplace_fee_bps     INT             NOT NULL,
            free_threshold_cents    BIGINT          NOT NULL,
            instant_offer_fee_bps   INT             NOT NULL,
            escrow_release_days     INT             NOT NULL,
            version                 BIGINT          NOT NULL DEFAULT 1,
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_settings_singleton CHECK (id = 'settings'),
            CONSTRAINT ck_settings_fee_bps CHECK (marketplace_fee_bps BETWEEN 0 AND 10000),
            CONSTRAINT ck_settings_instant_bps CHECK (instant_offer_fee_bps BETWEEN 0 AND 10000),
            CONSTRAINT ck_settings_threshold CHECK (free_threshold_cents >= 0),
            CONSTRAINT ck_settings_escrow_days CHECK (escrow_release_days >= 0)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS platform_settings CASCADE;")
