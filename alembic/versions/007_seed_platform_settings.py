"""007: seed platform settings

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 5.5% fee, first R1,000.00 free, 5% instant-offer fee, 2-day escrow
    op.execute("""
        INSERT INTO platform_settings (
            id, marketplace_fee_bps, free_threshold_cents,
            instant_offer_fee_bps, escrow_release_days, version
        ) VALUES ('settings', 550, 100000, 500, 2, 1)
        ON CONFLICT (id) DO NOTHING;
    """)


def downgrade() -> None:
    op.execute("DELETE FROM platform_settings WHERE id = 'settings';")
