"""005: create transactions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id                  VARCHAR(64)     PRIMARY KEY DEFAULT gen_random_uuid()::text,
            transaction_type    VARCHAR(20)     NOT NULL,
            listing_id          VARCHAR(64)     NOT NULL REFERENCES listings(id),
            seller_id           VARCHAR(64)     NOT NULL,
            buyer_id            VARCHAR(64)     NOT NULL,
            offer_id            VARCHAR(64)     REFERENCES offers(id),
            item_price          BIGINT          NOT NULL,
            shipping_cost       BIGINT          NOT NULL DEFAULT 0,
            total_amount        BIGINT          NOT NULL,
            platform_fee        BIGINT          NOT NULL,
            seller_payout       BIGINT          NOT NULL,
            fee_rate_bps        INT             NOT NULL,
            settings_version    BIGINT          NOT NULL,
            escrow_release_days INT             NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'PAYMENT_PENDING',
            payment_status      VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            delivery_status     VARCHAR(20)     NOT NULL DEFAULT 'NOT_SHIPPED',
            payment_method      VARCHAR(10),
            payment_ref         VARCHAR(128),
            card_fee            BIGINT          NOT NULL DEFAULT 0,
            tracking_number     VARCHAR(128),
            courier_name        VARCHAR(128),
            dispute_reason      VARCHAR(2000),
            resolution_note     VARCHAR(2000),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            paid_at             TIMESTAMPTZ,
            shipped_at          TIMESTAMPTZ,
            delivered_at        TIMESTAMPTZ,
            completed_at        TIMESTAMPTZ,
            disputed_at         TIMESTAMPTZ,
            cancelled_at        TIMESTAMPTZ,
            payout_release_at   TIMESTAMPTZ,
            CONSTRAINT ck_tx_type CHECK (transaction_type IN ('OFFER', 'MARKETPLACE')),
            CONSTRAINT ck_tx_status CHECK (
                status IN ('PAYMENT_PENDING', 'SHIPPED', 'DISPUTED', 'COMPLETED', 'CANCELLED')
            ),
            CONSTRAINT ck_tx_payment_status CHECK (
                payment_status IN ('PENDING', 'VERIFIED', 'HELD_ESCROW')
            ),
            CONSTRAINT ck_tx_delivery_status CHECK (
                delivery_status IN ('NOT_SHIPPED', 'SHIPPED', 'DELIVERED')
            ),
            CONSTRAINT ck_tx_payment_method CHECK (
                payment_method IS NULL OR payment_method IN ('EFT', 'CARD')
            ),
            CONSTRAINT ck_tx_amounts CHECK (
                item_price > 0 AND shipping_cost >= 0 AND platform_fee >= 0
                AND seller_payout >= 0 AND card_fee >= 0
            ),
            CONSTRAINT ck_tx_total CHECK (total_amount = item_price + shipping_cost),
            CONSTRAINT ck_tx_payout CHECK (seller_payout = item_price - platform_fee),
            CONSTRAINT ck_tx_completed_delivered CHECK (
                status <> 'COMPLETED' OR delivered_at IS NOT NULL
            )
        );
    """)
    # One live sale per listing
    op.execute("""
        CREATE UNIQUE INDEX uq_tx_live_listing
        ON transactions (listing_id)
        WHERE status <> 'CANCELLED';
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_tx_offer
        ON transactions (offer_id)
        WHERE offer_id IS NOT NULL;
    """)
    op.execute("CREATE INDEX idx_tx_buyer ON transactions (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_tx_seller ON transactions (seller_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
