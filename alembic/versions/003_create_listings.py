"""003: create listings table

Revision ID: 003
Revises: 002
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id                  VARCHAR(64)   PRIMARY KEY,
            title               VARCHAR(200)  NOT NULL,
            author              VARCHAR(200)  NOT NULL,
            price               BIGINT        NOT NULL,
            seller_id           VARCHAR(64)   NOT NULL,
            city                VARCHAR(100)  NOT NULL,
            status              VARCHAR(20)   NOT NULL DEFAULT 'AVAILABLE',
            image_ref           VARCHAR(500),
            description         VARCHAR(2000),
            is_advertisement    BOOLEAN       NOT NULL DEFAULT FALSE,
            ad_duration_days    INTEGER,
            ad_expires_at       TIMESTAMPTZ,
            sold_operation_id   VARCHAR(256),
            created_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_price_gt_0 CHECK (price > 0),
            CONSTRAINT ck_listings_status CHECK (status IN ('AVAILABLE', 'SOLD')),
            CONSTRAINT ck_listings_ad_duration CHECK (
                ad_duration_days IS NULL OR ad_duration_days IN (3, 7, 14, 30)
            ),
            CONSTRAINT ck_listings_ad_expiry CHECK (
                ad_expires_at IS NULL OR ad_expires_at >= created_at
            ),
            CONSTRAINT ck_listings_sold_has_operation CHECK (
                status <> 'SOLD' OR sold_operation_id IS NOT NULL
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_listings_available
        ON listings (is_advertisement, created_at DESC)
        WHERE status = 'AVAILABLE';
    """)
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id, title, author);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
