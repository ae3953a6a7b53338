"""004: create library_items table

Revision ID: 004
Revises: 003
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE library_items (
            id                  VARCHAR(64)   PRIMARY KEY,
            owner_id            VARCHAR(64)   NOT NULL,
            title               VARCHAR(200)  NOT NULL,
            author              VARCHAR(200)  NOT NULL,
            city                VARCHAR(100)  NOT NULL,
            condition           VARCHAR(40)   NOT NULL,
            description         VARCHAR(2000),
            image_ref           VARCHAR(500),
            in_marketplace      BOOLEAN       NOT NULL DEFAULT FALSE,
            marketplace_price   BIGINT,
            listing_id          VARCHAR(64),
            created_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_library_price_when_listed CHECK (
                in_marketplace = (marketplace_price IS NOT NULL)
            ),
            CONSTRAINT ck_library_listing_when_listed CHECK (
                in_marketplace = (listing_id IS NOT NULL)
            ),
            CONSTRAINT ck_library_price_gt_0 CHECK (
                marketplace_price IS NULL OR marketplace_price > 0
            )
        );
    """)
    op.execute("CREATE INDEX idx_library_owner ON library_items (owner_id, created_at DESC);")
    op.execute(
        "CREATE UNIQUE INDEX idx_library_listing ON library_items (listing_id) "
        "WHERE listing_id IS NOT NULL;"
    )
    op.execute("""
        CREATE TRIGGER trg_library_items_updated_at
            BEFORE UPDATE ON library_items
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS library_items CASCADE;")
