"""005: create purchase_records table

Revision ID: 005
Revises: 004
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE purchase_records (
            id              VARCHAR(64)   PRIMARY KEY,
            buyer_id        VARCHAR(64)   NOT NULL,
            listing_id      VARCHAR(64)   NOT NULL REFERENCES listings (id),
            operation_id    VARCHAR(256)  NOT NULL,
            title           VARCHAR(200)  NOT NULL,
            author          VARCHAR(200)  NOT NULL,
            price           BIGINT        NOT NULL,
            status          VARCHAR(20)   NOT NULL DEFAULT 'OWNED',
            purchase_date   TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_purchase_listing    UNIQUE (listing_id),
            CONSTRAINT uq_purchase_operation  UNIQUE (operation_id),
            CONSTRAINT ck_purchase_price_gt_0 CHECK (price > 0),
            CONSTRAINT ck_purchase_status CHECK (status IN ('OWNED', 'FOR_SALE', 'SOLD'))
        );
    """)
    op.execute("CREATE INDEX idx_purchase_buyer ON purchase_records (buyer_id, purchase_date DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS purchase_records CASCADE;")
