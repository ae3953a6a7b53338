"""006: create ledger_entries table

Revision ID: 006
Revises: 005
Create Date: 2026-10-05
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
            id                  VARCHAR(64)     PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            kind                VARCHAR(30)     NOT NULL,
            amount              BIGINT          NOT NULL,
            description         VARCHAR(500)    NOT NULL,
            related_listing_id  VARCHAR(64),
            operation_key       VARCHAR(300),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_ledger_operation_key UNIQUE (operation_key),
            CONSTRAINT ck_ledger_kind CHECK (
                kind IN (
                    'PURCHASE', 'SALE', 'BALANCE_ADD',
                    'TRANSFER_SENT', 'TRANSFER_RECEIVED'
                )
            ),
            CONSTRAINT ck_ledger_amount_nonzero CHECK (amount <> 0)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_user_time ON ledger_entries (user_id, created_at DESC, id DESC);")
    op.execute("""
        CREATE INDEX idx_ledger_listing
        ON ledger_entries (related_listing_id)
        WHERE related_listing_id IS NOT NULL;
    """)
    op.execute("COMMENT ON TABLE ledger_entries IS 'Wallet movements, append-only, signed cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
