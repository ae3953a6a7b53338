"""002: create accounts table

Revision ID: 002
Revises: 001
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE accounts (
            user_id             VARCHAR(64) PRIMARY KEY,
            phone               VARCHAR(32) NOT NULL,
            balance             BIGINT      NOT NULL DEFAULT 0,
            initial_balance     BIGINT      NOT NULL DEFAULT 0,
            books_owned         INTEGER     NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_accounts_balance_gte_0      CHECK (balance >= 0),
            CONSTRAINT ck_accounts_initial_gte_0      CHECK (initial_balance >= 0),
            CONSTRAINT ck_accounts_books_owned_gte_0  CHECK (books_owned >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_accounts_phone ON accounts (phone);")
    op.execute("""
        CREATE TRIGGER trg_accounts_updated_at
            BEFORE UPDATE ON accounts
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TABLE account_operations (
            user_id       VARCHAR(64)  NOT NULL REFERENCES accounts (user_id) ON DELETE CASCADE,
            operation_id  VARCHAR(300) NOT NULL,
            applied_at    TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, operation_id)
        );
    """)
    op.execute(
        "COMMENT ON TABLE account_operations IS "
        "'Idempotency keys of mutations already applied to an account';"
    )
    op.execute("COMMENT ON TABLE accounts IS 'Wallet accounts, all amounts in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS account_operations CASCADE;")
    op.execute("DROP TABLE IF EXISTS accounts CASCADE;")
