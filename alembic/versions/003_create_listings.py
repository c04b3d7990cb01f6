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
            id              VARCHAR(64)     PRIMARY KEY,
            name            VARCHAR(255)    NOT NULL,
            seller_id       VARCHAR(64)     NOT NULL REFERENCES users (id),
            retail_price    NUMERIC(10, 2),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_name_len     CHECK (LENGTH(name) >= 2),
            CONSTRAINT ck_listings_retail_price CHECK (
                retail_price IS NULL OR (retail_price > 0 AND retail_price <= 1000000)
            )
        );
    """)
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE listings IS 'Sellable items: catalog owned outside the order book';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
