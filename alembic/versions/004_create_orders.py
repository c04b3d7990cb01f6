"""004: create orders table

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
        CREATE TABLE orders (
            id              VARCHAR(64)     PRIMARY KEY,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES listings (id),
            owner_id        VARCHAR(64)     NOT NULL,
            side            VARCHAR(10)     NOT NULL,
            price           NUMERIC(10, 2)  NOT NULL,
            state           VARCHAR(20)     NOT NULL DEFAULT 'ACTIVE',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_side   CHECK (side IN ('BID', 'ASK')),
            CONSTRAINT ck_orders_price  CHECK (price > 0 AND price <= 1000000),
            CONSTRAINT ck_orders_state  CHECK (state IN ('ACTIVE', 'MATCHED', 'CANCELLED'))
        );
    """)
    # At most one ACTIVE order per (listing, owner, side, price)
    op.execute("""
        CREATE UNIQUE INDEX uq_orders_one_active
        ON orders (listing_id, owner_id, side, price)
        WHERE state = 'ACTIVE';
    """)
    op.execute("""
        CREATE INDEX idx_orders_book_active
        ON orders (listing_id, side, price, created_at)
        WHERE state = 'ACTIVE';
    """)
    op.execute("CREATE INDEX idx_orders_owner ON orders (owner_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE orders IS 'Bids and asks: unit quantity, match at most once';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
