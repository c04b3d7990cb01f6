"""005: create trades table

Append-only: rows are never updated or deleted.

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
        CREATE TABLE trades (
            id              VARCHAR(64)     PRIMARY KEY,
            listing_id      VARCHAR(64)     NOT NULL REFERENCES listings (id),
            buyer_id        VARCHAR(64)     NOT NULL,
            seller_id       VARCHAR(64)     NOT NULL,
            price           NUMERIC(10, 2)  NOT NULL,
            bid_order_id    VARCHAR(64)     NOT NULL REFERENCES orders (id),
            ask_order_id    VARCHAR(64)     NOT NULL REFERENCES orders (id),
            maker_order_id  VARCHAR(64)     NOT NULL,
            taker_order_id  VARCHAR(64)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_trades_bid_order      UNIQUE (bid_order_id),
            CONSTRAINT uq_trades_ask_order      UNIQUE (ask_order_id),
            CONSTRAINT ck_trades_price          CHECK (price > 0 AND price <= 1000000),
            CONSTRAINT ck_trades_diff_users     CHECK (buyer_id != seller_id),
            CONSTRAINT ck_trades_maker_taker    CHECK (
                maker_order_id IN (bid_order_id, ask_order_id)
                AND taker_order_id IN (bid_order_id, ask_order_id)
                AND maker_order_id != taker_order_id
            )
        );
    """)
    op.execute("CREATE INDEX idx_trades_listing_time ON trades (listing_id, created_at DESC);")
    op.execute("CREATE INDEX idx_trades_buyer ON trades (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_trades_seller ON trades (seller_id, created_at DESC);")
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_trades_append_only()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'trades is append-only';
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_trades_append_only
            BEFORE UPDATE OR DELETE ON trades
            FOR EACH ROW EXECUTE FUNCTION fn_trades_append_only();
    """)
    op.execute("COMMENT ON TABLE trades IS 'Settled matches: one row per matched bid/ask pair';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_trades_append_only();")
