"""001_booking_schema

Baseline migration for the booking API: orders with their status timeline,
receipts, staff profiles and billing profiles.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


_TABLES_WITH_TRIGGERS = [
    "orders",
    "receipts",
    "staff_profiles",
    "billing_profiles",
]


def upgrade() -> None:
    # ------------------------------------------------------------------
    # Enum types
    # ------------------------------------------------------------------
    op.execute(
        "CREATE TYPE order_status AS ENUM "
        "('Scheduled', 'Picked Up', 'In Transit', 'Delayed', 'Out for Delivery', 'Delivered')"
    )
    op.execute(
        "CREATE TYPE payment_status AS ENUM ('unpaid', 'pending', 'paid', 'failed')"
    )
    op.execute("CREATE TYPE service_type AS ENUM ('pickup', 'delivery')")
    op.execute("CREATE TYPE staff_role AS ENUM ('admin', 'employee')")

    # ------------------------------------------------------------------
    # Tables (dependency order)
    # ------------------------------------------------------------------

    # --- orders ---
    op.execute("""
        CREATE TABLE orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_code VARCHAR(32) NOT NULL,
            user_id VARCHAR(64) NOT NULL,
            customer_name VARCHAR(200),
            customer_email VARCHAR(320),
            route_area VARCHAR(100),
            service_type service_type NOT NULL DEFAULT 'pickup',
            vehicle_type VARCHAR(20) NOT NULL DEFAULT 'standard',
            price_before_tax INTEGER NOT NULL,
            currency VARCHAR(3) NOT NULL DEFAULT 'CAD',
            fulfillment_days_min INTEGER,
            fulfillment_days_max INTEGER,
            status order_status NOT NULL DEFAULT 'Scheduled',
            payment_status payment_status NOT NULL DEFAULT 'unpaid',
            form_data JSONB,
            quote_data JSONB,
            documents JSONB,
            stripe_session_id VARCHAR(255),
            stripe_payment_intent_id VARCHAR(255),
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT positive_price CHECK (price_before_tax > 0)
        )
    """)
    op.execute("CREATE UNIQUE INDEX ix_orders_order_code ON orders (order_code)")
    op.execute("CREATE INDEX ix_orders_user_id ON orders (user_id)")
    op.execute("CREATE INDEX ix_orders_status ON orders (status)")

    # --- order_events (append-only; identity key keeps insertion order) ---
    op.execute("""
        CREATE TABLE order_events (
            id BIGINT GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            status order_status NOT NULL,
            note TEXT,
            at TIMESTAMP WITH TIME ZONE NOT NULL
        )
    """)
    op.execute("CREATE INDEX ix_order_events_order_id ON order_events (order_id)")

    # --- receipts ---
    op.execute("""
        CREATE TABLE receipts (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id VARCHAR(64) NOT NULL,
            order_code VARCHAR(32) NOT NULL,
            text TEXT NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT uq_receipts_user_order UNIQUE (user_id, order_code)
        )
    """)
    op.execute("CREATE INDEX ix_receipts_user_id ON receipts (user_id)")

    # --- staff_profiles ---
    op.execute("""
        CREATE TABLE staff_profiles (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id VARCHAR(64) NOT NULL,
            role staff_role NOT NULL DEFAULT 'employee',
            active BOOLEAN NOT NULL DEFAULT TRUE,
            email VARCHAR(320),
            name VARCHAR(200),
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE UNIQUE INDEX ix_staff_profiles_user_id ON staff_profiles (user_id)")

    # --- billing_profiles ---
    op.execute("""
        CREATE TABLE billing_profiles (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id VARCHAR(64) NOT NULL,
            stripe_customer_id VARCHAR(255),
            has_saved_payment_method BOOLEAN NOT NULL DEFAULT FALSE,
            card_brand VARCHAR(50),
            card_last4 VARCHAR(4),
            card_exp_month INTEGER,
            card_exp_year INTEGER,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE UNIQUE INDEX ix_billing_profiles_user_id ON billing_profiles (user_id)")

    # ------------------------------------------------------------------
    # Functions & Triggers
    # ------------------------------------------------------------------
    # Trigger function: auto-update updated_at
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = CURRENT_TIMESTAMP;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
    """)

    for table in _TABLES_WITH_TRIGGERS:
        op.execute(
            f"CREATE TRIGGER update_{table}_updated_at "
            f"BEFORE UPDATE ON {table} "
            f"FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()"
        )


def downgrade() -> None:
    # Drop triggers
    for table in _TABLES_WITH_TRIGGERS:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")

    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    # ------------------------------------------------------------------
    # Drop tables (reverse dependency order)
    # ------------------------------------------------------------------
    op.execute("DROP TABLE IF EXISTS billing_profiles CASCADE")
    op.execute("DROP TABLE IF EXISTS staff_profiles CASCADE")
    op.execute("DROP TABLE IF EXISTS receipts CASCADE")
    op.execute("DROP TABLE IF EXISTS order_events CASCADE")
    op.execute("DROP TABLE IF EXISTS orders CASCADE")

    # ------------------------------------------------------------------
    # Drop enum types
    # ------------------------------------------------------------------
    op.execute("DROP TYPE IF EXISTS staff_role")
    op.execute("DROP TYPE IF EXISTS service_type")
    op.execute("DROP TYPE IF EXISTS payment_status")
    op.execute("DROP TYPE IF EXISTS order_status")
