"""Create saved_queries, listings, query_listings and device_tokens

Revision ID: 3f9a1c2d7b40
Revises:
Create Date: 2026-10-18 09:12:31.402118

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op  # type: ignore[attr-defined]
from rental_monitor.config import SCHEMA

# revision identifiers, used by Alembic.
revision = "3f9a1c2d7b40"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # gen_random_uuid() is built in from PostgreSQL 13; older servers need pgcrypto
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "saved_queries",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("location_identifier", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.Column("min_price", sa.Integer(), nullable=True),
        sa.Column("max_price", sa.Integer(), nullable=True),
        sa.Column("min_bedrooms", sa.Integer(), nullable=True),
        sa.Column("max_bedrooms", sa.Integer(), nullable=True),
        sa.Column("min_bathrooms", sa.Integer(), nullable=True),
        sa.Column("max_bathrooms", sa.Integer(), nullable=True),
        sa.Column("furnish_type", sa.Text(), nullable=True),
        sa.Column("radius", sa.Numeric(3, 1), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.text("TRUE"), nullable=False),
        *_timestamps(),
        schema=SCHEMA,
    )
    op.create_index("ix_saved_queries_user_id", "saved_queries", ["user_id"], schema=SCHEMA)
    op.create_index("ix_saved_queries_active", "saved_queries", ["active"], schema=SCHEMA)

    op.create_table(
        "listings",
        _uuid_pk(),
        sa.Column("external_id", sa.Integer(), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("area", sa.Text(), nullable=True),
        sa.Column("price", sa.Text(), nullable=False),
        sa.Column("bedrooms", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("bathrooms", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "images", postgresql.ARRAY(sa.Text()), server_default=sa.text("'{}'"), nullable=False
        ),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("agent_name", sa.Text(), nullable=True),
        sa.Column("agent_phone", sa.Text(), nullable=True),
        sa.Column("branch_name", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.text("TRUE"), nullable=False),
        *_timestamps(),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_listings_external_id", "listings", ["external_id"], unique=True, schema=SCHEMA
    )

    op.create_table(
        "query_listings",
        _uuid_pk(),
        sa.Column(
            "query_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey(f"{SCHEMA}.saved_queries.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "listing_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey(f"{SCHEMA}.listings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "found_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.UniqueConstraint("query_id", "listing_id", name="uq_query_listings_query_listing"),
        schema=SCHEMA,
    )
    op.create_index("ix_query_listings_query_id", "query_listings", ["query_id"], schema=SCHEMA)

    op.create_table(
        "device_tokens",
        _uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("device_token", sa.Text(), nullable=False),
        sa.Column("device_type", sa.Text(), server_default=sa.text("'ios'"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "device_token", name="uq_device_tokens_user_token"),
        schema=SCHEMA,
    )
    op.create_index("ix_device_tokens_user_id", "device_tokens", ["user_id"], schema=SCHEMA)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("device_tokens", schema=SCHEMA)
    op.drop_table("query_listings", schema=SCHEMA)
    op.drop_table("listings", schema=SCHEMA)
    op.drop_table("saved_queries", schema=SCHEMA)
