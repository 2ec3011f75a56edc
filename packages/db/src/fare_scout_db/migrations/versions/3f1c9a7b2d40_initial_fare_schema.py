"""initial fare schema

Revision ID: 3f1c9a7b2d40
Revises:
Create Date: 2026-10-19 09:12:41.118203

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7b2d40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create flights, trips, legs, deals and fetch_queries."""

    # -- flights --
    op.create_table(
        "flights",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("flight_number", sa.String(100), nullable=False),
        sa.Column("airline", sa.String(255), nullable=False, server_default=""),
        sa.Column("origin", sa.String(3), nullable=False),
        sa.Column("destination", sa.String(3), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("departure_time", sa.Time(), nullable=False),
        sa.Column("arrival_date", sa.Date(), nullable=False),
        sa.Column("arrival_time", sa.Time(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index(
        "ix_flights_origin_destination", "flights", ["origin", "destination"]
    )
    op.create_index("ix_flights_departure_date", "flights", ["departure_date"])

    # -- trips --
    op.create_table(
        "trips",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("origin", sa.String(3), nullable=False),
        sa.Column("destination", sa.String(3), nullable=False),
        sa.Column("stop_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "is_round", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )

    # -- legs --
    op.create_table(
        "legs",
        sa.Column("id", sa.String(400), primary_key=True),
        sa.Column(
            "trip_id", sa.String(64), sa.ForeignKey("trips.id"), nullable=False
        ),
        sa.Column(
            "flight_id", sa.String(255), sa.ForeignKey("flights.id"), nullable=False
        ),
        sa.Column("inbound", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("connection_time", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_legs_trip_id", "legs", ["trip_id"])
    op.create_index("ix_legs_flight_id", "legs", ["flight_id"])

    # -- deals --
    op.create_table(
        "deals",
        sa.Column("id", sa.String(512), primary_key=True),
        sa.Column(
            "trip_id", sa.String(64), sa.ForeignKey("trips.id"), nullable=False
        ),
        sa.Column("source", sa.String(50), nullable=False),
        sa.Column("provider", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("link", sa.Text(), nullable=False, server_default=""),
        sa.Column("origin", sa.String(3), nullable=False),
        sa.Column("destination", sa.String(3), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("departure_time", sa.Time(), nullable=True),
        sa.Column("return_date", sa.Date(), nullable=True),
        sa.Column("return_time", sa.Time(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_deals_search",
        "deals",
        ["origin", "destination", "departure_date", "return_date"],
    )
    op.create_index("ix_deals_trip_id", "deals", ["trip_id"])
    op.create_index("ix_deals_price", "deals", ["price"])

    # -- fetch_queries --
    op.create_table(
        "fetch_queries",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("origin", sa.String(3), nullable=False),
        sa.Column("destination", sa.String(3), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("return_date", sa.Date(), nullable=True),
        sa.Column("last_fetched", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_fetch_queries_route",
        "fetch_queries",
        ["origin", "destination", "departure_date"],
    )


def downgrade() -> None:
    """Drop all fare tables."""
    op.drop_table("fetch_queries")
    op.drop_table("deals")
    op.drop_table("legs")
    op.drop_table("trips")
    op.drop_table("flights")
