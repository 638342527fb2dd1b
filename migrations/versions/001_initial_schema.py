"""Initial schema: shipments and their waypoint routes.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── shipments ─────────────────────────────────────────────────────
    op.create_table(
        "shipments",
        sa.Column("id", sa.String(24), primary_key=True),
        sa.Column("shipment_id", sa.String(32), unique=True, nullable=False),
        sa.Column("container_id", sa.String(64), nullable=False),
        sa.Column("cargo", sa.String(255), nullable=False),
        sa.Column("weight", sa.Float, nullable=False),
        sa.Column("current_name", sa.String(255), nullable=False),
        sa.Column("current_lat", sa.Float, nullable=False),
        sa.Column("current_lng", sa.Float, nullable=False),
        sa.Column("current_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("destination_name", sa.String(255), nullable=False),
        sa.Column("destination_lat", sa.Float, nullable=False),
        sa.Column("destination_lng", sa.Float, nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "in-transit",
                "delayed",
                "delivered",
                name="shipmentstatus",
            ),
            nullable=False,
        ),
        sa.Column("estimated_arrival", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_shipments_status", "shipments", ["status"])
    op.create_index("idx_shipments_created", "shipments", ["created_at"])

    # ── waypoints ─────────────────────────────────────────────────────
    op.create_table(
        "waypoints",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "shipment_pk",
            sa.String(24),
            sa.ForeignKey("shipments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seq", sa.Integer, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("distance_covered", sa.Float, nullable=False, server_default="0"),
    )
    op.create_index(
        "idx_waypoints_route", "waypoints", ["shipment_pk", "seq"], unique=True
    )


def downgrade() -> None:
    op.drop_table("waypoints")
    op.drop_table("shipments")
    op.execute("DROP TYPE IF EXISTS shipmentstatus")
