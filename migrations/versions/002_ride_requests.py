"""Ride requests: routes customers ask for when search finds nothing.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

RIDE_REQUEST_STATUS = sa.Enum("pending", "responded", "closed", name="riderequeststatus")


def upgrade() -> None:
    op.create_table(
        "ride_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("from_location", sa.String(200), nullable=False),
        sa.Column("to_location", sa.String(200), nullable=False),
        sa.Column("preferred_date", sa.Date, nullable=False),
        sa.Column("preferred_time", sa.String(20), nullable=True),
        sa.Column("number_of_passengers", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_budget", sa.Integer, nullable=True),
        sa.Column("contact_number", sa.String(20), nullable=False),
        sa.Column("additional_notes", sa.Text, nullable=True),
        sa.Column("status", RIDE_REQUEST_STATUS, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_ride_requests_user", "ride_requests", ["user_id"])
    op.create_index("idx_ride_requests_status", "ride_requests", ["status"])


def downgrade() -> None:
    op.drop_table("ride_requests")
    RIDE_REQUEST_STATUS.drop(op.get_bind(), checkfirst=True)
