"""Initial schema: users, KYC, rides, bookings, ratings, settings.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLE = sa.Enum("customer", "driver", "admin", name="userrole")
KYC_STATUS = sa.Enum("pending", "approved", "rejected", name="kycstatus")
RIDE_STATUS = sa.Enum("active", "cancelled", "completed", name="ridestatus")
BOOKING_STATUS = sa.Enum(
    "pending", "confirmed", "completed", "cancelled", name="bookingstatus"
)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("mobile", sa.String(20), unique=True, nullable=False),
        sa.Column("role", USER_ROLE, nullable=False, server_default="customer"),
        sa.Column("is_kyc_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_suspended", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    # ── kyc_verifications ─────────────────────────────────────────────
    op.create_table(
        "kyc_verifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("document_type", sa.String(50), nullable=False),
        sa.Column("document_id", sa.String(100), nullable=False),
        sa.Column("document_url", sa.String(500), nullable=False),
        sa.Column("vehicle_type", sa.String(50), nullable=True),
        sa.Column("vehicle_number", sa.String(30), nullable=True),
        sa.Column("driving_license_url", sa.String(500), nullable=True),
        sa.Column("selfie_url", sa.String(500), nullable=True),
        sa.Column("status", KYC_STATUS, nullable=False, server_default="pending"),
        sa.Column("remarks", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_kyc_user", "kyc_verifications", ["user_id"])
    op.create_index("idx_kyc_status", "kyc_verifications", ["status"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("from_location", sa.String(200), nullable=False),
        sa.Column("to_location", sa.String(200), nullable=False),
        sa.Column("departure_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("vehicle_type", sa.String(50), nullable=False),
        sa.Column("vehicle_number", sa.String(30), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("total_seats", sa.Integer, nullable=False),
        sa.Column("available_seats", sa.Integer, nullable=False),
        sa.Column("status", RIDE_STATUS, nullable=False, server_default="active"),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        sa.Column("revision", sa.Integer, nullable=False, server_default="1"),
        *_timestamps(),
        sa.CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_available_seats",
        ),
    )
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_status_departure", "rides", ["status", "departure_at"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ride_id", sa.Integer, sa.ForeignKey("rides.id"), nullable=False),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("number_of_seats", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", BOOKING_STATUS, nullable=False, server_default="pending"),
        sa.Column("booking_fee", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_paid", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_bookings_ride", "bookings", ["ride_id"])
    op.create_index("idx_bookings_customer", "bookings", ["customer_id"])
    op.create_index(
        "uq_bookings_active_customer_ride",
        "bookings",
        ["customer_id", "ride_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )

    # ── ratings ───────────────────────────────────────────────────────
    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("from_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("to_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("review", sa.String(150), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("booking_id", "from_user_id", name="uq_ratings_booking_rater"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
    )
    op.create_index("idx_ratings_to_user", "ratings", ["to_user_id"])

    # ── app_settings ──────────────────────────────────────────────────
    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("key", sa.String(100), unique=True, nullable=False),
        sa.Column("value", sa.JSON, nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_table("ratings")
    op.drop_table("bookings")
    op.drop_table("rides")
    op.drop_table("kyc_verifications")
    op.drop_table("users")
    for enum_type in (BOOKING_STATUS, RIDE_STATUS, KYC_STATUS, USER_ROLE):
        enum_type.drop(op.get_bind(), checkfirst=True)
