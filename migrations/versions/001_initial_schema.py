"""Initial schema: profiles, rides, passengers, ride requests, notifications.

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
    # ── profiles ──────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("is_driver", sa.Boolean, nullable=False, default=False),
        sa.Column("is_rider", sa.Boolean, nullable=False, default=True),
        sa.Column("driver_license", sa.String(64), nullable=True),
        sa.Column("profile_image_url", sa.String(512), nullable=True),
        sa.Column("license_image_url", sa.String(512), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "verified", name="verificationstatus"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("driver_id", sa.String(128), nullable=False),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("departure_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("arrival_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column(
            "payment_method",
            sa.Enum("cash", "card", name="paymentmethod"),
            nullable=False,
        ),
        sa.Column("total_seats", sa.Integer, nullable=False),
        sa.Column("available_seats", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_seat_bounds",
        ),
        sa.CheckConstraint("price >= 0", name="ck_rides_price_non_negative"),
    )
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_departure", "rides", ["departure_at"])

    # ── ride_passengers ───────────────────────────────────────────────
    op.create_table(
        "ride_passengers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ride_id",
            sa.String(36),
            sa.ForeignKey("rides.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rider_id", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("ride_id", "rider_id", name="uq_ride_passenger"),
    )

    # ── ride_requests ─────────────────────────────────────────────────
    op.create_table(
        "ride_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("rider_id", sa.String(128), nullable=False),
        sa.Column(
            "ride_id",
            sa.String(36),
            sa.ForeignKey("rides.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("driver_id", sa.String(128), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "accepted", "rejected", name="requeststatus"),
            nullable=False,
        ),
        sa.Column("active_key", sa.String(200), unique=True, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_ride_requests_rider", "ride_requests", ["rider_id"])
    op.create_index(
        "idx_ride_requests_driver_status", "ride_requests", ["driver_id", "status"]
    )
    op.create_index("idx_ride_requests_ride", "ride_requests", ["ride_id"])

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipient_id", sa.String(128), nullable=False),
        sa.Column("sender_id", sa.String(128), nullable=True),
        sa.Column(
            "category",
            sa.Enum(
                "ride_request",
                "request_accepted",
                "request_rejected",
                "ride_cancelled",
                name="notificationcategory",
            ),
            nullable=False,
        ),
        sa.Column("context", sa.String(500), nullable=False),
        sa.Column("ride_id", sa.String(36), nullable=True),
        sa.Column("request_id", sa.String(36), nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, default=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index(
        "idx_notifications_recipient", "notifications", ["recipient_id", "is_read"]
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("ride_requests")
    op.drop_table("ride_passengers")
    op.drop_table("rides")
    op.drop_table("profiles")
    sa.Enum(name="notificationcategory").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="requeststatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="paymentmethod").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="verificationstatus").drop(op.get_bind(), checkfirst=True)
