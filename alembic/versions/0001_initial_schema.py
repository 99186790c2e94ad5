"""initial schema with booking overlap exclusion

Revision ID: 0001
Revises:
Create Date: 2025-01-06 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


organization_status = postgresql.ENUM("pending", "active", "suspended", "cancelled",
                                      name="organization_status_enum", create_type=False)
user_role = postgresql.ENUM("admin", "fleet_manager", "driver", "viewer",
                            name="user_role_enum", create_type=False)
car_status = postgresql.ENUM("available", "booked", "maintenance", "out_of_service", "retired",
                             name="car_status_enum", create_type=False)
booking_status = postgresql.ENUM("pending", "approved", "rejected", "cancelled", "completed",
                                 name="booking_status_enum", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (organization_status, user_role, car_status, booking_status):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("status", organization_status, nullable=False, server_default="pending"),
        sa.Column("subscription_plan", sa.String(50), nullable=False, server_default="trial"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, index=True),
        sa.Column("first_name", sa.String(150), nullable=False),
        sa.Column("last_name", sa.String(150), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=True, index=True),
        sa.Column("role", user_role, nullable=False, server_default="driver"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organization_id", sa.Uuid(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("make", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("license_plate", sa.String(20), nullable=False),
        sa.Column("seats", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("status", car_status, nullable=False, server_default="available", index=True),
        sa.Column("parking_spot", sa.String(100), nullable=True),
        sa.Column("current_mileage", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("organization_id", "license_plate", name="unique_license_plate_per_org"),
        sa.CheckConstraint("seats > 0 AND seats <= 50", name="vehicles_seats_check"),
        sa.CheckConstraint("current_mileage >= 0", name="vehicles_current_mileage_check"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("vehicle_id", sa.Uuid(), sa.ForeignKey("vehicles.id"), nullable=False, index=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("destination", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("passenger_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", booking_status, nullable=False, server_default="pending", index=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("status_changed_by", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("end_time > start_time", name="valid_booking_times"),
        sa.CheckConstraint("passenger_count > 0", name="bookings_passenger_count_check"),
    )
    op.create_index("ix_bookings_vehicle_window", "bookings", ["vehicle_id", "start_time", "end_time"])

    # Two live bookings of the same vehicle may never overlap, even under
    # concurrent inserts. '[)' keeps back-to-back bookings legal.
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute("""
        ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap
        EXCLUDE USING gist (
            vehicle_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        ) WHERE (status IN ('pending', 'approved'))
    """)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS bookings_no_overlap")
    op.drop_index("ix_bookings_vehicle_window", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("vehicles")
    op.drop_table("profiles")
    op.drop_table("organizations")
    bind = op.get_bind()
    for enum_type in (booking_status, car_status, user_role, organization_status):
        enum_type.drop(bind, checkfirst=True)
