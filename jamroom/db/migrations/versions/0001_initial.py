from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_SLOT_FILTER = sa.text("booking_status IN ('PENDING', 'CONFIRMED')")


def upgrade() -> None:
    user_role = postgresql.ENUM("user", "admin", name="userrole")
    user_role.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("mobile", sa.String(length=32)),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", postgresql.ENUM(name="userrole", create_type=False), server_default="user"),
        sa.Column("whatsapp_enabled", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "slots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("date", "start_time", name="uq_slot_date_start"),
    )
    op.create_index("ix_slots_date", "slots", ["date"])
    op.create_index("ix_slots_is_blocked", "slots", ["is_blocked"])

    booking_status = postgresql.ENUM(
        "PENDING", "CONFIRMED", "REJECTED", "CANCELLED", name="bookingstatus"
    )
    booking_status.create(op.get_bind(), checkfirst=True)
    payment_status = postgresql.ENUM("PENDING", "PAID", "REFUNDED", name="paymentstatus")
    payment_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id", ondelete="SET NULL")),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("rental_type", sa.String(length=128), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_status", postgresql.ENUM(name="paymentstatus", create_type=False), server_default="PENDING"),
        sa.Column("booking_status", postgresql.ENUM(name="bookingstatus", create_type=False), server_default="PENDING"),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("user_email", sa.String(length=255), nullable=False),
        sa.Column("user_mobile", sa.String(length=32)),
        sa.Column("band_name", sa.String(length=255)),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "uq_booking_active_slot",
        "bookings",
        ["slot_id"],
        unique=True,
        postgresql_where=ACTIVE_SLOT_FILTER,
    )
    op.create_index("ix_booking_user_created", "bookings", ["user_id", "created_at"])
    op.create_index("ix_booking_date_status", "bookings", ["slot_date", "booking_status"])
    op.create_index("ix_bookings_payment_status", "bookings", ["payment_status"])
    op.create_index("ix_bookings_booking_status", "bookings", ["booking_status"])

    op.create_table(
        "admin_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rental_types", sa.JSON(), nullable=False),
        sa.Column("business_hours", sa.JSON(), nullable=False),
        sa.Column("slot_duration", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("admin_emails", sa.JSON(), nullable=False),
        sa.Column("admin_mobiles", sa.JSON(), nullable=False),
        sa.Column("upi_id", sa.String(length=128)),
        sa.Column("upi_name", sa.String(length=128)),
        sa.Column("gst_enabled", sa.Boolean(), server_default=sa.false()),
        sa.Column("gst_rate", sa.Numeric(5, 4)),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("admin_settings")
    op.drop_index("ix_bookings_booking_status", table_name="bookings")
    op.drop_index("ix_bookings_payment_status", table_name="bookings")
    op.drop_index("ix_booking_date_status", table_name="bookings")
    op.drop_index("ix_booking_user_created", table_name="bookings")
    op.drop_index("uq_booking_active_slot", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_slots_is_blocked", table_name="slots")
    op.drop_index("ix_slots_date", table_name="slots")
    op.drop_table("slots")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    for name in ("paymentstatus", "bookingstatus", "userrole"):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
