"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    user_role = postgresql.ENUM("USER", "MENTOR", "ADMIN", name="userrole")
    user_role.create(op.get_bind(), checkfirst=True)
    slot_status = postgresql.ENUM("AVAILABLE", "BOOKED", "CLOSED", name="slotstatus")
    slot_status.create(op.get_bind(), checkfirst=True)
    cart_item_status = postgresql.ENUM("ACTIVE", "CHECKED_OUT", name="cartitemstatus")
    cart_item_status.create(op.get_bind(), checkfirst=True)
    booking_status = postgresql.ENUM(
        "PENDING", "CONFIRMED", "CANCELLED", "COMPLETED", name="bookingstatus"
    )
    booking_status.create(op.get_bind(), checkfirst=True)
    booking_item_status = postgresql.ENUM("CONFIRMED", "CANCELLED", name="bookingitemstatus")
    booking_item_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True),
        sa.Column("price_per_slot", sa.Numeric(10, 2)),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255)),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column(
            "role",
            postgresql.ENUM(name="userrole", create_type=False),
            nullable=False,
            server_default="USER",
        ),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.false()),
        sa.Column("price_per_slot", sa.Numeric(10, 2)),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "slots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(name="slotstatus", create_type=False),
            nullable=False,
            server_default="AVAILABLE",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("mentor_id", "date", "start_time", name="uq_slot_mentor_date_start"),
        sa.CheckConstraint(
            "substr(start_time, 4, 2) IN ('00', '30')", name="ck_slot_start_half_hour"
        ),
    )
    op.create_index("ix_slots_mentor_id", "slots", ["mentor_id"])
    op.create_index("ix_slots_date", "slots", ["date"])

    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cart_id", sa.Integer(), sa.ForeignKey("carts.id", ondelete="CASCADE")),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id", ondelete="SET NULL")),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(name="cartitemstatus", create_type=False),
            nullable=False,
            server_default="ACTIVE",
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_cart_items_cart_id", "cart_items", ["cart_id"])
    op.create_index(
        "uq_cart_item_active_user_slot",
        "cart_items",
        ["user_id", "slot_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(name="bookingstatus", create_type=False),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_by", sa.String(length=16)),
    )
    op.create_index("ix_bookings_student_id", "bookings", ["student_id"])
    op.create_index("ix_bookings_mentor_id", "bookings", ["mentor_id"])

    op.create_table(
        "booking_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id"), nullable=False),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(name="bookingitemstatus", create_type=False),
            nullable=False,
            server_default="CONFIRMED",
        ),
    )
    op.create_index("ix_booking_items_booking_id", "booking_items", ["booking_id"])
    # One live booking item per slot; cancelled items keep their history
    op.create_index(
        "uq_booking_item_active_slot",
        "booking_items",
        ["slot_id"],
        unique=True,
        postgresql_where=sa.text("status != 'CANCELLED'"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("uq_booking_item_active_slot", table_name="booking_items")
    op.drop_index("ix_booking_items_booking_id", table_name="booking_items")
    op.drop_table("booking_items")
    op.drop_index("ix_bookings_mentor_id", table_name="bookings")
    op.drop_index("ix_bookings_student_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("uq_cart_item_active_user_slot", table_name="cart_items")
    op.drop_index("ix_cart_items_cart_id", table_name="cart_items")
    op.drop_table("cart_items")
    op.drop_table("carts")
    op.drop_index("ix_slots_date", table_name="slots")
    op.drop_index("ix_slots_mentor_id", table_name="slots")
    op.drop_table("slots")
    op.drop_table("users")
    op.drop_table("categories")

    bind = op.get_bind()
    for name in ("bookingitemstatus", "bookingstatus", "cartitemstatus", "slotstatus", "userrole"):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
