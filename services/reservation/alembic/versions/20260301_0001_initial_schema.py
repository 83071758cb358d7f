"""initial schema

Revision ID: 20260301_0001
Revises: 
Create Date: 2026-03-01 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated: bool = True):
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now())]
    if with_updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()))
    return columns


def upgrade() -> None:
    op.create_table(
        "reservation_configs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="Asia/Tokyo"),
        sa.Column("reservation_interval_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("reservation_limit_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("available_cancel_days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("available_sheet", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("today_first_later_minutes", sa.Integer(), nullable=False, server_default="30"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "org_id", name="uq_reservation_configs_org"),
    )
    op.create_index("ix_reservation_configs_tenant_id", "reservation_configs", ["tenant_id"])
    op.create_index("ix_reservation_configs_org_id", "reservation_configs", ["org_id"])

    op.create_table(
        "week_schedules",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("day_of_week", sa.String(length=16), nullable=False),
        sa.Column("is_open", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("open_time", sa.String(length=5), nullable=True),
        sa.Column("close_time", sa.String(length=5), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "org_id", "day_of_week", name="uq_week_schedules_org_day"),
    )
    op.create_index("ix_week_schedules_tenant_id", "week_schedules", ["tenant_id"])
    op.create_index("ix_week_schedules_org_id", "week_schedules", ["org_id"])

    op.create_table(
        "exception_schedules",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="holiday"),
        sa.Column("open_time", sa.String(length=5), nullable=True),
        sa.Column("close_time", sa.String(length=5), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("record_state", sa.String(length=16), nullable=False, server_default="active"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_exception_schedules_tenant_id", "exception_schedules", ["tenant_id"])
    op.create_index("ix_exception_schedules_org_id", "exception_schedules", ["org_id"])
    op.create_index("ix_exception_schedules_org_date", "exception_schedules", ["tenant_id", "org_id", "date"])

    op.create_table(
        "staff_week_schedules",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("staff_id", sa.Uuid(), nullable=False),
        sa.Column("day_of_week", sa.String(length=16), nullable=False),
        sa.Column("is_open", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("open_time", sa.String(length=5), nullable=True),
        sa.Column("close_time", sa.String(length=5), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "org_id", "staff_id", "day_of_week", name="uq_staff_week_schedules_staff_day"
        ),
    )
    op.create_index("ix_staff_week_schedules_tenant_id", "staff_week_schedules", ["tenant_id"])
    op.create_index("ix_staff_week_schedules_org_id", "staff_week_schedules", ["org_id"])
    op.create_index("ix_staff_week_schedules_staff_id", "staff_week_schedules", ["staff_id"])

    op.create_table(
        "staff_schedules",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("staff_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="absent"),
        sa.Column("is_all_day", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("start_time_unix", sa.BigInteger(), nullable=True),
        sa.Column("end_time_unix", sa.BigInteger(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("record_state", sa.String(length=16), nullable=False, server_default="active"),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_schedules_tenant_id", "staff_schedules", ["tenant_id"])
    op.create_index("ix_staff_schedules_org_id", "staff_schedules", ["org_id"])
    op.create_index("ix_staff_schedules_staff_date", "staff_schedules", ["tenant_id", "staff_id", "date"])

    op.create_table(
        "menus",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sale_price", sa.Integer(), nullable=True),
        sa.Column("time_to_min", sa.Integer(), nullable=False),
        sa.Column("ensure_time_to_min", sa.Integer(), nullable=True),
        sa.Column("record_state", sa.String(length=16), nullable=False, server_default="active"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_menus_tenant_id", "menus", ["tenant_id"])
    op.create_index("ix_menus_org_id", "menus", ["org_id"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("staff_id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("staff_name", sa.String(length=255), nullable=True),
        sa.Column("menus", sa.JSON(), nullable=False),
        sa.Column("start_time_unix", sa.BigInteger(), nullable=False),
        sa.Column("end_time_unix", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(length=16), nullable=False, server_default="cash"),
        sa.Column("payment_status", sa.String(length=16), nullable=False, server_default="unpaid"),
        sa.Column("total_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("record_state", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("canceled_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_time_unix < end_time_unix", name="ck_reservations_interval"),
    )
    op.create_index("ix_reservations_tenant_id", "reservations", ["tenant_id"])
    op.create_index("ix_reservations_org_id", "reservations", ["org_id"])
    op.create_index(
        "ix_reservations_staff_interval",
        "reservations",
        ["tenant_id", "staff_id", "start_time_unix", "end_time_unix"],
    )
    op.create_index(
        "ix_reservations_org_interval",
        "reservations",
        ["tenant_id", "org_id", "start_time_unix", "end_time_unix"],
    )

    op.create_table(
        "reservation_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("reservation_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["reservation_id"], ["reservations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reservation_events_reservation_id", "reservation_events", ["reservation_id"])
    op.create_index("ix_reservation_events_tenant_id", "reservation_events", ["tenant_id"])


def downgrade() -> None:
    op.drop_table("reservation_events")
    op.drop_table("reservations")
    op.drop_table("menus")
    op.drop_table("staff_schedules")
    op.drop_table("staff_week_schedules")
    op.drop_table("exception_schedules")
    op.drop_table("week_schedules")
    op.drop_table("reservation_configs")
