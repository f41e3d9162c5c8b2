"""create profiles, drivers, addresses, orders, dispatches and deliveries

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:01:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_TYPE = sa.Enum(
    "ADMIN", "SUPER_ADMIN", "HELPDESK", "DRIVER", "CLIENT", "VENDOR", name="user_type"
)


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("CURRENT_TIMESTAMP"),
                nullable=False,
            )
        )
    return columns


def _order_request_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("order_number", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("driver_status", sa.String(length=32), nullable=True),
        sa.Column("client_attention", sa.String(length=255), nullable=True),
        sa.Column("pickup_date_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrival_date_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pickup_address_id", sa.String(length=64), nullable=True),
        sa.Column("delivery_address_id", sa.String(length=64), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["pickup_address_id"], ["addresses.id"]),
        sa.ForeignKeyConstraint(["delivery_address_id"], ["addresses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number"),
    )


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("type", USER_TYPE, nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "drivers",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("profile_id", sa.String(length=64), nullable=True),
        sa.Column("employee_id", sa.String(length=64), nullable=True),
        sa.Column("vehicle_number", sa.String(length=64), nullable=True),
        sa.Column("phone_number", sa.String(length=50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_on_duty", sa.Boolean(), nullable=False),
        sa.Column("shift_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_shift_id", sa.String(length=64), nullable=True),
        sa.Column("last_known_location", sa.JSON(), nullable=True),
        sa.Column("last_location_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_drivers_user_id", "drivers", ["user_id"], unique=False)
    op.create_index("ix_drivers_profile_id", "drivers", ["profile_id"], unique=False)

    op.create_table(
        "driver_shifts",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("driver_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("shift_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shift_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_distance", sa.Float(), nullable=True),
        sa.Column("delivery_count", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["driver_id"], ["drivers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_driver_shifts_driver_id", "driver_shifts", ["driver_id"], unique=False)

    op.create_table(
        "driver_locations",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("driver_id", sa.String(length=64), nullable=False),
        sa.Column("location", sa.JSON(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("speed", sa.Float(), nullable=True),
        sa.Column("heading", sa.Float(), nullable=True),
        sa.Column("battery_level", sa.Float(), nullable=True),
        sa.Column("is_moving", sa.Boolean(), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=True),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["driver_id"], ["drivers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_driver_locations_driver_id", "driver_locations", ["driver_id"], unique=False
    )
    op.create_index(
        "ix_driver_locations_recorded_at", "driver_locations", ["recorded_at"], unique=False
    )

    op.create_table(
        "addresses",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("street1", sa.String(length=255), nullable=False),
        sa.Column("street2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=False),
        sa.Column("state", sa.String(length=32), nullable=False),
        sa.Column("zip", sa.String(length=16), nullable=False),
        sa.Column("county", sa.String(length=128), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("location_number", sa.String(length=64), nullable=True),
        sa.Column("parking_loading", sa.String(length=512), nullable=True),
        sa.Column("is_restaurant", sa.Boolean(), nullable=False),
        sa.Column("is_shared", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_addresses_created_by", "addresses", ["created_by"], unique=False)

    op.create_table(
        "user_addresses",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("address_id", sa.String(length=64), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["address_id"], ["addresses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "address_id", name="uq_user_address"),
    )
    op.create_index("ix_user_addresses_user_id", "user_addresses", ["user_id"], unique=False)

    _order_request_table("catering_requests")
    _order_request_table("on_demand_requests")

    op.create_table(
        "dispatches",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("catering_request_id", sa.String(length=64), nullable=True),
        sa.Column("on_demand_id", sa.String(length=64), nullable=True),
        sa.Column("driver_id", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["catering_request_id"], ["catering_requests.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["on_demand_id"], ["on_demand_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_dispatches_driver_id", "dispatches", ["driver_id"], unique=False)

    op.create_table(
        "deliveries",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("driver_id", sa.String(length=64), nullable=True),
        sa.Column("shift_id", sa.String(length=64), nullable=True),
        sa.Column("catering_request_id", sa.String(length=64), nullable=True),
        sa.Column("on_demand_id", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("order_number", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=50), nullable=True),
        sa.Column("pickup_address", sa.String(length=512), nullable=True),
        sa.Column("delivery_address", sa.String(length=512), nullable=True),
        sa.Column("pickup_location", sa.JSON(), nullable=True),
        sa.Column("delivery_location", sa.JSON(), nullable=True),
        sa.Column("current_location", sa.JSON(), nullable=True),
        sa.Column("priority", sa.String(length=32), nullable=True),
        sa.Column("delivery_instructions", sa.Text(), nullable=True),
        sa.Column("estimated_pickup_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_arrival", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_arrival", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proof_of_delivery", sa.String(length=1024), nullable=True),
        sa.Column("actual_distance_km", sa.Float(), nullable=True),
        sa.Column("route_polyline", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_deliveries_driver_id", "deliveries", ["driver_id"], unique=False)
    op.create_index("ix_deliveries_status", "deliveries", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_deliveries_status", table_name="deliveries")
    op.drop_index("ix_deliveries_driver_id", table_name="deliveries")
    op.drop_table("deliveries")
    op.drop_index("ix_dispatches_driver_id", table_name="dispatches")
    op.drop_table("dispatches")
    op.drop_table("on_demand_requests")
    op.drop_table("catering_requests")
    op.drop_index("ix_user_addresses_user_id", table_name="user_addresses")
    op.drop_table("user_addresses")
    op.drop_index("ix_addresses_created_by", table_name="addresses")
    op.drop_table("addresses")
    op.drop_index("ix_driver_locations_recorded_at", table_name="driver_locations")
    op.drop_index("ix_driver_locations_driver_id", table_name="driver_locations")
    op.drop_table("driver_locations")
    op.drop_index("ix_driver_shifts_driver_id", table_name="driver_shifts")
    op.drop_table("driver_shifts")
    op.drop_index("ix_drivers_profile_id", table_name="drivers")
    op.drop_index("ix_drivers_user_id", table_name="drivers")
    op.drop_table("drivers")
    op.drop_table("profiles")
    USER_TYPE.drop(op.get_bind(), checkfirst=True)
