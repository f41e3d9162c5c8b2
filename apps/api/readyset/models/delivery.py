import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from readyset.db.base import Base


class DriverStatus(str, enum.Enum):
    ASSIGNED = "ASSIGNED"
    STARTED = "STARTED"
    EN_ROUTE_TO_VENDOR = "EN_ROUTE_TO_VENDOR"
    ARRIVED_AT_VENDOR = "ARRIVED_AT_VENDOR"
    PICKED_UP = "PICKED_UP"
    EN_ROUTE_TO_CLIENT = "EN_ROUTE_TO_CLIENT"
    ARRIVED_TO_CLIENT = "ARRIVED_TO_CLIENT"
    COMPLETED = "COMPLETED"


class DeliveryStatus(str, enum.Enum):
    ASSIGNED = "ASSIGNED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


FINISHED_STATUSES = frozenset(
    {DeliveryStatus.COMPLETED.value, DeliveryStatus.DELIVERED.value, DeliveryStatus.CANCELLED.value}
)


class Delivery(Base):
    __tablename__ = "deliveries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    driver_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    shift_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    catering_request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    on_demand_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=DeliveryStatus.ASSIGNED.value, index=True
    )
    order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pickup_address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    delivery_address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # GeoJSON points: {"type": "Point", "coordinates": [lng, lat]}
    pickup_location: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    delivery_location: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    current_location: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    priority: Mapped[str | None] = mapped_column(String(32), nullable=True)
    delivery_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_pickup_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    estimated_arrival: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_arrival: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    proof_of_delivery: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    actual_distance_km: Mapped[float | None] = mapped_column(Float, nullable=True)
    route_polyline: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    arrived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
