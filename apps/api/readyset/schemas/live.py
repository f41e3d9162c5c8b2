from datetime import datetime
from typing import Any, Literal

from readyset.schemas.common import CamelModel


class LiveDriver(CamelModel):
    id: str
    user_id: str | None
    employee_id: str | None
    name: str | None
    vehicle_number: str | None
    phone_number: str | None
    is_on_duty: bool
    shift_start_time: datetime | None
    current_shift_id: str | None
    last_known_location: dict[str, Any] | None
    last_location_update: datetime | None
    shift_status: str | None
    shift_start: datetime | None
    total_distance: float
    active_deliveries: int


class LiveLocation(CamelModel):
    driver_id: str
    location: dict[str, Any] | None
    accuracy: float | None
    speed: float | None
    heading: float | None
    battery_level: float | None
    is_moving: bool | None
    source: str | None
    recorded_at: datetime | None


class LiveDelivery(CamelModel):
    id: str
    driver_id: str | None
    # profile id stored on the dispatch; driver_id holds drivers.id when one matches
    dispatch_driver_id: str | None = None
    shift_id: str | None = None
    order_number: str | None
    status: str
    customer_name: str | None
    customer_phone: str | None = None
    pickup_address: str | None
    pickup_location: dict[str, Any] | None
    delivery_address: str | None
    delivery_location: dict[str, Any] | None
    estimated_pickup_time: datetime | None
    estimated_delivery_time: datetime | None
    assigned_at: datetime | None
    priority: str | None = None
    delivery_instructions: str | None = None
    order_type: Literal["catering", "on_demand"] | None = None
    driver_name: str | None = None
    source: Literal["deliveries", "dispatches"]


class LiveSnapshot(CamelModel):
    active_drivers: list[LiveDriver]
    recent_locations: list[LiveLocation]
    active_deliveries: list[LiveDelivery]
