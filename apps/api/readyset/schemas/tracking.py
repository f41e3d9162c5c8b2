from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import Field

from readyset.schemas.common import CamelModel


class LatLng(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class DeliveryListItem(CamelModel):
    source_type: Literal["delivery"] = "delivery"
    id: str
    driver_id: str | None
    status: str
    pickup_location: list[float] | None
    delivery_location: list[float] | None
    order_number: str | None
    customer_name: str | None
    pickup_address: str | None
    delivery_address: str | None
    estimated_arrival: datetime | None
    actual_arrival: datetime | None
    route: list[list[float]] = Field(default_factory=list)
    proof_of_delivery: str | None
    assigned_at: datetime | None
    started_at: datetime | None
    arrived_at: datetime | None
    completed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None


class DispatchListItem(CamelModel):
    source_type: Literal["dispatch"] = "dispatch"
    id: str
    catering_request_id: str | None
    on_demand_id: str | None
    driver_id: str | None
    driver_name: str | None
    status: str
    pickup_location: list[float] | None
    delivery_location: list[float] | None
    order_number: str | None
    customer_name: str | None
    pickup_address: str
    delivery_address: str
    estimated_arrival: datetime | None
    estimated_pickup: datetime | None
    route: list[list[float]] = Field(default_factory=list)
    assigned_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    order_type: Literal["catering", "on_demand"]
    has_coordinates: bool


TrackingListItem = Annotated[
    DeliveryListItem | DispatchListItem,
    Field(discriminator="source_type"),
]


class TrackingPagination(CamelModel):
    limit: int
    offset: int
    total: int


class TrackingDeliveriesResponse(CamelModel):
    success: bool = True
    data: list[TrackingListItem]
    pagination: TrackingPagination


class DeliveryCreateRequest(CamelModel):
    # Required fields are checked by the handler so that a missing field maps
    # to a single 400 message rather than a per-field validation error.
    driver_id: str | None = None
    pickup_location: LatLng | None = None
    delivery_location: LatLng | None = None
    catering_request_id: str | None = None
    on_demand_id: str | None = None
    estimated_arrival: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class DeliveryCreated(CamelModel):
    delivery_id: str
    assigned_at: datetime | None
    status: str


class LocationUpdate(CamelModel):
    coordinates: LatLng
    accuracy: float | None = None
    speed: float | None = None
    heading: float | None = None


class DeliveryUpdateRequest(CamelModel):
    status: str | None = None
    location: LocationUpdate | None = None
    proof_of_delivery: str | None = None
    notes: str | None = None


class DriverInfo(CamelModel):
    employee_id: str | None
    vehicle_number: str | None
    user_id: str | None


class DeliveryDetail(CamelModel):
    id: str
    catering_request_id: str | None
    on_demand_id: str | None
    driver_id: str | None
    status: str
    pickup_location: list[float] | None
    delivery_location: list[float] | None
    order_number: str | None
    customer_name: str | None
    pickup_address: str | None
    delivery_address: str | None
    estimated_arrival: datetime | None
    actual_arrival: datetime | None
    proof_of_delivery: str | None
    actual_distance_km: float | None
    route_polyline: str | None
    metadata: dict[str, Any]
    assigned_at: datetime | None
    started_at: datetime | None
    arrived_at: datetime | None
    completed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    driver_info: DriverInfo | None = None
