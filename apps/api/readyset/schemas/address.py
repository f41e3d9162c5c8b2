from datetime import datetime
from typing import Literal

from readyset.schemas.common import CamelModel

AddressFilter = Literal["all", "shared", "private"]


class AddressResponse(CamelModel):
    id: str
    name: str | None
    street1: str
    street2: str | None
    city: str
    state: str
    zip: str
    county: str | None
    latitude: float | None = None
    longitude: float | None = None
    is_restaurant: bool
    is_shared: bool
    location_number: str | None
    parking_loading: str | None
    created_at: datetime | None
    created_by: str | None
    updated_at: datetime | None


class AddressCreate(CamelModel):
    # Presence of the address lines is checked by the service so all missing
    # fields are reported together under "Validation failed".
    name: str | None = None
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    county: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    location_number: str | None = None
    parking_loading: str | None = None
    is_restaurant: bool = False
    is_shared: bool = False


class AddressUpdate(CamelModel):
    name: str | None = None
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    county: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    location_number: str | None = None
    parking_loading: str | None = None
    is_restaurant: bool | None = None
    is_shared: bool | None = None


class AddressPagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    limit: int


class AddressCounts(CamelModel):
    all: int
    shared: int
    private: int


class AddressListResponse(CamelModel):
    addresses: list[AddressResponse]
    pagination: AddressPagination
    counts: AddressCounts


class AddressDeleteResponse(CamelModel):
    success: bool = True
