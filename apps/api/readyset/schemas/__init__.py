from readyset.schemas.address import AddressCreate, AddressListResponse, AddressResponse
from readyset.schemas.common import DataResponse, ErrorResponse, MessageResponse
from readyset.schemas.live import LiveSnapshot
from readyset.schemas.tracking import (
    DeliveryCreateRequest,
    DeliveryDetail,
    DeliveryListItem,
    DeliveryUpdateRequest,
    DispatchListItem,
    TrackingDeliveriesResponse,
)

__all__ = [
    "AddressCreate",
    "AddressListResponse",
    "AddressResponse",
    "DataResponse",
    "ErrorResponse",
    "MessageResponse",
    "LiveSnapshot",
    "DeliveryCreateRequest",
    "DeliveryDetail",
    "DeliveryListItem",
    "DeliveryUpdateRequest",
    "DispatchListItem",
    "TrackingDeliveriesResponse",
]
