from collections.abc import Callable
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from readyset.auth.dependencies import (
    AuthContext,
    require_tracking_reader,
    require_tracking_writer,
)
from readyset.config import settings
from readyset.db.session import get_db, get_session_factory
from readyset.schemas.common import DataResponse, MessageResponse, error_responses
from readyset.schemas.tracking import (
    DeliveryCreated,
    DeliveryCreateRequest,
    DeliveryDetail,
    DeliveryUpdateRequest,
    TrackingDeliveriesResponse,
    TrackingPagination,
)
from readyset.services.deliveries_service import (
    DeliveryFilters,
    cancel_delivery,
    create_delivery,
    get_delivery,
    list_tracking_deliveries,
    update_delivery,
)
from readyset.services.live_tracking_service import live_tracking_events

router = APIRouter(
    prefix="/api/tracking",
    tags=["tracking"],
    responses=error_responses(400, 401, 403, 500),
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get(
    "/deliveries",
    response_model=TrackingDeliveriesResponse,
    summary="List deliveries from both tracking sources",
)
def list_deliveries_endpoint(
    db: Session = Depends(get_db),
    driver_id: str | None = Query(default=None),
    status: str | None = Query(default=None),
    limit: int = Query(default=settings.tracking_default_limit, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    source: Literal["deliveries", "dispatches"] | None = Query(default=None),
    auth: AuthContext = Depends(require_tracking_reader),
) -> TrackingDeliveriesResponse:
    filters = DeliveryFilters(
        driver_id=driver_id,
        status=status,
        source=source,
        limit=limit,
        offset=offset,
    )
    items, total = list_tracking_deliveries(db, auth, filters)
    return TrackingDeliveriesResponse(
        data=items,
        pagination=TrackingPagination(limit=limit, offset=offset, total=total),
    )


@router.post(
    "/deliveries",
    response_model=DataResponse[DeliveryCreated],
    status_code=201,
    summary="Assign a new delivery to a driver",
    responses=error_responses(404),
)
def create_delivery_endpoint(
    payload: DeliveryCreateRequest,
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_tracking_writer),
) -> DataResponse[DeliveryCreated]:
    return DataResponse[DeliveryCreated](data=create_delivery(db, payload))


@router.get(
    "/deliveries/{delivery_id}",
    response_model=None,
    summary="Get delivery detail",
    responses={200: {"model": DataResponse[DeliveryDetail]}, **error_responses(404)},
)
def get_delivery_endpoint(
    delivery_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_tracking_reader),
) -> dict:
    detail = get_delivery(db, auth, delivery_id)
    # Drivers never see the driver record block, not even as null
    exclude = {"data": {"driver_info"}} if auth.is_driver else None
    return DataResponse[DeliveryDetail](data=detail).model_dump(
        mode="json", by_alias=True, exclude=exclude
    )


@router.put(
    "/deliveries/{delivery_id}",
    response_model=MessageResponse,
    summary="Update delivery status, location or proof of delivery",
    responses=error_responses(404),
)
def update_delivery_endpoint(
    delivery_id: str,
    payload: DeliveryUpdateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_tracking_reader),
) -> MessageResponse:
    update_delivery(db, auth, delivery_id, payload)
    return MessageResponse(message="Delivery updated successfully")


@router.delete(
    "/deliveries/{delivery_id}",
    response_model=MessageResponse,
    summary="Cancel delivery",
    responses=error_responses(404),
)
def cancel_delivery_endpoint(
    delivery_id: str,
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_tracking_writer),
) -> MessageResponse:
    cancel_delivery(db, delivery_id)
    return MessageResponse(message="Delivery cancelled successfully")


@router.get(
    "/live",
    summary="Live driver tracking stream (server-sent events)",
    response_class=StreamingResponse,
)
async def live_tracking_endpoint(
    request: Request,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    _auth: AuthContext = Depends(require_tracking_writer),
) -> StreamingResponse:
    return StreamingResponse(
        live_tracking_events(request, session_factory),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
