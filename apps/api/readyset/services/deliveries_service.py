"""Delivery tracking reads and writes.

Deliveries live in two tables: ``deliveries`` (current tracking system) and
the legacy ``dispatches`` table whose rows point at catering or on-demand
requests. Listing reads both, normalises each row into one view shape and
merges them in memory. Either source may fail on its own; the listing then
degrades to whatever the other source returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from readyset.auth.dependencies import AuthContext
from readyset.models.address import Address
from readyset.models.delivery import Delivery, DeliveryStatus, DriverStatus, FINISHED_STATUSES
from readyset.models.dispatch import CateringRequest, Dispatch, OnDemandRequest
from readyset.models.driver import Driver, DriverShift
from readyset.models.profile import Profile
from readyset.observability import log_event, metrics_store, observe_timing
from readyset.schemas.tracking import (
    DeliveryCreated,
    DeliveryCreateRequest,
    DeliveryDetail,
    DeliveryListItem,
    DeliveryUpdateRequest,
    DispatchListItem,
    DriverInfo,
)
from readyset.services.geo import geojson_to_lat_lng, join_address, lat_lng_pair, point_geojson

SOURCE_DELIVERIES = "deliveries"
SOURCE_DISPATCHES = "dispatches"
MISSING_FIELDS_MESSAGE = "Missing required fields: driverId, pickupLocation, deliveryLocation"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_STATUS_TIMESTAMP_FIELDS = {
    DriverStatus.EN_ROUTE_TO_CLIENT.value: "started_at",
    DriverStatus.ARRIVED_TO_CLIENT.value: "arrived_at",
    DriverStatus.COMPLETED.value: "completed_at",
}
_VALID_DRIVER_STATUSES = frozenset(item.value for item in DriverStatus)

ListItem = DeliveryListItem | DispatchListItem


@dataclass(frozen=True)
class DeliveryFilters:
    driver_id: str | None = None
    status: str | None = None
    source: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class DriverScope:
    """Driver restriction applied to both sources.

    ``own_user_id`` is set for DRIVER callers and always wins over an
    explicit ``driver_id`` filter.
    """

    own_user_id: str | None = None
    driver_id: str | None = None


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def resolve_scope(auth: AuthContext, driver_id: str | None) -> DriverScope:
    if auth.is_driver:
        return DriverScope(own_user_id=auth.user_id)
    return DriverScope(driver_id=driver_id or None)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def normalize_delivery_row(delivery: Delivery) -> DeliveryListItem:
    return DeliveryListItem(
        id=delivery.id,
        driver_id=delivery.driver_id,
        status=delivery.status,
        pickup_location=geojson_to_lat_lng(delivery.pickup_location),
        delivery_location=geojson_to_lat_lng(delivery.delivery_location),
        order_number=delivery.order_number,
        customer_name=delivery.customer_name,
        pickup_address=delivery.pickup_address,
        delivery_address=delivery.delivery_address,
        estimated_arrival=delivery.estimated_arrival,
        actual_arrival=delivery.actual_arrival,
        proof_of_delivery=delivery.proof_of_delivery,
        assigned_at=delivery.assigned_at,
        started_at=delivery.started_at,
        arrived_at=delivery.arrived_at,
        completed_at=delivery.completed_at,
        created_at=delivery.created_at,
        updated_at=delivery.updated_at,
    )


def normalize_dispatch_row(
    dispatch: Dispatch,
    order: CateringRequest | OnDemandRequest | None,
    pickup: Address | None,
    dropoff: Address | None,
    driver_profile: Profile | None = None,
) -> DispatchListItem:
    is_catering = dispatch.catering_request_id is not None
    pickup_location = lat_lng_pair(
        pickup.latitude if pickup else None, pickup.longitude if pickup else None
    )
    delivery_location = lat_lng_pair(
        dropoff.latitude if dropoff else None, dropoff.longitude if dropoff else None
    )
    status_value = None
    if order is not None:
        status_value = order.driver_status or order.status

    return DispatchListItem(
        id=dispatch.id,
        catering_request_id=dispatch.catering_request_id,
        on_demand_id=dispatch.on_demand_id,
        driver_id=dispatch.driver_id,
        driver_name=driver_profile.name if driver_profile else None,
        status=status_value or DriverStatus.ASSIGNED.value,
        pickup_location=pickup_location,
        delivery_location=delivery_location,
        order_number=order.order_number if order else None,
        customer_name=order.client_attention if order else None,
        pickup_address=_address_line(pickup),
        delivery_address=_address_line(dropoff),
        estimated_arrival=order.arrival_date_time if order else None,
        estimated_pickup=order.pickup_date_time if order else None,
        assigned_at=dispatch.created_at,
        created_at=dispatch.created_at,
        updated_at=dispatch.updated_at,
        order_type="catering" if is_catering else "on_demand",
        has_coordinates=pickup_location is not None and delivery_location is not None,
    )


def _address_line(address: Address | None) -> str:
    if address is None:
        return ""
    return join_address(address.street1, address.city, address.state, address.zip)


def fetch_delivery_source(
    db: Session, scope: DriverScope, status_filter: str | None
) -> list[DeliveryListItem]:
    query = select(Delivery).where(Delivery.deleted_at.is_(None))

    if scope.own_user_id:
        # deliveries.driver_id holds either the drivers row id or, in older
        # rows, the driver's profile id.
        owned_driver_ids = select(Driver.id).where(Driver.user_id == scope.own_user_id)
        query = query.where(
            or_(Delivery.driver_id == scope.own_user_id, Delivery.driver_id.in_(owned_driver_ids))
        )
    elif scope.driver_id:
        query = query.where(Delivery.driver_id == scope.driver_id)

    if status_filter:
        query = query.where(Delivery.status == status_filter)

    rows = db.scalars(query.order_by(Delivery.assigned_at.desc()))
    return [normalize_delivery_row(row) for row in rows]


def fetch_dispatch_source(
    db: Session, scope: DriverScope, status_filter: str | None
) -> list[DispatchListItem]:
    catering = aliased(CateringRequest)
    on_demand = aliased(OnDemandRequest)
    catering_pickup = aliased(Address)
    catering_dropoff = aliased(Address)
    on_demand_pickup = aliased(Address)
    on_demand_dropoff = aliased(Address)
    driver_profile = aliased(Profile)

    query = (
        select(
            Dispatch,
            catering,
            catering_pickup,
            catering_dropoff,
            on_demand,
            on_demand_pickup,
            on_demand_dropoff,
            driver_profile,
        )
        .select_from(Dispatch)
        .outerjoin(catering, Dispatch.catering_request_id == catering.id)
        .outerjoin(catering_pickup, catering.pickup_address_id == catering_pickup.id)
        .outerjoin(catering_dropoff, catering.delivery_address_id == catering_dropoff.id)
        .outerjoin(on_demand, Dispatch.on_demand_id == on_demand.id)
        .outerjoin(on_demand_pickup, on_demand.pickup_address_id == on_demand_pickup.id)
        .outerjoin(on_demand_dropoff, on_demand.delivery_address_id == on_demand_dropoff.id)
        .outerjoin(driver_profile, Dispatch.driver_id == driver_profile.id)
        .where(Dispatch.driver_id.is_not(None))
    )

    driver_id = scope.own_user_id or scope.driver_id
    if driver_id:
        query = query.where(Dispatch.driver_id == driver_id)

    if status_filter:
        query = query.where(
            or_(
                catering.status == status_filter,
                on_demand.status == status_filter,
                catering.driver_status == status_filter,
                on_demand.driver_status == status_filter,
            )
        )

    # Only orders still in flight
    finished = list(FINISHED_STATUSES)
    query = query.where(
        or_(
            and_(
                catering.id.is_not(None),
                catering.status.not_in(finished),
                catering.deleted_at.is_(None),
            ),
            and_(
                on_demand.id.is_not(None),
                on_demand.status.not_in(finished),
                on_demand.deleted_at.is_(None),
            ),
        )
    )

    items: list[DispatchListItem] = []
    for row in db.execute(query.order_by(Dispatch.created_at.desc())):
        dispatch, cr, cr_pickup, cr_dropoff, od, od_pickup, od_dropoff, profile = row
        if dispatch.catering_request_id is not None:
            items.append(normalize_dispatch_row(dispatch, cr, cr_pickup, cr_dropoff, profile))
        else:
            items.append(normalize_dispatch_row(dispatch, od, od_pickup, od_dropoff, profile))
    return items


def _collect_source(
    db: Session,
    source: str,
    fetch: Callable[[], list],
    *,
    level: int,
) -> list[ListItem]:
    try:
        with observe_timing(f"tracking_{source}_query_seconds"):
            return fetch()
    except (SQLAlchemyError, ValidationError) as err:
        # Rows that fail normalisation drop their source too
        db.rollback()
        metrics_store.increment(f"tracking_{source}_query_failed_total")
        log_event(f"Could not fetch from {source} table", level=level, source=source, exc_info=err)
        return []


def _sort_timestamp(item: ListItem) -> datetime:
    value = item.assigned_at or item.created_at
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def merge_and_paginate(
    items: list[ListItem], *, limit: int, offset: int
) -> tuple[list[ListItem], int]:
    ordered = sorted(items, key=_sort_timestamp, reverse=True)
    return ordered[offset : offset + limit], len(ordered)


def list_tracking_deliveries(
    db: Session, auth: AuthContext, filters: DeliveryFilters
) -> tuple[list[ListItem], int]:
    scope = resolve_scope(auth, filters.driver_id)
    combined: list[ListItem] = []

    if filters.source in (None, SOURCE_DELIVERIES):
        combined.extend(
            _collect_source(
                db,
                SOURCE_DELIVERIES,
                lambda: fetch_delivery_source(db, scope, filters.status),
                level=logging.WARNING,
            )
        )

    if filters.source in (None, SOURCE_DISPATCHES):
        combined.extend(
            _collect_source(
                db,
                SOURCE_DISPATCHES,
                lambda: fetch_dispatch_source(db, scope, filters.status),
                level=logging.ERROR,
            )
        )

    return merge_and_paginate(combined, limit=filters.limit, offset=filters.offset)


# ---------------------------------------------------------------------------
# Single delivery
# ---------------------------------------------------------------------------


def create_delivery(db: Session, payload: DeliveryCreateRequest) -> DeliveryCreated:
    if not payload.driver_id or not payload.pickup_location or not payload.delivery_location:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_FIELDS_MESSAGE)

    try:
        driver = db.get(Driver, payload.driver_id)
        if driver is None or not driver.is_active or driver.deleted_at is not None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Driver not found or inactive"
            )

        delivery = Delivery(
            driver_id=driver.id,
            pickup_location=point_geojson(payload.pickup_location.lat, payload.pickup_location.lng),
            delivery_location=point_geojson(
                payload.delivery_location.lat, payload.delivery_location.lng
            ),
            catering_request_id=payload.catering_request_id or None,
            on_demand_id=payload.on_demand_id or None,
            estimated_arrival=payload.estimated_arrival,
            status=DeliveryStatus.ASSIGNED.value,
            assigned_at=now_utc(),
            metadata_json=dict(payload.metadata),
        )
        db.add(delivery)
        db.commit()
        db.refresh(delivery)
    except SQLAlchemyError as err:
        db.rollback()
        log_event(
            "Error creating delivery",
            level=logging.ERROR,
            driver_id=payload.driver_id,
            exc_info=err,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create delivery"
        ) from err

    metrics_store.increment("tracking_deliveries_created_total")
    log_event("delivery_created", delivery_id=delivery.id, driver_id=delivery.driver_id)
    return DeliveryCreated(
        delivery_id=delivery.id,
        assigned_at=delivery.assigned_at,
        status=delivery.status,
    )


def _owned_by(auth: AuthContext, delivery: Delivery, driver: Driver | None) -> bool:
    if delivery.driver_id == auth.user_id:
        return True
    return driver is not None and driver.user_id == auth.user_id


def _load_delivery(db: Session, delivery_id: str) -> tuple[Delivery, Driver | None] | None:
    row = db.execute(
        select(Delivery, Driver)
        .outerjoin(Driver, Delivery.driver_id == Driver.id)
        .where(Delivery.id == delivery_id, Delivery.deleted_at.is_(None))
    ).first()
    if row is None:
        return None
    return row[0], row[1]


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Delivery not found")


def get_delivery(db: Session, auth: AuthContext, delivery_id: str) -> DeliveryDetail:
    try:
        loaded = _load_delivery(db, delivery_id)
    except SQLAlchemyError as err:
        log_event(
            "Error fetching delivery",
            level=logging.ERROR,
            delivery_id=delivery_id,
            exc_info=err,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch delivery"
        ) from err

    if loaded is None:
        raise _not_found()
    delivery, driver = loaded

    # Drivers get a 404 rather than a 403 so delivery ids are not probeable.
    if auth.is_driver and not _owned_by(auth, delivery, driver):
        raise _not_found()

    detail = DeliveryDetail(
        id=delivery.id,
        catering_request_id=delivery.catering_request_id,
        on_demand_id=delivery.on_demand_id,
        driver_id=delivery.driver_id,
        status=delivery.status,
        pickup_location=geojson_to_lat_lng(delivery.pickup_location),
        delivery_location=geojson_to_lat_lng(delivery.delivery_location),
        order_number=delivery.order_number,
        customer_name=delivery.customer_name,
        pickup_address=delivery.pickup_address,
        delivery_address=delivery.delivery_address,
        estimated_arrival=delivery.estimated_arrival,
        actual_arrival=delivery.actual_arrival,
        proof_of_delivery=delivery.proof_of_delivery,
        actual_distance_km=delivery.actual_distance_km,
        route_polyline=delivery.route_polyline,
        metadata=delivery.metadata_json or {},
        assigned_at=delivery.assigned_at,
        started_at=delivery.started_at,
        arrived_at=delivery.arrived_at,
        completed_at=delivery.completed_at,
        created_at=delivery.created_at,
        updated_at=delivery.updated_at,
    )
    if not auth.is_driver:
        detail.driver_info = DriverInfo(
            employee_id=driver.employee_id if driver else None,
            vehicle_number=driver.vehicle_number if driver else None,
            user_id=driver.user_id if driver else None,
        )
    return detail


def update_delivery(
    db: Session, auth: AuthContext, delivery_id: str, payload: DeliveryUpdateRequest
) -> None:
    try:
        loaded = _load_delivery(db, delivery_id)
        if loaded is None:
            raise _not_found()
        delivery, driver = loaded

        if auth.is_driver and not _owned_by(auth, delivery, driver):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

        if payload.status is not None and payload.status not in _VALID_DRIVER_STATUSES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")

        now = now_utc()
        if payload.status is not None:
            delivery.status = payload.status
            timestamp_field = _STATUS_TIMESTAMP_FIELDS.get(payload.status)
            if timestamp_field:
                setattr(delivery, timestamp_field, now)
            if payload.status == DriverStatus.COMPLETED.value:
                delivery.actual_arrival = now

        if payload.location is not None:
            coordinates = payload.location.coordinates
            point = point_geojson(coordinates.lat, coordinates.lng)
            delivery.current_location = point
            if driver is not None:
                driver.last_known_location = point
                driver.last_location_update = now

        if payload.proof_of_delivery:
            delivery.proof_of_delivery = payload.proof_of_delivery

        if payload.notes:
            delivery.metadata_json = {
                **(delivery.metadata_json or {}),
                "notes": payload.notes,
                "statusUpdatedAt": now.isoformat(),
            }

        delivery.updated_at = now

        if payload.status == DriverStatus.COMPLETED.value and delivery.driver_id:
            db.execute(
                update(DriverShift)
                .where(DriverShift.driver_id == delivery.driver_id, DriverShift.status == "active")
                .values(delivery_count=DriverShift.delivery_count + 1, updated_at=now)
            )

        if payload.status is not None:
            _propagate_driver_status(db, delivery, payload.status)

        db.commit()
    except SQLAlchemyError as err:
        db.rollback()
        log_event(
            "Error updating delivery",
            level=logging.ERROR,
            delivery_id=delivery_id,
            exc_info=err,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update delivery"
        ) from err

    log_event(
        "delivery_updated",
        delivery_id=delivery_id,
        driver_id=delivery.driver_id,
    )


def _propagate_driver_status(db: Session, delivery: Delivery, driver_status: str) -> None:
    if delivery.catering_request_id:
        catering = db.get(CateringRequest, delivery.catering_request_id)
        if catering is not None:
            catering.driver_status = driver_status
    if delivery.on_demand_id:
        on_demand = db.get(OnDemandRequest, delivery.on_demand_id)
        if on_demand is not None:
            on_demand.driver_status = driver_status


def cancel_delivery(db: Session, delivery_id: str) -> None:
    try:
        delivery = db.scalar(
            select(Delivery).where(Delivery.id == delivery_id, Delivery.deleted_at.is_(None))
        )
        if delivery is None:
            raise _not_found()

        if delivery.status in (DeliveryStatus.COMPLETED.value, DeliveryStatus.DELIVERED.value):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot cancel completed delivery",
            )
        if delivery.status == DeliveryStatus.CANCELLED.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Delivery already cancelled"
            )

        delivery.status = DeliveryStatus.CANCELLED.value
        delivery.updated_at = now_utc()
        db.commit()
    except SQLAlchemyError as err:
        db.rollback()
        log_event(
            "Error cancelling delivery",
            level=logging.ERROR,
            delivery_id=delivery_id,
            exc_info=err,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to cancel delivery"
        ) from err

    log_event("delivery_cancelled", delivery_id=delivery_id, driver_id=delivery.driver_id)
