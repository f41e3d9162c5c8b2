"""Snapshot builder and event stream behind the live tracking dashboard."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Request
from pydantic import ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased
from starlette.concurrency import run_in_threadpool

from readyset.config import settings
from readyset.models.address import Address
from readyset.models.delivery import Delivery, FINISHED_STATUSES
from readyset.models.dispatch import CateringRequest, Dispatch, OnDemandRequest
from readyset.models.driver import Driver, DriverLocation, DriverShift
from readyset.models.profile import Profile
from readyset.observability import log_event, metrics_store
from readyset.schemas.live import LiveDelivery, LiveDriver, LiveLocation, LiveSnapshot
from readyset.services.geo import join_address, parse_geojson, point_geojson

CONNECTED_MESSAGE = "Connected to driver tracking stream"
UPDATE_ERROR_MESSAGE = "Error fetching driver updates"

LIVE_EXCLUDED_ORDER_STATUS = "CANCELLED"
LIVE_EXCLUDED_DRIVER_STATUS = "COMPLETED"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _active_drivers(db: Session) -> list[LiveDriver]:
    active_count = (
        select(func.count(Delivery.id))
        .where(
            Delivery.driver_id == Driver.id,
            Delivery.deleted_at.is_(None),
            Delivery.status.not_in(list(FINISHED_STATUSES)),
        )
        .correlate(Driver)
        .scalar_subquery()
    )
    query = (
        select(Driver, Profile.name, DriverShift, active_count)
        .outerjoin(Profile, Driver.profile_id == Profile.id)
        .outerjoin(DriverShift, Driver.current_shift_id == DriverShift.id)
        .where(Driver.is_active.is_(True), Driver.deleted_at.is_(None))
        .order_by(Driver.is_on_duty.desc(), Driver.last_location_update.desc())
    )

    drivers: list[LiveDriver] = []
    for driver, name, shift, deliveries in db.execute(query):
        drivers.append(
            LiveDriver(
                id=driver.id,
                user_id=driver.user_id,
                employee_id=driver.employee_id,
                name=name,
                vehicle_number=driver.vehicle_number,
                phone_number=driver.phone_number,
                is_on_duty=shift is not None and shift.status == "active",
                shift_start_time=driver.shift_start_time,
                current_shift_id=driver.current_shift_id,
                last_known_location=parse_geojson(driver.last_known_location),
                last_location_update=driver.last_location_update,
                shift_status=shift.status if shift else None,
                shift_start=shift.shift_start if shift else None,
                total_distance=(shift.total_distance if shift else None) or 0,
                active_deliveries=deliveries or 0,
            )
        )
    return drivers


def _recent_locations(db: Session, now: datetime) -> list[LiveLocation]:
    since = now - timedelta(seconds=settings.live_tracking_recent_location_window_s)
    on_duty_drivers = select(Driver.id).where(
        Driver.is_active.is_(True), Driver.is_on_duty.is_(True)
    )
    rows = db.scalars(
        select(DriverLocation)
        .where(
            DriverLocation.recorded_at > since,
            DriverLocation.driver_id.in_(on_duty_drivers),
            DriverLocation.deleted_at.is_(None),
        )
        .order_by(DriverLocation.recorded_at.desc())
    )
    return [
        LiveLocation(
            driver_id=row.driver_id,
            location=parse_geojson(row.location),
            accuracy=row.accuracy,
            speed=row.speed,
            heading=row.heading,
            battery_level=row.battery_level,
            is_moving=row.is_moving,
            source=row.source,
            recorded_at=row.recorded_at,
        )
        for row in rows
    ]


def _street_line(address: Address | None) -> str:
    if address is None:
        return ""
    return join_address(address.street1, address.city, address.state)


def _address_point(address: Address | None) -> dict[str, Any] | None:
    if address is None or address.latitude is None or address.longitude is None:
        return None
    return point_geojson(address.latitude, address.longitude)


def _live_dispatches(
    db: Session,
    order_model: type[CateringRequest] | type[OnDemandRequest],
    order_fk: Any,
    order_type: str,
) -> list[LiveDelivery]:
    pickup = aliased(Address)
    dropoff = aliased(Address)
    customer = aliased(Profile)
    driver_profile = aliased(Profile)
    query = (
        select(Dispatch, order_model, Driver.id, customer.name, driver_profile.name, pickup, dropoff)
        .select_from(Dispatch)
        .join(order_model, order_fk == order_model.id)
        .outerjoin(Driver, Driver.profile_id == Dispatch.driver_id)
        .outerjoin(driver_profile, driver_profile.id == Dispatch.driver_id)
        .outerjoin(customer, customer.id == order_model.user_id)
        .outerjoin(pickup, order_model.pickup_address_id == pickup.id)
        .outerjoin(dropoff, order_model.delivery_address_id == dropoff.id)
        .where(
            Dispatch.driver_id.is_not(None),
            order_model.status != LIVE_EXCLUDED_ORDER_STATUS,
            or_(
                order_model.driver_status.is_(None),
                order_model.driver_status != LIVE_EXCLUDED_DRIVER_STATUS,
            ),
            order_model.deleted_at.is_(None),
        )
    )
    return [
        LiveDelivery(
            id=dispatch.id,
            driver_id=driver_id or dispatch.driver_id,
            dispatch_driver_id=dispatch.driver_id,
            order_number=order.order_number,
            status=order.driver_status or order.status,
            customer_name=customer_name,
            pickup_address=_street_line(pickup_address),
            pickup_location=_address_point(pickup_address),
            delivery_address=_street_line(delivery_address),
            delivery_location=_address_point(delivery_address),
            estimated_pickup_time=order.pickup_date_time,
            estimated_delivery_time=order.arrival_date_time,
            assigned_at=dispatch.created_at,
            order_type=order_type,
            driver_name=driver_name,
            source="dispatches",
        )
        for (
            dispatch,
            order,
            driver_id,
            customer_name,
            driver_name,
            pickup_address,
            delivery_address,
        ) in db.execute(query)
    ]


def _newest_first(item: LiveDelivery) -> datetime:
    value = item.assigned_at or _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _active_deliveries(db: Session) -> list[LiveDelivery]:
    rows = db.scalars(
        select(Delivery)
        .where(
            Delivery.status.not_in(list(FINISHED_STATUSES)),
            Delivery.driver_id.is_not(None),
            Delivery.deleted_at.is_(None),
        )
        .order_by(Delivery.assigned_at.desc())
    )
    deliveries = [
        LiveDelivery(
            id=row.id,
            driver_id=row.driver_id,
            shift_id=row.shift_id,
            order_number=row.order_number,
            status=row.status,
            customer_name=row.customer_name,
            customer_phone=row.customer_phone,
            pickup_address=row.pickup_address,
            pickup_location=parse_geojson(row.pickup_location),
            delivery_address=row.delivery_address,
            delivery_location=parse_geojson(row.delivery_location),
            estimated_pickup_time=row.estimated_pickup_time,
            estimated_delivery_time=row.estimated_arrival,
            assigned_at=row.assigned_at,
            priority=row.priority,
            delivery_instructions=row.delivery_instructions,
            source="deliveries",
        )
        for row in rows
    ]

    dispatches = [
        *_live_dispatches(db, CateringRequest, Dispatch.catering_request_id, "catering"),
        *_live_dispatches(db, OnDemandRequest, Dispatch.on_demand_id, "on_demand"),
    ]
    dispatches.sort(key=_newest_first, reverse=True)
    return deliveries + dispatches


def build_live_snapshot(db: Session, now: datetime | None = None) -> LiveSnapshot:
    now = now or datetime.now(timezone.utc)
    return LiveSnapshot(
        active_drivers=_active_drivers(db),
        recent_locations=_recent_locations(db, now),
        active_deliveries=_active_deliveries(db),
    )


def format_sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _snapshot_event(session_factory: Callable[[], Session]) -> dict[str, Any]:
    with session_factory() as db:
        snapshot = build_live_snapshot(db)
    return {
        "type": "driver_update",
        "timestamp": _timestamp(),
        "data": snapshot.model_dump(mode="json", by_alias=True),
    }


async def live_tracking_events(
    request: Request,
    session_factory: Callable[[], Session],
    interval_s: float | None = None,
) -> AsyncIterator[str]:
    interval_s = settings.live_tracking_interval_s if interval_s is None else interval_s
    metrics_store.increment("live_tracking_connections_total")
    yield format_sse(
        {"type": "connection", "message": CONNECTED_MESSAGE, "timestamp": _timestamp()}
    )

    while True:
        await asyncio.sleep(interval_s)
        if await request.is_disconnected():
            break
        try:
            event = await run_in_threadpool(_snapshot_event, session_factory)
        except (SQLAlchemyError, ValidationError) as err:
            metrics_store.increment("live_tracking_update_failed_total")
            log_event(UPDATE_ERROR_MESSAGE, level=logging.ERROR, exc_info=err)
            yield format_sse({"type": "error", "message": UPDATE_ERROR_MESSAGE})
            continue
        yield format_sse(event)
