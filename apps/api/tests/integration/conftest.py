from datetime import datetime, timezone

import pytest

from readyset.auth.jwt import issue_user_token
from readyset.config import settings
from readyset.models.address import Address
from readyset.models.delivery import Delivery
from readyset.models.dispatch import CateringRequest, Dispatch, OnDemandRequest
from readyset.models.driver import Driver, DriverShift
from readyset.models.profile import Profile, UserType
from readyset.services.geo import point_geojson

DRIVER_USER_ID = "driver-user-1"
OTHER_DRIVER_USER_ID = "driver-user-2"


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def auth_headers():
    def _headers(role: str, sub: str) -> dict[str, str]:
        token = issue_user_token(sub, role, settings.jwt_secret)
        return {"Authorization": f"Bearer {token}"}

    return {
        "admin": _headers("ADMIN", "admin-1"),
        "super_admin": _headers("SUPER_ADMIN", "super-admin-1"),
        "helpdesk": _headers("HELPDESK", "helpdesk-1"),
        "driver": _headers("DRIVER", DRIVER_USER_ID),
        "other_driver": _headers("DRIVER", OTHER_DRIVER_USER_ID),
        "client": _headers("CLIENT", "client-1"),
        "client_b": _headers("CLIENT", "client-2"),
        "vendor": _headers("VENDOR", "vendor-1"),
    }


@pytest.fixture
def drivers(db_session):
    """Two active drivers whose ``user_id`` matches the DRIVER tokens."""
    profile_one = Profile(id=DRIVER_USER_ID, name="Dana Driver", type=UserType.DRIVER)
    profile_two = Profile(id=OTHER_DRIVER_USER_ID, name="Omar Other", type=UserType.DRIVER)
    db_session.add_all([profile_one, profile_two])
    db_session.flush()

    one = Driver(
        id="drv-1",
        user_id=DRIVER_USER_ID,
        profile_id=DRIVER_USER_ID,
        employee_id="EMP-1",
        vehicle_number="VAN-1",
        is_active=True,
        is_on_duty=True,
    )
    two = Driver(
        id="drv-2",
        user_id=OTHER_DRIVER_USER_ID,
        profile_id=OTHER_DRIVER_USER_ID,
        employee_id="EMP-2",
        vehicle_number="VAN-2",
        is_active=True,
    )
    inactive = Driver(id="drv-inactive", user_id="driver-user-3", is_active=False)
    db_session.add_all([one, two, inactive])
    db_session.commit()
    return {"one": one, "two": two, "inactive": inactive}


@pytest.fixture
def make_delivery(db_session):
    def _make(**overrides) -> Delivery:
        values = {
            "driver_id": "drv-1",
            "status": "ASSIGNED",
            "order_number": "DEL-1",
            "customer_name": "Acme Corp",
            "pickup_address": "1 Market St, San Francisco, CA",
            "delivery_address": "500 Howard St, San Francisco, CA",
            "pickup_location": point_geojson(37.79, -122.39),
            "delivery_location": point_geojson(37.78, -122.40),
            "assigned_at": utc(2026, 10, 1, 12, 0),
            "metadata_json": {},
        }
        values.update(overrides)
        delivery = Delivery(**values)
        db_session.add(delivery)
        db_session.commit()
        return delivery

    return _make


@pytest.fixture
def make_dispatch(db_session):
    def _make(
        *,
        kind: str = "catering",
        driver_id: str = DRIVER_USER_ID,
        order_number: str = "CAT-1",
        status: str = "ACTIVE",
        driver_status: str | None = None,
        created_at: datetime | None = None,
        with_coordinates: bool = True,
    ) -> Dispatch:
        pickup = Address(
            street1="1 Market St",
            city="San Francisco",
            state="CA",
            zip="94105",
            latitude=37.79 if with_coordinates else None,
            longitude=-122.39 if with_coordinates else None,
        )
        dropoff = Address(
            street1="500 Howard St",
            city="San Francisco",
            state="CA",
            zip="94105",
            latitude=37.78,
            longitude=-122.40,
        )
        db_session.add_all([pickup, dropoff])
        db_session.flush()

        model = CateringRequest if kind == "catering" else OnDemandRequest
        order = model(
            order_number=order_number,
            status=status,
            driver_status=driver_status,
            client_attention="Front desk",
            pickup_address_id=pickup.id,
            delivery_address_id=dropoff.id,
        )
        db_session.add(order)
        db_session.flush()

        dispatch = Dispatch(
            driver_id=driver_id,
            catering_request_id=order.id if kind == "catering" else None,
            on_demand_id=order.id if kind != "catering" else None,
        )
        if created_at is not None:
            dispatch.created_at = created_at
        db_session.add(dispatch)
        db_session.commit()
        return dispatch

    return _make


@pytest.fixture
def active_shift(db_session, drivers):
    shift = DriverShift(id="shift-1", driver_id="drv-1", status="active", delivery_count=0)
    db_session.add(shift)
    drivers["one"].current_shift_id = shift.id
    db_session.commit()
    return shift
