from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError

from readyset.services import deliveries_service

DRIVER_USER_ID = "driver-user-1"


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _broken_source(*_args, **_kwargs):
    raise OperationalError("SELECT 1", {}, Exception("connection reset"))


def test_list_requires_authentication(client):
    response = client.get("/api/tracking/deliveries")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized"}


def test_list_rejects_client_and_vendor_roles(client, auth_headers):
    for role in ("client", "vendor"):
        response = client.get("/api/tracking/deliveries", headers=auth_headers[role])
        assert response.status_code == 403
        assert response.json()["error"] == "Insufficient role"


def test_list_rejects_invalid_token(client):
    response = client.get(
        "/api/tracking/deliveries", headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token"


def test_list_empty_when_no_rows(client, auth_headers):
    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": [],
        "pagination": {"limit": 50, "offset": 0, "total": 0},
    }


def test_list_merges_both_sources_sorted_by_assignment(
    client, auth_headers, drivers, make_delivery, make_dispatch
):
    make_delivery(order_number="DEL-OLD", assigned_at=utc(2026, 10, 1, 8, 0))
    make_delivery(order_number="DEL-NEW", assigned_at=utc(2026, 10, 1, 14, 0))
    make_dispatch(order_number="CAT-MID", created_at=utc(2026, 10, 1, 11, 0))

    response = client.get("/api/tracking/deliveries", headers=auth_headers["helpdesk"])

    assert response.status_code == 200
    body = response.json()
    assert [item["orderNumber"] for item in body["data"]] == ["DEL-NEW", "CAT-MID", "DEL-OLD"]
    assert [item["sourceType"] for item in body["data"]] == ["delivery", "dispatch", "delivery"]
    assert body["pagination"] == {"limit": 50, "offset": 0, "total": 3}


def test_delivery_rows_reverse_geojson_coordinates(client, auth_headers, drivers, make_delivery):
    make_delivery()

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    item = response.json()["data"][0]
    assert item["pickupLocation"] == [37.79, -122.39]
    assert item["deliveryLocation"] == [37.78, -122.40]
    assert item["route"] == []
    assert item["driverId"] == "drv-1"


def test_dispatch_rows_expose_order_details(client, auth_headers, drivers, make_dispatch):
    make_dispatch(kind="on_demand", order_number="OD-7", driver_status="PICKED_UP")

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    item = response.json()["data"][0]
    assert item["sourceType"] == "dispatch"
    assert item["orderType"] == "on_demand"
    assert item["status"] == "PICKED_UP"
    assert item["customerName"] == "Front desk"
    assert item["driverName"] == "Dana Driver"
    assert item["pickupAddress"] == "1 Market St, San Francisco, CA, 94105"
    assert item["pickupLocation"] == [37.79, -122.39]
    assert item["hasCoordinates"] is True
    assert item["onDemandId"] is not None
    assert item["cateringRequestId"] is None


def test_dispatch_without_coordinates_has_null_location(
    client, auth_headers, drivers, make_dispatch
):
    make_dispatch(with_coordinates=False)

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    item = response.json()["data"][0]
    assert item["pickupLocation"] is None
    assert item["deliveryLocation"] == [37.78, -122.40]
    assert item["hasCoordinates"] is False
    assert item["status"] == "ACTIVE"


def test_dispatch_source_skips_finished_orders(client, auth_headers, drivers, make_dispatch):
    make_dispatch(order_number="CAT-DONE", status="COMPLETED")
    make_dispatch(order_number="CAT-CANCELLED", status="CANCELLED")
    make_dispatch(order_number="CAT-LIVE")

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    assert [item["orderNumber"] for item in response.json()["data"]] == ["CAT-LIVE"]


def test_soft_deleted_deliveries_are_hidden(client, auth_headers, drivers, make_delivery):
    make_delivery(order_number="DEL-GONE", deleted_at=utc(2026, 10, 2, 0, 0))
    make_delivery(order_number="DEL-KEPT")

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    assert [item["orderNumber"] for item in response.json()["data"]] == ["DEL-KEPT"]


def test_driver_sees_only_own_rows_even_with_driver_id_param(
    client, auth_headers, drivers, make_delivery, make_dispatch
):
    make_delivery(order_number="MINE", driver_id="drv-1")
    make_delivery(order_number="LEGACY-MINE", driver_id=DRIVER_USER_ID)
    make_delivery(order_number="THEIRS", driver_id="drv-2")
    make_dispatch(order_number="CAT-MINE")
    make_dispatch(order_number="CAT-THEIRS", driver_id="driver-user-2")

    response = client.get(
        "/api/tracking/deliveries",
        params={"driver_id": "drv-2"},
        headers=auth_headers["driver"],
    )

    assert response.status_code == 200
    numbers = {item["orderNumber"] for item in response.json()["data"]}
    assert numbers == {"MINE", "LEGACY-MINE", "CAT-MINE"}


def test_admin_driver_id_filter_applies_to_both_sources(
    client, auth_headers, drivers, make_delivery, make_dispatch
):
    make_delivery(order_number="DRV-2", driver_id="drv-2")
    make_delivery(order_number="DRV-1", driver_id="drv-1")
    make_dispatch(order_number="CAT-DRV-2", driver_id="drv-2")

    response = client.get(
        "/api/tracking/deliveries",
        params={"driver_id": "drv-2"},
        headers=auth_headers["admin"],
    )

    numbers = {item["orderNumber"] for item in response.json()["data"]}
    assert numbers == {"DRV-2", "CAT-DRV-2"}


def test_status_filter_matches_delivery_and_dispatch_statuses(
    client, auth_headers, drivers, make_delivery, make_dispatch
):
    make_delivery(order_number="DEL-PICKED", status="PICKED_UP")
    make_delivery(order_number="DEL-ASSIGNED", status="ASSIGNED")
    make_dispatch(order_number="CAT-PICKED", driver_status="PICKED_UP")
    make_dispatch(order_number="CAT-OTHER", driver_status="EN_ROUTE_TO_VENDOR")

    response = client.get(
        "/api/tracking/deliveries",
        params={"status": "PICKED_UP"},
        headers=auth_headers["admin"],
    )

    numbers = {item["orderNumber"] for item in response.json()["data"]}
    assert numbers == {"DEL-PICKED", "CAT-PICKED"}


def test_source_param_limits_listing_to_one_table(
    client, auth_headers, drivers, make_delivery, make_dispatch
):
    make_delivery(order_number="DEL-1")
    make_dispatch(order_number="CAT-1")

    deliveries_only = client.get(
        "/api/tracking/deliveries", params={"source": "deliveries"}, headers=auth_headers["admin"]
    )
    dispatches_only = client.get(
        "/api/tracking/deliveries", params={"source": "dispatches"}, headers=auth_headers["admin"]
    )

    assert [item["orderNumber"] for item in deliveries_only.json()["data"]] == ["DEL-1"]
    assert [item["orderNumber"] for item in dispatches_only.json()["data"]] == ["CAT-1"]


def test_unknown_source_param_is_rejected(client, auth_headers):
    response = client.get(
        "/api/tracking/deliveries", params={"source": "orders"}, headers=auth_headers["admin"]
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_pagination_slices_merged_rows(client, auth_headers, drivers, make_delivery):
    for hour in range(5):
        make_delivery(order_number=f"DEL-{hour}", assigned_at=utc(2026, 10, 1, hour, 0))

    response = client.get(
        "/api/tracking/deliveries",
        params={"limit": 2, "offset": 1},
        headers=auth_headers["admin"],
    )

    body = response.json()
    assert [item["orderNumber"] for item in body["data"]] == ["DEL-3", "DEL-2"]
    assert body["pagination"] == {"limit": 2, "offset": 1, "total": 5}


def test_offset_past_end_returns_empty_page(client, auth_headers, drivers, make_delivery):
    make_delivery()

    response = client.get(
        "/api/tracking/deliveries", params={"offset": 10}, headers=auth_headers["admin"]
    )

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["pagination"]["total"] == 1


def test_deliveries_failure_degrades_to_dispatches(
    client, auth_headers, drivers, make_delivery, make_dispatch, monkeypatch
):
    make_delivery(order_number="DEL-1")
    make_dispatch(order_number="CAT-1")
    monkeypatch.setattr(deliveries_service, "fetch_delivery_source", _broken_source)

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    assert response.status_code == 200
    assert [item["orderNumber"] for item in response.json()["data"]] == ["CAT-1"]

    metrics = client.get("/metrics", headers=auth_headers["admin"]).json()
    assert metrics["counters"]["tracking_deliveries_query_failed_total"] == 1


def test_malformed_delivery_row_degrades_to_dispatches(
    client, auth_headers, drivers, make_delivery, make_dispatch
):
    make_delivery(
        order_number="DEL-BAD", pickup_location={"type": "Point", "coordinates": ["x", "y"]}
    )
    make_dispatch(order_number="CAT-1")

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    assert response.status_code == 200
    assert [item["orderNumber"] for item in response.json()["data"]] == ["CAT-1"]

    metrics = client.get("/metrics", headers=auth_headers["admin"]).json()
    assert metrics["counters"]["tracking_deliveries_query_failed_total"] == 1


def test_dispatches_failure_degrades_to_deliveries(
    client, auth_headers, drivers, make_delivery, make_dispatch, monkeypatch
):
    make_delivery(order_number="DEL-1")
    make_dispatch(order_number="CAT-1")
    monkeypatch.setattr(deliveries_service, "fetch_dispatch_source", _broken_source)

    response = client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    assert response.status_code == 200
    assert [item["orderNumber"] for item in response.json()["data"]] == ["DEL-1"]

    metrics = client.get("/metrics", headers=auth_headers["admin"]).json()
    assert metrics["counters"]["tracking_dispatches_query_failed_total"] == 1


def test_both_sources_failing_returns_empty_success(client, auth_headers, monkeypatch):
    monkeypatch.setattr(deliveries_service, "fetch_delivery_source", _broken_source)
    monkeypatch.setattr(deliveries_service, "fetch_dispatch_source", _broken_source)

    response = client.get("/api/tracking/deliveries", headers=auth_headers["driver"])

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": [],
        "pagination": {"limit": 50, "offset": 0, "total": 0},
    }
