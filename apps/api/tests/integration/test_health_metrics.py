from sqlalchemy.exc import OperationalError

from readyset.db.session import get_session_factory
from readyset.main import app
from readyset.schemas.common import ErrorResponse


def _unreachable_session_factory():
    def factory():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    return factory


def test_health_is_public(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_reports_database_ok(client):
    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "dependencies": [{"name": "database", "status": "ok"}],
    }


def test_ready_degrades_when_database_is_unreachable(client):
    app.dependency_overrides[get_session_factory] = _unreachable_session_factory

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json() == {
        "status": "degraded",
        "dependencies": [{"name": "database", "status": "error"}],
    }


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_metrics_is_admin_only(client, auth_headers):
    assert client.get("/metrics").status_code == 401
    assert client.get("/metrics", headers=auth_headers["helpdesk"]).status_code == 403
    assert client.get("/metrics", headers=auth_headers["super_admin"]).status_code == 200


def test_metrics_report_request_counters_and_query_timings(
    client, auth_headers, drivers, make_delivery
):
    make_delivery()
    client.get("/api/tracking/deliveries", headers=auth_headers["admin"])

    response = client.get("/metrics", headers=auth_headers["admin"])

    assert response.status_code == 200
    body = response.json()
    assert body["counters"]["http_requests_total"] >= 1
    assert body["timings"]["tracking_deliveries_query_seconds"]["count"] == 1
    assert body["timings"]["tracking_dispatches_query_seconds"]["count"] == 1


def test_openapi_marks_only_authenticated_routes_with_bearer_auth(client):
    schema = client.get("/openapi.json").json()

    assert schema["components"]["securitySchemes"]["BearerAuth"]["scheme"] == "bearer"
    assert "security" not in schema["paths"]["/health"]["get"]
    assert "security" not in schema["paths"]["/ready"]["get"]
    assert schema["paths"]["/api/tracking/deliveries"]["get"]["security"] == [{"BearerAuth": []}]
    assert schema["paths"]["/api/addresses"]["post"]["security"] == [{"BearerAuth": []}]


def test_openapi_documents_error_envelope_on_failing_statuses(client):
    schema = client.get("/openapi.json").json()
    error_ref = {"$ref": "#/components/schemas/ErrorResponse"}

    def error_schema(path: str, method: str, code: str) -> dict:
        return schema["paths"][path][method]["responses"][code]["content"]["application/json"][
            "schema"
        ]

    assert error_schema("/api/tracking/deliveries", "get", "401") == error_ref
    assert error_schema("/api/tracking/deliveries/{delivery_id}", "get", "404") == error_ref
    assert error_schema("/api/addresses", "post", "409") == error_ref
    throttled = schema["paths"]["/api/addresses"]["get"]["responses"]["429"]
    assert "Retry-After" in throttled["headers"]
    assert throttled["content"]["application/json"]["schema"] == error_ref
    assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {
        "success",
        "error",
        "details",
    }


def test_error_bodies_match_documented_envelope(client):
    body = client.get("/api/tracking/deliveries").json()

    error = ErrorResponse.model_validate(body)
    assert error.success is False
    assert error.error
