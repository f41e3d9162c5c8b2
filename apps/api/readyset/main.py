import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from readyset.config import allowed_origins, ensure_secure_runtime_settings, settings
from readyset.db.migration_check import assert_db_is_up_to_date, maybe_create_schema
from readyset.db.session import engine
from readyset.observability import configure_logging, log_event, metrics_store, set_request_id
from readyset.routers.addresses import router as addresses_router
from readyset.routers.health import router as health_router
from readyset.routers.metrics import router as metrics_router
from readyset.routers.tracking import router as tracking_router


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import readyset.models  # noqa: F401 (register all SQLAlchemy models)

    configure_logging()
    ensure_secure_runtime_settings()
    if maybe_create_schema(engine):
        log_event("Created schema from models")
    if settings.require_migrations:
        schema = assert_db_is_up_to_date(engine)
        log_event(f"Schema up to date: {schema.describe()}")
    yield


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Delivery tracking, live driver updates and address book for Ready Set",
    lifespan=lifespan,
)


PUBLIC_PATHS = frozenset({"/health", "/ready"})


def custom_openapi():
    """
    Documents the JWT bearer scheme on every authenticated operation so the
    docs UI offers an 'Authorize' button. Probes in PUBLIC_PATHS stay open.
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }

    for path, operations in openapi_schema.get("paths", {}).items():
        if path in PUBLIC_PATHS:
            continue
        for operation in operations.values():
            operation["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        body = {"success": False, **exc.detail}
    else:
        body = {"success": False, "error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Invalid request", "details": details},
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    metrics_store.increment("http_requests_total")
    metrics_store.observe("http_request_duration_seconds", elapsed)
    log_event(
        f"{request.method} {request.url.path} {response.status_code}",
        delivery_id=request.path_params.get("delivery_id"),
    )
    return response


app.include_router(health_router)
app.include_router(tracking_router)
app.include_router(addresses_router)
app.include_router(metrics_router)
