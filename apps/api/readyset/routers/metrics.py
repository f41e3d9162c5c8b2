from fastapi import APIRouter, Depends

from readyset.auth.dependencies import AuthContext, require_admin
from readyset.observability import metrics_store
from readyset.schemas.metrics import MetricsResponse

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", summary="Observability metrics", response_model=MetricsResponse)
def metrics_endpoint(
    _auth: AuthContext = Depends(require_admin),
) -> MetricsResponse:
    """
    Request counters, tracking source failures and query timings.
    Restricted to ADMIN and SUPER_ADMIN tokens.
    """
    snapshot = metrics_store.snapshot()

    return MetricsResponse(
        counters=snapshot.counters or {},
        timings=snapshot.timings or {},
    )
