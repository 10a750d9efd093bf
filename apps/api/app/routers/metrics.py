from fastapi import APIRouter, Depends

from app.auth.dependencies import ADMIN, AuthContext, require_roles
from app.observability import metrics_store
from app.schemas.ops import MetricsResponse

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", summary="Order service metrics", response_model=MetricsResponse)
def metrics_endpoint(
    _auth: AuthContext = Depends(require_roles(ADMIN)),
) -> MetricsResponse:
    """Counters and timings recorded since process start. Admin only."""
    snapshot = metrics_store.snapshot()
    return MetricsResponse(counters=snapshot.counters, timings=snapshot.timings)
