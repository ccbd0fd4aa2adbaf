"""
Prometheus metrics endpoint.
"""
from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from storefront.utils.prometheus_metrics import get_metrics, CONTENT_TYPE_LATEST

router_public = APIRouter(
    prefix="/api/monitoring",
    tags=["Monitoring"]
)


@router_public.get("/metrics")
async def metrics():
    """
    Prometheus metrics (public, no authentication).
    Scrape at: /api/monitoring/metrics
    """
    return StreamingResponse(
        iter([get_metrics()]),
        media_type=CONTENT_TYPE_LATEST
    )
