from fastapi import APIRouter, Response

from app.utils.metrics import render_latest

router = APIRouter(tags=["monitoring"])


@router.get("/metrics", response_class=Response)
def get_prometheus_metrics():
    """Metryki w formacie Prometheus."""
    data, content_type = render_latest()
    return Response(content=data, media_type=content_type)
