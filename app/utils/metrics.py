# app/utils/metrics.py
import time

from fastapi import Request
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# osobny rejestr, zeby testy i kilka instancji aplikacji nie dublowaly metryk globalnych
registry = CollectorRegistry()

http_requests = Counter(
    "cart_http_requests_total",
    "Total HTTP requests handled by the cart service",
    ["method", "route", "status"],
    registry=registry,
)

http_request_duration = Histogram(
    "cart_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=registry,
)


def _route_label(request: Request) -> str:
    #szablon sciezki (/carts/{cart_id}), nie surowy URL
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


async def track_requests(request: Request, call_next):
    start = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        route = _route_label(request)
        http_requests.labels(request.method, route, str(status)).inc()
        http_request_duration.labels(request.method, route).observe(time.perf_counter() - start)


def render_latest() -> tuple[bytes, str]:
    return generate_latest(registry), CONTENT_TYPE_LATEST
