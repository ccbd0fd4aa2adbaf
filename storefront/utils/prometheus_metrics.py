"""
Prometheus metrics of the delivery checkout service.

Request metrics come from `PrometheusMiddleware`; the delivery counters are
bumped by the geocoding service and the payment request builder.
"""
import re
from time import time
from typing import Callable

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

HTTP_LABELS = ['method', 'endpoint', 'status_code']

http_requests_total = Counter(
    'storefront_http_requests_total',
    'HTTP requests served',
    HTTP_LABELS
)

http_errors_total = Counter(
    'storefront_http_errors_total',
    'HTTP responses with status >= 400',
    HTTP_LABELS
)

http_request_duration_seconds = Histogram(
    'storefront_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0]
)

requests_in_flight = Gauge(
    'storefront_requests_in_flight',
    'Requests being processed'
)

log_messages_total = Counter(
    'log_messages_total',
    'Log records emitted',
    ['level']
)

delivery_geocoding_total = Counter(
    'delivery_geocoding_total',
    'Address geocoding lookups by outcome (ok, cache_hit, not_found, unavailable)',
    ['outcome']
)

delivery_payment_ready_total = Counter(
    'delivery_payment_ready_total',
    'Payment-ready attempts by outcome (ok, rejected, unavailable, failed, bad_redirect)',
    ['outcome']
)

# Path segments that carry identifiers
_PATH_PARAMS = (
    (re.compile(r'/selection/[^/]+'), '/selection/{display_code}'),
    (re.compile(r'/\d+(?=/|$)'), '/{id}'),
)


def normalize_endpoint(path: str) -> str:
    """/api/delivery/checkout/selection/A-102 -> /api/delivery/checkout/selection/{display_code}"""
    for pattern, replacement in _PATH_PARAMS:
        path = pattern.sub(replacement, path)
    return path


def _count_response(method: str, endpoint: str, status_code: int):
    http_requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
    if status_code >= 400:
        http_errors_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Counts and times every request except the scrape itself."""

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path.endswith("/metrics"):
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)
        started = time()
        requests_in_flight.inc()
        try:
            response = await call_next(request)
        except Exception:
            _count_response(method, endpoint, 500)
            raise
        else:
            _count_response(method, endpoint, response.status_code)
            return response
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(time() - started)
            requests_in_flight.dec()


def get_metrics() -> bytes:
    return generate_latest()


def record_log(level: str):
    log_messages_total.labels(level=level).inc()


def record_geocoding(outcome: str):
    delivery_geocoding_total.labels(outcome=outcome).inc()


def record_payment_ready(outcome: str):
    delivery_payment_ready_total.labels(outcome=outcome).inc()
