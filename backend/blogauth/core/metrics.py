"""Prometheus metrics shared by the app and the auth routes"""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "blogauth_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "blogauth_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
AUTH_EVENTS = Counter(
    "blogauth_auth_events_total",
    "Session lifecycle events by outcome",
    ["event", "outcome"],
)
