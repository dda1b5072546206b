"""Prometheus metrics."""

from prometheus_client import CollectorRegistry, Counter

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

REQUESTS = Counter("requests_total", "Total requests", registry=CUSTOM_REGISTRY)
ERRORS = Counter(
    "errors_total", "Total error responses by status", ["status"], registry=CUSTOM_REGISTRY
)
PROXY_REJECTIONS = Counter(
    "proxy_rejections_total",
    "Requests rejected by the proxy gatekeeper by reason",
    ["reason"],
    registry=CUSTOM_REGISTRY,
)
AUTH_FAILURES = Counter(
    "authentication_failures_total",
    "Bearer headers that did not resolve to a user by reason",
    ["reason"],
    registry=CUSTOM_REGISTRY,
)
