"""Central Prometheus metrics registry.

All application metrics are defined here to avoid scattered metric definitions
and ensure consistent naming/labeling.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("inspector_app", "Inspector application info")

# --- HTTP ---
http_requests_total = Counter(
    "inspector_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
http_request_duration_seconds = Histogram(
    "inspector_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

# --- Catalog ---
catalog_ready = Gauge(
    "inspector_catalog_ready",
    "Catalog readiness (1=ready, 0=uninitialized)",
    ["backend"],
)
catalog_relations = Gauge(
    "inspector_catalog_relations",
    "Number of allow-listed relations in the published catalog",
    ["backend"],
)
catalog_discoveries_total = Counter(
    "inspector_catalog_discoveries_total",
    "Catalog discovery attempts",
    ["backend", "status"],
)

# --- Gateway ---
gateway_requests_total = Counter(
    "inspector_gateway_requests_total",
    "Gateway requests by terminal outcome (responded, rejected, failed)",
    ["operation", "outcome"],
)

# --- Adapter calls ---
adapter_call_duration_seconds = Histogram(
    "inspector_adapter_call_duration_seconds",
    "Backend adapter call duration in seconds",
    ["backend", "operation"],
)
adapter_errors_total = Counter(
    "inspector_adapter_errors_total",
    "Backend adapter call failures",
    ["backend", "operation", "kind"],
)
fetched_rows = Histogram(
    "inspector_fetched_rows",
    "Number of rows returned by a page fetch",
    ["backend"],
    buckets=[0, 1, 10, 50, 100, 250, 500],
)

# --- Store health ---
store_health_check_duration_seconds = Histogram(
    "inspector_store_health_check_duration_seconds",
    "Duration of backend health check pings in seconds",
    ["store"],
)
store_health_status = Gauge(
    "inspector_store_health_status",
    "Backend health status (1=healthy, 0=unhealthy)",
    ["store"],
)
