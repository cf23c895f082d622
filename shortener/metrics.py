"""Prometheus metrics shared by the store, cache, engine and workers."""

from prometheus_client import Counter, Histogram

__all__ = [
    "URL_CREATION_REQUESTS_TOTAL",
    "URL_LOOKUP_REQUESTS_TOTAL",
    "URL_DELETE_REQUESTS_TOTAL",
    "URL_LOOKUP_DURATION",
    "DATABASE_READS_TOTAL",
    "DATABASE_WRITES_TOTAL",
    "REDIS_OPERATIONS_TOTAL",
    "CACHE_ERRORS_TOTAL",
    "CLICK_RECORD_FAILURES_TOTAL",
    "CLICK_JOBS_DROPPED_TOTAL",
    "EXPIRED_PURGED_TOTAL",
]

# Request metrics
URL_CREATION_REQUESTS_TOTAL = Counter(
    "url_shortener_creation_requests_total",
    "Total URL creation requests",
    ["status"],
)
URL_LOOKUP_REQUESTS_TOTAL = Counter(
    "url_shortener_lookup_requests_total",
    "Total short code resolutions",
    ["status", "path"],
)
URL_DELETE_REQUESTS_TOTAL = Counter(
    "url_shortener_delete_requests_total",
    "Total URL delete requests",
    ["status"],
)

# Performance metrics
URL_LOOKUP_DURATION = Histogram(
    "url_shortener_lookup_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)

# Database metrics
DATABASE_READS_TOTAL = Counter(
    "url_shortener_database_reads_total",
    "Total database read operations",
)
DATABASE_WRITES_TOTAL = Counter(
    "url_shortener_database_writes_total",
    "Total database write operations",
)

# Redis metrics
REDIS_OPERATIONS_TOTAL = Counter(
    "url_shortener_redis_operations_total",
    "Total Redis operations",
)
CACHE_ERRORS_TOTAL = Counter(
    "url_shortener_cache_errors_total",
    "Redis failures absorbed as cache misses",
    ["operation"],
)

# Click recording metrics
CLICK_RECORD_FAILURES_TOTAL = Counter(
    "url_shortener_click_record_failures_total",
    "Click increments that failed and were dropped",
    ["target"],
)
CLICK_JOBS_DROPPED_TOTAL = Counter(
    "url_shortener_click_jobs_dropped_total",
    "Click jobs dropped because the queue was full",
)

EXPIRED_PURGED_TOTAL = Counter(
    "url_shortener_expired_purged_total",
    "Expired mappings deleted by resolution or sweep",
)
