"""Application metrics using the Prometheus client library.

All metrics live in this module so there is one inventory of everything
the service measures.  Modules that own a behaviour import the metric and
increment it at the point of action.  Prometheus scrapes /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Enrollment metrics
# ---------------------------------------------------------------------------

ENROLLMENTS = Counter(
    "enrollments_total",
    "Enroll calls by outcome",
    ["outcome"],  # created|existing|reactivated
)

PROGRESS_UPDATES = Counter(
    "progress_updates_total",
    "RecordProgress calls by result",
    ["result"],  # ok|invalid|not_found|forbidden|conflict
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Enrollments that reached 100% (fires once per enrollment)",
)

WRITE_CONFLICTS = Counter(
    "enrollment_write_conflicts_total",
    "Optimistic version conflicts on enrollment writes",
    ["outcome"],  # retried|exhausted
)

LOCK_WAIT = Histogram(
    "enrollment_lock_wait_seconds",
    "Time spent waiting for the per-enrollment lock",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)
