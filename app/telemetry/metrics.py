"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

PIPELINE_RUNS = Counter(
    "voice_clone_pipeline_runs_total",
    "Voice clone pipeline invocations by outcome",
    ("outcome",),
)

PIPELINE_STAGE_LATENCY = Histogram(
    "voice_clone_stage_duration_seconds",
    "Duration of each voice clone pipeline stage in seconds",
    ("stage",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

PROGRESS_CONNECTIONS = Gauge(
    "progress_event_connections",
    "Currently open progress event streams",
)

PROGRESS_EVENTS = Counter(
    "progress_events_published_total",
    "Progress events published by step",
    ("step",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_pipeline_stage(stage: str, duration_seconds: float) -> None:
    """Record how long one pipeline stage took."""

    PIPELINE_STAGE_LATENCY.labels(stage=stage).observe(max(duration_seconds, 0.0))


def record_pipeline_outcome(outcome: str) -> None:
    """Count a finished pipeline run (``completed``, ``partial`` or ``failed``)."""

    PIPELINE_RUNS.labels(outcome=outcome).inc()
