"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    PIPELINE_RUNS,
    PIPELINE_STAGE_LATENCY,
    PROGRESS_CONNECTIONS,
    PROGRESS_EVENTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    observe_pipeline_stage,
    observe_request,
    record_pipeline_outcome,
)

__all__ = [
    "ERROR_COUNTER",
    "PIPELINE_RUNS",
    "PIPELINE_STAGE_LATENCY",
    "PROGRESS_CONNECTIONS",
    "PROGRESS_EVENTS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "observe_pipeline_stage",
    "observe_request",
    "record_pipeline_outcome",
]
