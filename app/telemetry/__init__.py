"""Telemetry helpers and metrics."""

from .metrics import (
    ACTIVE_JOBS,
    CAPABILITY_RETRIES,
    ERROR_COUNTER,
    PIPELINE_JOBS,
    PIPELINE_STAGE_DURATION,
    QUEUE_DEPTH,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STUCK_JOBS,
    observe_request,
    observe_stage,
    record_capability_retry,
    record_job_outcome,
    record_stuck_job,
)

__all__ = [
    "ACTIVE_JOBS",
    "CAPABILITY_RETRIES",
    "ERROR_COUNTER",
    "PIPELINE_JOBS",
    "PIPELINE_STAGE_DURATION",
    "QUEUE_DEPTH",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STUCK_JOBS",
    "observe_request",
    "observe_stage",
    "record_capability_retry",
    "record_job_outcome",
    "record_stuck_job",
]
