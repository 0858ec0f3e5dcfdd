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

PIPELINE_JOBS = Counter(
    "video_pipeline_jobs_total",
    "Video pipeline runs by terminal status",
    ("status",),
)

PIPELINE_STAGE_DURATION = Histogram(
    "video_pipeline_stage_duration_seconds",
    "Duration of each pipeline stage by outcome",
    ("stage", "outcome"),
    buckets=(0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0),
)

CAPABILITY_RETRIES = Counter(
    "video_pipeline_capability_retries_total",
    "Retries issued for transient capability failures",
    ("capability",),
)

STUCK_JOBS = Counter(
    "video_pipeline_stuck_jobs_total",
    "Jobs left in processing because the failure state could not be persisted",
)

QUEUE_DEPTH = Gauge(
    "video_pipeline_queue_depth",
    "Jobs accepted but not yet picked up by a worker",
)

ACTIVE_JOBS = Gauge(
    "video_pipeline_active_jobs",
    "Jobs currently being processed",
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


def observe_stage(stage: str, outcome: str, duration_seconds: float) -> None:
    """Record how long a pipeline stage took and how it ended."""

    PIPELINE_STAGE_DURATION.labels(stage=stage, outcome=outcome).observe(
        max(duration_seconds, 0)
    )


def record_job_outcome(status: str) -> None:
    PIPELINE_JOBS.labels(status=status).inc()


def record_capability_retry(capability: str) -> None:
    CAPABILITY_RETRIES.labels(capability=capability).inc()


def record_stuck_job() -> None:
    STUCK_JOBS.inc()
