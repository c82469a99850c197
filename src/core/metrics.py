"""
Prometheus Metrics for Observability

Tracks pipeline stage latency, poster outcomes, badge fetches and the
remote badge cache. Exposed on /api/v1/metrics for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Pipeline Latency - Per Stage
pipeline_latency_seconds = Histogram(
    "poster_pipeline_stage_latency_seconds",
    "Time spent in each pipeline stage",
    labelnames=["stage", "status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Total Pipeline Duration
pipeline_total_duration = Histogram(
    "poster_pipeline_duration_seconds",
    "Total time for one pipeline run",
    labelnames=["status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Outcomes
posters_total = Counter(
    "posters_total",
    "Poster requests by outcome",
    labelnames=["status", "error_kind"]
)

# Remote fetches (source URL and badge URL)
remote_fetches_total = Counter(
    "remote_fetches_total",
    "Outbound HTTP fetches",
    labelnames=["target", "status", "http_status"]
)

# Badge Cache
badge_cache_hits_total = Counter(
    "badge_cache_hits_total",
    "Remote badge cache hits"
)

badge_cache_misses_total = Counter(
    "badge_cache_misses_total",
    "Remote badge cache misses"
)

# API Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Application Info
app_info = Info(
    "poster_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str, badge_source: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment,
        "badge_source": badge_source
    })


@contextmanager
def track_stage_latency(stage: str):
    """
    Context manager to track stage latency.

    Usage:
        with track_stage_latency("compositing"):
            # do work
    """
    start = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        pipeline_latency_seconds.labels(stage=stage, status=status).observe(
            time.perf_counter() - start
        )


def record_poster_outcome(status: str, duration_seconds: float, error_kind: str = "none"):
    """Record the terminal state of one pipeline run."""
    posters_total.labels(status=status, error_kind=error_kind).inc()
    pipeline_total_duration.labels(status=status).observe(duration_seconds)


def record_remote_fetch(target: str, status: str, http_status: int = 0):
    """Record an outbound fetch ("source" or "badge")."""
    remote_fetches_total.labels(
        target=target,
        status=status,
        http_status=str(http_status)
    ).inc()


def record_badge_cache_hit():
    badge_cache_hits_total.inc()


def record_badge_cache_miss():
    badge_cache_misses_total.inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
