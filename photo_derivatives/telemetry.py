"""
Prometheus metrics for the derivative pipeline.

Labels are low-cardinality only (outcome, stage, result). Bucket names,
paths and filenames belong in logs, never in labels.

Recording is best-effort: a metrics failure is logged and never breaks
the pipeline.
"""

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

derivatives_pipeline_total = Counter(
    "derivatives_pipeline_total",
    "Derivative pipeline invocations by outcome",
    ["outcome"],  # success | failure
)

derivatives_pipeline_failures_total = Counter(
    "derivatives_pipeline_failures_total",
    "Derivative pipeline failures by stage",
    ["stage"],  # decode | upload | timeout | other
)

derivatives_pipeline_latency_ms = Histogram(
    "derivatives_pipeline_latency_ms",
    "End-to-end derivative pipeline latency in milliseconds",
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000],
)

derivatives_backfill_photos_total = Counter(
    "derivatives_backfill_photos_total",
    "Photos handled by the derivative backfill",
    ["result"],  # processed | failed | skipped
)


def record_pipeline_success(latency_ms: float) -> None:
    """Record a successful pipeline run."""
    try:
        derivatives_pipeline_total.labels(outcome="success").inc()
        derivatives_pipeline_latency_ms.observe(latency_ms)
    except Exception as e:
        logger.warning(f"Failed to record pipeline success metric: {e}")


def record_pipeline_failure(stage: str, latency_ms: float) -> None:
    """Record a failed pipeline run at `stage`."""
    try:
        derivatives_pipeline_total.labels(outcome="failure").inc()
        derivatives_pipeline_failures_total.labels(stage=stage).inc()
        derivatives_pipeline_latency_ms.observe(latency_ms)
    except Exception as e:
        logger.warning(f"Failed to record pipeline failure metric: {e}")


def record_backfill_photo(result: str) -> None:
    """Record one backfill photo outcome."""
    try:
        derivatives_backfill_photos_total.labels(result=result).inc()
    except Exception as e:
        logger.warning(f"Failed to record backfill metric: {e}")


def get_metrics_text() -> tuple[bytes, str]:
    """Return (payload, content type) for a /metrics endpoint."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
