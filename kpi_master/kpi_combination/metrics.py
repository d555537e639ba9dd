# -*- coding: utf-8 -*-
"""
Prometheus Metrics - KPI Combination

Prometheus metrics for KPI combination engine monitoring.

Metrics:
    1.  kpi_records_ingested_total (Counter, labels: division)
    2.  kpi_records_dropped_total (Counter)
    3.  kpi_output_records_total (Counter)
    4.  kpi_fields_resolved_total (Counter, labels: tier)
    5.  kpi_outliers_flagged_total (Counter, labels: division)
    6.  kpi_completeness_score (Histogram, buckets: 10-100)
    7.  kpi_confidence_score (Histogram, buckets: 0.1-1.0)
    8.  kpi_processing_duration_seconds (Histogram, labels: operation)
    9.  kpi_active_runs (Gauge)
    10. kpi_processing_errors_total (Counter, labels: error_type)

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Raw records classified by division
kpi_records_ingested_total = Counter(
    "kpi_records_ingested_total",
    "Total raw records classified into a division",
    labelnames=["division"],
)

# 2. Raw records that matched no division
kpi_records_dropped_total = Counter(
    "kpi_records_dropped_total",
    "Total raw records dropped because no division matched",
)

# 3. Assembled output records
kpi_output_records_total = Counter(
    "kpi_output_records_total",
    "Total output records assembled",
)

# 4. Numeric field resolutions by fallback tier
kpi_fields_resolved_total = Counter(
    "kpi_fields_resolved_total",
    "Total numeric field resolutions by fallback tier",
    labelnames=["tier"],
)

# 5. Outlier flags raised on output records by division
kpi_outliers_flagged_total = Counter(
    "kpi_outliers_flagged_total",
    "Total outlier flags raised on output records",
    labelnames=["division"],
)

# 6. Completeness score distribution
kpi_completeness_score = Histogram(
    "kpi_completeness_score",
    "Completeness score distribution (0-100)",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 95, 100),
)

# 7. Confidence score distribution
kpi_confidence_score = Histogram(
    "kpi_confidence_score",
    "Confidence score distribution (0-1)",
    buckets=(0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
)

# 8. Processing duration by operation
kpi_processing_duration_seconds = Histogram(
    "kpi_processing_duration_seconds",
    "KPI combination processing duration in seconds",
    labelnames=["operation"],
    buckets=(
        0.01, 0.05, 0.1, 0.25, 0.5, 1.0,
        2.5, 5.0, 10.0, 30.0, 60.0, 120.0,
    ),
)

# 9. Runs in progress
kpi_active_runs = Gauge(
    "kpi_active_runs",
    "Number of combination runs currently in progress",
)

# 10. Processing errors by error type
kpi_processing_errors_total = Counter(
    "kpi_processing_errors_total",
    "Total processing errors encountered",
    labelnames=["error_type"],
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def record_ingested(division: str, count: int = 1) -> None:
    """Record raw records classified into a division.

    Args:
        division: Division value (workforce, finance, sales, ...).
        count: Number of records.
    """
    kpi_records_ingested_total.labels(division=division).inc(count)


def record_dropped(count: int = 1) -> None:
    """Record raw records that matched no division."""
    kpi_records_dropped_total.inc(count)


def record_output(count: int = 1) -> None:
    """Record assembled output records."""
    kpi_output_records_total.inc(count)


def record_field_resolution(tier: str, count: int = 1) -> None:
    """Record numeric field resolutions.

    Args:
        tier: Resolution tier (merged, aggregate, fallback, unresolved).
        count: Number of resolutions.
    """
    kpi_fields_resolved_total.labels(tier=tier).inc(count)


def record_outliers(division: str, count: int = 1) -> None:
    """Record outlier flags raised for a division's fields."""
    kpi_outliers_flagged_total.labels(division=division).inc(count)


def observe_scores(completeness: float, confidence: float) -> None:
    """Observe one record's completeness and confidence scores.

    Args:
        completeness: Completeness score (0-100).
        confidence: Confidence score (0-1).
    """
    kpi_completeness_score.observe(completeness)
    kpi_confidence_score.observe(confidence)


def observe_duration(operation: str, seconds: float) -> None:
    """Record processing duration for an operation.

    Args:
        operation: Operation label (combine, classify, score, ...).
        seconds: Duration in seconds.
    """
    kpi_processing_duration_seconds.labels(operation=operation).observe(seconds)


def set_active_runs(delta: int) -> None:
    """Increment or decrement the in-progress run gauge."""
    if delta >= 0:
        kpi_active_runs.inc(delta)
    else:
        kpi_active_runs.dec(-delta)


def record_error(error_type: str) -> None:
    """Record a processing error.

    Args:
        error_type: Error classification (type_error, value_error, ...).
    """
    kpi_processing_errors_total.labels(error_type=error_type).inc()


__all__ = [
    "kpi_records_ingested_total",
    "kpi_records_dropped_total",
    "kpi_output_records_total",
    "kpi_fields_resolved_total",
    "kpi_outliers_flagged_total",
    "kpi_completeness_score",
    "kpi_confidence_score",
    "kpi_processing_duration_seconds",
    "kpi_active_runs",
    "kpi_processing_errors_total",
    "record_ingested",
    "record_dropped",
    "record_output",
    "record_field_resolution",
    "record_outliers",
    "observe_scores",
    "observe_duration",
    "set_active_runs",
    "record_error",
]
