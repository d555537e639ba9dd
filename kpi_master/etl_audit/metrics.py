# -*- coding: utf-8 -*-
"""
Prometheus Metrics - ETL Audit

Metrics:
    1. kpi_audits_total (Counter, labels: classification)
    2. kpi_audit_data_quality_score (Histogram, buckets: 10-100)
    3. kpi_audit_anomalies_total (Counter)
    4. kpi_audit_critical_records_total (Counter)
    5. kpi_file_documentation_total (Counter, labels: status)
    6. kpi_audit_duration_seconds (Histogram)

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Audits completed by data classification
kpi_audits_total = Counter(
    "kpi_audits_total",
    "Total ETL audits completed",
    labelnames=["classification"],
)

# 2. Data quality score distribution
kpi_audit_data_quality_score = Histogram(
    "kpi_audit_data_quality_score",
    "ETL audit data quality score distribution (0-100)",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)

# 3. Low-confidence anomalies reported
kpi_audit_anomalies_total = Counter(
    "kpi_audit_anomalies_total",
    "Total low-confidence records reported by ETL audits",
)

# 4. Records carrying error flags
kpi_audit_critical_records_total = Counter(
    "kpi_audit_critical_records_total",
    "Total records with critical error flags seen by ETL audits",
)

# 5. Source file documentation attempts
kpi_file_documentation_total = Counter(
    "kpi_file_documentation_total",
    "Total source files documented",
    labelnames=["status"],
)

# 6. Audit duration
kpi_audit_duration_seconds = Histogram(
    "kpi_audit_duration_seconds",
    "ETL audit processing duration in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def record_audit(
    classification: str,
    data_quality_score: float,
    anomalies: int,
    critical: int,
    seconds: float,
) -> None:
    """Record a completed audit.

    Args:
        classification: Data classification label.
        data_quality_score: Data quality score (0-100).
        anomalies: Low-confidence records found.
        critical: Records with error flags.
        seconds: Audit duration in seconds.
    """
    kpi_audits_total.labels(classification=classification).inc()
    kpi_audit_data_quality_score.observe(data_quality_score)
    if anomalies:
        kpi_audit_anomalies_total.inc(anomalies)
    if critical:
        kpi_audit_critical_records_total.inc(critical)
    kpi_audit_duration_seconds.observe(seconds)


def record_file_documentation(status: str) -> None:
    """Record a file documentation attempt.

    Args:
        status: ``ok`` or ``error``.
    """
    kpi_file_documentation_total.labels(status=status).inc()


__all__ = [
    "kpi_audits_total",
    "kpi_audit_data_quality_score",
    "kpi_audit_anomalies_total",
    "kpi_audit_critical_records_total",
    "kpi_file_documentation_total",
    "kpi_audit_duration_seconds",
    "record_audit",
    "record_file_documentation",
]
