# -*- coding: utf-8 -*-
"""
Data Quality Scoring and Classification - ETL Audit

Pure functions turning audit aggregates into the data quality score, the
five-level data classification and the data tracing diagnosis.

Data quality score (0-100):
    raw = 0.4 * completenessNorm + 0.3 * confidenceNorm
        + 0.2 * (0.5 * criticalNorm + 0.5 * anomalyNorm)
        + 0.1 * missingFieldNorm - gapPenalty

Classification score:
    18 * nCompletenessEtl + 14 * nConfidenceEtl
    + 18 * nCompletenessAudit + 14 * nConfidenceAudit + 30 * nQuality
    - 3 * min(|completenessGap| / 12, 1) - 3 * min(|confidenceGap| / 0.12, 1)

    >= 91 excellent, >= 81 very good, >= 66 good, >= 51 bad, else very bad

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import math
from typing import Dict, List, NamedTuple, Optional, Sequence

from kpi_master.kpi_combination.value_coercion import round_half_up

__all__ = [
    "CLASS_EXCELLENT",
    "CLASS_VERY_GOOD",
    "CLASS_GOOD",
    "CLASS_BAD",
    "CLASS_VERY_BAD",
    "TRACING_PREFIX",
    "TRACING_NO_ISSUE",
    "QualityInputs",
    "average",
    "tolerance_for",
    "compute_data_quality_score",
    "classify_data_quality",
    "build_data_tracing",
]

CLASS_EXCELLENT = "excellent"
CLASS_VERY_GOOD = "very good"
CLASS_GOOD = "good"
CLASS_BAD = "bad"
CLASS_VERY_BAD = "very bad"

_CLASS_THRESHOLDS = (
    (91.0, CLASS_EXCELLENT),
    (81.0, CLASS_VERY_GOOD),
    (66.0, CLASS_GOOD),
    (51.0, CLASS_BAD),
)

TRACING_PREFIX = "Issues identified: "
TRACING_NO_ISSUE = (
    "Data quality score is poor but no specific issue was detected; "
    "check the ETL process further."
)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class QualityInputs(NamedTuple):
    """Aggregates of one audit feeding the score and the diagnosis."""

    count: int
    avg_completeness_audit: float
    avg_confidence_audit: float
    critical_count: int
    anomaly_count: int
    top_missing_field: Optional[str]
    top_missing_count: int
    completeness_gap: float
    confidence_gap: float
    division_count: int


def tolerance_for(count: int, rate: float = 0.05) -> int:
    """Maximum tolerated critical or anomalous records for a batch size."""
    return max(1, int(round_half_up(rate * count)))


def compute_data_quality_score(inputs: QualityInputs, rate: float = 0.05) -> int:
    """Weighted data quality score.

    Args:
        inputs: Audit aggregates; ``count`` is at least 1.
        rate: Tolerated critical/anomalous fraction.

    Returns:
        Integer score clamped to [0, 100].
    """
    n = max(inputs.count, 1)
    tolerance = tolerance_for(n, rate)
    completeness_norm = _clamp(inputs.avg_completeness_audit / 100)
    confidence_norm = _clamp(inputs.avg_confidence_audit)
    critical_norm = 1 - min(1.0, inputs.critical_count / tolerance)
    anomaly_norm = 1 - min(1.0, inputs.anomaly_count / tolerance)
    missing_norm = 1 - min(1.0, inputs.top_missing_count / (n * 0.8))

    gap_penalty = 0.0
    if inputs.completeness_gap > 5:
        gap_penalty += 0.05
    if inputs.confidence_gap > 0.05:
        gap_penalty += 0.05

    raw = (
        0.4 * completeness_norm
        + 0.3 * confidence_norm
        + 0.2 * (0.5 * critical_norm + 0.5 * anomaly_norm)
        + 0.1 * missing_norm
        - gap_penalty
    )
    return int(_clamp(round_half_up(raw * 100), 0, 100))


def classify_data_quality(
    avg_completeness_etl: float,
    avg_confidence_score_etl: float,
    avg_completeness_audit: float,
    avg_confidence_score_audit: float,
    data_quality_score: float,
    completeness_gap: float,
    confidence_gap: float,
) -> Dict[str, object]:
    """Classify an audited batch into one of five quality levels.

    Returns:
        ``{"data_classification": label, "data_classification_score": score}``
        with the score rounded to one decimal.
    """
    score = (
        _clamp(avg_completeness_etl / 100) * 18
        + _clamp(avg_confidence_score_etl) * 14
        + _clamp(avg_completeness_audit / 100) * 18
        + _clamp(avg_confidence_score_audit) * 14
        + _clamp(data_quality_score / 100) * 30
        - min(abs(completeness_gap) / 12, 1) * 3
        - min(abs(confidence_gap) / 0.12, 1) * 3
    )
    label = CLASS_VERY_BAD
    for threshold, name in _CLASS_THRESHOLDS:
        if score >= threshold:
            label = name
            break
    return {
        "data_classification": label,
        "data_classification_score": round_half_up(score, 1),
    }


def build_data_tracing(
    inputs: QualityInputs,
    data_quality_score: int,
    alert_threshold: int = 70,
    rate: float = 0.05,
) -> str:
    """Diagnose a poor data quality score.

    Args:
        inputs: Audit aggregates.
        data_quality_score: Score from ``compute_data_quality_score``.
        alert_threshold: Scores below this are diagnosed.
        rate: Tolerated critical/anomalous fraction.

    Returns:
        Empty string for acceptable scores, else the issues found.
    """
    if data_quality_score >= alert_threshold:
        return ""

    n = max(inputs.count, 1)
    tolerance = tolerance_for(n, rate)
    issues: List[str] = []
    if _clamp(inputs.avg_completeness_audit / 100) < 0.75:
        issues.append("Average completeness is low")
    if _clamp(inputs.avg_confidence_audit) < 0.75:
        issues.append("Average confidence score is low")
    if inputs.critical_count > tolerance:
        issues.append("Too many items are missing critical fields")
    if inputs.anomaly_count > tolerance:
        issues.append("Many anomalous items (low confidence)")
    if inputs.top_missing_field is not None and inputs.top_missing_count > n * 0.5:
        issues.append(f"Field '{inputs.top_missing_field}' is frequently incomplete")
    if inputs.division_count < 3:
        issues.append("Data is uneven across divisions")

    if not issues:
        return TRACING_NO_ISSUE
    return TRACING_PREFIX + "; ".join(issues)


def average(values: Sequence[object]) -> float:
    """Mean of the numeric entries of a sequence; 0 when there are none."""
    valid = [
        float(v) for v in values
        if isinstance(v, (int, float)) and not isinstance(v, bool) and not math.isnan(v)
    ]
    return sum(valid) / len(valid) if valid else 0.0
