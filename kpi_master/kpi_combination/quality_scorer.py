# -*- coding: utf-8 -*-
"""
Completeness and Confidence Scorer - KPI Combination

Scores an assembled record against its relevant field set.

Relevant field set:
    lineage     Fields of the divisions that contributed rows to the
                record, read under their output names. A record without
                lineage is scored against all six divisions.
    id_pattern  Legacy lexical inference: the record id is matched
                against fixed per-division patterns, matching divisions'
                fields are unioned (deduplicated by name) and read under
                their catalog names; no match means all divisions.

Completeness:
    A field is missing when it is None, "", NaN, or numeric zero outside
    the zero-allowed whitelist. Score = filled / total * 100 rounded half
    up to one decimal; 100 for an empty field set.

Confidence (starting at 1.0, multiplicative):
    completeness < 60 -> x0.5, < 80 -> x0.7, < 95 -> x0.9
    missing > 20 -> x0.7, > 10 -> x0.85, else x0.9
    completeness < 70 -> x0.7, else x0.95
    missing > 30 -> x0.6
    more than 2 numeric anomalies on the record -> x0.7
    Clamped to [0, 1] and rounded half up to three decimals.

A numeric anomaly is a non-finite number, or a negative number whose
magnitude exceeds the configured limit (999,999,999 by default).

Example:
    >>> from kpi_master.kpi_combination.quality_scorer import QualityScorer
    >>> scorer = QualityScorer()
    >>> score = scorer.score(record, divisions=[Division.FINANCE])
    >>> 0.0 <= score.confidence_score <= 1.0
    True

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
import re
import threading
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple

from kpi_master.kpi_combination.config import (
    RELEVANCE_ID_PATTERN,
    RELEVANCE_LINEAGE,
)
from kpi_master.kpi_combination.models import Division, QualityScore
from kpi_master.kpi_combination.schema_catalog import (
    DIVISION_ORDER,
    FIELDS_BY_DIVISION,
    OUTPUT_FIELDS_BY_DIVISION,
    ZERO_ALLOWED_FIELDS,
)

logger = logging.getLogger(__name__)

__all__ = [
    "QualityScorer",
    "infer_divisions_from_id",
    "is_missing",
]

_DEFAULT_ANOMALY_LIMIT = 999_999_999.0

_ID_PATTERNS: Tuple[Tuple[Division, Pattern[str]], ...] = (
    (Division.WORKFORCE, re.compile(r"hr|emp|employee|E\d+", re.IGNORECASE)),
    (Division.FINANCE, re.compile(r"fin|finance|fiscal|budget", re.IGNORECASE)),
    (Division.SALES, re.compile(r"sales|marketing|S\d+", re.IGNORECASE)),
    (Division.OPERATIONS, re.compile(r"operation|op|O\d+", re.IGNORECASE)),
    (Division.PROJECT, re.compile(r"project|proj|P\d+", re.IGNORECASE)),
    (Division.STRATEGY, re.compile(r"strategic|strategy|STR", re.IGNORECASE)),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def infer_divisions_from_id(record_id: Any) -> List[Division]:
    """Legacy lexical division inference from a record id.

    Args:
        record_id: Record identifier.

    Returns:
        Matching divisions in priority order, or every division when
        nothing matches.
    """
    text = "" if record_id is None else str(record_id)
    matched = [division for division, pattern in _ID_PATTERNS if pattern.search(text)]
    return matched or list(DIVISION_ORDER)


def is_missing(field_name: str, value: Any) -> bool:
    """Return whether a field value counts as missing for completeness."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return True
        return value == 0 and field_name not in ZERO_ALLOWED_FIELDS
    return False


# ``period`` duplicates ``month``; an anomalous period is counted once.
_ANOMALY_SKIPPED_KEYS = frozenset({"period"})


def _is_numeric_anomaly(value: Any, limit: float) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return True
    return value < 0 and abs(value) > limit


# ---------------------------------------------------------------------------
# QualityScorer
# ---------------------------------------------------------------------------


class QualityScorer:
    """Computes completeness and confidence scores for assembled records.

    Attributes:
        relevance_mode: ``lineage`` or ``id_pattern``.
        anomaly_limit: Magnitude beyond which negative numbers are anomalous.
    """

    def __init__(
        self,
        relevance_mode: str = RELEVANCE_LINEAGE,
        anomaly_limit: float = _DEFAULT_ANOMALY_LIMIT,
    ) -> None:
        """Initialize QualityScorer.

        Args:
            relevance_mode: How the relevant field set is selected.
            anomaly_limit: Negative-magnitude anomaly limit.

        Raises:
            ValueError: If relevance_mode is unknown.
        """
        if relevance_mode not in (RELEVANCE_LINEAGE, RELEVANCE_ID_PATTERN):
            raise ValueError(f"Unknown relevance mode: {relevance_mode!r}")
        self.relevance_mode = relevance_mode
        self.anomaly_limit = anomaly_limit
        self._stats_lock = threading.Lock()
        self._records_scored: int = 0
        self._completeness_total: float = 0.0
        self._confidence_total: float = 0.0
        logger.info(
            "QualityScorer initialized: relevance_mode=%s, anomaly_limit=%s",
            relevance_mode, anomaly_limit,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def relevant_fields(
        self,
        record: Mapping[str, Any],
        divisions: Optional[Sequence[Division]] = None,
    ) -> List[str]:
        """Return the names under which a record's relevant fields are read.

        Args:
            record: Assembled record.
            divisions: Contributing divisions (lineage mode).

        Returns:
            Ordered, deduplicated field names.
        """
        if self.relevance_mode == RELEVANCE_ID_PATTERN:
            names: Dict[str, None] = {}
            for division in infer_divisions_from_id(record.get("id")):
                for field_name in FIELDS_BY_DIVISION[division]:
                    names.setdefault(field_name, None)
            return list(names)

        wanted = set(divisions or ())
        selected = [d for d in DIVISION_ORDER if d in wanted]
        if not selected:
            selected = list(DIVISION_ORDER)
        return [
            output_field.output_name
            for division in selected
            for output_field in OUTPUT_FIELDS_BY_DIVISION[division]
        ]

    def score(
        self,
        record: Mapping[str, Any],
        divisions: Optional[Sequence[Division]] = None,
    ) -> QualityScore:
        """Score one assembled record.

        Args:
            record: Assembled record (identity, key tokens and resolved
                division fields).
            divisions: Contributing divisions (lineage mode).

        Returns:
            QualityScore with completeness, confidence and missing fields.
        """
        fields = self.relevant_fields(record, divisions)
        missing = [f for f in fields if is_missing(f, record.get(f))]
        completeness = self.completeness(len(fields), len(missing))
        anomalies = sum(
            1 for name, value in record.items()
            if name not in _ANOMALY_SKIPPED_KEYS
            and _is_numeric_anomaly(value, self.anomaly_limit)
        )
        confidence = self.confidence(completeness, len(missing), anomalies)

        with self._stats_lock:
            self._records_scored += 1
            self._completeness_total += completeness
            self._confidence_total += confidence

        return QualityScore(
            completeness_score=completeness,
            confidence_score=confidence,
            missing_fields=missing,
            relevant_field_count=len(fields),
            anomaly_count=anomalies,
        )

    @staticmethod
    def completeness(total: int, missing: int) -> float:
        """Completeness percentage rounded half up to one decimal.

        Args:
            total: Size of the relevant field set.
            missing: Number of missing relevant fields.

        Returns:
            Score in [0, 100]; 100 when total is 0.
        """
        if total == 0:
            return 100.0
        ratio = (total - missing) / total
        return math.floor(ratio * 1000 + 0.5) / 10

    @staticmethod
    def confidence(completeness: float, missing: int, anomalies: int) -> float:
        """Multiplicative-penalty confidence score.

        Args:
            completeness: Completeness percentage.
            missing: Number of missing relevant fields.
            anomalies: Number of numeric anomalies on the record.

        Returns:
            Score in [0, 1] rounded half up to three decimals.
        """
        conf = 1.0
        if completeness < 60:
            conf *= 0.5
        elif completeness < 80:
            conf *= 0.7
        elif completeness < 95:
            conf *= 0.9

        if missing > 20:
            conf *= 0.7
        elif missing > 10:
            conf *= 0.85
        else:
            conf *= 0.9

        conf *= 0.7 if completeness < 70 else 0.95

        if missing > 30:
            conf *= 0.6
        if anomalies > 2:
            conf *= 0.7

        conf = min(1.0, max(0.0, conf))
        return math.floor(conf * 1000 + 0.5) / 1000

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Return running score statistics."""
        with self._stats_lock:
            count = self._records_scored
            return {
                "engine_name": "QualityScorer",
                "records_scored": count,
                "avg_completeness": (
                    round(self._completeness_total / count, 2) if count else 0.0
                ),
                "avg_confidence": (
                    round(self._confidence_total / count, 3) if count else 0.0
                ),
                "relevance_mode": self.relevance_mode,
            }

    def reset_statistics(self) -> None:
        """Reset score statistics to zero."""
        with self._stats_lock:
            self._records_scored = 0
            self._completeness_total = 0.0
            self._confidence_total = 0.0
