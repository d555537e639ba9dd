# -*- coding: utf-8 -*-
"""
Outlier Detector Engine - KPI Combination

Flags numerically anomalous field values with a z-score computed per
(division, field) over the division's full dataset.

Method:
    mu, sigma = population mean and standard deviation of all numeric
    values of the field in the division (at least ``min_samples`` values,
    else the field is never flagged); z = (value - mu) / sigma, or 0 when
    sigma is 0; a row is flagged when |z| > threshold.

Flags are computed once per run and indexed by row position. An output
record's field is flagged when any row of the owning division under the
record's composite key was flagged for that field.

Example:
    >>> from kpi_master.kpi_combination.outlier_detector import OutlierDetector
    >>> detector = OutlierDetector(threshold=3.0)
    >>> sorted(detector.detect_values([(i, 10) for i in range(12)] + [(12, 1000)]))
    [12]

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Dict, FrozenSet, List, Mapping, Sequence, Tuple

from kpi_master.kpi_combination.merge_engine import MultiIndex
from kpi_master.kpi_combination.models import (
    ClassificationResult,
    Division,
    Number,
)
from kpi_master.kpi_combination.schema_catalog import (
    DIVISION_ORDER,
    FIELDS_BY_DIVISION,
    OUTPUT_FIELDS,
)
from kpi_master.kpi_combination.value_coercion import to_number

logger = logging.getLogger(__name__)

__all__ = [
    "OutlierIndex",
    "OutlierDetector",
]

_DEFAULT_ZSCORE_THRESHOLD = 3.0
_DEFAULT_MIN_SAMPLES = 3


# ---------------------------------------------------------------------------
# OutlierIndex
# ---------------------------------------------------------------------------


class OutlierIndex:
    """Flagged row indices per (division, field) for one run."""

    def __init__(self, flagged: Dict[Tuple[Division, str], FrozenSet[int]]) -> None:
        self._flagged: Mapping[Tuple[Division, str], FrozenSet[int]] = flagged

    def flagged_rows(self, division: Division, field_name: str) -> FrozenSet[int]:
        """Return the flagged row indices of a (division, field) pair."""
        return self._flagged.get((division, field_name), frozenset())

    def is_flagged(self, division: Division, field_name: str, row_index: int) -> bool:
        return row_index in self.flagged_rows(division, field_name)

    @property
    def total_flags(self) -> int:
        """Number of (row, field) flags across the run."""
        return sum(len(rows) for rows in self._flagged.values())


# ---------------------------------------------------------------------------
# OutlierDetector
# ---------------------------------------------------------------------------


class OutlierDetector:
    """Z-score outlier detection over whole division datasets.

    Attributes:
        threshold: Absolute z-score above which a value is flagged.
        min_samples: Minimum valid values required to test a field.
        legacy_lookup: When True, ``flags_for_key`` reproduces the legacy
            lookup that never associates flags with output records.
    """

    def __init__(
        self,
        threshold: float = _DEFAULT_ZSCORE_THRESHOLD,
        min_samples: int = _DEFAULT_MIN_SAMPLES,
        legacy_lookup: bool = False,
    ) -> None:
        """Initialize OutlierDetector.

        Args:
            threshold: Z-score threshold (strictly greater is flagged).
            min_samples: Minimum number of valid values per field.
            legacy_lookup: Reproduce the legacy no-op record lookup.
        """
        self.threshold = threshold
        self.min_samples = min_samples
        self.legacy_lookup = legacy_lookup
        self._stats_lock = threading.Lock()
        self._invocations: int = 0
        self._fields_tested: int = 0
        self._rows_flagged: int = 0
        self._total_duration_ms: float = 0.0
        logger.info(
            "OutlierDetector initialized: threshold=%.2f, min_samples=%d, legacy_lookup=%s",
            threshold, min_samples, legacy_lookup,
        )

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_values(self, values: Sequence[Tuple[int, Number]]) -> FrozenSet[int]:
        """Return the row indices whose value is a z-score outlier.

        Args:
            values: (row_index, numeric value) pairs of one field.

        Returns:
            Frozen set of flagged row indices; empty when fewer than
            ``min_samples`` values are given.
        """
        if len(values) < self.min_samples:
            return frozenset()
        numbers = [v for _, v in values]
        mu = sum(numbers) / len(numbers)
        variance = sum((v - mu) * (v - mu) for v in numbers) / len(numbers)
        sigma = math.sqrt(variance)

        flagged = []
        for row_index, value in values:
            z = 0.0 if sigma == 0 else (value - mu) / sigma
            if abs(z) > self.threshold:
                flagged.append(row_index)
        return frozenset(flagged)

    def compute(self, classification: ClassificationResult) -> OutlierIndex:
        """Flag outliers for every cataloged (division, field) pair.

        Args:
            classification: Output of the row classifier.

        Returns:
            OutlierIndex keyed by (division, field).
        """
        start_time = time.monotonic()
        flagged: Dict[Tuple[Division, str], FrozenSet[int]] = {}
        tested = 0

        for division in DIVISION_ORDER:
            rows = classification.rows(division)
            for field_name in FIELDS_BY_DIVISION[division]:
                values: List[Tuple[int, Number]] = []
                for row in rows:
                    number = to_number(row.data.get(field_name))
                    if number is not None:
                        values.append((row.index, number))
                if len(values) < self.min_samples:
                    continue
                tested += 1
                hits = self.detect_values(values)
                if hits:
                    flagged[(division, field_name)] = hits
                    logger.debug(
                        "Outliers in %s.%s: %d of %d values",
                        division.value, field_name, len(hits), len(values),
                    )

        index = OutlierIndex(flagged)
        elapsed_ms = (time.monotonic() - start_time) * 1000.0
        with self._stats_lock:
            self._invocations += 1
            self._fields_tested += tested
            self._rows_flagged += index.total_flags
            self._total_duration_ms += elapsed_ms
        return index

    # ------------------------------------------------------------------
    # Record lookup
    # ------------------------------------------------------------------

    def flags_for_key(
        self,
        outliers: OutlierIndex,
        index: MultiIndex,
        key: str,
    ) -> Dict[str, bool]:
        """Return the outlier flags of the output record for a key.

        Args:
            outliers: Run-wide outlier index.
            index: Multi-index of the run.
            key: Serialized composite key.

        Returns:
            output field name -> True for every flagged field, in output
            field order. Always empty in legacy lookup mode.
        """
        if self.legacy_lookup:
            return {}
        flags: Dict[str, bool] = {}
        for output_field in OUTPUT_FIELDS:
            flagged_rows = outliers.flagged_rows(
                output_field.division, output_field.source_field,
            )
            if not flagged_rows:
                continue
            rows = index.rows(output_field.division, key)
            if any(row.index in flagged_rows for row in rows):
                flags[output_field.output_name] = True
        return flags

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Return current detector statistics."""
        with self._stats_lock:
            return {
                "engine_name": "OutlierDetector",
                "invocations": self._invocations,
                "fields_tested": self._fields_tested,
                "rows_flagged": self._rows_flagged,
                "total_duration_ms": round(self._total_duration_ms, 3),
                "threshold": self.threshold,
                "legacy_lookup": self.legacy_lookup,
            }

    def reset_statistics(self) -> None:
        """Reset all detector statistics to zero."""
        with self._stats_lock:
            self._invocations = 0
            self._fields_tested = 0
            self._rows_flagged = 0
            self._total_duration_ms = 0.0
