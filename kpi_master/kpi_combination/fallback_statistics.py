# -*- coding: utf-8 -*-
"""
Fallback Statistics Engine - KPI Combination

Precomputes, once per run, the mean, median and mode of every
(division, field) pair in the schema catalog over the division's full
dataset. These statistics are the last-resort imputation tier of the
field aggregator.

Rules:
    - Values are coerced with ``to_number``; blank and non-numeric values
      are excluded, infinities are kept.
    - Median is the sorted midpoint, or the mean of the two middle values.
    - Mode is the most frequent value; ties go to the value seen first.
    - A field with no valid values gets None for all three statistics.

Example:
    >>> from kpi_master.kpi_combination.fallback_statistics import FallbackStatisticsEngine
    >>> engine = FallbackStatisticsEngine()
    >>> table = engine.compute(classification)
    >>> table.mean(Division.WORKFORCE, "salary")

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import statistics
import threading
import time
from collections import Counter
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from kpi_master.kpi_combination.models import (
    ClassificationResult,
    ClassifiedRow,
    Division,
    FallbackStat,
    Number,
)
from kpi_master.kpi_combination.schema_catalog import (
    DIVISION_ORDER,
    FIELDS_BY_DIVISION,
)
from kpi_master.kpi_combination.value_coercion import to_number

logger = logging.getLogger(__name__)

__all__ = [
    "FallbackTable",
    "FallbackStatisticsEngine",
    "numeric_values",
    "mean_of",
    "median_of",
    "mode_of",
]


# ---------------------------------------------------------------------------
# Statistics helpers
# ---------------------------------------------------------------------------


def numeric_values(rows: Sequence[ClassifiedRow], field_name: str) -> List[Number]:
    """Collect the numeric-coercible values of a field across rows, in order."""
    values: List[Number] = []
    for row in rows:
        number = to_number(row.data.get(field_name))
        if number is not None:
            values.append(number)
    return values


def mean_of(values: Sequence[Number]) -> Optional[float]:
    """Arithmetic mean, None for an empty sequence."""
    if not values:
        return None
    return sum(values) / len(values)


def median_of(values: Sequence[Number]) -> Optional[float]:
    """Median, None for an empty sequence."""
    if not values:
        return None
    return float(statistics.median(values))


def mode_of(values: Sequence[Number]) -> Optional[float]:
    """Most frequent value, first-seen on ties; None for an empty sequence."""
    if not values:
        return None
    value, _ = Counter(values).most_common(1)[0]
    return float(value)


# ---------------------------------------------------------------------------
# FallbackTable
# ---------------------------------------------------------------------------


class FallbackTable:
    """Read-only table of fallback statistics for one run."""

    def __init__(self, stats: Dict[Tuple[Division, str], FallbackStat]) -> None:
        self._stats: Mapping[Tuple[Division, str], FallbackStat] = MappingProxyType(stats)

    def get(self, division: Division, field_name: str) -> Optional[FallbackStat]:
        """Return the statistic of a (division, field) pair, if cataloged."""
        return self._stats.get((division, field_name))

    def mean(self, division: Division, field_name: str) -> Optional[float]:
        """Return the fallback mean of a (division, field) pair."""
        stat = self.get(division, field_name)
        return stat.mean if stat is not None else None

    def __len__(self) -> int:
        return len(self._stats)

    def __iter__(self):
        return iter(self._stats.values())


# ---------------------------------------------------------------------------
# FallbackStatisticsEngine
# ---------------------------------------------------------------------------


class FallbackStatisticsEngine:
    """Computes dataset-wide fallback statistics per (division, field).

    Attributes:
        _stats_lock: Threading lock for stats updates.
        _invocations: Number of tables computed.
        _fields_with_data: Cumulative fields that had at least one value.
        _total_duration_ms: Cumulative processing time.
    """

    def __init__(self) -> None:
        """Initialize FallbackStatisticsEngine with empty statistics."""
        self._stats_lock = threading.Lock()
        self._invocations: int = 0
        self._fields_with_data: int = 0
        self._total_duration_ms: float = 0.0
        logger.info("FallbackStatisticsEngine initialized")

    def compute(self, classification: ClassificationResult) -> FallbackTable:
        """Compute the fallback table for one classified batch.

        Args:
            classification: Output of the row classifier.

        Returns:
            FallbackTable covering every cataloged (division, field) pair.
        """
        start_time = time.monotonic()
        stats: Dict[Tuple[Division, str], FallbackStat] = {}
        with_data = 0

        for division in DIVISION_ORDER:
            rows = classification.rows(division)
            for field_name in FIELDS_BY_DIVISION[division]:
                stat = self.compute_field(division, field_name, rows)
                stats[(division, field_name)] = stat
                if stat.count:
                    with_data += 1

        elapsed_ms = (time.monotonic() - start_time) * 1000.0
        with self._stats_lock:
            self._invocations += 1
            self._fields_with_data += with_data
            self._total_duration_ms += elapsed_ms

        logger.debug(
            "Fallback statistics computed: %d pairs, %d with data (%.1f ms)",
            len(stats), with_data, elapsed_ms,
        )
        return FallbackTable(stats)

    @staticmethod
    def compute_field(
        division: Division,
        field_name: str,
        rows: Sequence[ClassifiedRow],
    ) -> FallbackStat:
        """Compute mean/median/mode of one field over a division's rows.

        Args:
            division: Owning division.
            field_name: Catalog field name.
            rows: All rows of the division.

        Returns:
            FallbackStat; statistics are None when no value is numeric.
        """
        values = numeric_values(rows, field_name)
        return FallbackStat(
            division=division,
            field_name=field_name,
            count=len(values),
            mean=mean_of(values),
            median=median_of(values),
            mode=mode_of(values),
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Return current engine statistics."""
        with self._stats_lock:
            return {
                "engine_name": "FallbackStatisticsEngine",
                "invocations": self._invocations,
                "fields_with_data": self._fields_with_data,
                "total_duration_ms": round(self._total_duration_ms, 3),
            }

    def reset_statistics(self) -> None:
        """Reset all engine statistics to zero."""
        with self._stats_lock:
            self._invocations = 0
            self._fields_with_data = 0
            self._total_duration_ms = 0.0
