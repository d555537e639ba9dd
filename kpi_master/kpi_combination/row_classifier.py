# -*- coding: utf-8 -*-
"""
Row Classifier Engine - KPI Combination

Assigns every raw record to exactly one division bucket by checking the
division-defining fields in fixed priority order:

    employee_id -> workforce
    fiscal_year -> finance
    sales_target -> sales
    operational_cost -> operations
    project_id -> project
    strategy_id -> strategy

The first field that is present and truthy wins. Records matching no
check, and entries that are not mappings at all, are dropped from every
bucket. Items wrapped in a ``{"json": {...}}`` envelope are unwrapped
first.

Each classified record carries its division tag, its composite key and
its row index within the division dataset, so downstream engines never
need to re-derive membership.

Example:
    >>> from kpi_master.kpi_combination.row_classifier import RowClassifier
    >>> result = RowClassifier().classify([{"employee_id": "E1"}, {"x": 1}])
    >>> result.dropped_count
    1

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from kpi_master.kpi_combination.key_builder import CompositeKeyBuilder
from kpi_master.kpi_combination.models import (
    ClassificationResult,
    ClassifiedRow,
    Division,
)
from kpi_master.kpi_combination.schema_catalog import DISCRIMINANT_FIELDS
from kpi_master.kpi_combination.value_coercion import is_truthy

logger = logging.getLogger(__name__)

__all__ = [
    "RowClassifier",
    "unwrap_envelope",
    "classify_record",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def unwrap_envelope(item: Any) -> Any:
    """Return the payload of a ``{"json": {...}}`` envelope, else the item."""
    if isinstance(item, Mapping):
        payload = item.get("json")
        if isinstance(payload, Mapping):
            return payload
    return item


def classify_record(record: Any) -> Optional[Division]:
    """Return the division of a raw record, or None when nothing matches.

    Args:
        record: Unwrapped raw record.

    Returns:
        Division of the first present and truthy discriminant field.
    """
    if not isinstance(record, Mapping):
        return None
    for division, field_name in DISCRIMINANT_FIELDS:
        if is_truthy(record.get(field_name)):
            return division
    return None


# ---------------------------------------------------------------------------
# RowClassifier
# ---------------------------------------------------------------------------


class RowClassifier:
    """Splits a batch of raw records into per-division buckets.

    Attributes:
        _key_builder: Composite key builder applied to every classified row.
        _stats_lock: Threading lock for stats updates.

    Example:
        >>> classifier = RowClassifier()
        >>> result = classifier.classify([{"fiscal_year": 2024}])
        >>> len(result.rows(Division.FINANCE))
        1
    """

    def __init__(self, key_builder: Optional[CompositeKeyBuilder] = None) -> None:
        """Initialize RowClassifier.

        Args:
            key_builder: Optional key builder; a default one is created if None.
        """
        self._key_builder = key_builder or CompositeKeyBuilder()
        self._stats_lock = threading.Lock()
        self._invocations: int = 0
        self._records_seen: int = 0
        self._records_dropped: int = 0
        self._division_totals: Dict[str, int] = {d.value: 0 for d in Division}
        self._total_duration_ms: float = 0.0
        self._last_invoked_at: Optional[datetime] = None
        logger.info("RowClassifier initialized")

    def classify(self, items: Iterable) -> ClassificationResult:
        """Classify a batch of raw records.

        Args:
            items: Ordered iterable of raw records, optionally envelope-wrapped.

        Returns:
            ClassificationResult with per-division rows in input order.

        Raises:
            TypeError: If ``items`` is not iterable or is a single mapping
                or string.
        """
        if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
            raise TypeError(
                f"items must be an iterable of records, got {type(items).__name__}"
            )

        start_time = time.monotonic()
        buckets: Dict[Division, List[ClassifiedRow]] = {d: [] for d in Division}
        input_count = 0
        dropped = 0

        for item in items:
            input_count += 1
            record = unwrap_envelope(item)
            division = classify_record(record)
            if division is None:
                dropped += 1
                continue
            bucket = buckets[division]
            bucket.append(ClassifiedRow(
                division=division,
                index=len(bucket),
                key=self._key_builder.build(record),
                data=dict(record),
            ))

        if dropped:
            logger.warning(
                "Dropped %d of %d records matching no division",
                dropped, input_count,
            )

        result = ClassificationResult(
            buckets=buckets,
            input_count=input_count,
            dropped_count=dropped,
        )
        self._record_run(result, time.monotonic() - start_time)
        return result

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Return current classifier statistics."""
        with self._stats_lock:
            return {
                "engine_name": "RowClassifier",
                "invocations": self._invocations,
                "records_seen": self._records_seen,
                "records_dropped": self._records_dropped,
                "division_totals": dict(self._division_totals),
                "total_duration_ms": round(self._total_duration_ms, 3),
                "last_invoked_at": (
                    self._last_invoked_at.isoformat()
                    if self._last_invoked_at else None
                ),
            }

    def reset_statistics(self) -> None:
        """Reset all classifier statistics to zero."""
        with self._stats_lock:
            self._invocations = 0
            self._records_seen = 0
            self._records_dropped = 0
            self._division_totals = {d.value: 0 for d in Division}
            self._total_duration_ms = 0.0
            self._last_invoked_at = None

    def _record_run(self, result: ClassificationResult, elapsed_seconds: float) -> None:
        with self._stats_lock:
            self._invocations += 1
            self._records_seen += result.input_count
            self._records_dropped += result.dropped_count
            for division, count in result.division_counts().items():
                self._division_totals[division] += count
            self._total_duration_ms += elapsed_seconds * 1000.0
            self._last_invoked_at = _utcnow()
