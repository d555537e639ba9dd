# -*- coding: utf-8 -*-
"""
Merge Engine - KPI Combination

Groups classified rows by composite key and coalesces all rows sharing a
key into one representative merged record.

Multi-index:
    Per division, key -> ordered list of rows sharing that key (duplicates
    permitted). The output key order is the order of first appearance
    while scanning divisions in priority order.

Row merge (first-non-empty-wins):
    Rows are scanned division by division in priority order
    (workforce -> finance -> sales -> operations -> project -> strategy)
    and, within a division, in input order. For every field name, the
    first value that is neither None nor the empty string is adopted and
    never overwritten.

Example:
    >>> from kpi_master.kpi_combination.merge_engine import MergeEngine
    >>> engine = MergeEngine()
    >>> index = engine.build_index(classification)
    >>> merged = engine.merge_key(index, "Sales|||1")

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from kpi_master.kpi_combination.models import (
    ClassificationResult,
    ClassifiedRow,
    CompositeKey,
    Division,
)
from kpi_master.kpi_combination.schema_catalog import (
    DIVISION_ORDER,
    LINEAGE_LABELS,
)
from kpi_master.kpi_combination.value_coercion import (
    clean_string,
    format_number,
    is_blank,
    is_truthy,
)

logger = logging.getLogger(__name__)

__all__ = [
    "MultiIndex",
    "MergedRecord",
    "MergeEngine",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


# ---------------------------------------------------------------------------
# Index and merged record containers
# ---------------------------------------------------------------------------


class MultiIndex:
    """Per-division grouping of classified rows by composite key.

    Attributes:
        by_division: division -> key -> rows in input order.
        keys: Distinct keys in first-appearance order.
    """

    def __init__(self) -> None:
        self.by_division: Dict[Division, Dict[str, List[ClassifiedRow]]] = {
            division: {} for division in DIVISION_ORDER
        }
        self._keys: Dict[str, CompositeKey] = {}

    def add(self, row: ClassifiedRow) -> None:
        """Append a row under its key in its division."""
        key = row.key.key
        self.by_division[row.division].setdefault(key, []).append(row)
        if key not in self._keys:
            self._keys[key] = row.key

    @property
    def keys(self) -> List[str]:
        """Return distinct keys in first-appearance order."""
        return list(self._keys)

    def composite_key(self, key: str) -> CompositeKey:
        """Return the CompositeKey first observed for a serialized key."""
        return self._keys[key]

    def rows(self, division: Division, key: str) -> List[ClassifiedRow]:
        """Return a division's rows under a key (empty when none)."""
        return self.by_division[division].get(key, [])

    def contributing_divisions(self, key: str) -> List[Division]:
        """Return divisions with at least one row under a key, priority order."""
        return [d for d in DIVISION_ORDER if key in self.by_division[d]]

    def __len__(self) -> int:
        return len(self._keys)


class MergedRecord:
    """One representative record per composite key.

    Attributes:
        key: The composite key.
        values: field -> first non-empty value, in adoption order.
        divisions: Contributing divisions in priority order.
    """

    def __init__(
        self,
        key: CompositeKey,
        values: Dict[str, Any],
        divisions: List[Division],
    ) -> None:
        self.key = key
        self.values = values
        self.divisions = divisions

    def get(self, field_name: str, default: Any = None) -> Any:
        return self.values.get(field_name, default)

    @property
    def lineage(self) -> List[str]:
        """Lineage labels of the contributing divisions."""
        return [LINEAGE_LABELS[d] for d in self.divisions]

    @property
    def record_id(self) -> str:
        """``{department}_{region}_{store_id}_{period}_{employee_id or 0}``."""
        employee_id = self.values.get("employee_id")
        employee_token: Any = clean_string(employee_id) if is_truthy(employee_id) else 0
        if isinstance(employee_token, (int, float)) and not isinstance(employee_token, bool):
            employee_token = format_number(employee_token)
        return "_".join((
            self.key.department,
            self.key.region,
            self.key.store_id,
            format_number(self.key.period),
            str(employee_token),
        ))


# ---------------------------------------------------------------------------
# MergeEngine
# ---------------------------------------------------------------------------


class MergeEngine:
    """Builds the multi-index and merges rows per composite key.

    Attributes:
        _stats_lock: Threading lock for stats updates.
        _indexes_built: Number of indexes built.
        _keys_merged: Total keys merged.
        _rows_merged: Total rows scanned while merging.

    Example:
        >>> engine = MergeEngine()
        >>> index = engine.build_index(classification)
        >>> for key in index.keys:
        ...     merged = engine.merge_key(index, key)
    """

    def __init__(self) -> None:
        """Initialize MergeEngine with empty statistics."""
        self._stats_lock = threading.Lock()
        self._indexes_built: int = 0
        self._keys_merged: int = 0
        self._rows_merged: int = 0
        self._last_invoked_at: Optional[datetime] = None
        logger.info("MergeEngine initialized")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_index(self, classification: ClassificationResult) -> MultiIndex:
        """Group every division's rows by composite key.

        Args:
            classification: Output of the row classifier.

        Returns:
            MultiIndex with keys in first-appearance order.
        """
        index = MultiIndex()
        for division in DIVISION_ORDER:
            for row in classification.rows(division):
                index.add(row)
        with self._stats_lock:
            self._indexes_built += 1
            self._last_invoked_at = _utcnow()
        logger.debug("Multi-index built with %d keys", len(index))
        return index

    def merge_key(self, index: MultiIndex, key: str) -> MergedRecord:
        """Coalesce all rows under a key into one merged record.

        Args:
            index: Multi-index from ``build_index``.
            key: Serialized composite key.

        Returns:
            MergedRecord holding the first non-empty value of every field.
        """
        rows: List[Mapping[str, Any]] = []
        for division in DIVISION_ORDER:
            rows.extend(row.data for row in index.rows(division, key))
        values = self.merge_rows(rows)
        with self._stats_lock:
            self._keys_merged += 1
            self._rows_merged += len(rows)
        return MergedRecord(
            key=index.composite_key(key),
            values=values,
            divisions=index.contributing_divisions(key),
        )

    @staticmethod
    def merge_rows(rows: List[Mapping[str, Any]]) -> Dict[str, Any]:
        """First-non-empty-wins merge of an ordered list of rows.

        Args:
            rows: Records in precedence order.

        Returns:
            field -> first value that is neither None nor "".
        """
        merged: Dict[str, Any] = {}
        for row in rows:
            for field_name, value in row.items():
                if field_name in merged or is_blank(value):
                    continue
                merged[field_name] = value
        return merged

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Return current engine statistics."""
        with self._stats_lock:
            return {
                "engine_name": "MergeEngine",
                "indexes_built": self._indexes_built,
                "keys_merged": self._keys_merged,
                "rows_merged": self._rows_merged,
                "last_invoked_at": (
                    self._last_invoked_at.isoformat()
                    if self._last_invoked_at else None
                ),
            }

    def reset_statistics(self) -> None:
        """Reset all engine statistics to zero."""
        with self._stats_lock:
            self._indexes_built = 0
            self._keys_merged = 0
            self._rows_merged = 0
            self._last_invoked_at = None
