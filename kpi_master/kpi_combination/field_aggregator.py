# -*- coding: utf-8 -*-
"""
Field Aggregator - KPI Combination

Resolves the value of every output field of a merged record.

Numeric fields use a three-tier fallback:
    1. The merged value, when numeric-coercible.
    2. An aggregate over the same-key rows of the owning division:
       ``sum`` for volume/count fields, ``mean`` otherwise.
    3. The division/field fallback mean over the whole dataset.
    Otherwise the value is None.

String fields are taken from the merged record with whitespace
normalized; date fields are normalized to ``YYYY-MM-DD`` or None.

Example:
    >>> from kpi_master.kpi_combination.field_aggregator import FieldAggregator
    >>> aggregator = FieldAggregator()
    >>> resolutions = aggregator.resolve_record(merged, index, fallback)

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Sequence

from kpi_master.kpi_combination.fallback_statistics import (
    FallbackTable,
    mean_of,
    numeric_values,
)
from kpi_master.kpi_combination.merge_engine import MergedRecord, MultiIndex
from kpi_master.kpi_combination.models import (
    ClassifiedRow,
    FieldKind,
    FieldResolution,
    ResolutionTier,
)
from kpi_master.kpi_combination.schema_catalog import (
    OUTPUT_FIELDS,
    SUM_FIELDS,
    OutputField,
)
from kpi_master.kpi_combination.value_coercion import (
    clean_string,
    to_date,
    to_number,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FieldAggregator",
]


class FieldAggregator:
    """Three-tier resolution of output field values.

    Keeps a running count of resolutions per tier for monitoring.

    Example:
        >>> aggregator = FieldAggregator()
        >>> res = aggregator.resolve_numeric(field, merged, rows, fallback)
        >>> res.tier
        <ResolutionTier.MERGED: 'merged'>
    """

    def __init__(self) -> None:
        """Initialize FieldAggregator with empty tier counters."""
        self._stats_lock = threading.Lock()
        self._tier_counts: Dict[str, int] = {t.value: 0 for t in ResolutionTier}
        logger.info("FieldAggregator initialized")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_record(
        self,
        merged: MergedRecord,
        index: MultiIndex,
        fallback: FallbackTable,
    ) -> List[FieldResolution]:
        """Resolve every output field of a merged record, in output order.

        Args:
            merged: Merged record of one composite key.
            index: Multi-index of the run.
            fallback: Fallback statistics of the run.

        Returns:
            One FieldResolution per output field.
        """
        key = merged.key.key
        resolutions: List[FieldResolution] = []
        tiers: Dict[str, int] = {}
        for output_field in OUTPUT_FIELDS:
            if output_field.kind is FieldKind.NUMERIC:
                rows = index.rows(output_field.division, key)
                resolution = self.resolve_numeric(
                    output_field, merged, rows, fallback,
                )
                tiers[resolution.tier.value] = tiers.get(resolution.tier.value, 0) + 1
            else:
                resolution = self.resolve_direct(output_field, merged)
            resolutions.append(resolution)

        with self._stats_lock:
            for tier, count in tiers.items():
                self._tier_counts[tier] += count
        return resolutions

    def resolve_numeric(
        self,
        output_field: OutputField,
        merged: MergedRecord,
        rows: Sequence[ClassifiedRow],
        fallback: FallbackTable,
    ) -> FieldResolution:
        """Resolve a numeric field through the fallback tiers.

        Args:
            output_field: Output field layout entry.
            merged: Merged record of the key.
            rows: Same-key rows of the owning division.
            fallback: Fallback statistics of the run.

        Returns:
            FieldResolution with the value and the tier that produced it.
        """
        source = output_field.source_field

        direct = to_number(merged.get(source))
        if direct is not None:
            return self._resolution(output_field, direct, ResolutionTier.MERGED)

        values = numeric_values(rows, source)
        if values:
            aggregate = sum(values) if source in SUM_FIELDS else mean_of(values)
            return self._resolution(output_field, aggregate, ResolutionTier.AGGREGATE)

        dataset_mean = fallback.mean(output_field.division, source)
        if dataset_mean is not None:
            return self._resolution(output_field, dataset_mean, ResolutionTier.FALLBACK)

        return self._resolution(output_field, None, ResolutionTier.UNRESOLVED)

    def resolve_direct(
        self,
        output_field: OutputField,
        merged: MergedRecord,
    ) -> FieldResolution:
        """Resolve a string or date field straight from the merged record."""
        raw = merged.get(output_field.source_field)
        if output_field.kind is FieldKind.DATE:
            value = to_date(raw)
        else:
            value = clean_string(raw)
        tier = ResolutionTier.UNRESOLVED if value is None else ResolutionTier.MERGED
        return self._resolution(output_field, value, tier)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        """Return numeric resolution counts per tier."""
        with self._stats_lock:
            return {
                "engine_name": "FieldAggregator",
                "tier_counts": dict(self._tier_counts),
            }

    def reset_statistics(self) -> None:
        """Reset tier counters to zero."""
        with self._stats_lock:
            self._tier_counts = {t.value: 0 for t in ResolutionTier}

    @staticmethod
    def _resolution(
        output_field: OutputField,
        value: Any,
        tier: ResolutionTier,
    ) -> FieldResolution:
        return FieldResolution(
            output_name=output_field.output_name,
            value=value,
            tier=tier,
        )
