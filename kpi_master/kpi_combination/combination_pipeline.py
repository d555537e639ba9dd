# -*- coding: utf-8 -*-
"""
KPI Combination Pipeline

Single synchronous batch entry point of the combination engine. Wires the
engines together:

    raw records
      -> RowClassifier (per-division buckets, composite keys)
      -> FallbackStatisticsEngine (once per run)
      -> OutlierDetector.compute (once per run)
      -> MergeEngine (multi-index, then one merged record per key)
      -> FieldAggregator (three-tier field resolution)
      -> OutlierDetector.flags_for_key
      -> OutputAssembler (+ QualityScorer)
      -> output records in first-appearance key order

Every run is timed, counted in Prometheus metrics and recorded in the
SHA-256 provenance chain.

Example:
    >>> from kpi_master.kpi_combination.combination_pipeline import etl_combination_kpi
    >>> records = etl_combination_kpi([
    ...     {"fiscal_year": 2024, "budget_month": 3, "total_revenue": 100000},
    ... ])
    >>> records[0]["sources_included"]
    ['Finance']

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

from kpi_master.kpi_combination.config import KPICombinationConfig, get_config
from kpi_master.kpi_combination.fallback_statistics import FallbackStatisticsEngine
from kpi_master.kpi_combination.field_aggregator import FieldAggregator
from kpi_master.kpi_combination.merge_engine import MergeEngine
from kpi_master.kpi_combination.metrics import (
    observe_duration,
    observe_scores,
    record_dropped,
    record_error,
    record_field_resolution,
    record_ingested,
    record_outliers,
    record_output,
    set_active_runs,
)
from kpi_master.kpi_combination.models import (
    CombinationResult,
    FieldKind,
    OutputRecord,
)
from kpi_master.kpi_combination.outlier_detector import OutlierDetector
from kpi_master.kpi_combination.output_assembler import OutputAssembler
from kpi_master.kpi_combination.provenance import ProvenanceTracker, build_hash
from kpi_master.kpi_combination.quality_scorer import QualityScorer
from kpi_master.kpi_combination.row_classifier import RowClassifier
from kpi_master.kpi_combination.schema_catalog import OUTPUT_FIELDS

logger = logging.getLogger(__name__)

__all__ = [
    "KPICombinationPipeline",
    "etl_combination_kpi",
]

_DIVISION_OF_OUTPUT = {f.output_name: f.division for f in OUTPUT_FIELDS}
_NUMERIC_OUTPUTS = frozenset(
    f.output_name for f in OUTPUT_FIELDS if f.kind is FieldKind.NUMERIC
)


class KPICombinationPipeline:
    """Orchestrates one combination run over a batch of raw records.

    Attributes:
        config: Combination configuration.
        provenance: SHA-256 provenance tracker shared across runs.

    Example:
        >>> pipeline = KPICombinationPipeline()
        >>> result = pipeline.run(items)
        >>> print(result.key_count, result.provenance_hash[:16])
    """

    def __init__(
        self,
        config: Optional[KPICombinationConfig] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        """Initialize the pipeline and its engines.

        Args:
            config: Optional configuration. Uses global config if None.
            provenance: Optional shared provenance tracker.
        """
        self.config = config or get_config()
        self.provenance = provenance or ProvenanceTracker(self.config.genesis_hash)

        self.classifier = RowClassifier()
        self.merge_engine = MergeEngine()
        self.fallback_engine = FallbackStatisticsEngine()
        self.outlier_detector = OutlierDetector(
            threshold=self.config.zscore_threshold,
            min_samples=self.config.min_outlier_samples,
            legacy_lookup=self.config.legacy_outlier_lookup,
        )
        self.aggregator = FieldAggregator()
        self.scorer = QualityScorer(
            relevance_mode=self.config.relevance_mode,
            anomaly_limit=self.config.anomaly_magnitude_limit,
        )
        self.assembler = OutputAssembler(self.scorer)

        self._stats_lock = threading.Lock()
        self._runs: int = 0
        self._failures: int = 0
        self._records_output: int = 0
        self._total_duration_ms: float = 0.0
        logger.info("KPICombinationPipeline initialized")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, items: Iterable[Any]) -> CombinationResult:
        """Combine a batch of raw records into scored output records.

        Args:
            items: Ordered iterable of raw records, optionally wrapped as
                ``{"json": {...}}``.

        Returns:
            CombinationResult with one OutputRecord per composite key.

        Raises:
            TypeError: If ``items`` is not an iterable of records.
            ValueError: If the batch exceeds ``config.max_records``.
        """
        start_time = time.monotonic()
        set_active_runs(1)
        try:
            result = self._run(items, start_time)
        except (TypeError, ValueError) as exc:
            self._record_failure(start_time, type(exc).__name__.lower())
            raise
        except Exception as exc:
            self._record_failure(start_time, "unexpected")
            logger.error("Combination run failed: %s", exc, exc_info=True)
            raise
        finally:
            set_active_runs(-1)

        elapsed = time.monotonic() - start_time
        observe_duration("combine", elapsed)
        with self._stats_lock:
            self._runs += 1
            self._records_output += len(result.records)
            self._total_duration_ms += elapsed * 1000.0

        logger.info(
            "Combination run %s: %d items -> %d records (%d dropped, "
            "%d outlier flags) in %.1f ms",
            result.run_id, result.input_count, len(result.records),
            result.dropped_count, result.outlier_count,
            result.processing_time_ms,
        )
        return result

    def get_statistics(self) -> Dict[str, Any]:
        """Return pipeline and per-engine statistics."""
        with self._stats_lock:
            pipeline_stats = {
                "runs": self._runs,
                "failures": self._failures,
                "records_output": self._records_output,
                "total_duration_ms": round(self._total_duration_ms, 3),
                "provenance_entries": self.provenance.entry_count,
            }
        return {
            "pipeline": pipeline_stats,
            "engines": [
                self.classifier.get_statistics(),
                self.merge_engine.get_statistics(),
                self.fallback_engine.get_statistics(),
                self.outlier_detector.get_statistics(),
                self.aggregator.get_statistics(),
                self.scorer.get_statistics(),
            ],
        }

    def reset_statistics(self) -> None:
        """Reset pipeline and engine statistics."""
        with self._stats_lock:
            self._runs = 0
            self._failures = 0
            self._records_output = 0
            self._total_duration_ms = 0.0
        self.classifier.reset_statistics()
        self.merge_engine.reset_statistics()
        self.fallback_engine.reset_statistics()
        self.outlier_detector.reset_statistics()
        self.aggregator.reset_statistics()
        self.scorer.reset_statistics()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, items: Iterable[Any], start_time: float) -> CombinationResult:
        classification = self.classifier.classify(items)
        if classification.input_count > self.config.max_records:
            raise ValueError(
                f"Batch of {classification.input_count} records exceeds "
                f"max_records={self.config.max_records}"
            )
        for division, count in classification.division_counts().items():
            if count:
                record_ingested(division, count)
        if classification.dropped_count:
            record_dropped(classification.dropped_count)

        fallback = self.fallback_engine.compute(classification)
        outliers = self.outlier_detector.compute(classification)
        index = self.merge_engine.build_index(classification)

        records: List[OutputRecord] = []
        outlier_count = 0
        tier_totals: Dict[str, int] = {}
        for item_number, key in enumerate(index.keys, start=1):
            merged = self.merge_engine.merge_key(index, key)
            resolutions = self.aggregator.resolve_record(merged, index, fallback)
            flags = self.outlier_detector.flags_for_key(outliers, index, key)
            record = self.assembler.assemble(item_number, merged, resolutions, flags)
            records.append(record)

            outlier_count += len(flags)
            for output_name in flags:
                record_outliers(_DIVISION_OF_OUTPUT[output_name].value)
            for resolution in resolutions:
                if resolution.output_name in _NUMERIC_OUTPUTS:
                    tier = resolution.tier.value
                    tier_totals[tier] = tier_totals.get(tier, 0) + 1
            observe_scores(record.completeness_score, record.confidence_score)

        for tier, count in tier_totals.items():
            record_field_resolution(tier, count)
        record_output(len(records))

        result = CombinationResult(
            records=records,
            input_count=classification.input_count,
            division_counts=classification.division_counts(),
            dropped_count=classification.dropped_count,
            key_count=len(index),
            outlier_count=outlier_count,
            processing_time_ms=round((time.monotonic() - start_time) * 1000.0, 3),
        )
        result.provenance_hash = build_hash(result.to_dicts())
        if self.config.enable_provenance:
            self.provenance.record(
                "combination_run", result.run_id, "combine", result.provenance_hash,
            )
        return result

    def _record_failure(self, start_time: float, error_type: str) -> None:
        record_error(error_type)
        elapsed = time.monotonic() - start_time
        with self._stats_lock:
            self._failures += 1
            self._total_duration_ms += elapsed * 1000.0


def etl_combination_kpi(
    items: Iterable[Any],
    config: Optional[KPICombinationConfig] = None,
) -> List[Dict[str, Any]]:
    """Combine raw division records into enriched, scored KPI records.

    Args:
        items: Ordered iterable of raw records, optionally wrapped as
            ``{"json": {...}}``.
        config: Optional configuration. Uses global config if None.

    Returns:
        One dictionary per distinct composite key, in first-appearance
        key order.

    Raises:
        TypeError: If ``items`` is not an iterable of records.
    """
    return KPICombinationPipeline(config=config).run(items).to_dicts()
