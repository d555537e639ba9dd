# -*- coding: utf-8 -*-
"""
KPI Combination Engine
======================

Batch join of per-division business records into one enriched, scored
record per composite key (department, region, store id, period). It
supports:

- Row classification by priority-ordered division-defining fields
- Composite key derivation with alias fallbacks and a default period
- Per-key merge with first-non-blank-wins precedence across divisions
- Three-tier field resolution (merged, same-key aggregate, dataset mean)
- Population z-score outlier flags per division field
- Completeness and confidence scoring over division-relevant fields
- SHA-256 provenance chain tracking per run
- Prometheus metrics for observability
- Thread-safe configuration with KPI_COMB_ env prefix

Key Components:
    - config: KPICombinationConfig with KPI_COMB_ env prefix
    - schema_catalog: division field catalogs and output field order
    - row_classifier: division classification of raw records
    - key_builder: composite key derivation
    - merge_engine: multi-index and per-key merge
    - fallback_statistics: per-division mean/median/mode
    - outlier_detector: z-score outlier flags
    - field_aggregator: three-tier field resolution
    - quality_scorer: completeness and confidence scores
    - output_assembler: output record assembly
    - combination_pipeline: batch entry point
    - provenance: SHA-256 chain-hashed audit trails
    - metrics: Prometheus metrics
"""

from kpi_master.kpi_combination.config import (
    KPICombinationConfig,
    get_config,
    reset_config,
    set_config,
)
from kpi_master.kpi_combination.models import (
    ClassificationResult,
    ClassifiedRow,
    CombinationResult,
    CompositeKey,
    Division,
    FieldKind,
    FieldResolution,
    OutputRecord,
    QualityScore,
    ResolutionTier,
)
from kpi_master.kpi_combination.provenance import ProvenanceTracker
from kpi_master.kpi_combination.schema_catalog import (
    DIVISION_ORDER,
    FIELDS_BY_DIVISION,
    OUTPUT_FIELDS,
    catalog_summary,
)
from kpi_master.kpi_combination.row_classifier import RowClassifier, classify_record
from kpi_master.kpi_combination.key_builder import CompositeKeyBuilder
from kpi_master.kpi_combination.merge_engine import MergeEngine, MergedRecord, MultiIndex
from kpi_master.kpi_combination.fallback_statistics import (
    FallbackStatisticsEngine,
    FallbackTable,
)
from kpi_master.kpi_combination.outlier_detector import OutlierDetector, OutlierIndex
from kpi_master.kpi_combination.field_aggregator import FieldAggregator
from kpi_master.kpi_combination.quality_scorer import QualityScorer
from kpi_master.kpi_combination.output_assembler import OutputAssembler
from kpi_master.kpi_combination.combination_pipeline import (
    KPICombinationPipeline,
    etl_combination_kpi,
)

__all__ = [
    # Configuration
    "KPICombinationConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Models
    "ClassificationResult",
    "ClassifiedRow",
    "CombinationResult",
    "CompositeKey",
    "Division",
    "FieldKind",
    "FieldResolution",
    "OutputRecord",
    "QualityScore",
    "ResolutionTier",
    # Catalog
    "DIVISION_ORDER",
    "FIELDS_BY_DIVISION",
    "OUTPUT_FIELDS",
    "catalog_summary",
    # Engines
    "ProvenanceTracker",
    "RowClassifier",
    "classify_record",
    "CompositeKeyBuilder",
    "MergeEngine",
    "MergedRecord",
    "MultiIndex",
    "FallbackStatisticsEngine",
    "FallbackTable",
    "OutlierDetector",
    "OutlierIndex",
    "FieldAggregator",
    "QualityScorer",
    "OutputAssembler",
    "KPICombinationPipeline",
    "etl_combination_kpi",
]
