# -*- coding: utf-8 -*-
"""
KPI Combination Data Models

Pydantic v2 data models and enumerations for the KPI combination engine:
division tags, field kinds, per-row classification results, fallback
statistics, field resolutions, quality scores, assembled output records
and run results.

Enumerations (3):
    - Division, FieldKind, ResolutionTier

SDK models (8):
    - CompositeKey, ClassifiedRow, ClassificationResult, FallbackStat,
      FieldResolution, QualityScore, OutputRecord, CombinationResult

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

Number = Union[int, float]


# =============================================================================
# Enumerations
# =============================================================================


class Division(str, Enum):
    """Organizational domain a raw record belongs to.

    Declaration order is the classification priority and the merge
    precedence order.
    """

    WORKFORCE = "workforce"
    FINANCE = "finance"
    SALES = "sales"
    OPERATIONS = "operations"
    PROJECT = "project"
    STRATEGY = "strategy"


class FieldKind(str, Enum):
    """How an output field's value is resolved."""

    NUMERIC = "numeric"
    STRING = "string"
    DATE = "date"


class ResolutionTier(str, Enum):
    """Which fallback tier produced a numeric field's value."""

    MERGED = "merged"
    AGGREGATE = "aggregate"
    FALLBACK = "fallback"
    UNRESOLVED = "unresolved"


# =============================================================================
# SDK models
# =============================================================================


class CompositeKey(BaseModel):
    """Join grain shared by every record describing one business cell.

    Attributes:
        department: Whitespace-normalized department token.
        region: Whitespace-normalized region token.
        store_id: Whitespace-normalized store token.
        period: Numeric period (budget month or month, default 1).
        key: Serialized ``department|region|store_id|period`` form.
    """

    department: str = Field(default="", description="Department token")
    region: str = Field(default="", description="Region token")
    store_id: str = Field(default="", description="Store token")
    period: Number = Field(default=1, description="Numeric period")
    key: str = Field(default="", description="Serialized composite key")

    model_config = {"extra": "forbid", "frozen": True}


class ClassifiedRow(BaseModel):
    """A raw record tagged with its division, composite key and row index.

    Attributes:
        division: Division the record was classified into.
        index: Position of the record within its division dataset.
        key: Composite key derived from the record.
        data: The unwrapped raw record.
    """

    division: Division = Field(..., description="Division tag")
    index: int = Field(..., ge=0, description="Row index within the division")
    key: CompositeKey = Field(..., description="Derived composite key")
    data: Dict[str, Any] = Field(default_factory=dict, description="Raw record")

    model_config = {"extra": "forbid"}


class ClassificationResult(BaseModel):
    """Per-division buckets produced by classifying one batch.

    Attributes:
        buckets: Classified rows per division, in input order.
        input_count: Number of items received.
        dropped_count: Items that matched no division.
    """

    buckets: Dict[Division, List[ClassifiedRow]] = Field(
        default_factory=lambda: {division: [] for division in Division},
    )
    input_count: int = Field(default=0, ge=0)
    dropped_count: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}

    def rows(self, division: Division) -> List[ClassifiedRow]:
        """Return the classified rows of a division."""
        return self.buckets.get(division, [])

    def division_counts(self) -> Dict[str, int]:
        """Return row counts keyed by division value."""
        return {division.value: len(self.rows(division)) for division in Division}


class FallbackStat(BaseModel):
    """Dataset-wide mean/median/mode for one (division, field) pair.

    All three statistics are None when the field had no valid numeric
    values in the division dataset.
    """

    division: Division = Field(..., description="Owning division")
    field_name: str = Field(..., description="Catalog field name")
    count: int = Field(default=0, ge=0, description="Number of valid values")
    mean: Optional[float] = Field(default=None, description="Arithmetic mean")
    median: Optional[float] = Field(default=None, description="Median")
    mode: Optional[float] = Field(default=None, description="Most frequent value")

    model_config = {"extra": "forbid", "frozen": True}


class FieldResolution(BaseModel):
    """Resolved value of one output field together with its source tier."""

    output_name: str = Field(..., description="Output field name")
    value: Any = Field(default=None, description="Resolved value")
    tier: ResolutionTier = Field(
        default=ResolutionTier.UNRESOLVED,
        description="Fallback tier that produced the value",
    )

    model_config = {"extra": "forbid"}


class QualityScore(BaseModel):
    """Completeness and confidence scores for one assembled record.

    Attributes:
        completeness_score: Percentage of relevant fields populated (0-100).
        confidence_score: Multiplicative-penalty reliability estimate (0-1).
        missing_fields: Relevant fields counted as missing, catalog order.
        relevant_field_count: Size of the relevant field set.
        anomaly_count: Number of numeric anomalies found on the record.
    """

    completeness_score: float = Field(..., ge=0.0, le=100.0)
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    missing_fields: List[str] = Field(default_factory=list)
    relevant_field_count: int = Field(default=0, ge=0)
    anomaly_count: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}


_LEADING_FIELDS = (
    "item_number", "id", "sources_included", "config_info", "error_flags",
    "department", "region", "store_id", "period", "month",
)
_TRAILING_FIELDS = (
    "outlier_flags", "imputed_flags", "completeness_score", "embedding",
    "confidence_score",
)


class OutputRecord(BaseModel):
    """One enriched, scored record per composite key.

    Identity, lineage, key tokens and quality attributes are declared;
    the resolved division fields are carried as extra attributes under
    their output names.
    """

    item_number: int = Field(..., ge=1, description="1-based output position")
    id: str = Field(..., description="Record identifier")
    sources_included: List[str] = Field(
        default_factory=list, description="Lineage labels of contributing divisions",
    )
    config_info: Dict[str, Any] = Field(
        default_factory=dict, description="Catalog summary",
    )
    error_flags: List[str] = Field(
        default_factory=list, description="Record-scoped diagnostics",
    )
    department: str = Field(default="")
    region: str = Field(default="")
    store_id: str = Field(default="")
    period: Number = Field(default=1)
    month: Number = Field(default=1, description="Legacy alias of period")
    outlier_flags: Dict[str, bool] = Field(default_factory=dict)
    imputed_flags: Dict[str, bool] = Field(default_factory=dict)
    completeness_score: float = Field(..., ge=0.0, le=100.0)
    embedding: List[str] = Field(
        default_factory=list, description="Relevant fields counted as missing",
    )
    confidence_score: float = Field(..., ge=0.0, le=1.0)

    model_config = {"extra": "allow"}

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate id is non-empty."""
        if not v:
            raise ValueError("id must be non-empty")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Return the record in output layout order.

        Identity and key tokens come first, then the resolved division
        fields, then flags and scores.
        """
        data = self.model_dump()
        ordered = {name: data.pop(name) for name in _LEADING_FIELDS}
        trailing = {name: data.pop(name) for name in _TRAILING_FIELDS}
        ordered.update(data)
        ordered.update(trailing)
        return ordered


class CombinationResult(BaseModel):
    """Result of one combination run.

    Attributes:
        run_id: Unique identifier of the run.
        records: Output records in first-appearance key order.
        input_count: Number of raw items received.
        division_counts: Classified rows per division value.
        dropped_count: Items that matched no division.
        key_count: Distinct composite keys.
        outlier_count: Outlier flags raised across all records.
        processing_time_ms: Wall-clock duration of the run.
        provenance_hash: SHA-256 hash of the serialized output records.
        created_at: UTC timestamp of the run.
    """

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    records: List[OutputRecord] = Field(default_factory=list)
    input_count: int = Field(default=0, ge=0)
    division_counts: Dict[str, int] = Field(default_factory=dict)
    dropped_count: int = Field(default=0, ge=0)
    key_count: int = Field(default=0, ge=0)
    outlier_count: int = Field(default=0, ge=0)
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    provenance_hash: str = Field(default="")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc).replace(microsecond=0),
    )

    model_config = {"extra": "forbid"}

    def to_dicts(self) -> List[Dict[str, Any]]:
        """Return the output records as plain dictionaries."""
        return [record.to_dict() for record in self.records]


__all__ = [
    "Number",
    "Division",
    "FieldKind",
    "ResolutionTier",
    "CompositeKey",
    "ClassifiedRow",
    "ClassificationResult",
    "FallbackStat",
    "FieldResolution",
    "QualityScore",
    "OutputRecord",
    "CombinationResult",
]
