# -*- coding: utf-8 -*-
"""
ETL Audit Data Models

Pydantic v2 models for the ETL audit report and its parts.

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import random
import time
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


def _audit_id() -> str:
    """``etl_audit_{epoch_ms}_{random 0..999999}``."""
    return f"etl_audit_{int(time.time() * 1000)}_{random.randint(0, 999999)}"


class AuditOptions(BaseModel):
    """Per-call audit options.

    Attributes:
        source_file: Path, or list of paths, of source files to document.
    """

    source_file: Optional[Union[str, List[str]]] = Field(
        default=None, description="Source file path(s) to document",
    )

    model_config = {"extra": "ignore"}

    def source_files(self) -> List[str]:
        """Return the configured source files as a list."""
        if not self.source_file:
            return []
        if isinstance(self.source_file, str):
            return [self.source_file]
        return list(self.source_file)


class AuditLogEntry(BaseModel):
    """A record that carried error flags."""

    item_number: Any = Field(default=None)
    id: Any = Field(default=None)
    error_flags: List[Any] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class AnomalyItem(BaseModel):
    """A low-confidence record and the reasons it was reported."""

    item_number: Any = Field(default=None)
    id: Any = Field(default=None)
    confidence_score: float = Field(...)
    anomaly_reason: str = Field(...)

    model_config = {"extra": "forbid"}


class FileDocumentation(BaseModel):
    """Integrity documentation of one source file.

    On failure only ``file`` and ``error`` are set.
    """

    file: str = Field(..., description="Base name, or the given path on failure")
    size_bytes: Optional[int] = Field(default=None, ge=0)
    modified_utc: Optional[str] = Field(default=None)
    created_utc: Optional[str] = Field(default=None)
    sha256: Optional[str] = Field(default=None)
    abs_path: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)

    model_config = {"extra": "forbid"}

    @field_validator("sha256")
    @classmethod
    def validate_sha256(cls, v: Optional[str]) -> Optional[str]:
        """Validate sha256 is a 64-character hex digest."""
        if v is not None and len(v) != 64:
            raise ValueError("sha256 must be a 64-character hex digest")
        return v

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Return the documented shape: full metadata, or ``{file, error}``."""
        if self.error is not None:
            return {"file": self.file, "error": self.error}
        return self.model_dump(exclude={"error"})


class SampleContent(BaseModel):
    """Summary of one of the first records seen by the audit."""

    id: Any = Field(default=None)
    department: Any = Field(default=None)
    sources_included: Any = Field(default=None)
    completeness_score: Any = Field(default=None)
    confidence_score: Any = Field(default=None)
    fields: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}


class MissingFieldCount(BaseModel):
    """Frequency of one field in records' missing-field lists."""

    field: str
    count: int = Field(..., ge=0)

    model_config = {"extra": "forbid"}


class AuditMetadata(BaseModel):
    """Coverage and lineage metadata of an audit."""

    data_source: List[str] = Field(default_factory=list)
    sample_content: List[SampleContent] = Field(default_factory=list)
    field_coverage: Dict[str, int] = Field(default_factory=dict)
    division_count: Dict[str, int] = Field(default_factory=dict)
    missing_field_mode: List[MissingFieldCount] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class ETLAuditReport(BaseModel):
    """Result of auditing one batch of combination output.

    Attributes:
        id: Report identifier (non-deterministic).
        count_output: Number of audited records.
        avg_completeness_etl: Mean upstream completeness score.
        avg_confidence_score_etl: Mean upstream confidence score.
        avg_completeness_audit: Mean independently computed completeness.
        avg_confidence_score_audit: Mean independently computed confidence.
        data_quality_score: Weighted data quality score (0-100).
        completeness_gap: |upstream - audit| completeness.
        confidence_gap: |upstream - audit| confidence.
        data_classification: excellent, very good, good, bad or very bad.
        data_classification_score: Classification score (1 decimal).
        data_tracing: Issue diagnosis when the quality score is poor.
        anomaly_reason: First anomaly reasons.
        audit_log: Records that carried error flags.
        file_documentation: Source file documentation entries.
        metadata: Coverage and lineage metadata.
        provenance_hash: SHA-256 hash of the report content.
    """

    id: str = Field(default_factory=_audit_id)
    count_output: int = Field(default=0, ge=0)
    avg_completeness_etl: float = Field(default=0.0)
    avg_confidence_score_etl: float = Field(default=0.0)
    avg_completeness_audit: float = Field(default=0.0)
    avg_confidence_score_audit: float = Field(default=0.0)
    data_quality_score: int = Field(default=0, ge=0, le=100)
    completeness_gap: float = Field(default=0.0, ge=0.0)
    confidence_gap: float = Field(default=0.0, ge=0.0)
    data_classification: str = Field(default="very bad")
    data_classification_score: float = Field(default=0.0)
    data_tracing: str = Field(default="")
    anomaly_reason: List[str] = Field(default_factory=list)
    audit_log: List[AuditLogEntry] = Field(default_factory=list)
    file_documentation: List[Dict[str, Any]] = Field(default_factory=list)
    metadata: AuditMetadata = Field(default_factory=AuditMetadata)
    provenance_hash: str = Field(default="")

    model_config = {"extra": "forbid"}


__all__ = [
    "AuditOptions",
    "AuditLogEntry",
    "AnomalyItem",
    "FileDocumentation",
    "SampleContent",
    "MissingFieldCount",
    "AuditMetadata",
    "ETLAuditReport",
]
