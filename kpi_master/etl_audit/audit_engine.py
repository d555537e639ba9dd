# -*- coding: utf-8 -*-
"""
ETL Audit Engine

Audits the output of the KPI combination pipeline. For every record the
engine collects the upstream completeness/confidence scores, recomputes
independent estimates, logs records carrying error flags, reports
low-confidence records with their likely causes, and tallies field
coverage, division lineage and missing-field frequencies. The batch is
then scored, classified and, when the score is poor, diagnosed. Named
source files are documented with size, timestamps and SHA-256 digest.

Independent estimates (keys ``embedding``, ``error_flags`` and
``sources_included`` excluded; a value is filled when not None and not
NaN):
    completeness = filled / total * 100 rounded to 2 decimals (100 if empty)
    confidence   = filled / total rounded to 3 decimals (1 if empty)

Example:
    >>> from kpi_master.etl_audit.audit_engine import etl_audit_function
    >>> report = etl_audit_function(records, {"source_file": "export.json"})
    >>> report["data_classification"]

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from kpi_master.etl_audit.config import ETLAuditConfig, get_config
from kpi_master.etl_audit.file_documentation import document_files
from kpi_master.etl_audit.metrics import record_audit
from kpi_master.etl_audit.models import (
    AnomalyItem,
    AuditLogEntry,
    AuditMetadata,
    AuditOptions,
    ETLAuditReport,
    MissingFieldCount,
    SampleContent,
)
from kpi_master.etl_audit.quality_classifier import (
    QualityInputs,
    average,
    build_data_tracing,
    classify_data_quality,
    compute_data_quality_score,
)
from kpi_master.kpi_combination.provenance import ProvenanceTracker, build_hash
from kpi_master.kpi_combination.value_coercion import round_half_up

logger = logging.getLogger(__name__)

__all__ = [
    "ETLAuditEngine",
    "etl_audit_function",
    "audit_completeness",
    "audit_confidence",
]

_EXCLUDED_KEYS = frozenset({"embedding", "error_flags", "sources_included"})

REASON_LOW_COMPLETENESS = "Completeness score is very low"
REASON_MANY_MISSING = "Too many important fields are missing"
REASON_INCONSISTENT = (
    "High completeness but low confidence, possible outlier or inconsistent data"
)
REASON_ERROR_FLAG = "Critical error flag detected on record"
REASON_DEFAULT = "Low confidence, record needs further investigation"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    return not (isinstance(value, float) and math.isnan(value))


def _audited_keys(data: Mapping[str, Any]) -> List[str]:
    return [k for k in data if k not in _EXCLUDED_KEYS]


def audit_completeness(data: Mapping[str, Any]) -> float:
    """Independent completeness estimate of one record (0-100, 2 decimals)."""
    keys = _audited_keys(data)
    if not keys:
        return 100.0
    filled = sum(1 for k in keys if _is_filled(data[k]))
    return round_half_up(filled / len(keys) * 100, 2)


def audit_confidence(data: Mapping[str, Any]) -> float:
    """Independent confidence estimate of one record (0-1, 3 decimals)."""
    keys = _audited_keys(data)
    if not keys:
        return 1.0
    valid = sum(1 for k in keys if _is_filled(data[k]))
    return round_half_up(valid / len(keys), 3)


def _unwrap(item: Any) -> Dict[str, Any]:
    if isinstance(item, BaseModel):
        return item.model_dump()
    if isinstance(item, Mapping):
        payload = item.get("json")
        if isinstance(payload, BaseModel):
            return payload.model_dump()
        if isinstance(payload, Mapping):
            return dict(payload)
        return dict(item)
    raise TypeError(f"Audit items must be mappings, got {type(item).__name__}")


# ---------------------------------------------------------------------------
# ETLAuditEngine
# ---------------------------------------------------------------------------


class ETLAuditEngine:
    """Audits combination output and documents source files.

    Attributes:
        config: Audit configuration.
        provenance: Optional provenance tracker; audits are recorded when set.

    Example:
        >>> engine = ETLAuditEngine()
        >>> report = engine.audit(records)
        >>> print(report.data_quality_score, report.data_classification)
    """

    def __init__(
        self,
        config: Optional[ETLAuditConfig] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        """Initialize ETLAuditEngine.

        Args:
            config: Optional configuration. Uses global config if None.
            provenance: Optional shared provenance tracker.
        """
        self.config = config or get_config()
        self.provenance = provenance
        self._stats_lock = threading.Lock()
        self._audits: int = 0
        self._records_audited: int = 0
        self._classification_counts: Dict[str, int] = {}
        self._total_duration_ms: float = 0.0
        logger.info("ETLAuditEngine initialized")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def audit(
        self,
        items: Iterable[Any],
        audit_config: Optional[Union[AuditOptions, Mapping[str, Any]]] = None,
    ) -> ETLAuditReport:
        """Audit a batch of combination output records.

        Args:
            items: Output records (dicts, OutputRecord models, or
                ``{"json": {...}}`` envelopes).
            audit_config: Optional options; ``source_file`` names the
                file(s) to document.

        Returns:
            ETLAuditReport for the batch.

        Raises:
            TypeError: If ``items`` is not an iterable of mappings.
        """
        if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
            raise TypeError(
                f"items must be an iterable of records, got {type(items).__name__}"
            )
        options = self._options(audit_config)
        start_time = time.monotonic()
        cfg = self.config

        records = [_unwrap(item) for item in items]

        completeness_etl: List[Any] = []
        confidence_etl: List[Any] = []
        completeness_audit: List[float] = []
        confidence_audit: List[float] = []
        audit_log: List[AuditLogEntry] = []
        anomalies: List[AnomalyItem] = []
        field_coverage: Dict[str, int] = {}
        division_count: Dict[str, int] = {}
        missing_counts: Dict[str, int] = {}
        samples: List[SampleContent] = []
        critical = 0

        for data in records:
            completeness = data.get("completeness_score")
            confidence = data.get("confidence_score")
            completeness_etl.append(completeness if _is_number(completeness) else 0)
            confidence_etl.append(confidence if _is_number(confidence) else 0)
            completeness_audit.append(audit_completeness(data))
            confidence_audit.append(audit_confidence(data))

            error_flags = data.get("error_flags") or []
            if error_flags:
                audit_log.append(AuditLogEntry(
                    item_number=data.get("item_number"),
                    id=data.get("id"),
                    error_flags=list(error_flags),
                ))
                critical += 1

            anomaly = self._detect_anomaly(data, error_flags)
            if anomaly is not None:
                anomalies.append(anomaly)

            for key, value in data.items():
                field_coverage.setdefault(key, 0)
                if value is not None and value != "":
                    field_coverage[key] += 1

            sources = data.get("sources_included")
            if isinstance(sources, list):
                for source in sources:
                    division_count[source] = division_count.get(source, 0) + 1

            missing = data.get("embedding")
            if isinstance(missing, list):
                for field_name in missing:
                    missing_counts[field_name] = missing_counts.get(field_name, 0) + 1

            if len(samples) < cfg.sample_size:
                samples.append(SampleContent(
                    id=data.get("id"),
                    department=data.get("department"),
                    sources_included=sources,
                    completeness_score=completeness,
                    confidence_score=confidence,
                    fields=len(data),
                ))

        avg_completeness_etl = average(completeness_etl)
        avg_confidence_etl = average(confidence_etl)
        avg_completeness_audit = average(completeness_audit)
        avg_confidence_audit = average(confidence_audit)
        completeness_gap = abs(avg_completeness_etl - avg_completeness_audit)
        confidence_gap = abs(avg_confidence_etl - avg_confidence_audit)

        missing_mode = sorted(
            missing_counts.items(), key=lambda entry: -entry[1],
        )[:cfg.missing_field_top_n]

        inputs = QualityInputs(
            count=len(records),
            avg_completeness_audit=avg_completeness_audit,
            avg_confidence_audit=avg_confidence_audit,
            critical_count=critical,
            anomaly_count=len(anomalies),
            top_missing_field=missing_mode[0][0] if missing_mode else None,
            top_missing_count=missing_mode[0][1] if missing_mode else 0,
            completeness_gap=completeness_gap,
            confidence_gap=confidence_gap,
            division_count=len(division_count),
        )
        quality_score = compute_data_quality_score(inputs, cfg.critical_rate)
        classification = classify_data_quality(
            avg_completeness_etl=avg_completeness_etl,
            avg_confidence_score_etl=avg_confidence_etl,
            avg_completeness_audit=avg_completeness_audit,
            avg_confidence_score_audit=avg_confidence_audit,
            data_quality_score=quality_score,
            completeness_gap=completeness_gap,
            confidence_gap=confidence_gap,
        )
        tracing = build_data_tracing(
            inputs, quality_score, cfg.quality_alert_threshold, cfg.critical_rate,
        )

        file_docs = document_files(options.source_files(), cfg.hash_chunk_size)

        report = ETLAuditReport(
            count_output=len(records),
            avg_completeness_etl=avg_completeness_etl,
            avg_confidence_score_etl=avg_confidence_etl,
            avg_completeness_audit=avg_completeness_audit,
            avg_confidence_score_audit=avg_confidence_audit,
            data_quality_score=quality_score,
            completeness_gap=completeness_gap,
            confidence_gap=confidence_gap,
            data_classification=classification["data_classification"],
            data_classification_score=classification["data_classification_score"],
            data_tracing=tracing,
            anomaly_reason=[a.anomaly_reason for a in anomalies][:cfg.max_anomaly_reasons],
            audit_log=audit_log,
            file_documentation=[doc.to_dict() for doc in file_docs],
            metadata=AuditMetadata(
                data_source=list(division_count),
                sample_content=samples,
                field_coverage=field_coverage,
                division_count=division_count,
                missing_field_mode=[
                    MissingFieldCount(field=name, count=count)
                    for name, count in missing_mode
                ],
            ),
        )
        report.provenance_hash = build_hash(
            report.model_dump(exclude={"id", "provenance_hash"}),
        )
        if self.provenance is not None:
            self.provenance.record(
                "etl_audit", report.id, "audit", report.provenance_hash,
            )

        elapsed = time.monotonic() - start_time
        record_audit(
            report.data_classification, quality_score,
            len(anomalies), critical, elapsed,
        )
        with self._stats_lock:
            self._audits += 1
            self._records_audited += len(records)
            label = report.data_classification
            self._classification_counts[label] = (
                self._classification_counts.get(label, 0) + 1
            )
            self._total_duration_ms += elapsed * 1000.0

        logger.info(
            "ETL audit %s: %d records, quality=%d (%s), anomalies=%d, critical=%d",
            report.id, len(records), quality_score,
            report.data_classification, len(anomalies), critical,
        )
        return report

    def get_statistics(self) -> Dict[str, Any]:
        """Return current engine statistics."""
        with self._stats_lock:
            return {
                "engine_name": "ETLAuditEngine",
                "audits": self._audits,
                "records_audited": self._records_audited,
                "classification_counts": dict(self._classification_counts),
                "total_duration_ms": round(self._total_duration_ms, 3),
            }

    def reset_statistics(self) -> None:
        """Reset all engine statistics to zero."""
        with self._stats_lock:
            self._audits = 0
            self._records_audited = 0
            self._classification_counts = {}
            self._total_duration_ms = 0.0

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _options(
        audit_config: Optional[Union[AuditOptions, Mapping[str, Any]]],
    ) -> AuditOptions:
        if audit_config is None:
            return AuditOptions()
        if isinstance(audit_config, AuditOptions):
            return audit_config
        return AuditOptions(**dict(audit_config))

    def _detect_anomaly(
        self,
        data: Mapping[str, Any],
        error_flags: List[Any],
    ) -> Optional[AnomalyItem]:
        confidence = data.get("confidence_score")
        if not _is_number(confidence) or confidence >= self.config.low_confidence_threshold:
            return None

        completeness = data.get("completeness_score")
        reasons: List[str] = []
        if _is_number(completeness) and completeness < 60:
            reasons.append(REASON_LOW_COMPLETENESS)
        missing = data.get("embedding")
        if isinstance(missing, list) and len(missing) > 10:
            reasons.append(REASON_MANY_MISSING)
        if _is_number(completeness) and completeness > 70:
            reasons.append(REASON_INCONSISTENT)
        if error_flags:
            reasons.append(REASON_ERROR_FLAG)

        return AnomalyItem(
            item_number=data.get("item_number"),
            id=data.get("id"),
            confidence_score=confidence,
            anomaly_reason="; ".join(reasons) if reasons else REASON_DEFAULT,
        )


def etl_audit_function(
    items: Iterable[Any],
    audit_config: Optional[Union[AuditOptions, Mapping[str, Any]]] = None,
    config: Optional[ETLAuditConfig] = None,
) -> Dict[str, Any]:
    """Audit combination output and return the report as a dictionary.

    Args:
        items: Output records of the combination pipeline.
        audit_config: Optional ``{"source_file": path | [paths]}``.
        config: Optional engine configuration.

    Returns:
        Audit report dictionary.
    """
    return ETLAuditEngine(config=config).audit(items, audit_config).model_dump()
