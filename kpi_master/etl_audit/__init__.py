# -*- coding: utf-8 -*-
"""
ETL Audit
=========

Audits the output of the KPI combination engine: upstream versus
independently recomputed completeness/confidence, error-flag log,
low-confidence anomalies, field coverage, division lineage, weighted data
quality score, five-level data classification, issue tracing and source
file documentation (size, timestamps, SHA-256).

Key Components:
    - config: ETLAuditConfig with KPI_AUDIT_ env prefix
    - audit_engine: ETLAuditEngine and etl_audit_function
    - quality_classifier: scoring, classification and tracing functions
    - file_documentation: source file integrity metadata
    - metrics: Prometheus metrics
"""

from kpi_master.etl_audit.config import (
    ETLAuditConfig,
    get_config,
    reset_config,
    set_config,
)
from kpi_master.etl_audit.models import (
    AnomalyItem,
    AuditLogEntry,
    AuditMetadata,
    AuditOptions,
    ETLAuditReport,
    FileDocumentation,
)
from kpi_master.etl_audit.quality_classifier import (
    classify_data_quality,
    compute_data_quality_score,
)
from kpi_master.etl_audit.file_documentation import document_file, document_files
from kpi_master.etl_audit.audit_engine import ETLAuditEngine, etl_audit_function

__all__ = [
    "ETLAuditConfig",
    "get_config",
    "set_config",
    "reset_config",
    "AnomalyItem",
    "AuditLogEntry",
    "AuditMetadata",
    "AuditOptions",
    "ETLAuditReport",
    "FileDocumentation",
    "classify_data_quality",
    "compute_data_quality_score",
    "document_file",
    "document_files",
    "ETLAuditEngine",
    "etl_audit_function",
]
