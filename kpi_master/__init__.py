# -*- coding: utf-8 -*-
"""
KPI Master: Multi-Division KPI Combination and ETL Audit
========================================================

Joins heterogeneous per-division business records (workforce, finance,
sales, operations, project, strategy) into one enriched, scored record
per composite key, and audits the combined output.

Key Components:
    - kpi_combination: classification, merge, fallback statistics,
      outlier detection, field aggregation and quality scoring
    - etl_audit: batch audit, data classification and source file
      documentation
    - setup: KPIMasterService facade and FastAPI router

Example:
    >>> from kpi_master import etl_combination_kpi, etl_audit_function
    >>> records = etl_combination_kpi(raw_items)
    >>> report = etl_audit_function(records)
    >>> print(report["data_classification"])
"""

__version__ = "1.0.0"

from kpi_master.kpi_combination.combination_pipeline import (
    KPICombinationPipeline,
    etl_combination_kpi,
)
from kpi_master.etl_audit.audit_engine import (
    ETLAuditEngine,
    etl_audit_function,
)
from kpi_master.setup import (
    KPIMasterService,
    configure_kpi_master,
    get_kpi_master,
    get_router,
)

__all__ = [
    "__version__",
    "KPICombinationPipeline",
    "etl_combination_kpi",
    "ETLAuditEngine",
    "etl_audit_function",
    "KPIMasterService",
    "configure_kpi_master",
    "get_kpi_master",
    "get_router",
]
