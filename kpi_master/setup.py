# -*- coding: utf-8 -*-
"""
KPI Master Service Setup

Provides ``configure_kpi_master(app)`` which wires up the KPI combination
pipeline, the ETL audit engine and a shared provenance tracker, and mounts
the REST API.

Also exposes ``get_kpi_master(app)`` for programmatic access and the
``KPIMasterService`` facade class.

Usage:
    >>> from fastapi import FastAPI
    >>> from kpi_master.setup import configure_kpi_master
    >>> app = FastAPI()
    >>> import asyncio
    >>> service = asyncio.run(configure_kpi_master(app))

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from kpi_master.etl_audit.audit_engine import ETLAuditEngine
from kpi_master.etl_audit.config import ETLAuditConfig
from kpi_master.etl_audit.models import AuditOptions, ETLAuditReport
from kpi_master.kpi_combination.combination_pipeline import KPICombinationPipeline
from kpi_master.kpi_combination.config import KPICombinationConfig, get_config
from kpi_master.kpi_combination.models import CombinationResult
from kpi_master.kpi_combination.provenance import ProvenanceTracker
from kpi_master.kpi_combination.schema_catalog import (
    DIVISION_ORDER,
    LINEAGE_LABELS,
    OUTPUT_FIELDS,
    catalog_fields,
    catalog_summary,
)

logger = logging.getLogger(__name__)

SourceFile = Optional[Union[str, List[str]]]


# ===================================================================
# Lightweight Pydantic models used by the facade
# ===================================================================


class KPIMasterStatisticsResponse(BaseModel):
    """Aggregate statistics for the KPI master service.

    Attributes:
        total_combinations: Combination runs completed.
        total_audits: ETL audits completed.
        total_input_items: Raw items received by combination runs.
        total_output_records: Records produced by combination runs.
        total_dropped_records: Unclassifiable items dropped.
        avg_completeness_score: Running mean completeness of output records.
        avg_confidence_score: Running mean confidence of output records.
        last_data_classification: Classification of the latest audit.
    """

    total_combinations: int = Field(default=0)
    total_audits: int = Field(default=0)
    total_input_items: int = Field(default=0)
    total_output_records: int = Field(default=0)
    total_dropped_records: int = Field(default=0)
    avg_completeness_score: float = Field(default=0.0)
    avg_confidence_score: float = Field(default=0.0)
    last_data_classification: Optional[str] = Field(default=None)


class CombineAndAuditResponse(BaseModel):
    """Combined output of a combination run and the audit of its records."""

    combination: CombinationResult
    audit: ETLAuditReport


_singleton_lock = threading.Lock()
_singleton_instance: Optional["KPIMasterService"] = None


# ===================================================================
# Service facade
# ===================================================================


class KPIMasterService:
    """Unified facade over the KPI combination pipeline and ETL audit.

    Both engines share one provenance tracker so a combination run and the
    audit of its output are chained in the same trail.

    Attributes:
        config: KPICombinationConfig instance.
        audit_config: ETLAuditConfig instance.
        provenance: Shared ProvenanceTracker.
        pipeline: KPICombinationPipeline.
        audit_engine: ETLAuditEngine.

    Example:
        >>> service = KPIMasterService()
        >>> result = service.combine([{"employee_id": "E1", "salary": 1000}])
        >>> report = service.audit(result.to_dicts())
    """

    def __init__(
        self,
        config: Optional[KPICombinationConfig] = None,
        audit_config: Optional[ETLAuditConfig] = None,
    ) -> None:
        """Initialize the KPI Master Service facade.

        Args:
            config: Optional combination configuration. Uses global config
                if None.
            audit_config: Optional audit configuration. Uses global config
                if None.
        """
        self.config = config or get_config()
        self.provenance = ProvenanceTracker(self.config.genesis_hash)
        self.pipeline = KPICombinationPipeline(
            config=self.config,
            provenance=self.provenance,
        )
        self.audit_engine = ETLAuditEngine(
            config=audit_config,
            provenance=self.provenance,
        )
        self.audit_config = self.audit_engine.config

        self._stats = KPIMasterStatisticsResponse()
        self._stats_lock = threading.Lock()
        self._started = False

        logger.info("KPIMasterService facade created")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def combine(self, items: Iterable[Any]) -> CombinationResult:
        """Run the combination pipeline over a batch of raw records.

        Args:
            items: Raw records, optionally ``{"json": {...}}`` wrapped.

        Returns:
            CombinationResult.

        Raises:
            TypeError: If ``items`` is not an iterable of records.
            ValueError: If the batch exceeds the configured maximum.
        """
        result = self.pipeline.run(items)
        self._update_combination_stats(result)
        return result

    def audit(
        self,
        items: Iterable[Any],
        source_file: SourceFile = None,
    ) -> ETLAuditReport:
        """Audit combination output records.

        Args:
            items: Output records of a combination run.
            source_file: Optional source file path(s) to document.

        Returns:
            ETLAuditReport.
        """
        report = self.audit_engine.audit(
            items, AuditOptions(source_file=source_file),
        )
        with self._stats_lock:
            self._stats.total_audits += 1
            self._stats.last_data_classification = report.data_classification
        return report

    def combine_and_audit(
        self,
        items: Iterable[Any],
        source_file: SourceFile = None,
    ) -> CombineAndAuditResponse:
        """Combine raw records, then audit the resulting output.

        Args:
            items: Raw records.
            source_file: Optional source file path(s) to document.

        Returns:
            CombineAndAuditResponse with both results.
        """
        combination = self.combine(items)
        report = self.audit(combination.records, source_file=source_file)
        return CombineAndAuditResponse(combination=combination, audit=report)

    def get_catalog(self) -> Dict[str, Any]:
        """Describe the schema catalog.

        Returns:
            Dict with the division summary, per-division source fields,
            lineage labels and output field names in output order.
        """
        summary = catalog_summary()
        summary["divisions"] = {
            division.value: {
                "lineage_label": LINEAGE_LABELS[division],
                "fields": list(catalog_fields(division)),
            }
            for division in DIVISION_ORDER
        }
        summary["output_fields"] = [f.output_name for f in OUTPUT_FIELDS]
        return summary

    def get_statistics(self) -> KPIMasterStatisticsResponse:
        """Get aggregated service statistics.

        Returns:
            KPIMasterStatisticsResponse summary.
        """
        with self._stats_lock:
            return self._stats.model_copy()

    def get_engine_statistics(self) -> Dict[str, Any]:
        """Get per-engine statistics of the pipeline and the audit engine."""
        stats = self.pipeline.get_statistics()
        stats["engines"].append(self.audit_engine.get_statistics())
        return stats

    def health_check(self) -> Dict[str, Any]:
        """Perform a health check on the service.

        Returns:
            Health status dict.
        """
        with self._stats_lock:
            combinations = self._stats.total_combinations
            audits = self._stats.total_audits
        return {
            "status": "healthy" if self._started else "not_started",
            "service": "kpi-master",
            "started": self._started,
            "combinations": combinations,
            "audits": audits,
            "provenance_entries": self.provenance.entry_count,
            "relevance_mode": self.config.relevance_mode,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Start the KPI master service.

        Safe to call multiple times.
        """
        if self._started:
            logger.debug("KPIMasterService already started; skipping")
            return

        logger.info("KPIMasterService starting up...")
        self._started = True
        logger.info("KPIMasterService startup complete")

    def shutdown(self) -> None:
        """Shutdown the KPI master service."""
        if not self._started:
            return

        self._started = False
        logger.info("KPIMasterService shut down")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _update_combination_stats(self, result: CombinationResult) -> None:
        with self._stats_lock:
            stats = self._stats
            previous = stats.total_output_records
            produced = len(result.records)
            stats.total_combinations += 1
            stats.total_input_items += result.input_count
            stats.total_dropped_records += result.dropped_count
            stats.total_output_records = previous + produced
            if produced:
                total = previous + produced
                stats.avg_completeness_score = (
                    stats.avg_completeness_score * previous
                    + sum(r.completeness_score for r in result.records)
                ) / total
                stats.avg_confidence_score = (
                    stats.avg_confidence_score * previous
                    + sum(r.confidence_score for r in result.records)
                ) / total


# ===================================================================
# Thread-safe singleton access
# ===================================================================


def _get_singleton() -> KPIMasterService:
    """Get or create the singleton KPIMasterService instance.

    Returns:
        The singleton KPIMasterService.
    """
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                _singleton_instance = KPIMasterService()
    return _singleton_instance


def _reset_singleton() -> None:
    """Drop the singleton instance. Intended for tests."""
    global _singleton_instance
    with _singleton_lock:
        _singleton_instance = None


# ===================================================================
# FastAPI integration
# ===================================================================


async def configure_kpi_master(
    app: Any,
    config: Optional[KPICombinationConfig] = None,
    audit_config: Optional[ETLAuditConfig] = None,
) -> KPIMasterService:
    """Configure the KPI Master Service on a FastAPI application.

    Creates the KPIMasterService, stores it in app.state, mounts the API
    router, and starts the service.

    Args:
        app: FastAPI application instance.
        config: Optional combination config.
        audit_config: Optional audit config.

    Returns:
        KPIMasterService instance.
    """
    global _singleton_instance

    service = KPIMasterService(config=config, audit_config=audit_config)

    with _singleton_lock:
        _singleton_instance = service

    app.state.kpi_master_service = service
    app.include_router(get_router())
    logger.info("KPI master service API router mounted")

    service.startup()

    logger.info("KPI master service configured on app")
    return service


def get_kpi_master(app: Any) -> KPIMasterService:
    """Get the KPIMasterService instance from app state.

    Args:
        app: FastAPI application instance.

    Returns:
        KPIMasterService instance.

    Raises:
        RuntimeError: If the KPI master service is not configured.
    """
    service = getattr(app.state, "kpi_master_service", None)
    if service is None:
        raise RuntimeError(
            "KPI master service not configured. "
            "Call configure_kpi_master(app) first."
        )
    return service


def get_router() -> APIRouter:
    """Build the KPI master API router.

    Endpoints at prefix ``/api/v1/kpi-master``:
        POST /combine, POST /audit, POST /combine-and-audit,
        GET /catalog, GET /health, GET /statistics.

    Returns:
        FastAPI APIRouter.
    """
    router = APIRouter(
        prefix="/api/v1/kpi-master",
        tags=["kpi-master"],
    )

    def _svc() -> KPIMasterService:
        """Get the singleton service for route handlers."""
        return _get_singleton()

    def _items(request: Dict[str, Any]) -> List[Any]:
        items = request.get("items")
        if not isinstance(items, list):
            raise ValueError("'items' must be a list of records")
        return items

    # ------------------------------------------------------------------
    # 1. POST /combine - Combine raw division records
    # ------------------------------------------------------------------
    @router.post("/combine", response_model=CombinationResult)
    async def post_combine(request: Dict[str, Any]) -> CombinationResult:
        """Combine raw division records into scored KPI records."""
        try:
            return _svc().combine(_items(request))
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc))

    # ------------------------------------------------------------------
    # 2. POST /audit - Audit combination output
    # ------------------------------------------------------------------
    @router.post("/audit", response_model=ETLAuditReport)
    async def post_audit(request: Dict[str, Any]) -> ETLAuditReport:
        """Audit combination output and document source files."""
        try:
            return _svc().audit(
                _items(request),
                source_file=request.get("source_file"),
            )
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc))

    # ------------------------------------------------------------------
    # 3. POST /combine-and-audit - Combine then audit
    # ------------------------------------------------------------------
    @router.post("/combine-and-audit", response_model=CombineAndAuditResponse)
    async def post_combine_and_audit(
        request: Dict[str, Any],
    ) -> CombineAndAuditResponse:
        """Combine raw records and audit the resulting output."""
        try:
            return _svc().combine_and_audit(
                _items(request),
                source_file=request.get("source_file"),
            )
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc))

    # ------------------------------------------------------------------
    # 4. GET /catalog - Schema catalog
    # ------------------------------------------------------------------
    @router.get("/catalog")
    async def get_catalog() -> Dict[str, Any]:
        """Describe divisions, their fields and the output field order."""
        return _svc().get_catalog()

    # ------------------------------------------------------------------
    # 5. GET /health - Health check
    # ------------------------------------------------------------------
    @router.get("/health")
    async def get_health() -> Dict[str, Any]:
        """Service health check."""
        return _svc().health_check()

    # ------------------------------------------------------------------
    # 6. GET /statistics - Service statistics
    # ------------------------------------------------------------------
    @router.get("/statistics", response_model=KPIMasterStatisticsResponse)
    async def get_statistics() -> KPIMasterStatisticsResponse:
        """Aggregated service statistics."""
        return _svc().get_statistics()

    return router


__all__ = [
    "KPIMasterService",
    "configure_kpi_master",
    "get_kpi_master",
    "get_router",
    "KPIMasterStatisticsResponse",
    "CombineAndAuditResponse",
]
