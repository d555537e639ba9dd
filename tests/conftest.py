# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List

import pytest

from kpi_master.etl_audit import config as audit_config_module
from kpi_master.etl_audit.config import ETLAuditConfig
from kpi_master.kpi_combination import config as combination_config_module
from kpi_master.kpi_combination.config import KPICombinationConfig
from kpi_master.kpi_combination.row_classifier import RowClassifier


@pytest.fixture(autouse=True)
def _reset_config_singletons():
    """Isolate tests from each other's global configuration."""
    combination_config_module.reset_config()
    audit_config_module.reset_config()
    yield
    combination_config_module.reset_config()
    audit_config_module.reset_config()


@pytest.fixture
def combination_config() -> KPICombinationConfig:
    """Default combination configuration."""
    return KPICombinationConfig()


@pytest.fixture
def audit_config() -> ETLAuditConfig:
    """Default audit configuration."""
    return ETLAuditConfig()


@pytest.fixture
def classifier() -> RowClassifier:
    """Fresh row classifier."""
    return RowClassifier()


@pytest.fixture
def workforce_rows() -> List[Dict[str, Any]]:
    """Two employees of the same department and period."""
    return [
        {"employee_id": "E1", "department": "Sales", "salary": 1000},
        {"employee_id": "E2", "department": "Sales", "salary": 3000},
    ]


@pytest.fixture
def finance_row() -> Dict[str, Any]:
    """A finance record without department, region or store."""
    return {"fiscal_year": 2024, "budget_month": 3, "total_revenue": 100000}


@pytest.fixture
def mixed_batch() -> List[Dict[str, Any]]:
    """Records from four divisions sharing the ``Retail|North|S01|1`` cell."""
    return [
        {
            "employee_id": "E100", "department": "Retail", "region": "North",
            "store_id": "S01", "month": 1, "salary": 4200, "age": 31,
            "hire_date": "2019-04-01",
        },
        {
            "fiscal_year": 2024, "department": "Retail", "region": "North",
            "store_id": "S01", "budget_month": 1, "total_revenue": 250000,
            "salary": 9999,
        },
        {
            "sales_target": 50000, "department": "Retail", "region": "North",
            "store_id": "S01", "month": 1, "actual_sales": 48000,
            "units_sold": 120,
        },
        {
            "operational_cost": 12000, "department": "Retail", "region": "North",
            "store_id": "S01", "month": 1, "labor_hours": 640,
        },
        {"note": "unclassifiable"},
    ]


@pytest.fixture
def make_output_record():
    """Factory of minimal combination output records for audit tests."""

    def _make(**overrides: Any) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "item_number": 1,
            "id": "Sales___1_E1",
            "sources_included": ["HR"],
            "error_flags": [],
            "department": "Sales",
            "completeness_score": 90.0,
            "confidence_score": 0.9,
            "embedding": [],
            "salary": 1000,
        }
        record.update(overrides)
        return record

    return _make
