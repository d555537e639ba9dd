# -*- coding: utf-8 -*-
"""
Schema Catalog - KPI Combination

Process-wide, read-only catalog of the six division schemas. Defines the
ordered field set of every division (the completeness denominator), the
division-defining discriminant fields used for classification, the
lineage labels written to ``sources_included``, the volume/count fields
that aggregate by sum, the zero-allowed whitelist used by completeness
scoring, and the ordered output-field layout of an assembled record.

All structures are immutable (``MappingProxyType`` over tuples and
frozensets) and are built once at import time.

Example:
    >>> from kpi_master.kpi_combination.schema_catalog import FIELDS_BY_DIVISION
    >>> from kpi_master.kpi_combination.models import Division
    >>> len(FIELDS_BY_DIVISION[Division.FINANCE])
    36

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, NamedTuple, Tuple

from kpi_master.kpi_combination.models import Division, FieldKind

logger = logging.getLogger(__name__)

__all__ = [
    "DIVISION_ORDER",
    "FIELDS_BY_DIVISION",
    "DISCRIMINANT_FIELDS",
    "LINEAGE_LABELS",
    "SUM_FIELDS",
    "ZERO_ALLOWED_FIELDS",
    "OutputField",
    "OUTPUT_FIELDS",
    "OUTPUT_FIELDS_BY_DIVISION",
    "TOTAL_FIELD_COUNT",
    "PRIMARY_KEY_ERROR",
    "catalog_fields",
    "output_name_for",
    "catalog_summary",
]


# ---------------------------------------------------------------------------
# Division order
# ---------------------------------------------------------------------------

DIVISION_ORDER: Tuple[Division, ...] = tuple(Division)


# ---------------------------------------------------------------------------
# Field catalog
# ---------------------------------------------------------------------------

_WORKFORCE_FIELDS: Tuple[str, ...] = (
    "employee_id", "employee_name", "hire_date", "termination_date",
    "gender", "age", "job_level", "is_promoted", "is_high_performer",
    "absent_days", "training_hours", "ess_score", "salary", "market_salary",
    "compensation_ratio", "date_of_birth", "marital_status",
    "education_level", "employment_status", "employment_type",
    "position_title", "supervisor_id", "years_in_company",
    "performance_rating", "leave_days", "leave_type", "leave_balance",
    "training_count", "certification_count", "engagement_score", "bonus",
    "accident_count", "reason_for_leaving", "union_member",
    "disciplinary_action_count",
)

_FINANCE_FIELDS: Tuple[str, ...] = (
    "fiscal_year", "budget_month", "budget_allocated", "actual_spending",
    "forecast_budget", "forecast_spending", "forecast_revenue",
    "forecast_profit", "current_assets", "current_liabilities",
    "quick_assets", "inventory", "total_assets", "total_liabilities",
    "total_equity", "cash_and_cash_equivalents", "accounts_receivable",
    "accounts_payable", "short_term_debt", "long_term_debt",
    "total_revenue", "cost_of_goods_sold", "gross_profit",
    "operating_income", "operating_expenses", "net_profit", "ebit",
    "ebitda", "depreciation", "amortization", "interest_expense",
    "tax_expense", "operating_cash_flow", "investing_cash_flow",
    "financing_cash_flow", "capital_expenditure",
)

_SALES_FIELDS: Tuple[str, ...] = (
    "sales_target", "actual_sales", "new_customers",
    "customer_retention_rate", "conversion_rate", "avg_transaction_value",
    "marketing_spending", "campaign_count", "leads_generated", "units_sold",
    "transaction_count", "product_id", "channel", "campaign_id",
    "gross_sales", "discount_amount", "sales_return_value",
    "sales_return_count", "refund_value", "refund_count", "online_sales",
    "offline_sales", "impressions", "clicks",
)

_OPERATIONS_FIELDS: Tuple[str, ...] = (
    "operational_cost", "order_fulfillment_rate", "stockout_rate",
    "shrinkage_rate", "customer_complaint_count", "avg_delivery_time",
    "asset_utilization", "maintenance_cost", "uptime_percentage",
    "average_inventory", "beginning_inventory", "ending_inventory",
    "items_received", "items_shipped", "items_damaged", "order_volume",
    "employee_count_on_shift", "labor_hours", "energy_consumption",
    "maintenance_ticket_count", "asset_downtime", "customer_return_count",
    "backorder_count",
)

_PROJECT_FIELDS: Tuple[str, ...] = (
    "project_id", "project_name", "project_manager", "start_date",
    "end_date", "project_status", "project_budget", "actual_cost",
    "planned_roi", "actual_roi", "issue_count", "task_completion_rate",
    "stakeholder_satisfaction", "project_type", "project_priority",
    "project_phase", "methodology", "planned_end_date",
    "baseline_end_date", "committed_cost", "forecast_cost",
    "extension_count", "change_request_count", "risk_count",
    "resource_allocated_fte", "resource_utilization_rate",
)

_STRATEGY_FIELDS: Tuple[str, ...] = (
    "strategy_id", "strategy_name", "owner", "owner_position",
    "board_sponsor", "strategy_status", "planned_end_date",
    "strategy_category", "strategy_type", "alignment_with_corporate",
    "alignment_with_okr", "strategic_kpi_target", "strategic_kpi_actual",
    "kpi_unit", "kpi_frequency", "risk_level", "risk_description",
    "main_risk_owner", "mitigation_plan_available", "initiative_count",
    "initiative_success_rate", "initiative_on_track_count",
    "initiative_delayed_count", "initiative_completed_count",
    "initiative_budget_total", "initiative_budget_used",
    "board_satisfaction", "stakeholder_feedback_score", "last_review_date",
    "resource_allocated_fte", "resource_utilization_rate",
    "expected_benefit_value", "realized_benefit_value",
)

FIELDS_BY_DIVISION: Mapping[Division, Tuple[str, ...]] = MappingProxyType({
    Division.WORKFORCE: _WORKFORCE_FIELDS,
    Division.FINANCE: _FINANCE_FIELDS,
    Division.SALES: _SALES_FIELDS,
    Division.OPERATIONS: _OPERATIONS_FIELDS,
    Division.PROJECT: _PROJECT_FIELDS,
    Division.STRATEGY: _STRATEGY_FIELDS,
})

TOTAL_FIELD_COUNT: int = sum(len(f) for f in FIELDS_BY_DIVISION.values())


# ---------------------------------------------------------------------------
# Classification and lineage
# ---------------------------------------------------------------------------

# Checked in this order; the first present and truthy field wins.
DISCRIMINANT_FIELDS: Tuple[Tuple[Division, str], ...] = (
    (Division.WORKFORCE, "employee_id"),
    (Division.FINANCE, "fiscal_year"),
    (Division.SALES, "sales_target"),
    (Division.OPERATIONS, "operational_cost"),
    (Division.PROJECT, "project_id"),
    (Division.STRATEGY, "strategy_id"),
)

LINEAGE_LABELS: Mapping[Division, str] = MappingProxyType({
    Division.WORKFORCE: "HR",
    Division.FINANCE: "Finance",
    Division.SALES: "Sales",
    Division.OPERATIONS: "Operation",
    Division.PROJECT: "Project",
    Division.STRATEGY: "Strategic",
})

PRIMARY_KEY_ERROR = "No primary key fields present"


# ---------------------------------------------------------------------------
# Aggregation and completeness rules
# ---------------------------------------------------------------------------

SUM_FIELDS: FrozenSet[str] = frozenset({
    "units_sold", "transaction_count", "campaign_count", "leads_generated",
    "new_customers", "impressions", "clicks", "items_received",
    "items_shipped", "items_damaged", "order_volume",
    "employee_count_on_shift", "labor_hours", "energy_consumption",
    "maintenance_ticket_count", "customer_return_count", "backorder_count",
})

ZERO_ALLOWED_FIELDS: FrozenSet[str] = frozenset({
    "compensation_ratio", "conversion_rate", "customer_retention_rate",
    "market_salary", "salary", "avg_transaction_value",
})


# ---------------------------------------------------------------------------
# Output layout
# ---------------------------------------------------------------------------


class OutputField(NamedTuple):
    """Placement of one catalog field on the assembled record."""

    output_name: str
    source_field: str
    division: Division
    kind: FieldKind


_STRING_FIELDS: Mapping[Division, FrozenSet[str]] = MappingProxyType({
    Division.WORKFORCE: frozenset({
        "employee_id", "employee_name", "gender", "job_level", "is_promoted",
        "is_high_performer", "marital_status", "education_level",
        "employment_status", "employment_type", "position_title",
        "supervisor_id", "leave_type", "reason_for_leaving", "union_member",
    }),
    Division.FINANCE: frozenset(),
    Division.SALES: frozenset({"product_id", "channel", "campaign_id"}),
    Division.OPERATIONS: frozenset(),
    Division.PROJECT: frozenset({
        "project_id", "project_name", "project_manager", "project_status",
        "project_type", "project_priority", "project_phase", "methodology",
    }),
    Division.STRATEGY: frozenset({
        "strategy_id", "strategy_name", "owner", "owner_position",
        "board_sponsor", "strategy_status", "strategy_category",
        "strategy_type", "alignment_with_corporate", "alignment_with_okr",
        "kpi_unit", "kpi_frequency", "risk_level", "risk_description",
        "main_risk_owner", "mitigation_plan_available",
    }),
})

_DATE_FIELDS: FrozenSet[str] = frozenset({
    "hire_date", "termination_date", "date_of_birth", "start_date",
    "end_date", "planned_end_date", "baseline_end_date", "last_review_date",
})

# Output names that differ from the catalog name, keyed by (division, field).
_RENAMED: Mapping[Tuple[Division, str], str] = MappingProxyType({
    (Division.PROJECT, "actual_cost"): "actual_project_cost",
    (Division.STRATEGY, "planned_end_date"): "planned_end_date_strategy",
    (Division.STRATEGY, "resource_allocated_fte"): "resource_allocated_fte_strategy",
    (Division.STRATEGY, "resource_utilization_rate"): "resource_utilization_rate_strategy",
})

# Assembled records list finance first, then the remaining divisions.
_OUTPUT_DIVISION_ORDER: Tuple[Division, ...] = (
    Division.FINANCE,
    Division.WORKFORCE,
    Division.SALES,
    Division.OPERATIONS,
    Division.PROJECT,
    Division.STRATEGY,
)


def _field_kind(division: Division, field_name: str) -> FieldKind:
    if field_name in _STRING_FIELDS[division]:
        return FieldKind.STRING
    if field_name in _DATE_FIELDS:
        return FieldKind.DATE
    return FieldKind.NUMERIC


def _build_output_fields() -> Tuple[OutputField, ...]:
    fields: List[OutputField] = []
    for division in _OUTPUT_DIVISION_ORDER:
        for field_name in FIELDS_BY_DIVISION[division]:
            fields.append(OutputField(
                output_name=_RENAMED.get((division, field_name), field_name),
                source_field=field_name,
                division=division,
                kind=_field_kind(division, field_name),
            ))
    names = [f.output_name for f in fields]
    if len(names) != len(set(names)):
        raise RuntimeError("Output field layout contains duplicate names")
    return tuple(fields)


OUTPUT_FIELDS: Tuple[OutputField, ...] = _build_output_fields()


OUTPUT_FIELDS_BY_DIVISION: Mapping[Division, Tuple[OutputField, ...]] = MappingProxyType({
    division: tuple(f for f in OUTPUT_FIELDS if f.division is division)
    for division in DIVISION_ORDER
})


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------


def catalog_fields(division: Division) -> Tuple[str, ...]:
    """Return the ordered catalog field names of a division.

    Args:
        division: Division to look up.

    Returns:
        Tuple of field names in catalog order.
    """
    return FIELDS_BY_DIVISION[division]


def output_name_for(division: Division, field_name: str) -> str:
    """Return the assembled-record name of a division's catalog field."""
    return _RENAMED.get((division, field_name), field_name)


def catalog_summary() -> Dict[str, object]:
    """Return the ``config_info`` block attached to every output record."""
    return {
        "fields_by_div": [d.value for d in DIVISION_ORDER],
        "field_count": TOTAL_FIELD_COUNT,
    }


logger.debug(
    "Schema catalog loaded: divisions=%d, fields=%d, output_fields=%d",
    len(FIELDS_BY_DIVISION), TOTAL_FIELD_COUNT, len(OUTPUT_FIELDS),
)
