# -*- coding: utf-8 -*-
"""
Tests for row classification and composite key derivation.
"""

import logging

import pytest

from kpi_master.kpi_combination.key_builder import CompositeKeyBuilder
from kpi_master.kpi_combination.models import Division
from kpi_master.kpi_combination.row_classifier import (
    RowClassifier,
    classify_record,
    unwrap_envelope,
)


class TestClassifyRecord:
    """Test division classification of single records."""

    @pytest.mark.parametrize("record,expected", [
        ({"employee_id": "E1"}, Division.WORKFORCE),
        ({"fiscal_year": 2024}, Division.FINANCE),
        ({"sales_target": 100}, Division.SALES),
        ({"operational_cost": 5}, Division.OPERATIONS),
        ({"project_id": "P1"}, Division.PROJECT),
        ({"strategy_id": "STR-1"}, Division.STRATEGY),
    ])
    def test_each_division(self, record, expected):
        """Each discriminant field selects its division."""
        assert classify_record(record) is expected

    def test_priority_order(self):
        """The first discriminant in priority order wins."""
        record = {"project_id": "P1", "fiscal_year": 2024, "employee_id": "E9"}
        assert classify_record(record) is Division.WORKFORCE

    def test_falsy_discriminant_is_skipped(self):
        """A zero or empty discriminant does not classify."""
        assert classify_record({"employee_id": "", "sales_target": 0}) is None
        assert classify_record({"employee_id": 0, "project_id": "P7"}) is Division.PROJECT

    def test_unclassifiable(self):
        """Records without any discriminant, and non-mappings, yield None."""
        assert classify_record({"department": "Sales"}) is None
        assert classify_record("employee_id") is None

    def test_unwrap_envelope(self):
        """Only a mapping under ``json`` is unwrapped."""
        assert unwrap_envelope({"json": {"a": 1}}) == {"a": 1}
        assert unwrap_envelope({"json": "raw"}) == {"json": "raw"}
        assert unwrap_envelope({"a": 1}) == {"a": 1}


class TestCompositeKeyBuilder:
    """Test composite key derivation."""

    def test_department_only(self):
        """Missing region, store and period use defaults."""
        key = CompositeKeyBuilder().build({"department": "Sales"})
        assert key.key == "Sales|||1"
        assert (key.department, key.region, key.store_id, key.period) == (
            "Sales", "", "", 1,
        )

    def test_department_name_alias(self):
        """department_name stands in for a missing department."""
        key = CompositeKeyBuilder().build({"department_name": "Ops", "region": "West"})
        assert key.key == "Ops|West||1"

    def test_whitespace_normalized(self):
        """Key tokens are trimmed and whitespace runs collapse."""
        key = CompositeKeyBuilder().build({
            "department": "  Retail   Banking ", "store_id": " S01 ",
        })
        assert key.key == "Retail Banking||S01|1"

    def test_budget_month_precedes_month(self):
        """budget_month wins over month when numeric."""
        builder = CompositeKeyBuilder()
        assert builder.build({"budget_month": 3, "month": 7}).period == 3
        assert builder.build({"month": "7"}).period == 7

    def test_non_numeric_period_falls_through(self):
        """A non-numeric period candidate falls through to the next one."""
        builder = CompositeKeyBuilder()
        assert builder.build({"budget_month": "March", "month": 4}).period == 4
        assert builder.build({"month": "n/a"}).period == 1

    def test_numeric_store_id(self):
        """Numeric tokens serialize without a decimal part."""
        key = CompositeKeyBuilder().build({"store_id": 12.0, "month": 2.0})
        assert key.key == "||12|2"

    def test_serialize(self):
        """The serialized form joins tokens with pipes."""
        assert CompositeKeyBuilder.serialize("A", "B", "C", 5) == "A|B|C|5"


class TestRowClassifier:
    """Test batch classification."""

    def test_buckets_and_indices(self, classifier):
        """Rows land in their division with a per-division index."""
        result = classifier.classify([
            {"employee_id": "E1"},
            {"fiscal_year": 2024},
            {"employee_id": "E2"},
        ])
        workforce = result.rows(Division.WORKFORCE)
        assert [r.index for r in workforce] == [0, 1]
        assert [r.data["employee_id"] for r in workforce] == ["E1", "E2"]
        assert result.rows(Division.FINANCE)[0].index == 0
        assert result.input_count == 3

    def test_envelopes_unwrapped(self, classifier):
        """``{"json": {...}}`` items are classified by their payload."""
        result = classifier.classify([{"json": {"project_id": "P1"}}])
        assert len(result.rows(Division.PROJECT)) == 1

    def test_unclassifiable_dropped(self, classifier):
        """Records matching no division are dropped and counted."""
        result = classifier.classify([{"department": "Sales"}, 42, {"employee_id": "E1"}])
        assert result.dropped_count == 2
        assert result.division_counts()["workforce"] == 1
        stats = classifier.get_statistics()
        assert stats["records_dropped"] == 2
        assert stats["records_seen"] == 3

    def test_drop_logged_as_warning(self, classifier, caplog):
        """Dropped records are reported at WARNING level."""
        with caplog.at_level(logging.WARNING, logger="kpi_master.kpi_combination.row_classifier"):
            classifier.classify([{"note": "unclassifiable"}, {"employee_id": "E1"}])
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("Dropped 1 of 2 records" in r.getMessage() for r in warnings)

    def test_generator_input(self, classifier):
        """Any iterable of records is accepted."""
        result = classifier.classify(r for r in [{"fiscal_year": 2024}])
        assert result.input_count == 1

    @pytest.mark.parametrize("items", [None, 5, "abc", {"employee_id": "E1"}])
    def test_non_iterable_rejected(self, classifier, items):
        """Top-level input must be an iterable of records."""
        with pytest.raises(TypeError):
            classifier.classify(items)

    def test_reset_statistics(self, classifier):
        """Statistics reset to zero."""
        classifier.classify([{"employee_id": "E1"}])
        classifier.reset_statistics()
        stats = classifier.get_statistics()
        assert stats["invocations"] == 0
        assert stats["division_totals"]["workforce"] == 0
