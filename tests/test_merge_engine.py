# -*- coding: utf-8 -*-
"""
Tests for the multi-index and per-key merge.
"""

from kpi_master.kpi_combination.merge_engine import MergeEngine, MultiIndex
from kpi_master.kpi_combination.models import Division


class TestMultiIndex:
    """Test grouping rows by composite key."""

    def test_keys_in_first_appearance_order(self, classifier):
        """Keys are listed once, in the order first seen."""
        classification = classifier.classify([
            {"employee_id": "E1", "department": "B"},
            {"employee_id": "E2", "department": "A"},
            {"employee_id": "E3", "department": "B"},
        ])
        index = MergeEngine().build_index(classification)
        assert index.keys == ["B|||1", "A|||1"]
        assert len(index) == 2
        assert len(index.rows(Division.WORKFORCE, "B|||1")) == 2

    def test_contributing_divisions(self, classifier):
        """Divisions with rows under a key are reported in priority order."""
        classification = classifier.classify([
            {"project_id": "P1", "department": "A"},
            {"employee_id": "E1", "department": "A"},
        ])
        index = MergeEngine().build_index(classification)
        assert index.contributing_divisions("A|||1") == [
            Division.WORKFORCE, Division.PROJECT,
        ]
        assert index.rows(Division.SALES, "A|||1") == []

    def test_empty_index(self):
        """A new index has no keys."""
        assert MultiIndex().keys == []


class TestMergeRows:
    """Test the first-non-empty-wins merge."""

    def test_first_non_empty_wins(self):
        """Earlier rows win; blank values are skipped."""
        merged = MergeEngine.merge_rows([
            {"a": 1, "b": "", "c": None},
            {"a": 2, "b": "x", "c": 0},
        ])
        assert merged == {"a": 1, "b": "x", "c": 0}

    def test_zero_and_false_are_kept(self):
        """Zero and False are values, not blanks."""
        merged = MergeEngine.merge_rows([{"a": 0, "b": False}, {"a": 5, "b": True}])
        assert merged == {"a": 0, "b": False}


class TestMergeKey:
    """Test merging all rows under one key."""

    def test_workforce_beats_finance(self, classifier):
        """A shared field takes the workforce value over the finance one."""
        classification = classifier.classify([
            {"fiscal_year": 2024, "department": "A", "salary": 9999},
            {"employee_id": "E1", "department": "A", "salary": 1000},
        ])
        engine = MergeEngine()
        index = engine.build_index(classification)
        merged = engine.merge_key(index, "A|||1")
        assert merged.get("salary") == 1000
        assert merged.get("fiscal_year") == 2024
        assert merged.lineage == ["HR", "Finance"]

    def test_two_employees_merge_into_one(self, classifier, workforce_rows):
        """Rows sharing a key merge; the first row's values win."""
        engine = MergeEngine()
        index = engine.build_index(classifier.classify(workforce_rows))
        assert index.keys == ["Sales|||1"]
        merged = engine.merge_key(index, "Sales|||1")
        assert merged.get("salary") == 1000
        assert merged.record_id == "Sales___1_E1"

    def test_record_id_without_employee(self, classifier, finance_row):
        """Records without an employee use 0 as the last id token."""
        engine = MergeEngine()
        index = engine.build_index(classifier.classify([finance_row]))
        merged = engine.merge_key(index, "|||3")
        assert merged.record_id == "___3_0"
        assert merged.divisions == [Division.FINANCE]

    def test_statistics(self, classifier, workforce_rows):
        """Merge statistics count keys and scanned rows."""
        engine = MergeEngine()
        index = engine.build_index(classifier.classify(workforce_rows))
        engine.merge_key(index, "Sales|||1")
        stats = engine.get_statistics()
        assert stats["engine_name"] == "MergeEngine"
        assert stats["keys_merged"] == 1
        assert stats["rows_merged"] == 2
        engine.reset_statistics()
        assert engine.get_statistics()["keys_merged"] == 0
