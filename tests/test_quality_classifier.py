# -*- coding: utf-8 -*-
"""
Tests for the audit data quality score, classification and tracing.
"""

import pytest

from kpi_master.etl_audit.quality_classifier import (
    CLASS_BAD,
    CLASS_EXCELLENT,
    CLASS_GOOD,
    CLASS_VERY_BAD,
    CLASS_VERY_GOOD,
    TRACING_NO_ISSUE,
    TRACING_PREFIX,
    QualityInputs,
    average,
    build_data_tracing,
    classify_data_quality,
    compute_data_quality_score,
    tolerance_for,
)


def _inputs(**overrides):
    values = dict(
        count=100,
        avg_completeness_audit=100.0,
        avg_confidence_audit=1.0,
        critical_count=0,
        anomaly_count=0,
        top_missing_field=None,
        top_missing_count=0,
        completeness_gap=0.0,
        confidence_gap=0.0,
        division_count=6,
    )
    values.update(overrides)
    return QualityInputs(**values)


class TestTolerance:
    """Test the critical/anomaly tolerance."""

    @pytest.mark.parametrize("count,expected", [
        (1, 1), (10, 1), (30, 2), (100, 5), (1000, 50),
    ])
    def test_tolerance(self, count, expected):
        """Five percent of the batch, at least one."""
        assert tolerance_for(count) == expected


class TestDataQualityScore:
    """Test the weighted data quality score."""

    def test_perfect_batch(self):
        """A clean batch scores 100."""
        assert compute_data_quality_score(_inputs()) == 100

    def test_gap_penalties(self):
        """Large completeness and confidence gaps cost five points each."""
        assert compute_data_quality_score(_inputs(completeness_gap=6.0)) == 95
        assert compute_data_quality_score(
            _inputs(completeness_gap=6.0, confidence_gap=0.06),
        ) == 90

    def test_critical_and_anomaly_saturation(self):
        """Exceeding the tolerance removes the whole 20% share."""
        score = compute_data_quality_score(_inputs(critical_count=5, anomaly_count=50))
        assert score == 80

    def test_frequently_missing_field(self):
        """A field missing from 80% of records removes the 10% share."""
        score = compute_data_quality_score(
            _inputs(top_missing_field="salary", top_missing_count=80),
        )
        assert score == 90

    def test_empty_batch(self):
        """An empty batch is scored as one record with nothing filled."""
        inputs = _inputs(count=0, avg_completeness_audit=0.0, avg_confidence_audit=0.0)
        assert compute_data_quality_score(inputs) == 30

    def test_clamped(self):
        """The score never leaves [0, 100]."""
        inputs = _inputs(
            avg_completeness_audit=0.0, avg_confidence_audit=0.0,
            critical_count=100, anomaly_count=100,
            top_missing_field="a", top_missing_count=100,
            completeness_gap=50.0, confidence_gap=0.5,
        )
        assert compute_data_quality_score(inputs) == 0


class TestClassification:
    """Test the five-level classification."""

    def _classify(self, etl_c, etl_f, audit_c, audit_f, dq, c_gap=0.0, f_gap=0.0):
        return classify_data_quality(etl_c, etl_f, audit_c, audit_f, dq, c_gap, f_gap)

    def test_excellent(self):
        """Perfect inputs score 94."""
        result = self._classify(100, 1.0, 100, 1.0, 100)
        assert result["data_classification"] == CLASS_EXCELLENT
        assert result["data_classification_score"] == pytest.approx(94.0)

    def test_very_good_with_gaps(self):
        """Gaps subtract up to three points each."""
        result = self._classify(90, 0.9, 100, 1.0, 90, 10.0, 0.1)
        assert result["data_classification"] == CLASS_VERY_GOOD
        assert result["data_classification_score"] == pytest.approx(82.8)

    def test_good(self):
        """Mid-range inputs classify as good."""
        result = self._classify(75, 0.75, 75, 0.75, 75)
        assert result["data_classification"] == CLASS_GOOD
        assert result["data_classification_score"] == pytest.approx(70.5)

    def test_bad(self):
        """Lower inputs classify as bad."""
        result = self._classify(60, 0.6, 60, 0.6, 60)
        assert result["data_classification"] == CLASS_BAD
        assert result["data_classification_score"] == pytest.approx(56.4)

    def test_very_bad(self):
        """Empty inputs classify as very bad."""
        result = self._classify(0, 0, 0, 0, 0)
        assert result["data_classification"] == CLASS_VERY_BAD
        assert result["data_classification_score"] == 0.0


class TestDataTracing:
    """Test the issue diagnosis."""

    def test_no_tracing_for_good_score(self):
        """Scores at or above the alert threshold are not diagnosed."""
        assert build_data_tracing(_inputs(), 70) == ""

    def test_issues_listed(self):
        """Every detected issue is listed after the prefix."""
        inputs = _inputs(
            count=10,
            avg_completeness_audit=50.0,
            avg_confidence_audit=0.5,
            critical_count=3,
            anomaly_count=2,
            top_missing_field="salary",
            top_missing_count=6,
            division_count=2,
        )
        tracing = build_data_tracing(inputs, 40)
        assert tracing.startswith(TRACING_PREFIX)
        issues = tracing[len(TRACING_PREFIX):].split("; ")
        assert issues == [
            "Average completeness is low",
            "Average confidence score is low",
            "Too many items are missing critical fields",
            "Many anomalous items (low confidence)",
            "Field 'salary' is frequently incomplete",
            "Data is uneven across divisions",
        ]

    def test_no_specific_issue(self):
        """A poor score without a detected cause gets the generic message."""
        assert build_data_tracing(_inputs(), 60) == TRACING_NO_ISSUE


class TestAverage:
    """Test the numeric average helper."""

    def test_ignores_non_numeric(self):
        """Non-numeric entries are skipped; empty input averages to 0."""
        assert average([1, "x", None, 3, float("nan"), True]) == 2.0
        assert average([]) == 0.0
