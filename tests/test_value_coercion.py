# -*- coding: utf-8 -*-
"""
Tests for the fail-soft value coercion helpers.
"""

import math
from datetime import date, datetime, timezone

import pytest

from kpi_master.kpi_combination.value_coercion import (
    clean_string,
    format_number,
    is_blank,
    is_truthy,
    is_valid_number,
    round_half_up,
    to_date,
    to_number,
)


class TestTruthiness:
    """Test presence checks used by classification and keys."""

    @pytest.mark.parametrize("value", [None, False, 0, 0.0, "", float("nan")])
    def test_falsy_values(self, value):
        """Empty, zero and NaN values are not present."""
        assert is_truthy(value) is False

    @pytest.mark.parametrize("value", ["E1", 1, -3.5, True, "0", [0]])
    def test_truthy_values(self, value):
        """Non-empty values are present, including the string "0"."""
        assert is_truthy(value) is True

    def test_blank_only_none_and_empty_string(self):
        """Zero and False are not blank for merge purposes."""
        assert is_blank(None)
        assert is_blank("")
        assert not is_blank(0)
        assert not is_blank(False)
        assert not is_blank(" ")


class TestCleanString:
    """Test whitespace normalization."""

    def test_trims_and_collapses(self):
        """Leading/trailing whitespace is removed and runs collapse."""
        assert clean_string("  North \t  East\n") == "North East"

    def test_non_strings_unchanged(self):
        """Non-string values pass through untouched."""
        assert clean_string(42) == 42
        assert clean_string(None) is None


class TestToNumber:
    """Test numeric coercion."""

    @pytest.mark.parametrize("raw,expected", [
        (5, 5),
        (2.5, 2.5),
        ("12", 12),
        (" 3.75 ", 3.75),
        ("1e3", 1000.0),
        ("-.5", -0.5),
        (True, 1),
        (False, 0),
    ])
    def test_numeric_values(self, raw, expected):
        """Numbers, numeric strings and booleans coerce."""
        assert to_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "12abc", float("nan"), [1]])
    def test_non_numeric_values(self, raw):
        """Blank, malformed and NaN values become None."""
        assert to_number(raw) is None

    def test_infinity_is_kept(self):
        """Infinite values are numeric."""
        assert to_number("Infinity") == math.inf
        assert to_number("-Infinity") == -math.inf

    def test_is_valid_number(self):
        """Only non-boolean, non-NaN numbers are valid."""
        assert is_valid_number(3)
        assert is_valid_number(-1.5)
        assert not is_valid_number(True)
        assert not is_valid_number("3")
        assert not is_valid_number(float("nan"))


class TestFormatting:
    """Test number formatting and rounding."""

    def test_format_integral_float(self):
        """Integral floats render without a decimal part."""
        assert format_number(3.0) == "3"
        assert format_number(3.5) == "3.5"
        assert format_number(7) == "7"

    @pytest.mark.parametrize("value,digits,expected", [
        (2.5, 0, 3.0),
        (-2.5, 0, -2.0),
        (8.25, 1, 8.3),
        (0.1234, 3, 0.123),
        (99.96, 1, 100.0),
    ])
    def test_round_half_up(self, value, digits, expected):
        """Halves round towards positive infinity."""
        assert round_half_up(value, digits) == pytest.approx(expected)

    def test_round_half_up_non_finite(self):
        """Non-finite values are returned unchanged."""
        assert round_half_up(math.inf) == math.inf


class TestToDate:
    """Test date normalization."""

    @pytest.mark.parametrize("raw", [
        "2024-03-15",
        "2024/03/15",
        "2024-03-15T10:30:00",
        "2024-03-15T10:30:00Z",
        "03/15/2024",
        "March 15, 2024",
        "15 Mar 2024",
    ])
    def test_string_layouts(self, raw):
        """Common layouts normalize to ISO dates."""
        assert to_date(raw) == "2024-03-15"

    def test_date_objects(self):
        """date and datetime objects are accepted."""
        assert to_date(date(2023, 1, 2)) == "2023-01-02"
        moment = datetime(2023, 1, 2, 23, 0, tzinfo=timezone.utc)
        assert to_date(moment) == "2023-01-02"

    def test_epoch_milliseconds(self):
        """Numbers are read as epoch milliseconds."""
        assert to_date(1) == "1970-01-01"
        assert to_date(86_400_000) == "1970-01-02"

    @pytest.mark.parametrize("raw", [None, "", "not a date", True, float("inf"), 0, 0.0])
    def test_unparseable(self, raw):
        """Blank or unparseable values become None."""
        assert to_date(raw) is None
