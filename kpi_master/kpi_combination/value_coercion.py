# -*- coding: utf-8 -*-
"""
Value Coercion Helpers - KPI Combination

Fail-soft conversions shared by every engine in the combination pipeline.
None of these functions raise on malformed input: a value that cannot be
coerced becomes ``None`` (or ``False`` for truthiness checks).

Conventions:
    - Truthy: not None, not False, not numeric zero, not NaN, not "".
    - Blank: None or the empty string (merge emptiness).
    - Numeric: ints, floats, booleans (as 1/0) and numeric strings;
      NaN is never a valid number, infinities are kept.
    - Dates: normalized to ``YYYY-MM-DD`` (UTC for aware datetimes).

Author: KPI Master Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Any, List, Optional

from kpi_master.kpi_combination.models import Number

__all__ = [
    "is_truthy",
    "is_blank",
    "clean_string",
    "to_number",
    "is_valid_number",
    "format_number",
    "to_date",
    "round_half_up",
]


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_WHITESPACE_RUN = re.compile(r"\s+")

_NUMERIC_LITERAL = re.compile(
    r"^[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|Infinity)$"
)

_DATE_FORMATS: List[str] = [
    "%Y-%m-%d", "%Y/%m/%d",
    "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y", "%m-%d-%Y", "%m.%d.%Y",
    "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y",
    "%B %d, %Y", "%b %d, %Y",
    "%d %B %Y", "%d %b %Y",
    "%m/%d/%y",
]


# ---------------------------------------------------------------------------
# Truthiness and emptiness
# ---------------------------------------------------------------------------


def is_truthy(value: Any) -> bool:
    """Return whether a raw value counts as present for classification.

    Args:
        value: Raw field value.

    Returns:
        False for None, False, numeric zero, NaN and the empty string.
    """
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (str, bool, int, float)):
        return bool(value)
    return True


def is_blank(value: Any) -> bool:
    """Return True for None or the empty string."""
    return value is None or (isinstance(value, str) and value == "")


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def clean_string(value: Any) -> Any:
    """Trim a string and collapse internal whitespace runs to one space.

    Non-string values are returned unchanged.
    """
    if not isinstance(value, str):
        return value
    return _WHITESPACE_RUN.sub(" ", value.strip())


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def to_number(value: Any) -> Optional[Number]:
    """Coerce a raw value to a number.

    Args:
        value: Raw field value.

    Returns:
        int or float, or None when the value is blank or not numeric.
        NaN is returned as None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if isinstance(value, str):
        text = value.strip()
        if not text or not _NUMERIC_LITERAL.match(text):
            return None
        try:
            return int(text)
        except ValueError:
            return float(text)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def is_valid_number(value: Any) -> bool:
    """Return True for a non-boolean int/float that is not NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def format_number(value: Number) -> str:
    """Render a number the way it appears in keys and ids (``3`` not ``3.0``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves away from negative infinity.

    Args:
        value: Number to round.
        digits: Decimal places to keep.

    Returns:
        Rounded float; non-finite input is returned unchanged.
    """
    if not math.isfinite(value):
        return value
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _as_utc_date(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def to_date(value: Any) -> Optional[str]:
    """Parse a raw date value into a ``YYYY-MM-DD`` string.

    Accepts date/datetime objects, epoch milliseconds, ISO-8601 strings
    and the common day/month layouts in ``_DATE_FORMATS``.

    Args:
        value: Raw field value.

    Returns:
        Normalized date string, or None if the value is blank, zero or
        unparseable.
    """
    if is_blank(value) or isinstance(value, bool) or value == 0:
        return None
    if isinstance(value, datetime):
        return _as_utc_date(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            moment = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return moment.date().isoformat()
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return _as_utc_date(
            datetime.fromisoformat(text.replace("Z", "+00:00")),
        ).isoformat()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return None
