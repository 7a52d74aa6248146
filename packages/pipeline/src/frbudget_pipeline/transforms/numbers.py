"""
transforms/numbers.py — Locale-formatted number parsing.

French open-data tables publish amounts as "1 234,56", "1\u00a0234,56" or
"12.345,00". parse_locale_number() turns any of these into a float and
returns None for anything that is not a number.

Usage:
    from frbudget_pipeline.transforms.numbers import parse_locale_number

    parse_locale_number("1 234,56")   # 1234.56
    parse_locale_number("12.345,00")  # 12345.0
    parse_locale_number("n/a")        # None
"""

from __future__ import annotations

import math
import re
from typing import Any

# Regular, non-breaking (U+00A0) and narrow non-breaking (U+202F) spaces
_SPACES = re.compile(r"[\s\u00a0\u202f]+")
_DECIMAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def parse_locale_number(value: Any) -> float | int | None:
    """
    Convert a locale-formatted numeric value to a number.

    Numbers pass through unchanged. For strings: whitespace is removed, commas
    become decimal points, and when several points remain every one but the
    last is treated as a thousands separator.

    Args:
        value: None, int, float or str.

    Returns:
        The parsed number, or None when the value is unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return None

    token = _SPACES.sub("", value).replace(",", ".")
    if token.count(".") > 1:
        head, _, tail = token.rpartition(".")
        token = head.replace(".", "") + "." + tail

    if not _DECIMAL.match(token):
        return None
    number = float(token)
    return number if math.isfinite(number) else None


def to_amount(value: Any) -> float:
    """parse_locale_number() defaulting to 0.0 for missing or unparseable values."""
    number = parse_locale_number(value)
    return float(number) if number is not None else 0.0
