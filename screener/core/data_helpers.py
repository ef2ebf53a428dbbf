"""
Numeric helpers shared by scoring, targets and return tracking.

Usage:
    from screener.core.data_helpers import safe_float, round2, clamp_score
"""

from __future__ import annotations

import math
from typing import Any

import pandas as pd


def safe_float(value: Any, default: float | None = None) -> float | None:
    """
    Safely convert value to float.

    Handles None, NaN, Inf, pandas NA/NaT, and conversion errors gracefully.

    Args:
        value: Any value to convert
        default: Default to return if conversion fails

    Returns:
        Float value or default if conversion fails
    """
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
    except (TypeError, ValueError):
        return default
    try:
        f = float(value)
    except (ValueError, TypeError):
        return default
    if math.isnan(f) or math.isinf(f):
        return default
    return f


def safe_int(value: Any, default: int | None = None) -> int | None:
    """Safely convert value to int, truncating floats."""
    f = safe_float(value)
    if f is None:
        return default
    return int(f)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity.

    ``round()`` uses banker's rounding (``round(2.5) == 2``); scores and
    prices round halves up instead.
    """
    return int(math.floor(value + 0.5))


def round2(value: float) -> float:
    """Round to 2 decimals, halves up."""
    return math.floor(value * 100 + 0.5) / 100


def floor2(value: float) -> float:
    """Round down to 2 decimals, tolerating float noise (9.09 stays 9.09)."""
    return math.floor(value * 100 + 1e-9) / 100


def clamp_score(value: float) -> int:
    """Round and clamp a raw score to an integer in [0, 100]."""
    if math.isnan(value):
        return 0
    return round_half_up(max(0.0, min(100.0, value)))


def pct_change(current: float, reference: float) -> float:
    """Percent change of ``current`` versus ``reference``."""
    return (current - reference) / reference * 100
