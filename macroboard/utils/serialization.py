"""Scalar coercion for provider payloads.

Providers deliver numbers as JSON numbers, numeric strings, sentinels such as
FRED's ``"."`` or nothing at all. Everything passes through ``to_float`` so
that NaN and infinities never reach a view model.
"""
from __future__ import annotations

import math
from typing import Any, Optional

# Values FRED and friends use for "no observation"
MISSING_SENTINELS = frozenset({"", ".", "NaN", "nan", "null", "None"})


def to_float(value: Any) -> Optional[float]:
    """
    Convert a provider scalar to a finite float.

    Args:
        value: JSON number, numeric string, sentinel or None

    Returns:
        The float, or None for missing, non-numeric or non-finite input

    Example:
        >>> to_float("1.25")
        1.25
        >>> to_float(".") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if text in MISSING_SENTINELS:
            return None
        value = text
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
