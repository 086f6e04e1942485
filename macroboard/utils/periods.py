"""Period label parsing for chronological comparison.

Providers label periods differently: World Bank uses bare years, ECB and
Eurostat use ``2024``, ``2024-03``, ``2024-Q2`` or ``2024M03``, FRED uses full
ISO dates. Labels are converted to ``date`` before comparing, never compared
as strings.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Optional, Union

_YEAR = re.compile(r"^(\d{4})$")
_QUARTER = re.compile(r"^(\d{4})-?Q([1-4])$")
_MONTH = re.compile(r"^(\d{4})-?M?(\d{1,2})$")
_DAY = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")


def parse_period(label: Union[str, int, float, None]) -> Optional[date]:
    """Convert a period label to the first day of the period it names.

    Returns None for labels that cannot be interpreted.
    """
    if label is None or isinstance(label, bool):
        return None
    if isinstance(label, (int, float)):
        year = int(label)
        return date(year, 1, 1) if 1 <= year <= 9999 else None

    text = str(label).strip()
    try:
        match = _YEAR.match(text)
        if match:
            return date(int(match.group(1)), 1, 1)
        match = _QUARTER.match(text)
        if match:
            month = (int(match.group(2)) - 1) * 3 + 1
            return date(int(match.group(1)), month, 1)
        match = _DAY.match(text)
        if match:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        match = _MONTH.match(text)
        if match:
            return date(int(match.group(1)), int(match.group(2)), 1)
    except ValueError:
        return None
    return None


def parse_year(label: Union[str, int, None]) -> Optional[int]:
    """Numeric year for World Bank style labels."""
    if label is None:
        return None
    try:
        return int(str(label).strip())
    except ValueError:
        return None


def is_later(candidate: Union[str, int, None], current: Union[str, int, None]) -> bool:
    """True when ``candidate`` is strictly later than ``current``.

    An unparseable candidate never replaces an existing entry; a parseable
    candidate always replaces an unparseable one.
    """
    new = parse_period(candidate)
    if new is None:
        return False
    old = parse_period(current)
    if old is None:
        return True
    return new > old
