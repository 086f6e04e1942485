"""
Derived-metric calculators.

Pure functions over decoded observations: growth rates, real wage growth,
inverted FX quotes, per-capita ratios, unit rescaling and yield-curve
spreads. None of them raise on bad input; missing or degenerate inputs give
``None`` values.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..models import CountryMetricMap, CountrySeriesMap, Observation, TermSpread

logger = logging.getLogger(__name__)

MILLION = 1_000_000


def yoy(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    """Percentage change from ``previous`` to ``current``.

    >>> yoy(110, 100)
    10.0
    """
    if current is None or previous is None or previous == 0:
        return None
    result = (current - previous) / previous * 100
    return result if math.isfinite(result) else None


def growth_series(history: Sequence[Observation]) -> List[Observation]:
    """Growth between consecutive points of an ascending history.

    Each output point carries the later period of its pair. Pairs with a
    zero or missing earlier value are skipped.
    """
    points = [obs for obs in history if obs.value is not None]
    out: List[Observation] = []
    for prev, cur in zip(points, points[1:]):
        change = yoy(cur.value, prev.value)
        if change is None:
            continue
        out.append(Observation(period=cur.period, value=change, source=cur.source))
    return out


def real_wage_growth(
    wages: Sequence[Observation],
    cpi: Sequence[Observation],
) -> Optional[Observation]:
    """Nominal wage growth minus CPI inflation for the latest shared period.

    Both inputs are ascending level histories for one country. Returns None
    with fewer than two points on either side or no overlapping period.
    """
    if len(wages) < 2 or len(cpi) < 2:
        return None

    wage_growth = growth_series(wages)
    inflation_by_period = {str(obs.period): obs.value for obs in growth_series(cpi)}

    for point in reversed(wage_growth):
        inflation = inflation_by_period.get(str(point.period))
        if inflation is None:
            continue
        return Observation(period=point.period, value=point.value - inflation, source=point.source)
    return None


def real_wage_growth_by_country(
    wages: Optional[CountrySeriesMap],
    cpi: Optional[CountrySeriesMap],
) -> CountryMetricMap:
    out: CountryMetricMap = {}
    if not wages or not cpi:
        return out
    for country, wage_history in wages.items():
        result = real_wage_growth(wage_history, cpi.get(country) or [])
        if result is not None:
            out[country] = result
    return out


def invert_quote(price: Optional[float], change: Optional[float]) -> Tuple[Optional[float], float]:
    """Invert a quoted FX rate, e.g. GBP/USD into USD/GBP.

    Returns ``(1/price, 1/price - 1/(price - change))``. A zero or non-finite
    price gives ``(None, 0.0)``. A non-finite change, or a previous price of
    zero, gives a change of 0.

    >>> invert_quote(1.25, 0.01)[0]
    0.8
    """
    if price is None or not math.isfinite(price) or price == 0:
        return None, 0.0
    value = 1 / price
    if change is None or not math.isfinite(change):
        return value, 0.0
    prev = price - change
    if prev == 0:
        return value, 0.0
    inverted_change = value - 1 / prev
    return value, (inverted_change if math.isfinite(inverted_change) else 0.0)


def per_capita(
    totals_million: Optional[CountryMetricMap],
    population: Mapping[str, float],
) -> CountryMetricMap:
    """Per-person values from totals expressed in millions.

    Countries without a positive population, or without a total, get
    ``value=None`` but keep their period.
    """
    out: CountryMetricMap = {}
    for country, obs in (totals_million or {}).items():
        pop = population.get(country)
        if obs.value is None or not pop or pop <= 0:
            value = None
        else:
            value = obs.value * MILLION / pop
        out[country] = Observation(period=obs.period, value=value, source=obs.source)
    return out


def rescale(data: Optional[CountryMetricMap], divisor: float = MILLION) -> Optional[CountryMetricMap]:
    """Divide every value by ``divisor`` (absolute units to millions by default)."""
    if data is None:
        return None
    return {
        country: obs.model_copy(update={"value": None if obs.value is None else obs.value / divisor})
        for country, obs in data.items()
    }


SPREAD_BUCKETS_POSITIVE = ((25, "flat / just positive", "mild"), (100, "moderately steep", "medium"))
SPREAD_BUCKETS_NEGATIVE = ((25, "slightly inverted", "mild"), (75, "moderately inverted", "medium"))

SPREAD_DESCRIPTIONS: Dict[str, Tuple[str, str]] = {
    "1Y-3M": (
        "Normal ({shape}): 1Y yields exceed 3M bills, implying markets expect policy to stay tight or even tighten further.",
        "Inverted ({shape}): 3M bills yield more than 1Y notes; markets anticipate rate cuts within about 12 months.",
    ),
    "2s10s": (
        "Normal curve ({shape}): 10Y yields exceed 2Y yields, usually signaling steady growth and inflation expectations.",
        "Inverted curve ({shape}): 2Y exceeds 10Y, often a recession warning as markets expect future rate cuts.",
    ),
    "2s30s": (
        "Normal ({shape}): 30Y exceeds 2Y, reflecting long-run growth and inflation expectations.",
        "Inverted ({shape}): 2Y exceeds 30Y, a stronger late-cycle signal than 2s10s.",
    ),
}


def classify_spread(value: float) -> Tuple[str, str]:
    """Shape label and tone for a spread in percentage points."""
    bps = abs(value) * 100
    if value >= 0:
        buckets, fallback = SPREAD_BUCKETS_POSITIVE, ("steep", "strong")
    else:
        buckets, fallback = SPREAD_BUCKETS_NEGATIVE, ("deeply inverted", "strong")
    for limit, label, tone in buckets:
        if bps < limit:
            return label, tone
    return fallback


def term_spread(name: str, long_rate: Optional[float], short_rate: Optional[float]) -> TermSpread:
    if long_rate is None or short_rate is None:
        return TermSpread(name=name, description="No data.")
    value = long_rate - short_rate
    shape, tone = classify_spread(value)
    description = None
    if name in SPREAD_DESCRIPTIONS:
        normal, inverted = SPREAD_DESCRIPTIONS[name]
        description = (normal if value >= 0 else inverted).format(shape=shape)
    return TermSpread(name=name, value=value, shape=shape, tone=tone, description=description)
