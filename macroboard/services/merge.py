"""
Cross-provider merge for per-country metric maps.

Layers are listed least authoritative first. A later layer's entry for a
country replaces the earlier one wholesale; periods are never compared, so an
override source wins even when it reports an older period.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..models import CountryMetricMap, Observation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeLayer:
    """One named input to a merge. ``data`` is None when the source failed."""

    name: str
    data: Optional[CountryMetricMap]


def merge_country_maps(layers: Sequence[MergeLayer]) -> CountryMetricMap:
    merged: Dict[str, Observation] = {}
    for layer in layers:
        if not layer.data:
            continue
        merged.update(layer.data)
    return merged


def merge_metric(metric: str, layers: Sequence[MergeLayer]) -> CountryMetricMap:
    """Merge ``layers`` and log which layer supplied each country."""
    merged = merge_country_maps(layers)

    winners: Dict[str, str] = {}
    for layer in layers:
        for country in layer.data or {}:
            winners[country] = layer.name
    contributed: Dict[str, List[str]] = {}
    for country, name in winners.items():
        contributed.setdefault(name, []).append(country)

    skipped = [layer.name for layer in layers if layer.data is None]
    logger.debug(
        f"Merged {metric}: {len(merged)} countries, "
        f"by layer {contributed}" + (f", missing layers {skipped}" if skipped else "")
    )
    return merged
