from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import get_settings
from ..models import CountryMetricMap, Observation
from ..services.http_pool import get_http_client
from ..utils.periods import is_later
from ..utils.serialization import to_float
from .base import BaseProvider

logger = logging.getLogger(__name__)


def decode_index(idx: int, sizes: Sequence[int]) -> List[int]:
    """Split a flat JSON-stat value index into per-dimension coordinates.

    The last dimension varies fastest (row-major order).
    """
    coords = [0] * len(sizes)
    for i in range(len(sizes) - 1, -1, -1):
        coords[i] = idx % sizes[i]
        idx //= sizes[i]
    return coords


def encode_coordinates(coords: Sequence[int], sizes: Sequence[int]) -> int:
    idx = 0
    for coord, size in zip(coords, sizes):
        idx = idx * size + coord
    return idx


def _inverse_category_index(dimension: Dict[str, Any]) -> Dict[int, str]:
    """Map category position -> category code for one dimension.

    JSON-stat allows ``category.index`` as an object (code -> position) or
    as an array of codes in position order.
    """
    category = (dimension or {}).get("category") or {}
    index = category.get("index")
    if isinstance(index, dict):
        inverse = {}
        for code, position in index.items():
            try:
                inverse[int(position)] = str(code)
            except (TypeError, ValueError):
                continue
        return inverse
    if isinstance(index, list):
        return {position: str(code) for position, code in enumerate(index)}
    return {}


def _iter_values(value: Any) -> Iterator[Tuple[int, Any]]:
    if isinstance(value, dict):
        for flat_key, raw in value.items():
            try:
                yield int(flat_key), raw
            except (TypeError, ValueError):
                logger.debug(f"Skipping JSON-stat value with key '{flat_key}'")
    elif isinstance(value, list):
        yield from enumerate(value)


def decode_jsonstat_latest(payload: Any, source: str = "Eurostat") -> Optional[CountryMetricMap]:
    """Reduce a JSON-stat 2.0 dataset to the latest value per ``geo`` code.

    Periods are compared as dates, so ``2024M10`` beats ``2024M09`` and the
    order of entries in ``value`` does not matter.
    """
    if not isinstance(payload, dict):
        return None
    ids = payload.get("id")
    sizes = payload.get("size")
    dimensions = payload.get("dimension")
    values = payload.get("value")
    if not isinstance(ids, list) or not isinstance(sizes, list) or not isinstance(dimensions, dict):
        return None
    if values is None or len(ids) != len(sizes) or "geo" not in ids or "time" not in ids:
        return None
    try:
        sizes = [int(size) for size in sizes]
    except (TypeError, ValueError):
        return None
    if any(size <= 0 for size in sizes):
        return None

    geo_pos = ids.index("geo")
    time_pos = ids.index("time")
    geo_codes = _inverse_category_index(dimensions.get("geo"))
    time_codes = _inverse_category_index(dimensions.get("time"))
    time_labels = ((dimensions.get("time") or {}).get("category") or {}).get("label") or {}

    total = 1
    for size in sizes:
        total *= size

    out: CountryMetricMap = {}
    for flat, raw in _iter_values(values):
        number = to_float(raw)
        if number is None or not 0 <= flat < total:
            continue
        coords = decode_index(flat, sizes)
        geo = geo_codes.get(coords[geo_pos])
        time_code = time_codes.get(coords[time_pos])
        if not geo or not time_code:
            continue

        period = time_labels.get(time_code, time_code)
        current = out.get(geo)
        if current is None or is_later(period, current.period):
            out[geo] = Observation(period=period, value=number, source=source)

    return out


class EurostatProvider(BaseProvider):
    """Eurostat dissemination API (JSON-stat 2.0)."""

    UNEMPLOYMENT_DATASET = "une_rt_m"
    UNEMPLOYMENT_FILTERS: Dict[str, str] = {
        "freq": "M",
        "s_adj": "SA",
        "unit": "PC_ACT",
        "sex": "T",
        "age": "TOTAL",
    }

    # EMU convergence criterion bond yields
    LONG_TERM_RATE_DATASET = "irt_lt_mcby_m"
    LONG_TERM_RATE_FILTERS: Dict[str, str] = {
        "freq": "M",
        "int_rt": "MCBY",
    }

    @property
    def provider_name(self) -> str:
        return "Eurostat"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        settings = get_settings()
        super().__init__(timeout=timeout or settings.http_timeout)
        self.base_url = (base_url or settings.eurostat_base_url).rstrip("/")
        self.settings = settings

    async def _fetch_data(self, **params) -> Any:
        dataset = params["dataset"]
        filters: Dict[str, str] = params.get("filters") or {}
        countries: List[str] = params.get("countries") or self.settings.eurozone_countries

        query: List[Tuple[str, str]] = list(filters.items())
        query.extend(("geo", country) for country in countries)
        if params.get("since"):
            query.append(("sinceTimePeriod", params["since"]))

        client = get_http_client()
        response = await self._get_with_retry(client, f"{self.base_url}/{dataset}", params=query)
        return self._parse_json_safe(response)

    async def fetch_unemployment(
        self, countries: Optional[List[str]] = None, since: Optional[str] = None
    ) -> Optional[CountryMetricMap]:
        """Latest seasonally adjusted unemployment rate (% of active population)."""
        payload = await self._fetch_data(
            dataset=self.UNEMPLOYMENT_DATASET,
            filters=self.UNEMPLOYMENT_FILTERS,
            countries=countries,
            since=since or self.settings.eurostat_start_period,
        )
        return decode_jsonstat_latest(payload, source=self.provider_name)

    async def fetch_long_term_rates(
        self, countries: Optional[List[str]] = None, since: Optional[str] = None
    ) -> Optional[CountryMetricMap]:
        """Latest long-term government bond yield (% p.a.)."""
        payload = await self._fetch_data(
            dataset=self.LONG_TERM_RATE_DATASET,
            filters=self.LONG_TERM_RATE_FILTERS,
            countries=countries,
            since=since or self.settings.eurostat_start_period,
        )
        return decode_jsonstat_latest(payload, source=self.provider_name)
