from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config import get_settings
from ..models import CountryMetricMap, CountrySeriesMap, Observation
from ..services.http_pool import get_http_client
from ..services.symbols import DEFAULT_COUNTRY_CODES, CountryCodeTable
from ..utils.periods import parse_year
from ..utils.serialization import to_float
from .base import BaseProvider

logger = logging.getLogger(__name__)


def _rows(payload: Any) -> Optional[List[Dict[str, Any]]]:
    """Return the data rows of a ``[metadata, rows]`` body.

    The API reports errors as ``[{"message": [...]}]`` with HTTP 200, and
    answers ``[metadata, null]`` when nothing matches.
    """
    if not isinstance(payload, list) or not payload:
        return None
    meta = payload[0]
    if isinstance(meta, dict) and meta.get("message"):
        logger.warning(f"World Bank API error: {meta['message']}")
        return None
    if len(payload) < 2:
        return None
    rows = payload[1]
    if rows is None:
        return []
    if not isinstance(rows, list):
        return None
    return [row for row in rows if isinstance(row, dict)]


def _tracked_points(
    payload: Any, codes: CountryCodeTable
) -> Optional[List[Tuple[str, int, str, float]]]:
    rows = _rows(payload)
    if rows is None:
        return None
    points = []
    for row in rows:
        iso2 = codes.to_iso2(row.get("countryiso3code"))
        if iso2 is None:
            continue
        value = to_float(row.get("value"))
        year = parse_year(row.get("date"))
        if value is None or year is None:
            continue
        points.append((iso2, year, str(row.get("date")).strip(), value))
    return points


def decode_worldbank_latest(
    payload: Any,
    codes: CountryCodeTable = DEFAULT_COUNTRY_CODES,
    source: str = "WorldBank",
) -> Optional[CountryMetricMap]:
    """Latest non-null value per tracked country, keyed by ISO-2.

    Years are compared numerically; on equal years the first row wins.
    """
    points = _tracked_points(payload, codes)
    if points is None:
        return None

    latest: Dict[str, Tuple[int, Observation]] = {}
    for iso2, year, label, value in points:
        current = latest.get(iso2)
        if current is None or year > current[0]:
            latest[iso2] = (year, Observation(period=label, value=value, source=source))
    return {iso2: obs for iso2, (_, obs) in latest.items()}


def decode_worldbank_history(
    payload: Any,
    codes: CountryCodeTable = DEFAULT_COUNTRY_CODES,
    source: str = "WorldBank",
) -> Optional[CountrySeriesMap]:
    """Ascending, null-free yearly history per tracked country."""
    points = _tracked_points(payload, codes)
    if points is None:
        return None

    grouped: Dict[str, List[Tuple[int, Observation]]] = {}
    for iso2, year, label, value in points:
        grouped.setdefault(iso2, []).append(
            (year, Observation(period=label, value=value, source=source))
        )
    return {
        iso2: [obs for _, obs in sorted(entries, key=lambda item: item[0])]
        for iso2, entries in grouped.items()
    }


class WorldBankProvider(BaseProvider):
    """World Bank Indicators API (v2)."""

    PER_PAGE = 1000

    @property
    def provider_name(self) -> str:
        return "WorldBank"

    def __init__(
        self,
        codes: CountryCodeTable = DEFAULT_COUNTRY_CODES,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        super().__init__(timeout=timeout or settings.http_timeout)
        self.base_url = (base_url or settings.worldbank_base_url).rstrip("/")
        self.codes = codes
        self.settings = settings

    async def _fetch_data(self, **params) -> Any:
        indicator = params["indicator"]
        countries = ";".join(params.get("countries") or self.codes.iso3_codes())
        url = f"{self.base_url}/country/{countries}/indicator/{indicator}"

        client = get_http_client()
        response = await self._get_with_retry(
            client, url, params={"format": "json", "per_page": self.PER_PAGE}
        )
        return self._parse_json_safe(response)

    async def fetch_latest(
        self, indicator: str, countries: Optional[List[str]] = None
    ) -> Optional[CountryMetricMap]:
        """Latest value per country for one indicator code (e.g. ``NY.GDP.MKTP.CD``)."""
        payload = await self._fetch_data(indicator=indicator, countries=countries)
        result = decode_worldbank_latest(payload, self.codes, source=self.provider_name)
        logger.info(f"World Bank {indicator}: {len(result or {})} countries")
        return result

    async def fetch_history(
        self, indicator: str, countries: Optional[List[str]] = None
    ) -> Optional[CountrySeriesMap]:
        payload = await self._fetch_data(indicator=indicator, countries=countries)
        return decode_worldbank_history(payload, self.codes, source=self.provider_name)
