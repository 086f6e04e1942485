from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import get_settings
from ..models import CountryMetricMap, Observation
from ..services.http_pool import get_http_client
from ..utils.serialization import to_float
from .base import BaseProvider

logger = logging.getLogger(__name__)


def _find_dimension(dimensions: Sequence[Any], dimension_id: str) -> Tuple[int, Optional[Dict[str, Any]]]:
    for position, dim in enumerate(dimensions):
        if isinstance(dim, dict) and dim.get("id") == dimension_id:
            return position, dim
    return -1, None


def _value_id(values: Sequence[Any], index: int) -> Optional[str]:
    if 0 <= index < len(values):
        entry = values[index]
        if isinstance(entry, dict) and entry.get("id") is not None:
            return str(entry["id"])
    return None


def _latest_observation_key(observations: Dict[str, Any]) -> Optional[int]:
    indices = []
    for key in observations:
        try:
            indices.append(int(key))
        except (TypeError, ValueError):
            continue
    return max(indices) if indices else None


def decode_sdmx_latest(
    payload: Any,
    dimension: str = "REF_AREA",
    source: str = "ECB",
) -> Optional[CountryMetricMap]:
    """Reduce an SDMX-JSON data message to the latest observation per series.

    Each series key (``"0:2:0"``) is resolved to a code through ``dimension``
    (``REF_AREA`` for country flows, ``CURRENCY`` for exchange rates). The
    observation with the highest time index is taken as the latest one.

    Returns None when the message has no data set or no series.
    """
    if not isinstance(payload, dict):
        return None
    data_sets = payload.get("dataSets")
    if not isinstance(data_sets, list) or not data_sets or not isinstance(data_sets[0], dict):
        return None
    series = data_sets[0].get("series")
    if not isinstance(series, dict) or not series:
        return None

    structure = payload.get("structure") or {}
    dimensions = structure.get("dimensions") or {} if isinstance(structure, dict) else {}
    series_dims = dimensions.get("series") or []
    observation_dims = dimensions.get("observation") or []

    key_position, key_dim = _find_dimension(series_dims, dimension)
    key_values = (key_dim or {}).get("values") or []
    _, time_dim = _find_dimension(observation_dims, "TIME_PERIOD")
    time_values = (time_dim or {}).get("values") or []

    out: CountryMetricMap = {}
    for series_key, body in series.items():
        try:
            parts = [int(part) for part in str(series_key).split(":")]
        except ValueError:
            logger.warning(f"Skipping SDMX series with non-numeric key '{series_key}'")
            continue

        if key_dim is None or key_position >= len(parts):
            code = f"REF_{series_key}"
        else:
            index = parts[key_position]
            code = _value_id(key_values, index) or f"REF_{index}"

        observations = (body or {}).get("observations") if isinstance(body, dict) else None
        if not isinstance(observations, dict):
            continue
        last = _latest_observation_key(observations)
        if last is None:
            continue

        raw = observations.get(str(last))
        value = to_float(raw[0]) if isinstance(raw, list) and raw else None
        period = _value_id(time_values, last)

        out[code] = Observation(
            period=period if period is not None else last,
            value=value,
            source=source,
        )

    return out


class ECBProvider(BaseProvider):
    """European Central Bank SDMX data portal.

    Serves three flows for the dashboard: annual GDP in million EUR (MNA),
    monthly HICP year-on-year inflation (ICP) and the daily USD/EUR
    reference rate (EXR).
    """

    GDP_FLOW = "MNA"
    GDP_KEY_TEMPLATE = "A.N.{countries}.W2.S1.S1.B.B1GQ._Z._Z._Z.EUR.V.N"

    INFLATION_FLOW = "ICP"
    INFLATION_KEY_TEMPLATE = "M.{countries}.N.000000.4.ANR"

    FX_FLOW = "EXR"
    FX_KEY = "D.USD.EUR.SP00.A"

    @property
    def provider_name(self) -> str:
        return "ECB"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        settings = get_settings()
        super().__init__(timeout=timeout or settings.http_timeout)
        self.base_url = (base_url or settings.ecb_base_url).rstrip("/")
        self.settings = settings

    def _countries_key(self, countries: Optional[List[str]]) -> str:
        return "+".join(countries or self.settings.eurozone_countries)

    async def _fetch_data(self, **params) -> Any:
        flow = params["flow"]
        key = params["key"]
        query = {"format": "jsondata"}
        if params.get("start_period"):
            query["startPeriod"] = params["start_period"]

        url = f"{self.base_url}/service/data/{flow}/{key}"
        client = get_http_client()
        response = await self._get_with_retry(
            client, url, params=query, headers={"Accept": "application/json"}
        )
        return self._parse_json_safe(response)

    async def fetch_gdp(
        self, countries: Optional[List[str]] = None, start_period: Optional[str] = None
    ) -> Optional[CountryMetricMap]:
        """Latest annual GDP per country, million EUR."""
        key = self.GDP_KEY_TEMPLATE.format(countries=self._countries_key(countries))
        payload = await self._fetch_data(
            flow=self.GDP_FLOW,
            key=key,
            start_period=start_period or self.settings.ecb_gdp_start_period,
        )
        result = decode_sdmx_latest(payload, source=self.provider_name)
        logger.info(f"ECB GDP decoded for {len(result or {})} countries")
        return result

    async def fetch_inflation(
        self, countries: Optional[List[str]] = None, start_period: Optional[str] = None
    ) -> Optional[CountryMetricMap]:
        """Latest HICP annual rate of change per country (%)."""
        key = self.INFLATION_KEY_TEMPLATE.format(countries=self._countries_key(countries))
        payload = await self._fetch_data(
            flow=self.INFLATION_FLOW,
            key=key,
            start_period=start_period or self.settings.ecb_inflation_start_period,
        )
        result = decode_sdmx_latest(payload, source=self.provider_name)
        logger.info(f"ECB HICP decoded for {len(result or {})} countries")
        return result

    async def fetch_exchange_rate(self, start_period: Optional[str] = None) -> Optional[Observation]:
        """Latest USD per EUR reference rate, keyed by the ``CURRENCY`` dimension."""
        payload = await self._fetch_data(
            flow=self.FX_FLOW,
            key=self.FX_KEY,
            start_period=start_period or self.settings.ecb_fx_start_period,
        )
        decoded = decode_sdmx_latest(payload, dimension="CURRENCY", source=self.provider_name)
        if not decoded:
            return None
        return decoded.get("USD") or next(iter(decoded.values()))
