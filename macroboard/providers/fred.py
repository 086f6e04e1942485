from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config import get_settings
from ..models import Observation
from ..services.http_pool import get_http_client
from ..utils.serialization import to_float
from .base import BaseProvider

logger = logging.getLogger(__name__)

# The year-ago search starts YOY_LAG + 1 positions before the latest
# observation, so the comparison point is 13 months back on a gap-free
# monthly series.
YOY_LAG = 12


def _observations(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    observations = payload.get("observations")
    if not isinstance(observations, list):
        return []
    return [obs for obs in observations if isinstance(obs, dict)]


def _latest_present(reversed_obs: List[Dict[str, Any]], start: int = 0) -> Optional[Tuple[int, Dict[str, Any], float]]:
    for i in range(start, len(reversed_obs)):
        value = to_float(reversed_obs[i].get("value"))
        if value is not None:
            return i, reversed_obs[i], value
    return None


def decode_fred_latest(payload: Any, source: str = "FRED") -> Optional[Observation]:
    """Most recent non-missing observation (``"."`` marks a missing value)."""
    reversed_obs = list(reversed(_observations(payload)))
    found = _latest_present(reversed_obs)
    if found is None:
        return None
    _, obs, value = found
    return Observation(period=obs.get("date"), value=value, source=source)


def decode_fred_yoy(payload: Any, source: str = "FRED") -> Optional[Observation]:
    """Year-over-year % change of a monthly level series.

    The comparison point is the first non-missing observation more than
    ``YOY_LAG`` positions before the latest one. When none exists, or it is
    zero, the latest period is returned with ``value=None``.
    """
    reversed_obs = list(reversed(_observations(payload)))
    found = _latest_present(reversed_obs)
    if found is None:
        return None
    i0, latest, latest_value = found

    previous = _latest_present(reversed_obs, start=i0 + YOY_LAG + 1)
    if previous is None or previous[2] == 0:
        return Observation(period=latest.get("date"), value=None, source=source)

    twelve_ago = previous[2]
    yoy = (latest_value - twelve_ago) / twelve_ago * 100
    return Observation(period=latest.get("date"), value=yoy, source=source)


class FREDProvider(BaseProvider):
    """FRED (Federal Reserve Economic Data) provider.

    Serves the fixed bundle of US rates and prices shown on the dashboard.
    Series listed in ``YOY_SERIES`` are level indexes reported as YoY % change.
    """

    SERIES: Dict[str, str] = {
        "fedFunds": "DFF",
        "primeRate": "MPRIME",
        "inflationCPI": "CPIAUCSL",
        "treasury10y": "DGS10",
        "treasury2y": "DGS2",
        "treasury30y": "DGS30",
        "mortgage30y": "MORTGAGE30US",
        "autoLoan60m": "RIFLPBCIANM60NM",
        "creditCardAPR": "TERMCBCCALLNS",
        "treasury3m": "DGS3MO",
        "treasury1y": "DGS1",  # closest tenor to 18M
    }

    YOY_SERIES = frozenset({"inflationCPI"})

    @property
    def provider_name(self) -> str:
        return "FRED"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        super().__init__(timeout=timeout or settings.http_timeout)
        self.api_key = api_key if api_key is not None else settings.fred_api_key
        self.base_url = (base_url or settings.fred_base_url).rstrip("/")
        if not self.api_key:
            logger.warning("FRED_API_KEY is not set; requests rely on a key-injecting proxy")

    async def _fetch_data(self, **params) -> Any:
        query = {"series_id": params["series_id"], "file_type": "json"}
        if self.api_key:
            query["api_key"] = self.api_key

        client = get_http_client()
        response = await self._get_with_retry(
            client, f"{self.base_url}/series/observations", params=query
        )
        return self._parse_json_safe(response)

    async def fetch_series(self, key: str) -> Optional[Observation]:
        """Latest value (or YoY change) for one dashboard series key."""
        series_id = self.SERIES[key]
        payload = await self._fetch_data(series_id=series_id)
        if key in self.YOY_SERIES:
            return decode_fred_yoy(payload, source=self.provider_name)
        return decode_fred_latest(payload, source=self.provider_name)

    async def fetch_all(self, keys: Optional[List[str]] = None) -> Dict[str, Optional[Observation]]:
        """Fetch every series concurrently; any failure fails the whole bundle."""
        keys = list(keys or self.SERIES.keys())
        results = await asyncio.gather(*(self.fetch_series(key) for key in keys))
        logger.info(f"FRED bundle fetched: {len(keys)} series")
        return dict(zip(keys, results))
