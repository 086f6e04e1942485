from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import httpx

_NO_BODY = object()


class MockAsyncResponse:
    """Minimal stand-in for ``httpx.Response``.

    ``raise_for_status`` behaves like httpx for non-2xx codes, and ``json``
    raises ``ValueError`` when the body is given as text that is not JSON.
    """

    def __init__(
        self,
        json_data: Any = _NO_BODY,
        *,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        request_url: Optional[str] = None,
        status_code: int = 200,
    ) -> None:
        self._json = json_data
        self._text = text
        self.headers = headers or {}
        self.request_url = request_url or "https://example.com/mock"
        self.status_code = status_code

    @property
    def text(self) -> str:
        if self._text is not None:
            return self._text
        if self._json is _NO_BODY:
            return ""
        return json.dumps(self._json)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("GET", self.request_url)
            raise httpx.HTTPStatusError(
                f"HTTP {self.status_code}", request=request, response=self
            )

    def json(self) -> Any:
        if self._json is _NO_BODY:
            return json.loads(self._text or "")
        return self._json


class MockAsyncClient:
    """Returns queued responses in order; records every requested URL."""

    def __init__(self, responses: Iterable[Union[MockAsyncResponse, Exception]]) -> None:
        self._responses: List[Union[MockAsyncResponse, Exception]] = list(responses)
        self.calls: List[Tuple[str, Any]] = []

    async def get(self, url: str, *, params: Any = None, **_kwargs) -> MockAsyncResponse:
        self.calls.append((str(url), params))
        if not self._responses:
            raise AssertionError("No more mock responses available")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        response.request_url = str(url)
        return response


Route = Union[MockAsyncResponse, Exception, Callable[[str, Any], MockAsyncResponse]]


class RoutingMockClient:
    """Answers by URL so that concurrent requests need no fixed order.

    ``routes`` maps a substring of the URL, or of ``url?params``, to a
    response, an exception to raise, or a callable ``(url, params)``. The
    longest matching key wins. Unmatched URLs answer 404.
    """

    def __init__(self, routes: Dict[str, Route]) -> None:
        self.routes = routes
        self.calls: List[Tuple[str, Any]] = []

    def _match(self, url: str, params: Any) -> Optional[Route]:
        target = f"{url}?{_flatten(params)}"
        matches = [key for key in self.routes if key in target]
        if not matches:
            return None
        return self.routes[max(matches, key=len)]

    async def get(self, url: str, *, params: Any = None, **_kwargs) -> MockAsyncResponse:
        self.calls.append((str(url), params))
        await asyncio.sleep(0)
        route = self._match(str(url), params)
        if route is None:
            return MockAsyncResponse({"error": "not found"}, status_code=404, request_url=str(url))
        if isinstance(route, Exception):
            raise route
        if callable(route) and not isinstance(route, MockAsyncResponse):
            return route(str(url), params)
        route.request_url = str(url)
        return route


def _flatten(params: Any) -> str:
    if not params:
        return ""
    items = params.items() if isinstance(params, dict) else params
    return "&".join(f"{key}={value}" for key, value in items)


def run(coro):
    """Helper to run async functions in synchronous tests."""
    return asyncio.run(coro)


def sdmx_message(series: Dict[str, Any], ref_areas: List[str], periods: List[str],
                 dimension: str = "REF_AREA") -> Dict[str, Any]:
    """SDMX-JSON data message with a FREQ dimension followed by ``dimension``."""
    return {
        "dataSets": [{"series": series}],
        "structure": {
            "dimensions": {
                "series": [
                    {"id": "FREQ", "values": [{"id": "A"}]},
                    {"id": dimension, "values": [{"id": code} for code in ref_areas]},
                ],
                "observation": [
                    {"id": "TIME_PERIOD", "values": [{"id": period} for period in periods]},
                ],
            }
        },
    }


def jsonstat_dataset(geos: List[str], times: List[str], values: Any) -> Dict[str, Any]:
    """Eurostat JSON-stat dataset with dimensions ``freq, geo, time``."""
    return {
        "version": "2.0",
        "class": "dataset",
        "id": ["freq", "geo", "time"],
        "size": [1, len(geos), len(times)],
        "dimension": {
            "freq": {"category": {"index": {"M": 0}}},
            "geo": {"category": {"index": {geo: i for i, geo in enumerate(geos)}}},
            "time": {
                "category": {
                    "index": {time: i for i, time in enumerate(times)},
                    "label": {time: time for time in times},
                }
            },
        },
        "value": values,
    }


def fred_observations(values: List[str], start_year: int = 2023) -> Dict[str, Any]:
    """Monthly FRED observations starting in January of ``start_year``."""
    observations = []
    for i, value in enumerate(values):
        year = start_year + i // 12
        month = i % 12 + 1
        observations.append({"date": f"{year}-{month:02d}-01", "value": value})
    return {"observations": observations}
