from __future__ import annotations

import unittest
from unittest.mock import patch

import pytest

from macroboard.exceptions import DataNotAvailableError
from macroboard.providers.fred import FREDProvider, decode_fred_latest, decode_fred_yoy
from macroboard.tests.utils import (
    MockAsyncClient,
    MockAsyncResponse,
    RoutingMockClient,
    fred_observations,
    run,
)


class FredDecoderTests(unittest.TestCase):
    def test_latest_skips_missing_sentinel(self) -> None:
        payload = {"observations": [
            {"date": "2025-09-01", "value": "4.33"},
            {"date": "2025-09-02", "value": "4.32"},
            {"date": "2025-09-03", "value": "."},
        ]}

        result = decode_fred_latest(payload)

        self.assertEqual(result.period, "2025-09-02")
        self.assertEqual(result.value, 4.32)
        self.assertEqual(result.source, "FRED")

    def test_latest_none_without_usable_observations(self) -> None:
        self.assertIsNone(decode_fred_latest({"observations": []}))
        self.assertIsNone(decode_fred_latest({"observations": [{"date": "2025-01-01", "value": "."}]}))
        self.assertIsNone(decode_fred_latest({"error_code": 400}))

    def test_yoy_uses_point_twelve_positions_back(self) -> None:
        # 14 months: the comparison point is the 14th from the end
        values = ["100"] + [str(101 + i) for i in range(12)] + ["110"]
        payload = fred_observations(values)

        result = decode_fred_yoy(payload)

        self.assertEqual(result.period, "2024-02-01")
        self.assertAlmostEqual(result.value, 10.0)

    def test_yoy_skips_missing_latest(self) -> None:
        values = ["200"] + ["201"] * 12 + ["220", "."]
        payload = fred_observations(values)

        result = decode_fred_yoy(payload)

        self.assertEqual(result.period, "2024-02-01")
        self.assertAlmostEqual(result.value, 10.0)

    def test_yoy_without_comparison_point(self) -> None:
        payload = fred_observations([str(100 + i) for i in range(13)])

        result = decode_fred_yoy(payload)

        self.assertEqual(result.period, "2024-01-01")
        self.assertIsNone(result.value)

    def test_yoy_zero_base_is_none(self) -> None:
        payload = fred_observations(["0"] + ["1"] * 13)

        result = decode_fred_yoy(payload)

        self.assertIsNotNone(result)
        self.assertIsNone(result.value)

    def test_yoy_none_without_observations(self) -> None:
        self.assertIsNone(decode_fred_yoy({"observations": [{"date": "2025-01-01", "value": "."}]}))


class FREDProviderTests(unittest.TestCase):
    def test_fetch_series_sends_key_and_series_id(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({"observations": [{"date": "2025-10-01", "value": "4.09"}]})])
        provider = FREDProvider(api_key="test-key", base_url="https://fred.test/fred")

        with patch("macroboard.providers.fred.get_http_client", return_value=client):
            result = run(provider.fetch_series("treasury10y"))

        self.assertEqual(result.value, 4.09)
        url, params = client.calls[0]
        self.assertEqual(url, "https://fred.test/fred/series/observations")
        self.assertEqual(params, {"series_id": "DGS10", "file_type": "json", "api_key": "test-key"})

    def test_fetch_series_cpi_is_yoy(self) -> None:
        values = ["300"] + ["305"] * 12 + ["309"]
        client = MockAsyncClient([MockAsyncResponse(fred_observations(values))])
        provider = FREDProvider(api_key="test-key")

        with patch("macroboard.providers.fred.get_http_client", return_value=client):
            result = run(provider.fetch_series("inflationCPI"))

        self.assertAlmostEqual(result.value, 3.0)
        self.assertEqual(client.calls[0][1]["series_id"], "CPIAUCSL")

    def test_fetch_all_returns_every_key(self) -> None:
        client = RoutingMockClient({
            "series_id=": MockAsyncResponse({"observations": [{"date": "2025-10-01", "value": "1.5"}]}),
        })
        provider = FREDProvider(api_key="test-key")

        with patch("macroboard.providers.fred.get_http_client", return_value=client):
            result = run(provider.fetch_all())

        self.assertEqual(set(result), set(FREDProvider.SERIES))
        self.assertEqual(result["fedFunds"].value, 1.5)
        self.assertEqual(len(client.calls), len(FREDProvider.SERIES))

    def test_fetch_all_fails_as_a_whole(self) -> None:
        ok = MockAsyncResponse({"observations": [{"date": "2025-10-01", "value": "1.5"}]})
        client = RoutingMockClient({
            "series_id=": ok,
            "series_id=DGS30": MockAsyncResponse({"error_message": "Bad Request"}, status_code=400),
        })
        provider = FREDProvider(api_key="test-key")

        with patch("macroboard.providers.fred.get_http_client", return_value=client):
            with self.assertRaises(DataNotAvailableError):
                run(provider.fetch_all())


def test_missing_key_omits_parameter(monkeypatch) -> None:
    monkeypatch.delenv("FRED_API_KEY", raising=False)
    provider = FREDProvider(api_key="")
    client = MockAsyncClient([MockAsyncResponse({"observations": []})])

    with patch("macroboard.providers.fred.get_http_client", return_value=client):
        assert run(provider.fetch_series("primeRate")) is None

    assert "api_key" not in client.calls[0][1]


@pytest.mark.parametrize("raw", ["", ".", None, "n/a"])
def test_missing_values_are_skipped(raw) -> None:
    payload = {"observations": [{"date": "2025-01-01", "value": "1.0"}, {"date": "2025-02-01", "value": raw}]}

    assert decode_fred_latest(payload).period == "2025-01-01"
