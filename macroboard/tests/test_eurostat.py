from __future__ import annotations

import random
import unittest
from unittest.mock import patch

import pytest

from macroboard.providers.eurostat import (
    EurostatProvider,
    decode_index,
    decode_jsonstat_latest,
    encode_coordinates,
)
from macroboard.tests.utils import MockAsyncClient, MockAsyncResponse, jsonstat_dataset, run

GEOS = ["DE", "FR"]
TIMES = ["2025M07", "2025M08", "2025M09"]


class MixedRadixTests(unittest.TestCase):
    def test_last_dimension_varies_fastest(self) -> None:
        self.assertEqual(decode_index(4, [2, 3]), [1, 1])
        self.assertEqual(decode_index(0, [2, 3]), [0, 0])
        self.assertEqual(decode_index(5, [2, 3]), [1, 2])
        self.assertEqual(decode_index(2, [1, 2, 3]), [0, 0, 2])

    def test_encode_is_inverse_of_decode(self) -> None:
        rng = random.Random(7)
        for _ in range(200):
            sizes = [rng.randint(1, 6) for _ in range(rng.randint(1, 5))]
            total = 1
            for size in sizes:
                total *= size
            idx = rng.randrange(total)
            with self.subTest(sizes=sizes, idx=idx):
                coords = decode_index(idx, sizes)
                self.assertTrue(all(0 <= c < s for c, s in zip(coords, sizes)))
                self.assertEqual(encode_coordinates(coords, sizes), idx)


class JsonStatDecoderTests(unittest.TestCase):
    def test_sparse_values_latest_per_country(self) -> None:
        payload = jsonstat_dataset(GEOS, TIMES, {"0": 3.5, "1": 3.6, "2": None, "3": 7.5, "5": 7.7})

        result = decode_jsonstat_latest(payload)

        self.assertEqual(result["DE"].period, "2025M08")
        self.assertEqual(result["DE"].value, 3.6)
        self.assertEqual(result["FR"].period, "2025M09")
        self.assertEqual(result["FR"].value, 7.7)
        self.assertEqual(result["FR"].source, "Eurostat")

    def test_dense_values_match_sparse(self) -> None:
        sparse = jsonstat_dataset(GEOS, TIMES, {"0": 3.5, "1": 3.6, "3": 7.5, "5": 7.7})
        dense = jsonstat_dataset(GEOS, TIMES, [3.5, 3.6, None, 7.5, None, 7.7])

        self.assertEqual(decode_jsonstat_latest(sparse), decode_jsonstat_latest(dense))

    def test_result_independent_of_value_order(self) -> None:
        items = [("0", 3.5), ("1", 3.6), ("2", 3.4), ("3", 7.5), ("4", 7.6), ("5", 7.7)]
        forward = jsonstat_dataset(GEOS, TIMES, dict(items))
        backward = jsonstat_dataset(GEOS, TIMES, dict(reversed(items)))

        self.assertEqual(decode_jsonstat_latest(forward), decode_jsonstat_latest(backward))
        self.assertEqual(decode_jsonstat_latest(forward)["DE"].value, 3.4)

    def test_time_label_preferred_over_code(self) -> None:
        payload = jsonstat_dataset(["ES"], ["2025-06"], {"0": 10.4})
        payload["dimension"]["time"]["category"]["label"] = {"2025-06": "2025-06-01"}

        self.assertEqual(decode_jsonstat_latest(payload)["ES"].period, "2025-06-01")

    def test_array_category_index(self) -> None:
        payload = jsonstat_dataset(GEOS, TIMES, {"2": 3.4})
        payload["dimension"]["geo"]["category"]["index"] = ["DE", "FR"]

        self.assertEqual(list(decode_jsonstat_latest(payload)), ["DE"])

    def test_unresolvable_coordinates_skipped(self) -> None:
        payload = jsonstat_dataset(GEOS, TIMES, {"0": 3.5, "4": 7.6})
        # FR no longer has a category position
        payload["dimension"]["geo"]["category"]["index"] = {"DE": 0}

        self.assertEqual(list(decode_jsonstat_latest(payload)), ["DE"])

    def test_inconsistent_payloads_are_no_data(self) -> None:
        good = jsonstat_dataset(GEOS, TIMES, {"0": 1.0})
        for field in ("id", "size", "dimension", "value"):
            with self.subTest(missing=field):
                payload = dict(good)
                payload.pop(field)
                self.assertIsNone(decode_jsonstat_latest(payload))

        mismatched = dict(good, size=[1, 2])
        self.assertIsNone(decode_jsonstat_latest(mismatched))
        self.assertIsNone(decode_jsonstat_latest("error"))


class EurostatProviderTests(unittest.TestCase):
    def test_fetch_unemployment_query(self) -> None:
        payload = jsonstat_dataset(GEOS, TIMES, {"2": 6.3, "5": 7.6})
        client = MockAsyncClient([MockAsyncResponse(payload)])
        provider = EurostatProvider(base_url="https://eurostat.test/data")

        with patch("macroboard.providers.eurostat.get_http_client", return_value=client):
            result = run(provider.fetch_unemployment(countries=["DE", "FR"]))

        self.assertEqual(result["DE"].value, 6.3)
        url, params = client.calls[0]
        self.assertEqual(url, "https://eurostat.test/data/une_rt_m")
        self.assertIn(("s_adj", "SA"), params)
        self.assertIn(("unit", "PC_ACT"), params)
        self.assertIn(("age", "TOTAL"), params)
        self.assertIn(("geo", "DE"), params)
        self.assertIn(("geo", "FR"), params)
        self.assertIn(("sinceTimePeriod", "2019-01"), params)

    def test_fetch_long_term_rates_defaults_to_eurozone(self) -> None:
        payload = jsonstat_dataset(["IT"], ["2025M09"], {"0": 3.52})
        client = MockAsyncClient([MockAsyncResponse(payload)])
        provider = EurostatProvider(base_url="https://eurostat.test/data")

        with patch("macroboard.providers.eurostat.get_http_client", return_value=client):
            result = run(provider.fetch_long_term_rates())

        self.assertEqual(result["IT"].value, 3.52)
        url, params = client.calls[0]
        self.assertTrue(url.endswith("/irt_lt_mcby_m"))
        self.assertIn(("int_rt", "MCBY"), params)
        geos = [value for key, value in params if key == "geo"]
        self.assertEqual(geos, ["DE", "FR", "ES", "NL", "IT", "LT", "EE", "LV"])


@pytest.mark.parametrize("sizes", [[3], [2, 3], [4, 1, 5], [2, 2, 2, 2]])
def test_every_index_round_trips(sizes) -> None:
    total = 1
    for size in sizes:
        total *= size
    assert [encode_coordinates(decode_index(i, sizes), sizes) for i in range(total)] == list(range(total))
