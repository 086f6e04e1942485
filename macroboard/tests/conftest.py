"""
Shared pytest fixtures for macroboard tests.

This module provides common fixtures used across all test modules.
Import fixtures from here instead of defining them in individual test files.
"""
from __future__ import annotations

import os
import pytest
from typing import Any, Dict, List

# Set test environment before importing application modules
os.environ.setdefault("NODE_ENV", "test")
os.environ.setdefault("FRED_API_KEY", "test-fred-key")
os.environ.setdefault("FMP_API_KEY", "test-fmp-key")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from macroboard.config import get_settings  # noqa: E402
from macroboard.providers.base import BaseProvider  # noqa: E402
from macroboard.tests.utils import sdmx_message  # noqa: E402


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def test_environment():
    """Ensure test environment is set and settings are re-read for every test."""
    old_env = os.environ.copy()
    os.environ["NODE_ENV"] = "test"
    get_settings.cache_clear()
    yield
    os.environ.clear()
    os.environ.update(old_env)
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def no_retry_backoff(monkeypatch):
    """Retries happen immediately in tests."""
    monkeypatch.setattr(BaseProvider, "RETRY_BACKOFF_FACTOR", 0.0)
    yield


# ============================================================================
# Provider Fixtures
# ============================================================================

@pytest.fixture
def sdmx_gdp_response() -> Dict[str, Any]:
    """ECB SDMX-JSON message with two countries and three annual observations."""
    return sdmx_message(
        series={
            "0:0": {"observations": {"0": [3_800_000.0], "1": [3_900_000.0], "2": [4_100_000.0]}},
            "0:1": {"observations": {"0": [2_600_000.0], "1": [2_800_000.0]}},
        },
        ref_areas=["DE", "FR"],
        periods=["2022", "2023", "2024"],
    )


@pytest.fixture
def worldbank_sample_response() -> List[Any]:
    """Sample World Bank API response."""
    return [
        {"page": 1, "pages": 1, "per_page": 1000, "total": 5},
        [
            {"countryiso3code": "USA", "date": "2023", "value": 27_000_000_000_000},
            {"countryiso3code": "USA", "date": "2024", "value": 28_000_000_000_000},
            {"countryiso3code": "USA", "date": "2025", "value": None},
            {"countryiso3code": "JPN", "date": "2024", "value": 4_100_000_000_000},
            {"countryiso3code": "EUU", "date": "2024", "value": 19_000_000_000_000},
        ],
    ]
