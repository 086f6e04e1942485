"""
Dashboard orchestration.

Each view fans out to its providers concurrently with ``asyncio.gather`` and
builds the response once every source has settled. A source is guarded so
that a transport failure becomes an entry in the view's ``errors`` map while
the remaining sources still render. Cancellation is never converted into an
error and propagates to the caller.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional

import httpx

from ..config import Settings, get_settings
from ..exceptions import MacroboardError, is_retryable_error
from ..models import (
    FXRate,
    FXView,
    MacroView,
    QuoteBoardView,
    SourceResult,
    USEconomicsView,
    YieldCurveView,
)
from ..providers.ecb import ECBProvider
from ..providers.eurostat import EurostatProvider
from ..providers.fmp import FMPProvider
from ..providers.fred import FREDProvider
from ..providers.worldbank import WorldBankProvider
from ..utils.logging_security import redact_text
from .derived import invert_quote, per_capita, real_wage_growth_by_country, rescale, term_spread
from .merge import MergeLayer, merge_metric
from .symbols import SymbolNormalizer

logger = logging.getLogger(__name__)

INDEX_SYMBOLS: List[str] = ["^GSPC", "^NDX", "^DJI", "^STOXX50E", "^FTSE", "^N225", "^HSI", "000300.SS"]
ASSET_SYMBOLS: List[str] = ["BTC-USD", "ETH-USD", "GLD", "USO"]

# Requested ticker -> (pair label, base, quote, invert)
FX_SYMBOLS: Dict[str, tuple] = {
    "CNY=X": ("USD/CNY", "USD", "CNY", False),
    "GBPUSD=X": ("USD/GBP", "USD", "GBP", True),
    "CHF=X": ("USD/CHF", "USD", "CHF", False),
    "JPY=X": ("USD/JPY", "USD", "JPY", False),
}

YIELD_TENORS: Dict[str, str] = {
    "3M": "treasury3m",
    "1Y": "treasury1y",
    "2Y": "treasury2y",
    "10Y": "treasury10y",
    "30Y": "treasury30y",
}

MACRO_UNITS: Dict[str, str] = {
    "gdp": "million, EUR for eurozone countries and USD otherwise",
    "gdpPerCapita": "per person, EUR for eurozone countries and USD otherwise",
    "inflation": "% y/y",
    "unemployment": "% of labour force",
    "longTermRate": "% p.a. (lending rate outside the eurozone)",
    "realWageGrowth": "% y/y",
}


async def guarded(source: str, awaitable: Awaitable[Any]) -> SourceResult:
    """Run one logical source, converting transport failures into an error string."""
    try:
        data = await awaitable
    except MacroboardError as e:
        hint = " (transient)" if is_retryable_error(e) else ""
        logger.warning(f"Source {source} failed{hint}: {e.message}")
        return SourceResult(source=source, error=e.message)
    except httpx.HTTPError as e:
        message = redact_text(str(e)) or e.__class__.__name__
        logger.warning(f"Source {source} failed: {message}")
        return SourceResult(source=source, error=message)
    return SourceResult(source=source, data=data)


def collect_errors(*results: SourceResult) -> Dict[str, str]:
    return {result.source: result.error for result in results if result.error}


class DashboardService:
    """Builds every dashboard view from fresh provider responses."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ecb: Optional[ECBProvider] = None,
        eurostat: Optional[EurostatProvider] = None,
        worldbank: Optional[WorldBankProvider] = None,
        fred: Optional[FREDProvider] = None,
        fmp: Optional[FMPProvider] = None,
        normalizer: Optional[SymbolNormalizer] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.ecb = ecb or ECBProvider()
        self.eurostat = eurostat or EurostatProvider()
        self.worldbank = worldbank or WorldBankProvider()
        self.fred = fred or FREDProvider()
        self.fmp = fmp or FMPProvider(normalizer=normalizer)

    # ------------------------------------------------------------------
    # World Bank bundles
    # ------------------------------------------------------------------

    async def _worldbank_latest(self) -> Dict[str, Any]:
        s = self.settings
        indicators = {
            "gdp": s.wb_gdp_indicator,
            "gdpPerCapita": s.wb_gdp_per_capita_indicator,
            "inflation": s.wb_inflation_indicator,
            "unemployment": s.wb_unemployment_indicator,
            "interestRate": s.wb_interest_rate_indicator,
        }
        results = await asyncio.gather(
            *(self.worldbank.fetch_latest(code) for code in indicators.values())
        )
        return dict(zip(indicators.keys(), results))

    async def _worldbank_wage_history(self) -> Dict[str, Any]:
        wages, cpi = await asyncio.gather(
            self.worldbank.fetch_history(self.settings.wb_wage_indicator),
            self.worldbank.fetch_history(self.settings.wb_cpi_level_indicator),
        )
        return {"wages": wages, "cpi": cpi}

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def macro(self) -> MacroView:
        """Per-country macro indicators, ECB/Eurostat first with World Bank layered on top."""
        (
            ecb_gdp,
            ecb_inflation,
            unemployment,
            long_term,
            worldbank,
            wages,
        ) = await asyncio.gather(
            guarded("ECB GDP", self.ecb.fetch_gdp()),
            guarded("ECB HICP", self.ecb.fetch_inflation()),
            guarded("Eurostat unemployment", self.eurostat.fetch_unemployment()),
            guarded("Eurostat long-term rates", self.eurostat.fetch_long_term_rates()),
            guarded("World Bank", self._worldbank_latest()),
            guarded("World Bank wages", self._worldbank_wage_history()),
        )

        wb: Dict[str, Any] = worldbank.data or {}
        history: Dict[str, Any] = wages.data or {}

        return MacroView(
            gdp=merge_metric("gdp", [
                MergeLayer("ECB", ecb_gdp.data),
                MergeLayer("WorldBank", rescale(wb.get("gdp"))),
            ]),
            gdpPerCapita=merge_metric("gdpPerCapita", [
                MergeLayer("ECB", per_capita(ecb_gdp.data, self.settings.population) if ecb_gdp.data else None),
                MergeLayer("WorldBank", wb.get("gdpPerCapita")),
            ]),
            inflation=merge_metric("inflation", [
                MergeLayer("ECB", ecb_inflation.data),
                MergeLayer("WorldBank", wb.get("inflation")),
            ]),
            unemployment=merge_metric("unemployment", [
                MergeLayer("Eurostat", unemployment.data),
                MergeLayer("WorldBank", wb.get("unemployment")),
            ]),
            longTermRate=merge_metric("longTermRate", [
                MergeLayer("Eurostat", long_term.data),
                MergeLayer("WorldBank", wb.get("interestRate")),
            ]),
            realWageGrowth=real_wage_growth_by_country(history.get("wages"), history.get("cpi")),
            units=dict(MACRO_UNITS),
            errors=collect_errors(ecb_gdp, ecb_inflation, unemployment, long_term, worldbank, wages),
        )

    async def us_economics(self) -> USEconomicsView:
        result = await guarded("FRED", self.fred.fetch_all())
        keys = list(FREDProvider.SERIES.keys())
        series = result.data or {key: None for key in keys}
        return USEconomicsView(
            series=series,
            seriesIds=dict(FREDProvider.SERIES),
            errors=collect_errors(result),
        )

    async def yield_curves(self) -> YieldCurveView:
        result = await guarded("FRED", self.fred.fetch_all(list(YIELD_TENORS.values())))
        series = result.data or {}

        yields: Dict[str, Optional[float]] = {}
        for tenor, key in YIELD_TENORS.items():
            obs = series.get(key)
            yields[tenor] = obs.value if obs is not None else None

        return YieldCurveView(
            yields=yields,
            spreads=[
                term_spread("1Y-3M", yields["1Y"], yields["3M"]),
                term_spread("2s10s", yields["10Y"], yields["2Y"]),
                term_spread("2s30s", yields["30Y"], yields["2Y"]),
            ],
            errors=collect_errors(result),
        )

    async def quotes(self, symbols: List[str], source: str = "FMP") -> QuoteBoardView:
        requested = list(dict.fromkeys(s.strip() for s in symbols if s and s.strip()))
        result = await guarded(source, self.fmp.fetch_quotes(requested))
        return QuoteBoardView(
            quotes=result.data or {},
            requested=requested,
            errors=collect_errors(result),
        )

    async def indices(self) -> QuoteBoardView:
        return await self.quotes(INDEX_SYMBOLS)

    async def assets(self) -> QuoteBoardView:
        return await self.quotes(ASSET_SYMBOLS)

    async def fx(self) -> FXView:
        """USD-based FX board; USD/EUR from the ECB, the rest from quotes."""
        ecb_rate, quotes = await asyncio.gather(
            guarded("ECB EXR", self.ecb.fetch_exchange_rate()),
            guarded("FMP", self.fmp.fetch_quotes(list(FX_SYMBOLS.keys()))),
        )

        rates: List[FXRate] = []
        eur = ecb_rate.data
        rates.append(FXRate(
            pair="USD/EUR",
            base="USD",
            quote="EUR",
            value=eur.value if eur is not None else None,
            change=0.0 if eur is not None and eur.value is not None else None,
            source="ECB",
        ))

        rows = quotes.data or {}
        for ticker, (pair, base, quote, invert) in FX_SYMBOLS.items():
            row = rows.get(ticker)
            if row is None:
                rates.append(FXRate(pair=pair, base=base, quote=quote, source="FMP"))
                continue
            if invert:
                value, change = invert_quote(row.price, row.change)
            else:
                value, change = row.price, row.change
            rates.append(FXRate(pair=pair, base=base, quote=quote, value=value, change=change, source="FMP"))

        return FXView(rates=rates, errors=collect_errors(ecb_rate, quotes))
