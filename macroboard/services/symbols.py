"""
Ticker and country-code normalization.

The market-quote provider does not speak Yahoo-style tickers, and some
instruments are premium-only on our plan. ``SymbolNormalizer`` rewrites the
tickers the dashboard asks for into what the provider accepts, drops what it
cannot serve, and remembers the original ticker so rows can be keyed back.

All tables are immutable and injected at construction, so tests can run the
normalizer against alternate tables.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

# 'GBPUSD=X' -> 'GBPUSD'
_FX_PAIR = re.compile(r"^([A-Z]{6})=X$")
# 'CNY=X' -> 'USDCNY'
_FX_CURRENCY = re.compile(r"^([A-Z]{3})=X$")
# 'btc-usd' -> 'BTCUSD'
_CRYPTO = re.compile(r"^([A-Z]{2,5})-USD$", re.IGNORECASE)


@dataclass(frozen=True)
class SymbolTables:
    """Lookup tables driving ticker normalization."""

    substitutions: Mapping[str, str] = field(default_factory=dict)
    blocklist: FrozenSet[str] = frozenset()
    index_passthrough: FrozenSet[str] = frozenset()
    usd_commodities: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        # Freeze caller-supplied containers
        object.__setattr__(self, "substitutions", MappingProxyType(dict(self.substitutions)))
        object.__setattr__(self, "blocklist", frozenset(self.blocklist))
        object.__setattr__(self, "index_passthrough", frozenset(self.index_passthrough))
        object.__setattr__(self, "usd_commodities", frozenset(self.usd_commodities))


DEFAULT_SYMBOL_TABLES = SymbolTables(
    substitutions={
        "^NDX": "^RUT",
        "XAUUSD": "GCUSD",  # gold spot -> gold quote available on the plan
        "WTIUSD": "USO",  # WTI spot -> oil ETF
    },
    blocklist=frozenset({
        "GC=F", "CL=F", "^NDX", "000300.SS",
        "RUB=X", "USDRUB",
        "QQQ", "ASHR", "CLUSD",
    }),
    index_passthrough=frozenset({"^GSPC", "^DJI", "^STOXX50E", "^FTSE", "^N225", "^HSI", "^RUT"}),
    usd_commodities=frozenset({"WTIUSD", "BRENTUSD"}),
)


@dataclass(frozen=True)
class CountryCodeTable:
    """Fixed ISO-3 <-> ISO-2 table for the tracked country set."""

    iso3_to_iso2: Mapping[str, str]

    def __post_init__(self) -> None:
        table = {str(k).upper(): str(v).upper() for k, v in dict(self.iso3_to_iso2).items()}
        object.__setattr__(self, "iso3_to_iso2", MappingProxyType(table))
        object.__setattr__(
            self, "_iso2_to_iso3", MappingProxyType({v: k for k, v in table.items()})
        )

    def to_iso2(self, iso3: Optional[str]) -> Optional[str]:
        if not iso3:
            return None
        return self.iso3_to_iso2.get(str(iso3).upper())

    def to_iso3(self, iso2: Optional[str]) -> Optional[str]:
        if not iso2:
            return None
        return self._iso2_to_iso3.get(str(iso2).upper())

    def iso3_codes(self) -> List[str]:
        return list(self.iso3_to_iso2.keys())

    def __contains__(self, iso3: object) -> bool:
        return isinstance(iso3, str) and iso3.upper() in self.iso3_to_iso2


# Countries served by the World Bank layer
DEFAULT_COUNTRY_CODES = CountryCodeTable({
    "USA": "US",
    "CHN": "CN",
    "JPN": "JP",
    "RUS": "RU",
    "IND": "IN",
    "POL": "PL",
    "ARG": "AR",
    "BRA": "BR",
})


def map_fx_symbol(ticker: str) -> Optional[str]:
    """Yahoo FX ticker to a six-letter pair, or None if it is not one."""
    match = _FX_PAIR.match(ticker)
    if match:
        return match.group(1)
    match = _FX_CURRENCY.match(ticker)
    if match:
        return f"USD{match.group(1)}"
    return None


def map_crypto_symbol(ticker: str) -> Optional[str]:
    match = _CRYPTO.match(ticker)
    if match:
        return f"{match.group(1).upper()}USD"
    return None


@dataclass
class SymbolPlan:
    """Result of normalizing one batch of requested tickers.

    Attributes:
        original_to_canonical: requested ticker -> provider ticker (None when dropped)
        fx_pairs: provider tickers that came from an FX mapping
        universe: de-duplicated provider tickers to fetch, in request order
    """

    original_to_canonical: Dict[str, Optional[str]] = field(default_factory=dict)
    fx_pairs: FrozenSet[str] = frozenset()
    universe: List[str] = field(default_factory=list)

    def is_fx(self, canonical: str) -> bool:
        return canonical in self.fx_pairs


class SymbolNormalizer:
    """Rewrites requested tickers into provider tickers."""

    def __init__(self, tables: SymbolTables = DEFAULT_SYMBOL_TABLES):
        self.tables = tables

    def _blocked(self, ticker: str) -> bool:
        return ticker in self.tables.blocklist

    def classify(self, raw: str) -> tuple[Optional[str], bool]:
        """Return ``(canonical, is_fx)`` for one ticker; canonical is None when blocked."""
        ticker = self.tables.substitutions.get(raw, raw)
        if self._blocked(ticker):
            return None, False

        fx = map_fx_symbol(ticker)
        if fx:
            return (None, False) if self._blocked(fx) else (fx, True)

        crypto = map_crypto_symbol(ticker)
        if crypto:
            return (None, False) if self._blocked(crypto) else (crypto, False)

        if ticker in self.tables.index_passthrough:
            return ticker, False

        return (None, False) if self._blocked(ticker) else (ticker, False)

    def normalize(self, raw: str) -> Optional[str]:
        """
        Map one requested ticker to the provider ticker.

        Examples:
            GBPUSD=X -> GBPUSD, CNY=X -> USDCNY, BTC-USD -> BTCUSD,
            ^NDX -> ^RUT, RUB=X -> None
        """
        return self.classify(raw)[0]

    def normalize_many(self, symbols: Iterable[str]) -> SymbolPlan:
        mapping: Dict[str, Optional[str]] = {}
        fx_pairs = set()
        universe: List[str] = []
        seen = set()

        for raw in symbols:
            if not raw or raw in mapping:
                continue
            canonical, is_fx = self.classify(raw)
            mapping[raw] = canonical
            if canonical is None:
                logger.debug(f"Ticker {raw} is blocked for the quote provider")
                continue
            if is_fx:
                fx_pairs.add(canonical)
            if canonical.strip() and canonical not in seen:
                seen.add(canonical)
                universe.append(canonical)

        return SymbolPlan(
            original_to_canonical=mapping,
            fx_pairs=frozenset(fx_pairs),
            universe=universe,
        )

    def is_usd_commodity(self, canonical: str) -> bool:
        return canonical in self.tables.usd_commodities
