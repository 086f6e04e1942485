"""Financial Modeling Prep quote provider ("stable" API).

Quotes are requested one symbol per call. A batch is split into fixed-size
chunks that are awaited one after another; symbols inside a chunk are
requested concurrently. A symbol that fails for any reason is logged and
left out of the result.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..config import get_settings
from ..exceptions import ConfigurationError, DataProviderError
from ..models import InstrumentQuote
from ..services.http_pool import get_http_client
from ..services.symbols import SymbolNormalizer, SymbolPlan
from ..utils.serialization import to_float
from .base import BaseProvider

logger = logging.getLogger(__name__)


def extract_quote_row(payload: Any) -> Optional[Dict[str, Any]]:
    """The quote endpoint answers with one object or a one-element array."""
    row = payload[0] if isinstance(payload, list) and payload else payload
    return row if isinstance(row, dict) else None


def parse_change_pct(
    raw: Any,
    prev: Optional[float] = None,
    change: Optional[float] = None,
) -> float:
    """``changesPercentage`` as a float, derived from change/prev when absent."""
    if isinstance(raw, str):
        parsed = to_float(raw.strip().rstrip("%"))
        if parsed is not None:
            return parsed
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        parsed = to_float(raw)
        if parsed is not None:
            return parsed
    if prev and change is not None:
        return change / prev * 100
    return 0.0


def build_quote(
    original: str,
    canonical: str,
    row: Dict[str, Any],
    *,
    is_fx: bool = False,
    usd_commodity: bool = False,
) -> InstrumentQuote:
    """Normalize one provider row into an ``InstrumentQuote`` keyed by the requested ticker."""
    raw_price = to_float(row.get("price"))
    raw_change = to_float(row.get("change"))
    price = raw_price if raw_price is not None else 0.0

    prev = to_float(row.get("previousClose"))
    if prev is None and raw_price is not None and raw_change is not None:
        prev = raw_price - raw_change

    if raw_change is not None:
        change = raw_change
    elif prev is not None:
        change = price - prev
    else:
        change = 0.0

    if is_fx:
        currency = canonical[3:]
    else:
        currency = row.get("currency") or ("USD" if usd_commodity else None)

    return InstrumentQuote(
        symbol=original,
        displayName=row.get("name") or canonical,
        price=price,
        change=change,
        changePercent=parse_change_pct(row.get("changesPercentage"), prev, change),
        currency=currency,
        exchange=row.get("exchange"),
    )


class FMPProvider(BaseProvider):
    """Quote provider for indices, FX, crypto and commodity ETFs."""

    # Single attempt per symbol; a failing symbol is simply dropped
    MAX_RETRIES = 1

    @property
    def provider_name(self) -> str:
        return "FMP"

    def __init__(
        self,
        api_key: Optional[str] = None,
        normalizer: Optional[SymbolNormalizer] = None,
        base_url: Optional[str] = None,
        batch_size: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        super().__init__(timeout=timeout or settings.http_timeout)
        self.api_key = api_key if api_key is not None else settings.fmp_api_key
        self.base_url = (base_url or settings.fmp_base_url).rstrip("/")
        self.batch_size = batch_size if batch_size is not None else settings.quote_batch_size
        if self.batch_size < 1:
            raise ConfigurationError(f"Quote batch size must be at least 1, got {self.batch_size}")
        self.normalizer = normalizer or SymbolNormalizer()
        if not self.api_key:
            logger.warning("FMP_API_KEY is not set; requests rely on a key-injecting proxy")

    async def _fetch_data(self, **params) -> Any:
        query = {"symbol": params["symbol"]}
        if self.api_key:
            query["apikey"] = self.api_key

        client = get_http_client()
        response = await self._get_with_retry(client, f"{self.base_url}/quote", params=query)
        return self._parse_json_safe(response)

    async def fetch_quote(self, symbol: str) -> Optional[Dict[str, Any]]:
        """Raw quote row for one provider ticker, or None if unavailable."""
        try:
            payload = await self._fetch_data(symbol=symbol)
        except DataProviderError as e:
            logger.warning(f"FMP quote for {symbol} skipped: {e.message}")
            return None
        row = extract_quote_row(payload)
        if row is None:
            logger.debug(f"FMP returned no quote row for {symbol}")
        return row

    async def fetch_quote_batch(self, symbols: List[str]) -> List[Dict[str, Any]]:
        """Fetch raw rows chunk by chunk; failed symbols are omitted."""
        rows: List[Dict[str, Any]] = []
        for start in range(0, len(symbols), self.batch_size):
            chunk = symbols[start:start + self.batch_size]
            results = await asyncio.gather(*(self.fetch_quote(symbol) for symbol in chunk))
            rows.extend(row for row in results if row)
        return rows

    async def fetch_quotes(self, symbols: List[str]) -> Dict[str, InstrumentQuote]:
        """
        Quotes keyed by the requested tickers.

        Requested tickers are normalized first; blocked tickers and tickers
        without an upstream row are absent from the result.
        """
        requested = list(dict.fromkeys(s for s in symbols if s))
        plan: SymbolPlan = self.normalizer.normalize_many(requested)
        if not plan.universe:
            return {}

        rows = await self.fetch_quote_batch(plan.universe)
        by_symbol = {str(row.get("symbol") or "").upper(): row for row in rows}

        out: Dict[str, InstrumentQuote] = {}
        for original in requested:
            canonical = plan.original_to_canonical.get(original)
            if not canonical:
                continue
            row = by_symbol.get(canonical.upper())
            if row is None:
                continue
            out[original] = build_quote(
                original,
                canonical,
                row,
                is_fx=plan.is_fx(canonical),
                usd_commodity=self.normalizer.is_usd_commodity(canonical),
            )

        logger.info(f"FMP quotes: {len(out)}/{len(requested)} requested tickers resolved")
        return out
