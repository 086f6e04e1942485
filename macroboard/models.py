from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

PeriodLabel = Union[str, int]


class Observation(BaseModel):
    """A single dated value for one country, series or instrument.

    ``source`` names the provider that produced the entry. It is carried for
    display only and plays no part in merge precedence.
    """

    model_config = ConfigDict(frozen=True)

    period: Optional[PeriodLabel] = None
    value: Optional[float] = None
    source: Optional[str] = None


# Country code -> latest observation for one metric
CountryMetricMap = Dict[str, Observation]

# Country code -> ascending, null-free observation history
CountrySeriesMap = Dict[str, List[Observation]]


class InstrumentQuote(BaseModel):
    symbol: str
    displayName: Optional[str] = None
    price: float = 0.0
    change: float = 0.0
    changePercent: float = 0.0
    currency: Optional[str] = None
    exchange: Optional[str] = None


class SourceResult(BaseModel):
    """Outcome of one logical data source within a single request.

    ``error`` is only set for transport-level failures. A source that
    answered with an undecodable body has ``data=None`` and no error.
    """

    source: str
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FXRate(BaseModel):
    pair: str
    base: str
    quote: str
    value: Optional[float] = None
    change: Optional[float] = None
    source: Optional[str] = None


class TermSpread(BaseModel):
    name: str
    value: Optional[float] = None
    shape: Optional[str] = None
    tone: Optional[str] = None
    description: Optional[str] = None


class MacroView(BaseModel):
    gdp: CountryMetricMap = Field(default_factory=dict)
    gdpPerCapita: CountryMetricMap = Field(default_factory=dict)
    inflation: CountryMetricMap = Field(default_factory=dict)
    unemployment: CountryMetricMap = Field(default_factory=dict)
    longTermRate: CountryMetricMap = Field(default_factory=dict)
    realWageGrowth: CountryMetricMap = Field(default_factory=dict)
    units: Dict[str, str] = Field(default_factory=dict)
    errors: Dict[str, str] = Field(default_factory=dict)


class USEconomicsView(BaseModel):
    series: Dict[str, Optional[Observation]] = Field(default_factory=dict)
    seriesIds: Dict[str, str] = Field(default_factory=dict)
    errors: Dict[str, str] = Field(default_factory=dict)


class YieldCurveView(BaseModel):
    yields: Dict[str, Optional[float]] = Field(default_factory=dict)
    spreads: List[TermSpread] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)


class QuoteBoardView(BaseModel):
    quotes: Dict[str, InstrumentQuote] = Field(default_factory=dict)
    requested: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)


class FXView(BaseModel):
    rates: List[FXRate] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    environment: str
    timestamp: str
    services: Dict[str, bool]
    httpPool: Dict[str, Any] = Field(default_factory=dict)
