import os
import sys
from functools import lru_cache
from typing import Annotated, Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


EUROZONE_COUNTRIES: List[str] = ["DE", "FR", "ES", "NL", "IT", "LT", "EE", "LV"]

# Rounded headcounts used for GDP per capita of the eurozone set
EUROZONE_POPULATION: Dict[str, int] = {
    "DE": 84_000_000,
    "FR": 68_000_000,
    "ES": 48_000_000,
    "NL": 18_000_000,
    "IT": 59_000_000,
    "LT": 2_900_000,
    "EE": 1_360_000,
    "LV": 1_850_000,
}


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    environment: str = Field(default="development", alias="NODE_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [],
        alias="ALLOWED_ORIGINS"
    )

    fred_api_key: str | None = Field(default=None, alias="FRED_API_KEY")
    fmp_api_key: str | None = Field(default=None, alias="FMP_API_KEY")

    ecb_base_url: str = Field(default="https://data-api.ecb.europa.eu", alias="ECB_BASE_URL")
    eurostat_base_url: str = Field(
        default="https://ec.europa.eu/eurostat/api/dissemination/statistics/1.0/data",
        alias="EUROSTAT_BASE_URL",
    )
    worldbank_base_url: str = Field(default="https://api.worldbank.org/v2", alias="WORLDBANK_BASE_URL")
    fred_base_url: str = Field(default="https://api.stlouisfed.org/fred", alias="FRED_BASE_URL")
    fmp_base_url: str = Field(default="https://financialmodelingprep.com/stable", alias="FMP_BASE_URL")

    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT")
    quote_batch_size: int = Field(
        default=8,
        alias="QUOTE_BATCH_SIZE",
        description="Symbols per quote chunk; chunks are requested one after another"
    )

    # Start periods for the regional sources
    ecb_gdp_start_period: str = Field(default="2015", alias="ECB_GDP_START_PERIOD")
    ecb_inflation_start_period: str = Field(default="2019-01", alias="ECB_INFLATION_START_PERIOD")
    ecb_fx_start_period: str = Field(default="2025-01-01", alias="ECB_FX_START_PERIOD")
    eurostat_start_period: str = Field(default="2019-01", alias="EUROSTAT_START_PERIOD")

    eurozone_countries: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(EUROZONE_COUNTRIES),
        alias="EUROZONE_COUNTRIES"
    )
    population: Dict[str, int] = Field(
        default_factory=lambda: dict(EUROZONE_POPULATION),
        alias="POPULATION"
    )

    # World Bank indicator codes
    wb_gdp_indicator: str = Field(default="NY.GDP.MKTP.CD", alias="WB_GDP_INDICATOR")
    wb_gdp_per_capita_indicator: str = Field(default="NY.GDP.PCAP.CD", alias="WB_GDP_PER_CAPITA_INDICATOR")
    wb_inflation_indicator: str = Field(default="FP.CPI.TOTL.ZG", alias="WB_INFLATION_INDICATOR")
    wb_unemployment_indicator: str = Field(default="SL.UEM.TOTL.ZS", alias="WB_UNEMPLOYMENT_INDICATOR")
    wb_interest_rate_indicator: str = Field(default="FR.INR.LEND", alias="WB_INTEREST_RATE_INDICATOR")
    wb_wage_indicator: str = Field(
        default="NY.GNP.PCAP.CN",
        alias="WB_WAGE_INDICATOR",
        description="Nominal income level (local currency) used as the wage series"
    )
    wb_cpi_level_indicator: str = Field(default="FP.CPI.TOTL", alias="WB_CPI_LEVEL_INDICATOR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,  # Treat empty strings as not set
    )

    @field_validator("allowed_origins", "eurozone_countries", mode="before")
    @classmethod
    def parse_list(cls, v):
        """Parse comma-separated strings (DE,FR or DE+FR) into lists."""
        if isinstance(v, str):
            return [item.strip() for item in v.replace("+", ",").split(",") if item.strip()]
        return v or []

    @field_validator("quote_batch_size")
    @classmethod
    def positive_batch(cls, v: int) -> int:
        if v < 1:
            raise ValueError("QUOTE_BATCH_SIZE must be at least 1")
        return v

    @property
    def dev_mode(self) -> bool:
        """Check if running in development/test mode."""
        in_test = "pytest" in sys.modules or os.getenv("TEST") == "true"
        in_dev = self.environment == "development"
        return in_test or in_dev


@lru_cache
def get_settings() -> Settings:
    return Settings()
