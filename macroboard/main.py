from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .exceptions import MacroboardError, get_error_response
from .models import (
    FXView,
    HealthResponse,
    MacroView,
    QuoteBoardView,
    USEconomicsView,
    YieldCurveView,
)
from .services.dashboard import DashboardService
from .services.http_pool import HTTPClientPool, close_http_pool
from .utils.logging_security import redact_url

settings: Settings = get_settings()

logger = logging.getLogger("macroboard")
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# Frontend dev servers, allowed in development when ALLOWED_ORIGINS is unset
DEV_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


@lru_cache
def get_dashboard_service() -> DashboardService:
    return DashboardService(settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # === STARTUP ===
    HTTPClientPool()
    logger.info("HTTP client pool ready")
    if not settings.fred_api_key:
        logger.warning("FRED_API_KEY not configured; US economics and yield curves may be empty")
    if not settings.fmp_api_key:
        logger.warning("FMP_API_KEY not configured; quote boards may be empty")

    yield  # Application runs here

    # === SHUTDOWN ===
    await close_http_pool()


app = FastAPI(title="macroboard API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins or (DEV_ORIGINS if settings.dev_mode else []),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log each request with an ID and duration; query strings are redacted."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"[{request_id}] {request.method} {redact_url(str(request.url))} "
        f"-> {response.status_code} ({duration_ms:.1f} ms)"
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(MacroboardError)
async def macroboard_error_handler(request: Request, exc: MacroboardError) -> JSONResponse:
    logger.error(f"Unhandled {exc.code}: {exc.message}")
    return JSONResponse(status_code=502, content=get_error_response(exc))


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    services = {
        "ecb": True,
        "eurostat": True,
        "worldbank": True,
        "fred": bool(settings.fred_api_key),
        "fmp": bool(settings.fmp_api_key),
    }

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.environment or "development",
        services=services,
        httpPool=HTTPClientPool.get_stats(),
    )


@app.get("/api/dashboard/macro", response_model=MacroView)
async def macro(service: DashboardService = Depends(get_dashboard_service)) -> MacroView:
    return await service.macro()


@app.get("/api/dashboard/us-economics", response_model=USEconomicsView)
async def us_economics(service: DashboardService = Depends(get_dashboard_service)) -> USEconomicsView:
    return await service.us_economics()


@app.get("/api/dashboard/yield-curves", response_model=YieldCurveView)
async def yield_curves(service: DashboardService = Depends(get_dashboard_service)) -> YieldCurveView:
    return await service.yield_curves()


@app.get("/api/dashboard/indices", response_model=QuoteBoardView)
async def indices(service: DashboardService = Depends(get_dashboard_service)) -> QuoteBoardView:
    return await service.indices()


@app.get("/api/dashboard/assets", response_model=QuoteBoardView)
async def assets(service: DashboardService = Depends(get_dashboard_service)) -> QuoteBoardView:
    return await service.assets()


@app.get("/api/dashboard/quotes", response_model=QuoteBoardView)
async def quotes(
    symbols: str = Query(..., description="Comma-separated tickers, e.g. ^GSPC,BTC-USD,GBPUSD=X"),
    service: DashboardService = Depends(get_dashboard_service),
) -> QuoteBoardView:
    requested = [s.strip() for s in symbols.split(",") if s.strip()]
    if not requested:
        raise HTTPException(status_code=400, detail="At least one symbol is required")
    return await service.quotes(requested)


@app.get("/api/dashboard/fx", response_model=FXView)
async def fx(service: DashboardService = Depends(get_dashboard_service)) -> FXView:
    return await service.fx()


@app.get("/")
async def root():
    return {"status": "ok"}
