# src/alertledger/interfaces/api/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from alertledger.config import settings
from alertledger.boot import build_services
from alertledger.logging_conf import setup_logging
from alertledger.domain.errors import (
    AlreadyClosed,
    DistributionExists,
    InsufficientLiquidity,
    LedgerError,
    OverSell,
    StaleAlert,
    UnknownSymbol,
)
from alertledger.interfaces.api.routers import liquidity as liquidity_router
from alertledger.interfaces.api.routers import operations as operations_router
from alertledger.interfaces.api.metrics import LATENCY, LEDGER_FAILURES, REQUESTS, router as metrics_router

setup_logging()
log = logging.getLogger(__name__)

_HTTP_STATUS = {
    InsufficientLiquidity: 409,
    OverSell: 409,
    DistributionExists: 409,
    AlreadyClosed: 409,
    StaleAlert: 409,
    UnknownSymbol: 404,
}

# --- FastAPI App ---
app = FastAPI(title="Alert Ledger API", version="1.0.0")
app.state.services = build_services()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def count_requests(request: Request, call_next):
    if not settings.METRICS_ENABLED:
        return await call_next(request)
    REQUESTS.inc()
    started = time.perf_counter()
    try:
        return await call_next(request)
    finally:
        LATENCY.observe(time.perf_counter() - started)


def _command_name(request: Request) -> str:
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, "__name__", "unknown")


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = next((code for cls, code in _HTTP_STATUS.items() if isinstance(exc, cls)), 422)
    command = _command_name(request)
    LEDGER_FAILURES.labels(command=command, code=exc.code).inc()
    log.warning(f"Ledger command '{command}' rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    log.warning(f"Invalid input for '{_command_name(request)}': {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc), "code": "INVALID_INPUT"})


@app.get("/")
def root(): return {"message": "Alert Ledger API Running"}


@app.get("/health")
def health_check(): return {"status": "ok"}


app.include_router(liquidity_router.router)
app.include_router(operations_router.router)
app.include_router(metrics_router)
