# src/alertledger/interfaces/api/deps.py

from __future__ import annotations
from fastapi import Header, HTTPException, Request

from alertledger.config import settings
from alertledger.domain.entities import TradingSystem
from alertledger.application.services import (
    AllocationService,
    LiquidityService,
    PerformanceService,
    StatusService,
)
from alertledger.infrastructure.ledger_registry import LedgerRegistry


def _service(request: Request, name: str, label: str):
    services = request.app.state.services or {}
    service = services.get(name)
    if not service:
        raise HTTPException(status_code=503, detail=f"{label} is currently unavailable.")
    return service


# --- Service Dependencies ---

def get_registry(request: Request) -> LedgerRegistry:
    return _service(request, "ledger_registry", "Ledger registry")


def get_liquidity_service(request: Request) -> LiquidityService:
    return _service(request, "liquidity_service", "Liquidity service")


def get_allocation_service(request: Request) -> AllocationService:
    return _service(request, "allocation_service", "Allocation service")


def get_performance_service(request: Request) -> PerformanceService:
    return _service(request, "performance_service", "Performance service")


def get_status_service(request: Request) -> StatusService:
    return _service(request, "status_service", "Status service")


# --- Path Parameters ---

def get_system(system: str) -> TradingSystem:
    """Resolves the `{system}` path segment (TraderCall / SmartMoney, case-insensitive)."""
    try:
        return TradingSystem.parse(system)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown trading system '{system}'")


# --- API Key Dependency ---

def require_api_key(x_api_key: str | None = Header(default=None)):
    if settings.API_KEY and x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return True
