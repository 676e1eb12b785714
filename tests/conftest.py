# tests/conftest.py
"""
Fixtures and test setup for the Pytest suite.
"""

import os
from datetime import datetime, timezone
from decimal import Decimal

import pytest

# Set test environment variables BEFORE any application code is imported.
os.environ["ENV"] = "test"
os.environ["API_KEY"] = "test_api_key"
os.environ["MARKET_TIMEZONE"] = "America/Argentina/Buenos_Aires"
os.environ["METRICS_ENABLED"] = "true"

from alertledger.application.services import (
    AllocationService,
    LiquidityService,
    PerformanceService,
    StatusService,
)
from alertledger.domain.entities import Alert, AlertAction, LiquidityPool, TradingSystem


@pytest.fixture
def now() -> datetime:
    """Noon in Buenos Aires (UTC-3) on a fixed trading day."""
    return datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger() -> LiquidityService:
    return LiquidityService()


@pytest.fixture
def allocation() -> AllocationService:
    return AllocationService()


@pytest.fixture
def performance() -> PerformanceService:
    return PerformanceService()


@pytest.fixture
def status_service() -> StatusService:
    return StatusService("America/Argentina/Buenos_Aires")


@pytest.fixture
def pool() -> LiquidityPool:
    """A TraderCall pool capitalized with 10,000."""
    return LiquidityPool(
        system=TradingSystem.TRADER_CALL,
        total_liquidity=Decimal("10000"),
        initial_liquidity=Decimal("10000"),
    )


def make_alert(alert_id: str = "A1", symbol: str = "AAPL", **kwargs) -> Alert:
    kwargs.setdefault("entry_price", Decimal("100"))
    kwargs.setdefault("action", AlertAction.BUY)
    return Alert(id=alert_id, symbol=symbol, **kwargs)


@pytest.fixture
def alert() -> Alert:
    return make_alert()
