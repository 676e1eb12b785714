# src/alertledger/boot.py

import logging
from typing import Any, Dict, Mapping, Optional
from decimal import Decimal

from alertledger.config import settings
from alertledger.application.services import (
    AllocationService,
    LiquidityService,
    PerformanceService,
    StatusService,
)
from alertledger.domain.entities import TradingSystem
from alertledger.infrastructure.ledger_registry import LedgerRegistry

log = logging.getLogger(__name__)


def build_services(initial_liquidity: Optional[Mapping[TradingSystem, Decimal]] = None) -> Dict[str, Any]:
    """Build and wire all application services."""
    log.info("Building application services...")
    services: Dict[str, Any] = {}

    try:
        services["ledger_registry"] = LedgerRegistry(initial_liquidity)
        services["liquidity_service"] = LiquidityService(
            percent_epsilon=settings.PERCENT_EPSILON,
            full_liquidation_epsilon=settings.FULL_LIQUIDATION_EPSILON,
        )
        services["allocation_service"] = AllocationService()
        services["performance_service"] = PerformanceService()
        services["status_service"] = StatusService(settings.MARKET_TIMEZONE)

        log.info("All services built and wired successfully.")
        return services

    except Exception as e:
        log.critical(f"Service building failed: {e}", exc_info=True)
        raise
