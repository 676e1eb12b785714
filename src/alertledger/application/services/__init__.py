# src/alertledger/application/services/__init__.py

from .status_service import StatusService, resolve_status
from .liquidity_service import LiquidityService
from .allocation_service import AllocationService, Segment
from .performance_service import PerformanceService

__all__ = [
    "StatusService",
    "resolve_status",
    "LiquidityService",
    "AllocationService",
    "Segment",
    "PerformanceService",
]
