# src/alertledger/domain/__init__.py
"""
Domain layer: value objects, entities and typed ledger errors. Nothing in here
performs I/O or reads the wall clock except through an explicit `now`.
"""

from .errors import (
    LedgerError,
    InsufficientLiquidity,
    OverSell,
    InvalidRange,
    UnknownSymbol,
    AlreadyClosed,
    DistributionExists,
    InvalidPercentage,
    InvalidPrice,
    StaleAlert,
)
from .value_objects import PriceRange, Symbol, to_decimal
from .entities import (
    Alert,
    AlertAction,
    AlertStatus,
    ClosedSummary,
    DisplayStatus,
    Distribution,
    LiquidityPool,
    Operation,
    OperationStatus,
    OperationType,
    PartialSale,
    PartialSaleResult,
    RangeBreak,
    TradingSystem,
)

__all__ = [
    "LedgerError",
    "InsufficientLiquidity",
    "OverSell",
    "InvalidRange",
    "UnknownSymbol",
    "AlreadyClosed",
    "DistributionExists",
    "InvalidPercentage",
    "InvalidPrice",
    "StaleAlert",
    "PriceRange",
    "Symbol",
    "to_decimal",
    "Alert",
    "AlertAction",
    "AlertStatus",
    "ClosedSummary",
    "DisplayStatus",
    "Distribution",
    "LiquidityPool",
    "Operation",
    "OperationStatus",
    "OperationType",
    "PartialSale",
    "PartialSaleResult",
    "RangeBreak",
    "TradingSystem",
]
