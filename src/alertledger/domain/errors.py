# src/alertledger/domain/errors.py
"""
Typed failures raised by the liquidity ledger.

Every ledger command validates before it mutates, so catching one of these
means the pool and the alert are exactly as they were before the call.
"""


class LedgerError(Exception):
    """Base class for all ledger command failures."""
    code = "LEDGER_ERROR"

    def __init__(self, message: str = "", **context) -> None:
        super().__init__(message or self.__class__.__name__)
        self.context = context

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.code


class InsufficientLiquidity(LedgerError):
    """The allocation would push the distributed capital above the pool."""
    code = "INSUFFICIENT_LIQUIDITY"


class OverSell(LedgerError):
    """Sale percentage exceeds the alert's remaining participation."""
    code = "OVER_SELL"


class InvalidRange(LedgerError, ValueError):
    """Malformed price range: non-positive bound or min >= max."""
    code = "INVALID_RANGE"


class UnknownSymbol(LedgerError, LookupError):
    """No open distribution exists for the symbol (or for that alert)."""
    code = "UNKNOWN_SYMBOL"


class AlreadyClosed(LedgerError):
    """Command issued against an alert that is no longer open."""
    code = "ALREADY_CLOSED"


class DistributionExists(LedgerError):
    """The symbol already holds an open allocation in this pool."""
    code = "DISTRIBUTION_EXISTS"


class InvalidPercentage(LedgerError, ValueError):
    code = "INVALID_PERCENTAGE"


class InvalidPrice(LedgerError, ValueError):
    code = "INVALID_PRICE"


class StaleAlert(LedgerError):
    """The alert's participation no longer matches what the distribution still holds."""
    code = "STALE_ALERT"
