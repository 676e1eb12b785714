# src/alertledger/domain/entities.py
"""
Defines the core business entities of the system. This is the heart of the domain layer.

Records arrive from the document store as loose dicts (camelCase keys, optional
fields everywhere). `Alert.from_record` and `Operation.from_record` turn them into
closed dataclasses with explicit Optional fields and documented fallbacks; the
services below never look at raw dicts.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .value_objects import HUNDRED, ZERO, PriceRange, normalize_symbol, to_decimal


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: Any) -> Optional[datetime]:
    """Accepts datetimes and ISO-8601 strings; anything else becomes None."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None
    return None


def _pick(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present (non-None) value among camelCase/snake_case aliases."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


# --- ENUMERATIONS ---

class AlertStatus(str, Enum):
    """Lifecycle states of an alert as stored."""
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    STOPPED = "STOPPED"
    DESCARTADA = "DESCARTADA"

    @classmethod
    def parse(cls, value: Any) -> Optional["AlertStatus"]:
        if isinstance(value, AlertStatus):
            return value
        raw = str(value or "").strip().upper()
        if raw == "DESESTIMADA":
            # legacy spelling used by older documents
            return cls.DESCARTADA
        try:
            return cls(raw)
        except ValueError:
            return None


class AlertAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    @property
    def direction(self) -> int:
        """+1 for long exposure, -1 for short exposure."""
        return 1 if self is AlertAction.BUY else -1


class TradingSystem(str, Enum):
    """Each system owns an independent liquidity pool."""
    TRADER_CALL = "TraderCall"
    SMART_MONEY = "SmartMoney"

    @classmethod
    def parse(cls, value: Any) -> "TradingSystem":
        if isinstance(value, TradingSystem):
            return value
        raw = str(value or "").strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value.lower() == raw:
                return member
        raise ValueError(f"Unknown trading system: {value!r}")


class OperationType(str, Enum):
    COMPRA = "COMPRA"
    VENTA = "VENTA"


class OperationStatus(str, Enum):
    """Manual override set by an operator on an operation."""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PENDING = "PENDING"

    @classmethod
    def parse(cls, value: Any) -> Optional["OperationStatus"]:
        if isinstance(value, OperationStatus):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return None


class DisplayStatus(str, Enum):
    """Labels shown to subscribers."""
    EJECUTADA = "Ejecutada"
    RECHAZADA = "Rechazada"
    A_CONFIRMAR = "A confirmar"
    COMPLETADO = "Completado"
    CANCELADO = "Cancelado"
    PENDIENTE = "Pendiente"
    DESESTIMADA = "Desestimada"


# --- ENTITIES ---

@dataclass
class PartialSale:
    """One liquidation tranche. `percentage` is relative to the original 100% position."""
    percentage: Decimal
    price_range: PriceRange
    executed: bool = False
    executed_at: Optional[datetime] = None
    email_image_url: Optional[str] = None
    sell_price: Optional[Decimal] = None
    released_liquidity: Decimal = ZERO
    realized_profit: Decimal = ZERO


@dataclass
class RangeBreak:
    is_broken: bool
    reason: Optional[str] = None


@dataclass
class Alert:
    """
    A single trading call. Owns its participation bookkeeping; the liquidity
    ledger mutates it only through partial sales and closes.
    """
    id: str
    symbol: str
    action: AlertAction = AlertAction.BUY
    status: AlertStatus = AlertStatus.ACTIVE
    system: TradingSystem = TradingSystem.TRADER_CALL

    entry_price: Optional[Decimal] = None
    entry_price_range: Optional[PriceRange] = None
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    current_price: Optional[Decimal] = None
    final_price: Optional[Decimal] = None

    date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    final_price_set_at: Optional[datetime] = None
    descartada_at: Optional[datetime] = None
    descartada_reason: Optional[str] = None
    descartada_price: Optional[Decimal] = None

    available_for_purchase: bool = True
    participation_percentage: Decimal = HUNDRED
    partial_sales: List[PartialSale] = field(default_factory=list)

    exit_price: Optional[Decimal] = None
    exit_reason: Optional[str] = None
    closed_at: Optional[datetime] = None
    realized_profit_loss: Decimal = ZERO

    def __post_init__(self) -> None:
        self.symbol = normalize_symbol(self.symbol) if self.symbol else ""
        self.participation_percentage = to_decimal(self.participation_percentage, HUNDRED)

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE

    @property
    def reference_date(self) -> Optional[datetime]:
        """The alert's `date`, falling back to `created_at`."""
        return self.date or self.created_at

    def reference_entry_price(self) -> Optional[Decimal]:
        """Confirmed entry price, else the top of the entry range."""
        if self.entry_price is not None and self.entry_price > 0:
            return self.entry_price
        if self.entry_price_range is not None:
            return self.entry_price_range.max
        return None

    def profit_percentage(self, price: Any) -> Decimal:
        """Unrealized move from entry to `price`, signed by the alert's direction."""
        entry = self.reference_entry_price()
        p = to_decimal(price, None)
        if entry is None or entry == 0 or p is None:
            return ZERO
        return (p - entry) / entry * HUNDRED * self.action.direction

    def set_final_price(self, price: Any, now: Optional[datetime] = None) -> Decimal:
        """Confirms the day's entry range to a single fixed price."""
        p = to_decimal(price, None)
        if p is None or p <= 0:
            raise ValueError(f"Final price must be positive (got {price!r}).")
        self.final_price = p
        self.entry_price = p
        self.final_price_set_at = now or utcnow()
        return p

    def check_range_break(self, price: Any) -> RangeBreak:
        """Reports whether an ACTIVE range alert's price left its entry band."""
        if not self.is_active or self.entry_price_range is None:
            return RangeBreak(False)
        p = to_decimal(price, None)
        if p is None:
            return RangeBreak(False)
        rng = self.entry_price_range
        if rng.contains(p):
            return RangeBreak(False)
        if p < rng.min:
            return RangeBreak(True, f"Price {p} below range minimum {rng.min}")
        return RangeBreak(True, f"Price {p} above range maximum {rng.max}")

    def discard(self, reason: str, price: Any = None, now: Optional[datetime] = None) -> None:
        """
        Moves the alert to DESCARTADA (out of range / no longer valid).
        This method is idempotent.
        """
        if self.status == AlertStatus.DESCARTADA:
            return
        self.status = AlertStatus.DESCARTADA
        self.descartada_at = now or utcnow()
        self.descartada_reason = reason
        self.descartada_price = to_decimal(price, None)
        self.available_for_purchase = False

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Alert":
        """Builds an Alert from a stored document, tolerating missing fields."""
        action = str(_pick(record, "action", default="BUY")).upper()
        system = _pick(record, "tipo", "system", default=TradingSystem.TRADER_CALL.value)
        try:
            trading_system = TradingSystem.parse(system)
        except ValueError:
            trading_system = TradingSystem.TRADER_CALL
        sales = []
        for raw in _pick(record, "partialSales", "partial_sales", default=[]) or []:
            rng = PriceRange.parse(_pick(raw, "priceRange", "price_range"))
            pct = to_decimal(_pick(raw, "percentage"), None)
            if rng is None or pct is None:
                continue
            sales.append(PartialSale(
                percentage=pct,
                price_range=rng,
                executed=bool(_pick(raw, "executed", default=False)),
                executed_at=parse_instant(_pick(raw, "executedAt", "executed_at")),
                email_image_url=_pick(raw, "emailImageUrl", "email_image_url"),
                sell_price=to_decimal(_pick(raw, "sellPrice", "sell_price"), None),
                released_liquidity=to_decimal(_pick(raw, "liquidityReleased", "released_liquidity")),
                realized_profit=to_decimal(_pick(raw, "realizedProfit", "realized_profit")),
            ))
        return cls(
            id=str(_pick(record, "_id", "id", default="")),
            symbol=str(_pick(record, "symbol", default="")),
            action=AlertAction.SELL if action == "SELL" else AlertAction.BUY,
            status=AlertStatus.parse(_pick(record, "status")) or AlertStatus.ACTIVE,
            system=trading_system,
            entry_price=to_decimal(_pick(record, "entryPrice", "entry_price"), None),
            entry_price_range=PriceRange.parse(_pick(record, "entryPriceRange", "entry_price_range")),
            stop_loss=to_decimal(_pick(record, "stopLoss", "stop_loss"), None),
            take_profit=to_decimal(_pick(record, "takeProfit", "take_profit"), None),
            current_price=to_decimal(_pick(record, "currentPrice", "current_price"), None),
            final_price=to_decimal(_pick(record, "finalPrice", "final_price"), None),
            date=parse_instant(_pick(record, "date")),
            created_at=parse_instant(_pick(record, "createdAt", "created_at")),
            final_price_set_at=parse_instant(_pick(record, "finalPriceSetAt", "final_price_set_at")),
            descartada_at=parse_instant(_pick(record, "descartadaAt", "descartada_at")),
            descartada_reason=_pick(record, "descartadaMotivo", "descartada_reason"),
            descartada_price=to_decimal(_pick(record, "descartadaPrecio", "descartada_price"), None),
            available_for_purchase=bool(_pick(record, "availableForPurchase", "available_for_purchase", default=True)),
            participation_percentage=to_decimal(
                _pick(record, "participationPercentage", "participation_percentage"), HUNDRED
            ),
            partial_sales=sales,
            exit_price=to_decimal(_pick(record, "exitPrice", "exit_price"), None),
            exit_reason=_pick(record, "exitReason", "exit_reason"),
            closed_at=parse_instant(_pick(record, "closedAt", "closed_at")),
            realized_profit_loss=to_decimal(_pick(record, "realizedProfitLoss", "realized_profit_loss")),
        )


@dataclass
class Operation:
    """
    A recorded trade event, optionally linked to an Alert. The Operation does
    not own the Alert; `alert` is a weak, already-loaded reference.
    """
    id: str
    ticker: str
    operation_type: OperationType = OperationType.COMPRA
    price: Optional[Decimal] = None
    price_range: Optional[PriceRange] = None
    is_price_confirmed: Optional[bool] = False
    status: Optional[OperationStatus] = None
    portfolio_percentage: Optional[Decimal] = None
    partial_sale_percentage: Optional[Decimal] = None
    alert: Optional[Alert] = None
    date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    notes: str = ""

    system: TradingSystem = TradingSystem.TRADER_CALL
    is_partial_sale: bool = False
    quantity: Optional[Decimal] = None
    amount: Optional[Decimal] = None

    @property
    def has_unconfirmed_range(self) -> bool:
        return self.price_range is not None and self.is_price_confirmed is not True

    @property
    def effective_price(self) -> Optional[Decimal]:
        """The authoritative price: the range midpoint while unconfirmed."""
        if self.has_unconfirmed_range:
            return self.price_range.midpoint
        return self.price

    @classmethod
    def from_record(cls, record: Mapping[str, Any], alert: Optional[Alert] = None) -> "Operation":
        """Builds an Operation from a stored document.

        A populated `alertId` sub-document is loaded as the linked Alert unless
        an Alert is passed explicitly.
        """
        linked = alert
        raw_alert = _pick(record, "alertId", "alert")
        if linked is None and isinstance(raw_alert, Mapping):
            linked = Alert.from_record(raw_alert)
        op_type = str(_pick(record, "operationType", "operation_type", default="COMPRA")).upper()
        confirmed = _pick(record, "isPriceConfirmed", "is_price_confirmed")
        try:
            system = TradingSystem.parse(_pick(record, "system", default=TradingSystem.TRADER_CALL.value))
        except ValueError:
            system = TradingSystem.TRADER_CALL
        return cls(
            id=str(_pick(record, "_id", "id", default="")),
            ticker=str(_pick(record, "ticker", "alertSymbol", default="")).upper(),
            operation_type=OperationType.VENTA if op_type == "VENTA" else OperationType.COMPRA,
            price=to_decimal(_pick(record, "price"), None),
            price_range=PriceRange.parse(_pick(record, "priceRange", "price_range")),
            is_price_confirmed=confirmed if isinstance(confirmed, bool) else None,
            status=OperationStatus.parse(_pick(record, "status")),
            portfolio_percentage=to_decimal(_pick(record, "portfolioPercentage", "portfolio_percentage"), None),
            partial_sale_percentage=to_decimal(
                _pick(record, "partialSalePercentage", "partial_sale_percentage"), None
            ),
            alert=linked,
            date=parse_instant(_pick(record, "date")),
            created_at=parse_instant(_pick(record, "createdAt", "created_at")),
            notes=str(_pick(record, "notes", default="")),
            system=system,
            is_partial_sale=bool(_pick(record, "isPartialSale", "is_partial_sale", default=False)),
            quantity=to_decimal(_pick(record, "quantity"), None),
            amount=to_decimal(_pick(record, "amount"), None),
        )


@dataclass
class Distribution:
    """
    One symbol's allocated capital, shares and running P&L within a pool.

    `participation_percentage` is the share of the original position still
    held. It is the ledger's own record and is authoritative over whatever
    the alert document says.
    """
    alert_id: str
    symbol: str
    allocated_amount: Decimal
    shares: Decimal
    entry_price: Decimal
    current_price: Decimal
    profit_loss: Decimal = ZERO
    profit_loss_percentage: Decimal = ZERO
    realized_profit_loss: Decimal = ZERO

    percentage: Decimal = ZERO
    participation_percentage: Decimal = HUNDRED
    action: AlertAction = AlertAction.BUY
    sold_shares: Decimal = ZERO
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ClosedSummary:
    """What a fully liquidated distribution leaves behind in the pool history."""
    alert_id: str
    symbol: str
    released_liquidity: Decimal
    realized_profit: Decimal
    total_realized_profit_loss: Decimal
    final_price: Decimal
    reason: str
    closed_at: datetime


@dataclass
class PartialSaleResult:
    released_liquidity: Decimal
    realized_profit: Decimal
    new_participation_percentage: Decimal
    sell_price: Decimal
    closed: Optional[ClosedSummary] = None


@dataclass
class LiquidityPool:
    """
    The shared capital base of one trading system. Distributions are keyed by
    symbol and kept in insertion order.
    """
    system: TradingSystem
    total_liquidity: Decimal = ZERO
    initial_liquidity: Decimal = ZERO
    distributions: Dict[str, Distribution] = field(default_factory=dict)
    history: List[ClosedSummary] = field(default_factory=list)
    version: int = 0

    @property
    def distributed_liquidity(self) -> Decimal:
        return sum((d.allocated_amount for d in self.distributions.values()), ZERO)

    @property
    def available_liquidity(self) -> Decimal:
        return self.total_liquidity - self.distributed_liquidity

    def get(self, symbol: str) -> Optional[Distribution]:
        return self.distributions.get(normalize_symbol(symbol))

    def find_by_alert(self, alert_id: str) -> Optional[Distribution]:
        for dist in self.distributions.values():
            if dist.alert_id == alert_id:
                return dist
        return None
