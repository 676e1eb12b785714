# src/alertledger/interfaces/api/schemas.py
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_str(v: Any) -> str | None:
    if v is None: return None
    if hasattr(v, "value"): return str(v.value)
    return str(v)


def _to_float(v: Any) -> float | None:
    if v is None: return None
    return float(v)


# --- Requests ---

class CapitalizeIn(BaseModel):
    initial_liquidity: Decimal


class AllocateIn(BaseModel):
    """Either a full alert document or the bare allocation fields."""
    percentage: Decimal
    alert: Optional[Dict[str, Any]] = None
    alert_id: Optional[str] = None
    symbol: Optional[str] = None
    entry_price: Optional[Decimal] = None
    action: Literal["BUY", "SELL"] = "BUY"


class PricesIn(BaseModel):
    prices: Dict[str, Decimal]


class PriceRangeIn(BaseModel):
    min: Decimal
    max: Decimal


class PartialSellIn(BaseModel):
    alert: Dict[str, Any]
    percentage: Decimal = Field(description="Share of the ORIGINAL position to sell, 0-100")
    price_range: PriceRangeIn
    email_image_url: Optional[str] = None


class CloseIn(BaseModel):
    alert: Dict[str, Any]
    final_price: Decimal
    reason: str = "MANUAL"


class OperationsStatusIn(BaseModel):
    operations: List[Dict[str, Any]]
    now: Optional[datetime] = None


# --- Responses ---

class DistributionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    alert_id: str
    symbol: str
    action: str
    allocated_amount: float
    shares: float
    sold_shares: float
    entry_price: float
    current_price: float
    profit_loss: float
    profit_loss_percentage: float
    realized_profit_loss: float
    percentage: float
    participation_percentage: float

    @field_validator("action", mode="before")
    def _v_action(cls, v): return _to_str(v) or ""
    @field_validator(
        "allocated_amount", "shares", "sold_shares", "entry_price", "current_price",
        "profit_loss", "profit_loss_percentage", "realized_profit_loss", "percentage",
        "participation_percentage",
        mode="before",
    )
    def _v_num(cls, v): return _to_float(v)


class AlertStateOut(BaseModel):
    """The alert fields a ledger command may have changed; callers persist them."""
    model_config = ConfigDict(from_attributes=True)
    id: str
    symbol: str
    status: str
    participation_percentage: float
    realized_profit_loss: float
    exit_price: float | None = None
    exit_reason: str | None = None
    closed_at: datetime | None = None

    @field_validator("status", mode="before")
    def _v_status(cls, v): return _to_str(v) or ""
    @field_validator("participation_percentage", "realized_profit_loss", "exit_price", mode="before")
    def _v_num(cls, v): return _to_float(v)


class ClosedSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    alert_id: str
    symbol: str
    released_liquidity: float
    realized_profit: float
    total_realized_profit_loss: float
    final_price: float
    reason: str
    closed_at: datetime

    @field_validator(
        "released_liquidity", "realized_profit", "total_realized_profit_loss", "final_price", mode="before"
    )
    def _v_num(cls, v): return _to_float(v)


class PartialSellOut(BaseModel):
    released_liquidity: float
    realized_profit: float
    new_participation_percentage: float
    sell_price: float
    closed: ClosedSummaryOut | None = None
    alert: AlertStateOut


class CloseOut(BaseModel):
    summary: ClosedSummaryOut
    alert: AlertStateOut


class SegmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    symbol: str
    alert_id: str | None = None
    allocated_amount: float
    size_percent: float
    start_angle: float
    end_angle: float
    center_angle: float
    color: str
    dark_color: str

    @field_validator(
        "allocated_amount", "size_percent", "start_angle", "end_angle", "center_angle", mode="before"
    )
    def _v_num(cls, v): return _to_float(v)


class OperationStatusOut(BaseModel):
    id: str
    ticker: str
    status: str
