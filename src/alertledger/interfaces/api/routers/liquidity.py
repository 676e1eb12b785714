# src/alertledger/interfaces/api/routers/liquidity.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from alertledger.application.services import (
    AllocationService,
    LiquidityService,
    PerformanceService,
)
from alertledger.domain.entities import Alert, AlertAction, TradingSystem
from alertledger.infrastructure.ledger_registry import LedgerRegistry
from alertledger.interfaces.api.deps import (
    get_allocation_service,
    get_liquidity_service,
    get_performance_service,
    get_registry,
    get_system,
    require_api_key,
)
from alertledger.interfaces.api.metrics import LEDGER_COMMANDS
from alertledger.interfaces.api.schemas import (
    AlertStateOut,
    AllocateIn,
    CapitalizeIn,
    ClosedSummaryOut,
    CloseIn,
    CloseOut,
    DistributionOut,
    PartialSellIn,
    PartialSellOut,
    PricesIn,
    SegmentOut,
)

log = logging.getLogger(__name__)
router = APIRouter(prefix="/liquidity", tags=["Liquidity"], dependencies=[Depends(require_api_key)])


def _applied(system: TradingSystem, command: str) -> None:
    LEDGER_COMMANDS.labels(system=system.value, command=command).inc()


# --- Reads ---

@router.get("/{system}")
def get_summary(
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    performance: PerformanceService = Depends(get_performance_service),
):
    return performance.pool_summary(registry.snapshot(system))


@router.get("/{system}/chart", response_model=List[SegmentOut])
def get_chart(
    active: Optional[List[str]] = Query(default=None, description="Alert ids that are still ACTIVE"),
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    allocation: AllocationService = Depends(get_allocation_service),
):
    pool = registry.snapshot(system)
    # without an explicit list every funded alert is taken as active; closing
    # an alert removes its distribution anyway
    ids = set(active) if active is not None else {d.alert_id for d in pool.distributions.values()}
    alerts = [Alert(id=d.alert_id, symbol=d.symbol) for d in pool.distributions.values() if d.alert_id in ids]
    return [SegmentOut.model_validate(s) for s in allocation.project(pool, alerts)]


# --- Commands ---

@router.post("/{system}/capitalize")
def capitalize(
    payload: CapitalizeIn,
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    ledger: LiquidityService = Depends(get_liquidity_service),
    performance: PerformanceService = Depends(get_performance_service),
):
    with registry.command(system) as pool:
        ledger.capitalize(pool, payload.initial_liquidity)
        summary = performance.pool_summary(pool)
    _applied(system, "capitalize")
    return summary


@router.post("/{system}/allocate", response_model=DistributionOut, status_code=201)
def allocate(
    payload: AllocateIn,
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    ledger: LiquidityService = Depends(get_liquidity_service),
):
    if payload.alert is not None:
        alert = Alert.from_record(payload.alert)
        with registry.command(system, alert.symbol) as pool:
            dist = ledger.allocate_for_alert(pool, alert, payload.percentage)
    else:
        if not (payload.alert_id and payload.symbol and payload.entry_price is not None):
            raise HTTPException(status_code=422, detail="Provide either 'alert' or alert_id, symbol and entry_price.")
        with registry.command(system, payload.symbol) as pool:
            dist = ledger.allocate(
                pool, payload.alert_id, payload.symbol, payload.percentage,
                payload.entry_price, AlertAction(payload.action),
            )
    _applied(system, "allocate")
    return DistributionOut.model_validate(dist)


@router.post("/{system}/prices", response_model=List[DistributionOut])
def mark_prices(
    payload: PricesIn,
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    ledger: LiquidityService = Depends(get_liquidity_service),
):
    with registry.command(system) as pool:
        updated = ledger.mark_prices(pool, payload.prices)
        out = [DistributionOut.model_validate(d) for d in updated]
    _applied(system, "mark_prices")
    return out


@router.post("/{system}/partial-sell", response_model=PartialSellOut)
def partial_sell(
    payload: PartialSellIn,
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    ledger: LiquidityService = Depends(get_liquidity_service),
):
    alert = Alert.from_record(payload.alert)
    with registry.command(system, alert.symbol) as pool:
        result = ledger.partial_sell(
            pool, alert, alert.symbol, payload.percentage,
            (payload.price_range.min, payload.price_range.max),
            email_image_url=payload.email_image_url,
        )
    _applied(system, "partial_sell")
    return PartialSellOut(
        released_liquidity=float(result.released_liquidity),
        realized_profit=float(result.realized_profit),
        new_participation_percentage=float(result.new_participation_percentage),
        sell_price=float(result.sell_price),
        closed=ClosedSummaryOut.model_validate(result.closed) if result.closed else None,
        alert=AlertStateOut.model_validate(alert),
    )


@router.post("/{system}/close", response_model=CloseOut)
def close(
    payload: CloseIn,
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    ledger: LiquidityService = Depends(get_liquidity_service),
):
    alert = Alert.from_record(payload.alert)
    with registry.command(system, alert.symbol) as pool:
        summary = ledger.close(pool, alert, payload.final_price, payload.reason)
    _applied(system, "close")
    return CloseOut(
        summary=ClosedSummaryOut.model_validate(summary),
        alert=AlertStateOut.model_validate(alert),
    )


@router.delete("/{system}/{symbol}", response_model=DistributionOut)
def remove_distribution(
    symbol: str,
    system: TradingSystem = Depends(get_system),
    registry: LedgerRegistry = Depends(get_registry),
    ledger: LiquidityService = Depends(get_liquidity_service),
):
    with registry.command(system, symbol) as pool:
        dist = ledger.remove_distribution(pool, symbol)
    _applied(system, "remove_distribution")
    return DistributionOut.model_validate(dist)
