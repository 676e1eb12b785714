# src/alertledger/application/services/liquidity_service.py
"""
Liquidity ledger commands: allocate capital to an alert, mark it to market,
liquidate it partially or fully.

Every command validates all of its inputs before touching the pool or the
alert. A raised LedgerError therefore always means "nothing happened".

Percentages of a sale are relative to the ORIGINAL position (the same unit as
`Alert.participation_percentage`), never to what is left.
"""

from __future__ import annotations
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from alertledger.config import settings
from alertledger.domain.entities import (
    Alert,
    AlertAction,
    AlertStatus,
    ClosedSummary,
    Distribution,
    LiquidityPool,
    PartialSale,
    PartialSaleResult,
    utcnow,
)
from alertledger.domain.errors import (
    AlreadyClosed,
    DistributionExists,
    InsufficientLiquidity,
    InvalidPercentage,
    InvalidPrice,
    InvalidRange,
    OverSell,
    StaleAlert,
    UnknownSymbol,
)
from alertledger.domain.value_objects import HUNDRED, ZERO, PriceRange, normalize_symbol, to_decimal

log = logging.getLogger(__name__)


# --- Helper Functions ---
def _positive_price(value: Any, what: str = "Price") -> Decimal:
    price = to_decimal(value, None)
    if price is None or price <= 0:
        raise InvalidPrice(f"{what} must be a positive number (got {value!r}).")
    return price


def _coerce_range(value: Any) -> PriceRange:
    if isinstance(value, PriceRange):
        return value
    if isinstance(value, Mapping):
        return PriceRange(value.get("min"), value.get("max"))
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return PriceRange(value[0], value[1])
    raise InvalidRange(f"Unrecognised price range: {value!r}")


def _revalue(dist: Distribution, price: Decimal) -> None:
    """Recomputes unrealized P&L of the remaining shares at `price`."""
    direction = dist.action.direction
    dist.current_price = price
    dist.profit_loss = dist.shares * (price - dist.entry_price) * direction
    dist.profit_loss_percentage = (price - dist.entry_price) / dist.entry_price * HUNDRED * direction


# --- Main Service Class ---

class LiquidityService:
    """
    Stateless command handler over a LiquidityPool. The pool (and the alerts
    passed in) are the only things mutated; callers persist them.
    """

    def __init__(
        self,
        percent_epsilon: Optional[Decimal] = None,
        full_liquidation_epsilon: Optional[Decimal] = None,
    ):
        self.percent_epsilon = to_decimal(percent_epsilon, settings.PERCENT_EPSILON)
        self.full_liquidation_epsilon = to_decimal(full_liquidation_epsilon, settings.FULL_LIQUIDATION_EPSILON)

    # --- Internal Core Methods ---
    @staticmethod
    def _ensure_open(alert: Alert) -> None:
        if alert.status == AlertStatus.CLOSED or alert.participation_percentage <= 0:
            raise AlreadyClosed(f"Alert {alert.id} ({alert.symbol}) is already closed.", alert_id=alert.id)

    @staticmethod
    def _distribution_for(pool: LiquidityPool, symbol: str, alert_id: str) -> Distribution:
        dist = pool.distributions.get(symbol)
        if dist is None:
            raise UnknownSymbol(f"No open distribution for {symbol} in {pool.system.value}.", symbol=symbol)
        if dist.alert_id != alert_id:
            raise UnknownSymbol(
                f"Distribution for {symbol} belongs to alert {dist.alert_id}, not {alert_id}.",
                symbol=symbol,
            )
        return dist

    def _ensure_in_sync(self, alert: Alert, dist: Distribution) -> None:
        held = dist.participation_percentage
        if abs(alert.participation_percentage - held) > self.percent_epsilon:
            log.warning(
                f"Rejected command on {dist.symbol}: alert {alert.id} reports "
                f"{alert.participation_percentage}% but the ledger holds {held}%."
            )
            raise StaleAlert(
                f"Alert {alert.id} ({dist.symbol}) reports {alert.participation_percentage}% participation "
                f"but {held}% is still held; reload the alert and retry.",
                alert_id=alert.id, reported=alert.participation_percentage, held=held,
            )

    def _liquidate(
        self,
        pool: LiquidityPool,
        alert: Alert,
        dist: Distribution,
        percentage: Decimal,
        price_range: PriceRange,
        now: datetime,
        reason: str,
        force_close: bool = False,
        email_image_url: Optional[str] = None,
    ) -> PartialSaleResult:
        before = dist.participation_percentage
        price = price_range.midpoint
        remaining = before - percentage
        closing = force_close or remaining < self.full_liquidation_epsilon

        # allocated_amount only holds what is left, so scale by the share of
        # the remaining participation being sold now
        if closing:
            released = dist.allocated_amount
            sold_shares = dist.shares
        else:
            released = dist.allocated_amount * percentage / before
            sold_shares = released / dist.entry_price
        realized = released / dist.entry_price * (price - dist.entry_price) * dist.action.direction

        # --- mutations (nothing below can fail) ---
        dist.allocated_amount -= released
        dist.shares = ZERO if closing else dist.shares - sold_shares
        dist.sold_shares += sold_shares
        dist.realized_profit_loss += realized
        dist.participation_percentage = ZERO if closing else remaining
        dist.updated_at = now
        _revalue(dist, dist.current_price)

        alert.participation_percentage = dist.participation_percentage
        alert.partial_sales.append(PartialSale(
            percentage=percentage,
            price_range=price_range,
            executed=True,
            executed_at=now,
            email_image_url=email_image_url,
            sell_price=price,
            released_liquidity=released,
            realized_profit=realized,
        ))

        summary = None
        if closing:
            alert.status = AlertStatus.CLOSED
            alert.exit_price = price
            alert.exit_reason = reason
            alert.closed_at = now
            alert.available_for_purchase = False
            alert.realized_profit_loss = dist.realized_profit_loss
            del pool.distributions[dist.symbol]
            summary = ClosedSummary(
                alert_id=alert.id,
                symbol=dist.symbol,
                released_liquidity=released,
                realized_profit=realized,
                total_realized_profit_loss=dist.realized_profit_loss,
                final_price=price,
                reason=reason,
                closed_at=now,
            )
            pool.history.append(summary)
        pool.version += 1

        return PartialSaleResult(
            released_liquidity=released,
            realized_profit=realized,
            new_participation_percentage=alert.participation_percentage,
            sell_price=price,
            closed=summary,
        )

    # --- Commands ---
    def capitalize(self, pool: LiquidityPool, initial_liquidity: Any) -> LiquidityPool:
        """Sets the pool's capital base. Cannot drop below what is already distributed."""
        amount = to_decimal(initial_liquidity, None)
        if amount is None or amount < 0:
            raise InvalidPrice(f"Liquidity must be a non-negative number (got {initial_liquidity!r}).")
        distributed = pool.distributed_liquidity
        if amount < distributed:
            raise InsufficientLiquidity(
                f"Cannot set liquidity to {amount}: {distributed} is already distributed.",
                requested=amount, distributed=distributed,
            )
        pool.initial_liquidity = amount
        pool.total_liquidity = amount
        pool.version += 1
        log.info(f"Pool {pool.system.value} capitalized with {amount}.")
        return pool

    def allocate(
        self,
        pool: LiquidityPool,
        alert_id: str,
        symbol: str,
        percentage: Any,
        entry_price: Any,
        action: AlertAction = AlertAction.BUY,
        now: Optional[datetime] = None,
    ) -> Distribution:
        """Assigns `percentage` of the pool's capital to an alert's symbol."""
        sym = normalize_symbol(symbol)
        pct = to_decimal(percentage, None)
        if pct is None or pct < 0 or pct > HUNDRED:
            raise InvalidPercentage(f"Allocation percentage must be between 0 and 100 (got {percentage!r}).")
        entry = _positive_price(entry_price, "Entry price")
        if sym in pool.distributions:
            raise DistributionExists(
                f"{sym} already has liquidity assigned (alert {pool.distributions[sym].alert_id}).",
                symbol=sym,
            )

        amount = pool.total_liquidity * pct / HUNDRED
        distributed = pool.distributed_liquidity
        if distributed + amount > pool.total_liquidity:
            log.warning(
                f"Allocation of {pct}% for {sym} rejected: {distributed} + {amount} > {pool.total_liquidity}"
            )
            raise InsufficientLiquidity(
                f"Not enough liquidity in {pool.system.value}: requested {amount}, "
                f"available {pool.total_liquidity - distributed}.",
                requested=amount, available=pool.total_liquidity - distributed,
            )

        now = now or utcnow()
        dist = Distribution(
            alert_id=str(alert_id),
            symbol=sym,
            allocated_amount=amount,
            shares=amount / entry,
            entry_price=entry,
            current_price=entry,
            percentage=pct,
            participation_percentage=HUNDRED,
            action=action,
            created_at=now,
            updated_at=now,
        )
        pool.distributions[sym] = dist
        pool.version += 1
        log.info(f"Allocated {amount} ({pct}%) of {pool.system.value} to {sym} @ {entry} for alert {alert_id}.")
        return dist

    def allocate_for_alert(
        self, pool: LiquidityPool, alert: Alert, percentage: Any, now: Optional[datetime] = None
    ) -> Distribution:
        """Allocates using the alert's own entry price; only ACTIVE alerts qualify."""
        if not alert.is_active:
            raise AlreadyClosed(
                f"Liquidity can only be assigned to ACTIVE alerts ({alert.symbol} is {alert.status.value}).",
                alert_id=alert.id,
            )
        entry = alert.reference_entry_price()
        if entry is None:
            raise InvalidPrice(f"Alert {alert.id} ({alert.symbol}) has no usable entry price.")
        return self.allocate(pool, alert.id, alert.symbol, percentage, entry, alert.action, now)

    def mark_price(
        self, pool: LiquidityPool, symbol: str, current_price: Any, now: Optional[datetime] = None
    ) -> Distribution:
        """Revalues a distribution at `current_price`. Idempotent."""
        sym = normalize_symbol(symbol)
        price = _positive_price(current_price, "Current price")
        dist = pool.distributions.get(sym)
        if dist is None:
            raise UnknownSymbol(f"No open distribution for {sym} in {pool.system.value}.", symbol=sym)
        if dist.current_price != price:
            dist.updated_at = now or utcnow()
            pool.version += 1
        _revalue(dist, price)
        return dist

    def mark_prices(
        self, pool: LiquidityPool, prices: Mapping[str, Any], now: Optional[datetime] = None
    ) -> List[Distribution]:
        """Bulk mark-to-market. Symbols without a distribution are skipped."""
        updated = []
        for symbol, price in prices.items():
            try:
                updated.append(self.mark_price(pool, symbol, price, now))
            except UnknownSymbol:
                log.debug(f"Skipping price for {symbol}: no distribution in {pool.system.value}.")
        return updated

    def partial_sell(
        self,
        pool: LiquidityPool,
        alert: Alert,
        symbol: str,
        percentage_of_original: Any,
        sell_price_range: Any,
        now: Optional[datetime] = None,
        email_image_url: Optional[str] = None,
    ) -> PartialSaleResult:
        """
        Liquidates `percentage_of_original` of the alert's ORIGINAL position at
        the midpoint of `sell_price_range`. Reaching (almost) zero participation
        closes the alert and removes its distribution.
        """
        self._ensure_open(alert)
        sym = normalize_symbol(symbol)
        price_range = _coerce_range(sell_price_range)
        if price_range.min >= price_range.max:
            raise InvalidRange(
                f"Sell range min {price_range.min} must be below max {price_range.max}."
            )
        pct = to_decimal(percentage_of_original, None)
        if pct is None or pct <= 0:
            raise InvalidPercentage(f"Sale percentage must be positive (got {percentage_of_original!r}).")
        dist = self._distribution_for(pool, sym, alert.id)
        self._ensure_in_sync(alert, dist)
        held = dist.participation_percentage
        if pct > held + self.percent_epsilon:
            raise OverSell(
                f"Cannot sell {pct}% of {alert.symbol}: only {held}% is still held.",
                requested=pct, held=held,
            )
        pct = min(pct, held)

        result = self._liquidate(
            pool, alert, dist, pct, price_range, now or utcnow(),
            reason="PARTIAL_SALE", email_image_url=email_image_url,
        )
        log.info(
            f"Partial sale {pct}% of {sym} @ {result.sell_price}: released {result.released_liquidity}, "
            f"realized {result.realized_profit}, participation {held}% -> {result.new_participation_percentage}%."
        )
        if result.closed is not None:
            log.info(f"Alert {alert.id} ({sym}) fully liquidated; distribution removed.")
        return result

    def close(
        self,
        pool: LiquidityPool,
        alert: Alert,
        final_price: Any,
        reason: str = "MANUAL",
        now: Optional[datetime] = None,
    ) -> ClosedSummary:
        """Full liquidation of whatever the alert still holds at one confirmed price."""
        self._ensure_open(alert)
        price = to_decimal(final_price, None)
        if price is None or price <= 0:
            raise InvalidRange(f"Final price must be positive (got {final_price!r}).")
        dist = self._distribution_for(pool, alert.symbol, alert.id)
        self._ensure_in_sync(alert, dist)

        result = self._liquidate(
            pool, alert, dist, dist.participation_percentage, PriceRange.exact(price),
            now or utcnow(), reason=reason, force_close=True,
        )
        log.info(
            f"Closed {alert.symbol} ({reason}) @ {price}: released {result.released_liquidity}, "
            f"total realized {result.closed.total_realized_profit_loss}."
        )
        return result.closed

    def remove_distribution(self, pool: LiquidityPool, symbol: str) -> Distribution:
        """Drops a distribution without a sale (orphan cleanup); its capital returns to the pool."""
        sym = normalize_symbol(symbol)
        dist = pool.distributions.pop(sym, None)
        if dist is None:
            raise UnknownSymbol(f"No open distribution for {sym} in {pool.system.value}.", symbol=sym)
        pool.version += 1
        log.warning(f"Removed distribution {sym} (alert {dist.alert_id}) from {pool.system.value} without a sale.")
        return dist
