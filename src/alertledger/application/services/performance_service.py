# src/alertledger/application/services/performance_service.py
"""
Pool-level performance figures: how much capital is deployed, what it is worth
now, and what has already been realized.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from alertledger.domain.entities import LiquidityPool
from alertledger.domain.value_objects import HUNDRED, ZERO

log = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, ROUND_HALF_UP)


class PerformanceService:
    """Summarizes a LiquidityPool. Pure reads, money quantized to cents."""

    def pool_summary(self, pool: LiquidityPool) -> Dict[str, Any]:
        dists = list(pool.distributions.values())
        unrealized = sum((d.profit_loss for d in dists), ZERO)
        realized_open = sum((d.realized_profit_loss for d in dists), ZERO)
        realized_closed = sum((h.total_realized_profit_loss for h in pool.history), ZERO)
        realized = realized_open + realized_closed
        net = unrealized + realized

        base = pool.initial_liquidity if pool.initial_liquidity > 0 else pool.total_liquidity
        net_pct = (net / base * HUNDRED) if base > 0 else ZERO

        rows = []
        for d in dists:
            rows.append({
                "alert_id": d.alert_id,
                "symbol": d.symbol,
                "action": d.action.value,
                "allocated_amount": _money(d.allocated_amount),
                "shares": d.shares,
                "entry_price": d.entry_price,
                "current_price": d.current_price,
                "profit_loss": _money(d.profit_loss),
                "profit_loss_percentage": _money(d.profit_loss_percentage),
                "realized_profit_loss": _money(d.realized_profit_loss),
                "participation_percentage": d.participation_percentage,
            })

        summary = {
            "system": pool.system.value,
            "initial_liquidity": _money(pool.initial_liquidity),
            "total_liquidity": _money(pool.total_liquidity),
            "distributed_liquidity": _money(pool.distributed_liquidity),
            "available_liquidity": _money(pool.available_liquidity),
            "unrealized_profit_loss": _money(unrealized),
            "realized_profit_loss": _money(realized),
            "net_profit_loss": _money(net),
            "net_profit_loss_pct": _money(net_pct),
            "open_positions": len(dists),
            "closed_positions": len(pool.history),
            "distributions": rows,
            "version": pool.version,
        }
        log.debug(f"Pool summary for {pool.system.value}: net {summary['net_profit_loss']} over {len(dists)} open.")
        return summary
