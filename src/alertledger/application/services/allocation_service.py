# src/alertledger/application/services/allocation_service.py
"""
Projects a liquidity pool into pie-chart segments.

Read-only: the pool is never modified and the output depends only on the
inputs, so two calls with equal inputs produce equal segment lists.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from alertledger.domain.entities import Alert, LiquidityPool
from alertledger.domain.value_objects import HUNDRED, ZERO

LIQUIDITY_SYMBOL = "LIQUIDEZ"
LIQUIDITY_COLOR = "#9CA3AF"
FULL_TURN = Decimal("360")

PALETTE = (
    "#3B82F6", "#EF4444", "#10B981", "#F59E0B", "#8B5CF6", "#EC4899", "#06B6D4",
    "#F97316", "#6366F1", "#14B8A6", "#F43F5E", "#A855F7", "#EAB308", "#22C55E",
)


@dataclass(frozen=True)
class Segment:
    symbol: str
    alert_id: Optional[str]
    allocated_amount: Decimal
    size_percent: Decimal
    start_angle: Decimal
    end_angle: Decimal
    center_angle: Decimal
    color: str
    dark_color: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _darken(color: str) -> str:
    # 50% alpha variant used for hover/border
    return f"{color}80"


class AllocationService:
    """Builds the allocation chart for a pool and the alerts it currently funds."""

    def project(self, pool: LiquidityPool, active_alerts: Iterable[Alert]) -> List[Segment]:
        active_ids = {a.id for a in active_alerts if a.is_active}
        funded = [
            d for d in pool.distributions.values()
            if d.allocated_amount > 0 and d.alert_id in active_ids
        ]
        allocated = sum((d.allocated_amount for d in funded), ZERO)
        total_base = pool.total_liquidity if pool.total_liquidity > 0 else allocated
        available = max(total_base - allocated, ZERO)

        segments: List[Segment] = []
        cursor = ZERO
        used_percent = ZERO
        for idx, dist in enumerate(funded):
            size = dist.allocated_amount / total_base * HUNDRED if total_base > 0 else ZERO
            segments.append(self._segment(
                dist.symbol, dist.alert_id, dist.allocated_amount, size, cursor, PALETTE[idx % len(PALETTE)]
            ))
            cursor = segments[-1].end_angle
            used_percent += size

        # the liquidity slice closes the circle so rounding never leaves a gap
        if total_base > 0:
            size = HUNDRED - used_percent
            end = FULL_TURN
        else:
            size = ZERO
            end = cursor
        segments.append(Segment(
            symbol=LIQUIDITY_SYMBOL,
            alert_id=None,
            allocated_amount=available,
            size_percent=size,
            start_angle=cursor,
            end_angle=end,
            center_angle=(cursor + end) / 2,
            color=LIQUIDITY_COLOR,
            dark_color=_darken(LIQUIDITY_COLOR),
        ))
        return segments

    @staticmethod
    def _segment(
        symbol: str, alert_id: Optional[str], amount: Decimal, size: Decimal, start: Decimal, color: str
    ) -> Segment:
        end = start + size / HUNDRED * FULL_TURN
        return Segment(
            symbol=symbol,
            alert_id=alert_id,
            allocated_amount=amount,
            size_percent=size,
            start_angle=start,
            end_angle=end,
            center_angle=(start + end) / 2,
            color=color,
            dark_color=_darken(color),
        )
