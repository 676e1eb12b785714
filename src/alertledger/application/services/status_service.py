# src/alertledger/application/services/status_service.py
"""
Display-status resolution for operations and their linked alerts.

`resolve_status` is a pure function of its inputs: the caller passes `now`,
nothing here reads the wall clock, and malformed or missing fields fall back
to documented defaults instead of raising.

Precedence, first match wins:
  1. Manual override on the operation (COMPLETED, CANCELLED, PENDING).
  2. Unconfirmed entry price range on the operation -> "A confirmar".
  3. No linked alert -> "Ejecutada".
  4. CLOSED / STOPPED alert -> "Ejecutada".
  5. ACTIVE alert: older than today, or confirmed today -> "Ejecutada".
  6. DESCARTADA alert: discarded today -> "Ejecutada", earlier -> "Rechazada".
  7. Anything else -> "Ejecutada".
"""

from __future__ import annotations
import logging
from collections import Counter
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from alertledger.config import settings
from alertledger.domain.entities import (
    Alert,
    AlertStatus,
    DisplayStatus,
    Operation,
    OperationStatus,
)

log = logging.getLogger(__name__)

# CANCELLED is shown as "Desestimada" on purpose; "Cancelado" is never user-facing
# for a manual cancellation.
_OVERRIDE_LABELS = {
    OperationStatus.COMPLETED: DisplayStatus.COMPLETADO,
    OperationStatus.CANCELLED: DisplayStatus.DESESTIMADA,
    OperationStatus.PENDING: DisplayStatus.PENDIENTE,
}


def _as_tz(tz: Union[str, tzinfo, None]) -> tzinfo:
    if tz is None:
        tz = settings.MARKET_TIMEZONE
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def _aware(instant: datetime) -> datetime:
    # documents are stored in UTC; naive values are read as UTC
    return instant if instant.tzinfo is not None else instant.replace(tzinfo=timezone.utc)


def day_bounds(now: datetime, tz: Union[str, tzinfo, None] = None) -> Tuple[datetime, datetime]:
    """Start and end (inclusive) of `now`'s calendar day in the given timezone."""
    zone = _as_tz(tz)
    local_day = _aware(now).astimezone(zone).date()
    start = datetime.combine(local_day, time.min, tzinfo=zone)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


def is_within_day(instant: Optional[datetime], now: datetime, tz: Union[str, tzinfo, None] = None) -> bool:
    """True when `instant` falls on the same local calendar day as `now`."""
    if instant is None:
        return False
    start, end = day_bounds(now, tz)
    return start <= _aware(instant) <= end


def has_unconfirmed_range(operation: Optional[Operation], alert: Optional[Alert] = None) -> bool:
    """
    Whether the operation is still waiting for its price band to be confirmed.
    Once the linked alert has been discarded nothing will confirm the band, so
    it no longer counts as pending.
    """
    if operation is None or not operation.has_unconfirmed_range:
        return False
    if alert is not None and alert.status == AlertStatus.DESCARTADA:
        return False
    return True


def resolve_status(
    operation: Optional[Operation],
    alert: Optional[Alert],
    now: datetime,
    tz: Union[str, tzinfo, None] = None,
) -> DisplayStatus:
    """Maps an (operation, alert) pair to the label shown to subscribers."""
    if alert is None and operation is not None:
        alert = operation.alert

    override = operation.status if operation is not None else None
    if override in _OVERRIDE_LABELS:
        return _OVERRIDE_LABELS[override]

    if has_unconfirmed_range(operation, alert):
        return DisplayStatus.A_CONFIRMAR

    if alert is None:
        # every non-ACTIVE override was consumed above
        return DisplayStatus.EJECUTADA

    if alert.status in (AlertStatus.CLOSED, AlertStatus.STOPPED):
        return DisplayStatus.EJECUTADA

    if alert.status == AlertStatus.ACTIVE:
        if not is_within_day(alert.reference_date, now, tz):
            return DisplayStatus.EJECUTADA
        if alert.final_price_set_at is not None:
            return DisplayStatus.EJECUTADA
        # same-day and unconfirmed, but the operation carries no pending
        # range (rule 2), so it is part of the day's executed activity
        return DisplayStatus.EJECUTADA

    if alert.status == AlertStatus.DESCARTADA:
        if is_within_day(alert.descartada_at, now, tz):
            return DisplayStatus.EJECUTADA
        return DisplayStatus.RECHAZADA

    return DisplayStatus.EJECUTADA


class StatusService:
    """Resolves display statuses with a fixed canonical timezone."""

    def __init__(self, timezone_name: Optional[str] = None):
        self.tz = _as_tz(timezone_name)

    def resolve(self, operation: Optional[Operation], alert: Optional[Alert], now: datetime) -> DisplayStatus:
        return resolve_status(operation, alert, now, self.tz)

    def label_operations(
        self, operations: Iterable[Operation], now: datetime
    ) -> List[Tuple[Operation, DisplayStatus]]:
        return [(op, self.resolve(op, op.alert, now)) for op in operations]

    @staticmethod
    def tally(labelled: Iterable[Tuple[Operation, DisplayStatus]]) -> Dict[DisplayStatus, int]:
        """Counts already-labelled operations per display status."""
        counts = Counter(status for _, status in labelled)
        log.debug("Status counts: %s", dict(counts))
        return dict(counts)

    def count_by_status(self, operations: Iterable[Operation], now: datetime) -> Dict[DisplayStatus, int]:
        return self.tally(self.label_operations(operations, now))

    def is_today(self, instant: Optional[datetime], now: datetime) -> bool:
        return is_within_day(instant, now, self.tz)
