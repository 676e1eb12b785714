import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from alertledger.application.services.status_service import (
    StatusService,
    day_bounds,
    is_within_day,
    resolve_status,
)
from alertledger.domain.entities import (
    Alert,
    AlertStatus,
    DisplayStatus,
    Operation,
    OperationStatus,
)
from alertledger.domain.value_objects import PriceRange

TZ = "America/Argentina/Buenos_Aires"


def _range_operation(alert=None, **kwargs) -> Operation:
    kwargs.setdefault("price_range", PriceRange(140, 160))
    kwargs.setdefault("is_price_confirmed", False)
    return Operation(id="op1", ticker="AAPL", alert=alert, **kwargs)


def _alert(**kwargs) -> Alert:
    return Alert(id="A1", symbol="AAPL", **kwargs)


# --- Day boundaries ---

def test_day_bounds_follow_the_market_timezone(now):
    start, end = day_bounds(now, TZ)
    assert start.astimezone(timezone.utc) == datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc)
    assert end - start == timedelta(days=1) - timedelta(microseconds=1)


def test_is_within_day_edges(now):
    assert is_within_day(datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc), now, TZ)
    # 23:30 local time on the previous day
    assert not is_within_day(datetime(2025, 3, 10, 2, 30, tzinfo=timezone.utc), now, TZ)
    assert is_within_day(datetime(2025, 3, 11, 2, 59, tzinfo=timezone.utc), now, TZ)
    assert not is_within_day(None, now, TZ)


def test_naive_instants_are_read_as_utc(now):
    assert is_within_day(datetime(2025, 3, 10, 3, 0), now, TZ)
    assert not is_within_day(datetime(2025, 3, 10, 2, 59), now, TZ)


# --- Worked scenarios ---

def test_unconfirmed_range_on_todays_active_alert_is_a_confirmar(now):
    alert = _alert(date=now - timedelta(hours=2))
    op = _range_operation(alert)
    assert resolve_status(op, alert, now, TZ) == DisplayStatus.A_CONFIRMAR


def test_alert_discarded_days_ago_is_rechazada(now):
    alert = _alert(status=AlertStatus.DESCARTADA, descartada_at=now - timedelta(days=3))
    op = _range_operation(alert)
    assert resolve_status(op, alert, now, TZ) == DisplayStatus.RECHAZADA


def test_alert_discarded_days_ago_without_range_is_rechazada(now):
    alert = _alert(status=AlertStatus.DESCARTADA, descartada_at=now - timedelta(days=3))
    op = Operation(id="op1", ticker="AAPL", price=Decimal("150"), alert=alert)
    assert resolve_status(op, alert, now, TZ) == DisplayStatus.RECHAZADA


def test_alert_discarded_today_is_ejecutada(now):
    alert = _alert(status=AlertStatus.DESCARTADA, descartada_at=now - timedelta(hours=1))
    assert resolve_status(_range_operation(alert), alert, now, TZ) == DisplayStatus.EJECUTADA


def test_discarded_without_timestamp_is_rechazada(now):
    alert = _alert(status=AlertStatus.DESCARTADA)
    assert resolve_status(None, alert, now, TZ) == DisplayStatus.RECHAZADA


# --- Overrides ---

@pytest.mark.parametrize("override, expected", [
    (OperationStatus.COMPLETED, DisplayStatus.COMPLETADO),
    (OperationStatus.CANCELLED, DisplayStatus.DESESTIMADA),
    (OperationStatus.PENDING, DisplayStatus.PENDIENTE),
])
def test_manual_override_wins_over_everything(now, override, expected):
    alert = _alert(status=AlertStatus.DESCARTADA, descartada_at=now - timedelta(days=3))
    op = _range_operation(alert, status=override)
    assert resolve_status(op, alert, now, TZ) == expected


def test_active_override_falls_through(now):
    alert = _alert(date=now)
    op = _range_operation(alert, status=OperationStatus.ACTIVE)
    assert resolve_status(op, alert, now, TZ) == DisplayStatus.A_CONFIRMAR


# --- Remaining precedence rules ---

def test_pending_range_without_alert_is_a_confirmar(now):
    assert resolve_status(_range_operation(), None, now, TZ) == DisplayStatus.A_CONFIRMAR


def test_no_alert_and_no_range_is_ejecutada(now):
    op = Operation(id="op1", ticker="AAPL", price=Decimal("10"))
    assert resolve_status(op, None, now, TZ) == DisplayStatus.EJECUTADA


@pytest.mark.parametrize("status", [AlertStatus.CLOSED, AlertStatus.STOPPED])
def test_finished_alerts_are_ejecutada(now, status):
    alert = _alert(status=status, date=now)
    op = Operation(id="op1", ticker="AAPL", price=Decimal("10"), alert=alert)
    assert resolve_status(op, alert, now, TZ) == DisplayStatus.EJECUTADA


def test_confirmed_range_is_ejecutada(now):
    alert = _alert(date=now, final_price_set_at=now)
    op = _range_operation(alert, is_price_confirmed=True)
    assert resolve_status(op, alert, now, TZ) == DisplayStatus.EJECUTADA


def test_old_active_alert_is_ejecutada(now):
    alert = _alert(date=now - timedelta(days=5))
    op = Operation(id="op1", ticker="AAPL", price=Decimal("10"), alert=alert)
    assert resolve_status(op, alert, now, TZ) == DisplayStatus.EJECUTADA


def test_created_at_is_used_when_date_is_missing(now):
    alert = _alert(created_at=now - timedelta(days=5))
    assert alert.reference_date == now - timedelta(days=5)
    assert resolve_status(None, alert, now, TZ) == DisplayStatus.EJECUTADA


def test_linked_alert_is_taken_from_the_operation(now):
    alert = _alert(status=AlertStatus.DESCARTADA, descartada_at=now - timedelta(days=3))
    op = Operation(id="op1", ticker="AAPL", price=Decimal("10"), alert=alert)
    assert resolve_status(op, None, now, TZ) == DisplayStatus.RECHAZADA


def test_resolution_is_deterministic(now):
    alert = _alert(date=now - timedelta(hours=2))
    op = _range_operation(alert)
    results = {resolve_status(op, alert, now, TZ) for _ in range(5)}
    assert results == {DisplayStatus.A_CONFIRMAR}


# --- Service ---

def test_status_service_counts(status_service: StatusService, now):
    rejected = _alert(status=AlertStatus.DESCARTADA, descartada_at=now - timedelta(days=3))
    ops = [
        _range_operation(_alert(date=now)),
        Operation(id="op2", ticker="AAPL", price=Decimal("10"), alert=rejected),
        Operation(id="op3", ticker="MSFT", price=Decimal("10"), status=OperationStatus.COMPLETED),
        Operation(id="op4", ticker="TSLA", price=Decimal("10")),
    ]
    counts = status_service.count_by_status(ops, now)
    assert counts == {
        DisplayStatus.A_CONFIRMAR: 1,
        DisplayStatus.RECHAZADA: 1,
        DisplayStatus.COMPLETADO: 1,
        DisplayStatus.EJECUTADA: 1,
    }


def test_tally_counts_labelled_pairs(status_service: StatusService, now):
    ops = [Operation(id=f"op{i}", ticker="AAPL", price=Decimal("10")) for i in range(3)]
    labelled = status_service.label_operations(ops, now)
    assert status_service.tally(labelled) == {DisplayStatus.EJECUTADA: 3}
    assert status_service.tally([]) == {}


def test_status_service_labels_loaded_documents(status_service: StatusService, now):
    op = Operation.from_record({
        "_id": "op1",
        "ticker": "AAPL",
        "priceRange": {"min": 140, "max": 160},
        "isPriceConfirmed": False,
        "alertId": {"_id": "A1", "symbol": "AAPL", "status": "DESESTIMADA", "descartadaAt": "2025-03-07T12:00:00Z"},
    })
    [(_, label)] = status_service.label_operations([op], now)
    assert label == DisplayStatus.RECHAZADA
    assert status_service.is_today(now - timedelta(hours=1), now)
