import pytest
from datetime import datetime, timezone
from decimal import Decimal

from alertledger.domain.entities import (
    Alert,
    AlertAction,
    AlertStatus,
    Distribution,
    LiquidityPool,
    Operation,
    OperationStatus,
    TradingSystem,
    parse_instant,
)
from alertledger.domain.errors import InvalidRange, LedgerError
from alertledger.domain.value_objects import PriceRange, Symbol, to_decimal


@pytest.fixture
def range_alert() -> Alert:
    """An ACTIVE alert waiting on a 140-160 entry band."""
    return Alert(id="A9", symbol="msft", entry_price_range=PriceRange(140, 160))


# --- Value objects ---

def test_to_decimal_parses_currency_strings():
    assert to_decimal("$1,234.50") == Decimal("1234.50")
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("abc", None) is None
    assert to_decimal(True, None) is None
    assert to_decimal(float("nan"), None) is None


def test_symbol_is_normalized_and_validated():
    assert Symbol(" brk.b ").value == "BRK.B"
    with pytest.raises(ValueError):
        Symbol("NOT A TICKER")


def test_price_range_validation():
    rng = PriceRange("140", 160)
    assert rng.min == Decimal("140") and rng.max == Decimal("160")
    assert rng.midpoint == Decimal("150")
    assert not rng.is_degenerate
    assert PriceRange.exact(10).is_degenerate
    with pytest.raises(InvalidRange):
        PriceRange(0, 10)
    with pytest.raises(InvalidRange):
        PriceRange(20, 10)


def test_invalid_range_is_both_ledger_error_and_value_error():
    with pytest.raises(LedgerError):
        PriceRange(-1, 5)
    with pytest.raises(ValueError):
        PriceRange(-1, 5)


def test_price_range_parse_is_lenient():
    assert PriceRange.parse({"min": 1, "max": 2}) == PriceRange(1, 2)
    assert PriceRange.parse((1, 2)) == PriceRange(1, 2)
    assert PriceRange.parse({"min": 5, "max": 1}) is None
    assert PriceRange.parse("garbage") is None
    assert PriceRange.parse(None) is None


# --- Alert ---

def test_alert_defaults(range_alert: Alert):
    assert range_alert.symbol == "MSFT"
    assert range_alert.status == AlertStatus.ACTIVE
    assert range_alert.participation_percentage == Decimal("100")
    assert range_alert.reference_entry_price() == Decimal("160")


def test_set_final_price_confirms_the_entry(range_alert: Alert):
    at = datetime(2025, 3, 10, 20, 0, tzinfo=timezone.utc)
    range_alert.set_final_price("151.5", now=at)
    assert range_alert.final_price == Decimal("151.5")
    assert range_alert.entry_price == Decimal("151.5")
    assert range_alert.final_price_set_at == at
    with pytest.raises(ValueError):
        range_alert.set_final_price(0)


def test_check_range_break(range_alert: Alert):
    assert not range_alert.check_range_break(150).is_broken
    assert not range_alert.check_range_break(140).is_broken
    assert not range_alert.check_range_break(160).is_broken
    below = range_alert.check_range_break(139)
    assert below.is_broken and "below" in below.reason
    above = range_alert.check_range_break(161)
    assert above.is_broken and "above" in above.reason


def test_range_break_ignored_for_inactive_alerts(range_alert: Alert):
    range_alert.status = AlertStatus.CLOSED
    assert not range_alert.check_range_break(1).is_broken


def test_discard_is_idempotent(range_alert: Alert):
    first = datetime(2025, 3, 10, 18, 0, tzinfo=timezone.utc)
    range_alert.discard("Price left the entry range", price=170, now=first)
    assert range_alert.status == AlertStatus.DESCARTADA
    assert range_alert.descartada_at == first
    assert range_alert.descartada_price == Decimal("170")
    assert range_alert.available_for_purchase is False

    range_alert.discard("again", now=datetime(2025, 3, 11, tzinfo=timezone.utc))
    assert range_alert.descartada_at == first
    assert range_alert.descartada_reason == "Price left the entry range"


def test_profit_percentage_is_signed_by_action():
    long = Alert(id="L", symbol="AAPL", entry_price=Decimal("100"))
    short = Alert(id="S", symbol="AAPL", entry_price=Decimal("100"), action=AlertAction.SELL)
    assert long.profit_percentage(110) == Decimal("10")
    assert short.profit_percentage(110) == Decimal("-10")


def test_alert_from_record_reads_stored_document():
    alert = Alert.from_record({
        "_id": "65f0c0ffee",
        "symbol": "nvda",
        "action": "SELL",
        "status": "DESESTIMADA",
        "tipo": "SmartMoney",
        "entryPriceRange": {"min": 800, "max": 820},
        "participationPercentage": 60,
        "descartadaAt": "2025-03-07T14:00:00Z",
        "partialSales": [
            {"percentage": 40, "priceRange": {"min": 790, "max": 800}, "executed": True},
            {"percentage": 10, "priceRange": "broken"},
        ],
    })
    assert alert.id == "65f0c0ffee"
    assert alert.symbol == "NVDA"
    assert alert.action == AlertAction.SELL
    assert alert.status == AlertStatus.DESCARTADA
    assert alert.system == TradingSystem.SMART_MONEY
    assert alert.participation_percentage == Decimal("60")
    assert alert.descartada_at == datetime(2025, 3, 7, 14, 0, tzinfo=timezone.utc)
    assert len(alert.partial_sales) == 1
    assert alert.partial_sales[0].executed is True


def test_alert_from_record_tolerates_missing_fields():
    alert = Alert.from_record({"_id": "x", "symbol": "AAPL", "status": "???"})
    assert alert.status == AlertStatus.ACTIVE
    assert alert.entry_price is None
    assert alert.reference_entry_price() is None
    assert alert.date is None


# --- Operation ---

def test_operation_from_record_with_populated_alert():
    op = Operation.from_record({
        "_id": "op1",
        "ticker": "aapl",
        "operationType": "COMPRA",
        "priceRange": {"min": 140, "max": 160},
        "isPriceConfirmed": False,
        "status": "ACTIVE",
        "alertId": {"_id": "A1", "symbol": "AAPL", "status": "ACTIVE"},
    })
    assert op.ticker == "AAPL"
    assert op.status == OperationStatus.ACTIVE
    assert op.has_unconfirmed_range
    assert op.effective_price == Decimal("150")
    assert op.alert is not None and op.alert.id == "A1"


def test_operation_with_unpopulated_alert_reference():
    op = Operation.from_record({"_id": "op2", "ticker": "AAPL", "price": 10, "alertId": "A1"})
    assert op.alert is None
    assert not op.has_unconfirmed_range
    assert op.effective_price == Decimal("10")


def test_parse_instant():
    assert parse_instant("2025-03-10T10:00:00Z") == datetime(2025, 3, 10, 10, tzinfo=timezone.utc)
    assert parse_instant("yesterday") is None
    assert parse_instant(12345) is None


# --- Pool ---

def test_pool_totals():
    pool = LiquidityPool(system=TradingSystem.TRADER_CALL, total_liquidity=Decimal("5000"))
    pool.distributions["AAPL"] = Distribution(
        alert_id="A1", symbol="AAPL", allocated_amount=Decimal("1200"),
        shares=Decimal("12"), entry_price=Decimal("100"), current_price=Decimal("100"),
    )
    assert pool.distributed_liquidity == Decimal("1200")
    assert pool.available_liquidity == Decimal("3800")
    assert pool.get("aapl").alert_id == "A1"
    assert pool.find_by_alert("A1").symbol == "AAPL"
    assert pool.find_by_alert("nope") is None
