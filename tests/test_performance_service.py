from decimal import Decimal

from alertledger.application.services.performance_service import PerformanceService

from conftest import make_alert


def test_summary_of_fresh_pool(performance: PerformanceService, pool):
    summary = performance.pool_summary(pool)
    assert summary["system"] == "TraderCall"
    assert summary["total_liquidity"] == Decimal("10000.00")
    assert summary["available_liquidity"] == Decimal("10000.00")
    assert summary["net_profit_loss"] == Decimal("0.00")
    assert summary["distributions"] == []


def test_summary_combines_open_and_closed_results(performance, ledger, pool, alert):
    other = make_alert("A2", "MSFT")
    ledger.allocate(pool, alert.id, "AAPL", 10, 100)
    ledger.allocate(pool, other.id, "MSFT", 20, 50)
    ledger.partial_sell(pool, alert, "AAPL", 50, (120, 130))   # +125 realized
    ledger.mark_price(pool, "AAPL", 110)                         # +50 on 5 shares left
    ledger.close(pool, other, 45)                                # -200 realized

    summary = performance.pool_summary(pool)
    assert summary["distributed_liquidity"] == Decimal("500.00")
    assert summary["available_liquidity"] == Decimal("9500.00")
    assert summary["unrealized_profit_loss"] == Decimal("50.00")
    assert summary["realized_profit_loss"] == Decimal("-75.00")
    assert summary["net_profit_loss"] == Decimal("-25.00")
    assert summary["net_profit_loss_pct"] == Decimal("-0.25")
    assert summary["open_positions"] == 1
    assert summary["closed_positions"] == 1
    [row] = summary["distributions"]
    assert row["symbol"] == "AAPL"
    assert row["realized_profit_loss"] == Decimal("125.00")


def test_amounts_are_rounded_half_up(performance, ledger, pool):
    ledger.allocate(pool, "A1", "AAPL", Decimal("0.00005"), 1)
    summary = performance.pool_summary(pool)
    # 10000 * 0.00005% = 0.005
    assert summary["distributed_liquidity"] == Decimal("0.01")
