from __future__ import annotations

from portfolio_tracker.quotes import Quote
from portfolio_tracker.reference import build_reference
from portfolio_tracker.symbols import SymbolMeta
from portfolio_tracker.transactions import Transaction
from portfolio_tracker.valuation import build_holdings


def _tx(symbol: str, date: str, *, status: str = "Open Items", qty: float = 0.0, cost: float = 0.0,
        realized: float = 0.0, cash: float = 0.0, debit: float = 0.0, net_price: float = 0.0) -> Transaction:
    return Transaction(
        trans_id="",
        symbol=symbol,
        account="A",
        date=date,
        status=status,
        sub_type="",
        qty_change=qty,
        cost_change=cost,
        realized=realized,
        cash_impact=cash,
        net_price=net_price,
        debit=debit,
        name="",
    )


def _ref(*quotes: Quote):
    return build_reference([SymbolMeta("X", "X Corp", "Industrials")], list(quotes))


def test_open_holding_valuation():
    txs = [
        _tx("X", "2024-01-01", qty=100, cost=1000, debit=1000, cash=-1000),
        _tx("X", "2024-01-02", qty=-40, cost=-400, realized=50, cash=450),
    ]
    [h] = build_holdings(txs, _ref(Quote("X", "2024-01-02", 12.0)), status="Open Items")
    assert h.quantity == 60
    assert h.cost == 650
    assert h.total_cost == 600
    assert h.price == 12.0
    assert h.price_source == "latest_quote"
    assert h.value == 720
    assert h.unrealized_gain == 70
    assert h.realized_gain == 50
    assert h.total_return == 120
    assert abs(h.avg_cost - 650 / 60) < 1e-9
    assert abs(h.unrealized_gain_pct - 7.0) < 1e-9
    assert abs(h.realized_gain_pct - 5.0) < 1e-9
    assert h.name == "X Corp"
    assert h.sector == "Industrials"
    assert h.cash_balance == -550


def test_zero_quantity_is_hidden_from_current_view_but_kept_when_closed():
    txs = [
        _tx("X", "2024-01-01", status="YTD Clear", qty=10, cost=100, debit=100),
        _tx("X", "2024-01-02", status="YTD Clear", qty=-10.00001, cost=-100, realized=20),
    ]
    ref = _ref(Quote("X", "2024-01-02", 12.0))
    assert build_holdings(txs, ref) == []

    [h] = build_holdings(txs, ref, include_zero=True, closed=True, by_status=True)
    assert h.status == "YTD Clear"
    assert h.unrealized_gain == 0
    assert h.total_return == h.realized_gain == 20
    assert h.avg_cost == 0
    assert abs(h.realized_gain_pct - 20.0) < 1e-9


def test_percentages_are_zero_without_debit():
    txs = [_tx("X", "2024-01-01", qty=1, cost=10)]
    [h] = build_holdings(txs, _ref(Quote("X", "2024-01-01", 12.0)))
    assert h.unrealized_gain == 2
    assert h.unrealized_gain_pct == 0.0
    assert h.total_return_pct == 0.0


def test_fixed_income_unknown_symbol_gets_fixed_income_sector():
    txs = [_tx("BOND@2027", "2024-01-01", status="Open Deposits", qty=100, cost=100, debit=100)]
    [h] = build_holdings(txs, _ref(Quote("BOND", "2024-01-01", 0.98)), status="Open Deposits", fixed_income=True)
    assert h.sector == "Fixed Income"
    assert h.price_source == "prefix_quote"
    assert abs(h.value - 98.0) < 1e-9
    assert abs(h.unrealized_gain + 2.0) < 1e-9


def test_cash_balance_ignores_time_deposits():
    txs = [
        _tx("TD1", "2024-01-01", status="Time Deposit", qty=1, cost=1000, cash=-1000),
        _tx("X", "2024-01-01", qty=1, cost=10, cash=-10),
    ]
    holdings = build_holdings(txs, _ref())
    assert {h.cash_balance for h in holdings} == {-10}
