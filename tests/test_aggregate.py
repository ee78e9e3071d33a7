from __future__ import annotations

from portfolio_tracker.aggregate import (
    CLOSED_DEPOSIT,
    CLOSED_POSITION,
    OPEN_DEPOSIT,
    OPEN_POSITION,
    aggregate,
    classify_status,
    display_status,
    split_by_status,
)
from portfolio_tracker.transactions import Transaction


def _tx(symbol: str, date: str, *, account: str = "A", status: str = "Open Items", qty: float = 0.0, cost: float = 0.0,
        realized: float = 0.0, cash: float = 0.0, net_price: float = 0.0, debit: float = 0.0) -> Transaction:
    return Transaction(
        trans_id="",
        symbol=symbol,
        account=account,
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


def test_classify_status_covers_known_tags():
    assert classify_status("Open Items") == OPEN_POSITION
    for tag in ("YTD Clear", "PYD Clear", "Cleared", "Cleared-RE", "Clered -RE", "Time Deposit"):
        assert classify_status(tag) == CLOSED_POSITION
    assert classify_status("Open Deposits") == OPEN_DEPOSIT
    assert classify_status("Closed Deposits") == CLOSED_DEPOSIT
    assert classify_status("Pending") is None


def test_display_status_folds_re_spellings():
    assert display_status("Cleared-RE") == "Cleared"
    assert display_status("Clered -RE") == "Cleared"
    assert display_status("YTD Clear") == "YTD Clear"


def test_split_by_status_routes_each_transaction_once():
    txs = [
        _tx("X", "2024-01-01", status="Open Items"),
        _tx("Y", "2024-01-01", status="YTD Clear"),
        _tx("B", "2024-01-01", status="Open Deposits"),
        _tx("C", "2024-01-01", status="Closed Deposits"),
        _tx("Q", "2024-01-01", status="Mystery"),
    ]
    split = split_by_status(txs)
    assert [t.symbol for t in split[OPEN_POSITION]] == ["X"]
    assert [t.symbol for t in split[CLOSED_POSITION]] == ["Y"]
    assert [t.symbol for t in split[OPEN_DEPOSIT]] == ["B"]
    assert [t.symbol for t in split[CLOSED_DEPOSIT]] == ["C"]
    assert sum(len(v) for v in split.values()) == 4


def test_aggregate_sums_in_date_order_and_takes_first_net_price():
    txs = [
        _tx("X", "2024-01-03", qty=-40, cost=-400, realized=50, net_price=11.25),
        _tx("X", "2024-01-02", qty=100, cost=1000, net_price=10.0, debit=1000),
        _tx("X", "2024-01-02", account="B", qty=5, cost=50),
    ]
    groups = aggregate(txs)
    assert [(g.symbol, g.account) for g in groups] == [("X", "A"), ("X", "B")]
    g = groups[0]
    assert g.quantity == 60
    assert g.cost_change_sum == 600
    assert g.realized == 50
    assert g.open_cost == 650
    assert g.debit == 1000
    assert g.net_price == 10.0
    assert g.transaction_count == 2


def test_aggregate_by_status_separates_display_statuses():
    txs = [
        _tx("Y", "2024-01-01", status="YTD Clear", qty=1),
        _tx("Y", "2024-01-02", status="Cleared-RE", qty=-1, realized=3),
        _tx("Y", "2024-01-03", status="Clered -RE", realized=2),
    ]
    groups = aggregate(txs, by_status=True)
    assert [(g.status, g.realized) for g in groups] == [("YTD Clear", 0.0), ("Cleared", 5.0)]
