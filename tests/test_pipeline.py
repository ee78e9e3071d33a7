from __future__ import annotations

import json

import pytest

import portfolio_tracker.pipeline as pipeline
from portfolio_tracker.config import Settings
from portfolio_tracker.exports import export_inputs, reprocess_envelope
from portfolio_tracker.pipeline import process_portfolio


def test_process_portfolio_builds_every_account(transactions_csv: str, symbols_csv: str, quotes_csv: str):
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv)
    assert data.status == "ok"
    assert data.errors == []
    assert data.account_names == ["A", "B", "Bank"]

    a = data.account("A")
    assert a is not None
    [x] = a.current_holdings
    assert (x.symbol, x.quantity, x.cost, x.value, x.unrealized_gain, x.realized_gain) == ("X", 60, 650, 720, 70, 50)
    [y] = a.closed_positions
    assert (y.symbol, y.status, y.realized_gain, y.unrealized_gain) == ("Y", "YTD Clear", 20, 0)
    assert a.summary.cash_balance == 1470
    assert a.summary.equity_value == 720
    assert a.summary.total_value == 2190
    assert a.time_series[-1].total_value == 2190

    b = data.account("B")
    [bond] = b.open_deposits
    assert bond.symbol == "BOND@2027"
    assert bond.price_source == "prefix_quote"
    assert bond.sector == "Fixed Income"

    assert data.summary.cash_balance == 2070
    assert data.summary.equity_value == 840
    assert data.summary.total_value == 2910
    assert data.summary.realized_gain == 20
    assert data.summary.unrealized_gain == 90
    assert len(data.current_holdings) == 2
    assert [p.date for p in data.time_series] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert set(data.time_series[-1].account_values) == {"A", "B", "Bank"}
    assert data.latest_quotes["X"].close == 12.0
    assert len(data.transactions) == 10


def test_selected_account_narrows_views(transactions_csv: str, symbols_csv: str, quotes_csv: str):
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv, selected_account="B")
    assert data.selected_account == "B"
    assert [h.account for h in data.current_holdings] == ["B"]
    assert data.summary.total_value == 420
    assert all(p.account == "B" for p in data.time_series)
    # Every account is still built.
    assert data.account_names == ["A", "B", "Bank"]


def test_unknown_account_gives_empty_views_and_a_warning(transactions_csv: str, symbols_csv: str, quotes_csv: str):
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv, selected_account="Nope")
    assert data.status == "ok"
    assert data.current_holdings == []
    assert data.time_series == []
    assert data.summary.total_value == 0
    assert any("Nope" in w for w in data.warnings)


@pytest.mark.parametrize("missing", ["transactions", "symbols", "quotes"])
def test_missing_input_is_reported(missing: str, transactions_csv: str, symbols_csv: str, quotes_csv: str):
    texts = {"transactions": transactions_csv, "symbols": symbols_csv, "quotes": quotes_csv}
    texts[missing] = "  "
    data = process_portfolio(texts["transactions"], texts["symbols"], texts["quotes"])
    assert data.status == "missing_input"
    assert missing in data.errors[0]
    assert data.accounts == []


def test_one_failing_account_does_not_sink_the_run(
    monkeypatch: pytest.MonkeyPatch, transactions_csv: str, symbols_csv: str, quotes_csv: str
):
    real = pipeline.build_account

    def flaky(name, txs, reference, settings):
        if name == "B":
            raise RuntimeError("boom")
        return real(name, txs, reference, settings)

    monkeypatch.setattr(pipeline, "build_account", flaky)
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv, settings=Settings(max_workers=2))
    assert data.status == "partial"
    assert data.errors == ["B: RuntimeError: boom"]
    assert data.account_names == ["A", "Bank"]


def test_unexpected_failure_is_distinguishable_from_empty(
    monkeypatch: pytest.MonkeyPatch, transactions_csv: str, symbols_csv: str, quotes_csv: str
):
    def broken(*args, **kwargs):
        raise ValueError("bad reference")

    monkeypatch.setattr(pipeline, "build_reference", broken)
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv)
    assert data.status == "failed"
    assert data.errors == ["ValueError: bad reference"]
    assert data.current_holdings == []


def test_raw_input_round_trip_reproduces_the_run(transactions_csv: str, symbols_csv: str, quotes_csv: str):
    first = process_portfolio(transactions_csv, symbols_csv, quotes_csv)
    envelope = json.dumps(export_inputs(transactions_csv, symbols_csv, quotes_csv))
    second = reprocess_envelope(envelope)
    assert second == first


def test_output_is_independent_of_worker_count(transactions_csv: str, symbols_csv: str, quotes_csv: str):
    one = process_portfolio(transactions_csv, symbols_csv, quotes_csv, settings=Settings(max_workers=1))
    many = process_portfolio(transactions_csv, symbols_csv, quotes_csv, settings=Settings(max_workers=8))
    assert one == many


def test_unparsed_quote_date_does_not_reprice_holdings(transactions_csv: str, symbols_csv: str, quotes_csv: str):
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv + "X,n/a,999\n", selected_account="A")
    assert data.status == "ok"
    assert any("Could not standardize" in w for w in data.warnings)
    [x] = data.current_holdings
    assert (x.price, x.value, x.unrealized_gain) == (12.0, 720, 70)
    assert data.account("A").summary.equity_value == 720
