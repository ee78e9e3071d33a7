from __future__ import annotations

import csv
import datetime as dt
import json
from pathlib import Path

import pytest

from portfolio_tracker.exceptions import EnvelopeError
from portfolio_tracker.exports import export_filename, export_inputs, load_envelope, portfolio_to_dict, write_marts
from portfolio_tracker.pipeline import PortfolioData, process_portfolio
from portfolio_tracker.timeseries import TimeSeriesPoint


def test_envelope_keys_and_loading():
    env = export_inputs("t", "s", "q")
    assert env == {"transactionsText": "t", "symbolsText": "s", "quotesText": "q"}
    assert load_envelope(json.dumps(env)) == ("t", "s", "q")


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        json.dumps({"transactionsText": "t", "symbolsText": "s"}),
        json.dumps({"transactionsText": "t", "symbolsText": "s", "quotesText": 3}),
    ],
)
def test_bad_envelopes_raise(text: str):
    with pytest.raises(EnvelopeError):
        load_envelope(text)


def test_export_filename_uses_latest_series_date(transactions_csv: str, symbols_csv: str, quotes_csv: str):
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv)
    assert export_filename(data) == "Portfolio Data 2024-01-03.json"
    assert export_filename(PortfolioData(), today=dt.date(2025, 2, 1)) == "Portfolio Data 2025-02-01.json"


def _point(date: str) -> TimeSeriesPoint:
    return TimeSeriesPoint(date, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, False)


def test_export_filename_skips_unparsed_series_dates():
    data = PortfolioData(time_series=[_point("2024-01-03"), _point("garbage")])
    assert export_filename(data) == "Portfolio Data 2024-01-03.json"
    only_bad = PortfolioData(time_series=[_point("garbage")])
    assert export_filename(only_bad, today=dt.date(2025, 2, 1)) == "Portfolio Data 2025-02-01.json"


def test_write_marts(tmp_path: Path, transactions_csv: str, symbols_csv: str, quotes_csv: str):
    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv)
    write_marts(data, tmp_path)

    with (tmp_path / "holdings.csv").open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert sorted(r["account"] for r in rows) == ["A", "B"]
    assert list(rows[0])[:3] == ["symbol", "account", "name"]

    with (tmp_path / "time_series.csv").open(encoding="utf-8") as f:
        series = list(csv.DictReader(f))
    assert [r["date"] for r in series] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert "account_value:A" in series[0]

    assert (tmp_path / "closed_positions.csv").exists()
    payload = json.loads((tmp_path / "portfolio.json").read_text(encoding="utf-8"))
    assert payload["status"] == "ok"
    assert [a["name"] for a in payload["accounts"]] == ["A", "B", "Bank"]
    assert payload == portfolio_to_dict(data)


def test_write_marts_parquet(tmp_path: Path, transactions_csv: str, symbols_csv: str, quotes_csv: str):
    pytest.importorskip("pyarrow")
    import pandas as pd

    data = process_portfolio(transactions_csv, symbols_csv, quotes_csv)
    assert write_marts(data, tmp_path) == []
    df = pd.read_parquet(tmp_path / "holdings.parquet")
    assert sorted(df["account"]) == ["A", "B"]


def test_write_marts_for_empty_run(tmp_path: Path):
    write_marts(PortfolioData(status="missing_input", errors=["Missing input: quotes"]), tmp_path)
    assert (tmp_path / "holdings.csv").read_text(encoding="utf-8").startswith("symbol,account")
