from __future__ import annotations

import csv
import datetime as dt
import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Optional

import pandas as pd

from portfolio_tracker.config import Settings
from portfolio_tracker.exceptions import EnvelopeError
from portfolio_tracker.pipeline import ALL_ACCOUNTS, PortfolioData, process_portfolio
from portfolio_tracker.timeseries import TimeSeriesPoint
from portfolio_tracker.util import is_canonical_date
from portfolio_tracker.valuation import Holding

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = ("transactionsText", "symbolsText", "quotesText")


def export_inputs(transactions_text: str, symbols_text: str, quotes_text: str) -> dict[str, str]:
    """Raw-input envelope; re-importing it re-runs the pipeline from these texts."""
    return {
        "transactionsText": transactions_text,
        "symbolsText": symbols_text,
        "quotesText": quotes_text,
    }


def export_filename(data: Optional[PortfolioData] = None, *, today: Optional[dt.date] = None) -> str:
    latest = None
    if data is not None:
        # Unparsed transaction dates sort after ISO dates; skip them.
        latest = next((p.date for p in reversed(data.time_series) if is_canonical_date(p.date)), None)
    if not latest:
        latest = (today or dt.date.today()).isoformat()
    return f"Portfolio Data {latest}.json"


def write_envelope(envelope: dict[str, str], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
    return path


def load_envelope(text: str) -> tuple[str, str, str]:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise EnvelopeError(f"Envelope is not valid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise EnvelopeError("Envelope must be a JSON object")
    missing = [k for k in ENVELOPE_KEYS if not isinstance(obj.get(k), str)]
    if missing:
        raise EnvelopeError(f"Envelope missing table(s): {', '.join(missing)}")
    return obj["transactionsText"], obj["symbolsText"], obj["quotesText"]


def reprocess_envelope(
    text: str, *, selected_account: str = ALL_ACCOUNTS, settings: Optional[Settings] = None
) -> PortfolioData:
    transactions_text, symbols_text, quotes_text = load_envelope(text)
    return process_portfolio(
        transactions_text, symbols_text, quotes_text, selected_account=selected_account, settings=settings
    )


def portfolio_to_dict(data: PortfolioData) -> dict:
    """JSON-safe view of a run (holdings, series, summary and run state)."""
    return {
        "status": data.status,
        "selected_account": data.selected_account,
        "errors": list(data.errors),
        "warnings": list(data.warnings),
        "summary": asdict(data.summary),
        "accounts": [
            {
                "name": a.name,
                "summary": asdict(a.summary),
                "current_holdings": [asdict(h) for h in a.current_holdings],
                "closed_positions": [asdict(h) for h in a.closed_positions],
                "open_deposits": [asdict(h) for h in a.open_deposits],
                "closed_deposits": [asdict(h) for h in a.closed_deposits],
                "time_deposits": [asdict(h) for h in a.time_deposits],
            }
            for a in data.accounts
        ],
        "current_holdings": [asdict(h) for h in data.current_holdings],
        "closed_positions": [asdict(h) for h in data.closed_positions],
        "open_deposits": [asdict(h) for h in data.open_deposits],
        "closed_deposits": [asdict(h) for h in data.closed_deposits],
        "time_series": [asdict(p) for p in data.time_series],
        "latest_quotes": {s: asdict(q) for s, q in sorted(data.latest_quotes.items())},
    }


def _series_row(p: TimeSeriesPoint) -> dict:
    row = asdict(p)
    # Flatten per-account totals into columns for tabular outputs.
    for name, value in sorted(row.pop("account_values").items()):
        row[f"account_value:{name}"] = value
    return row


def _write_csv_and_parquet(rows: list[dict], columns: list[str], *, csv_path: Path, parquet_path: Path) -> list[str]:
    """
    Always writes CSV; writes Parquet too when a pandas parquet engine is installed.
    """
    warnings: list[str] = []
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    extra = sorted({k for r in rows for k in r.keys()} - set(columns))
    cols = columns + extra
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=cols)
        w.writeheader()
        for r in rows:
            w.writerow({k: r.get(k) for k in cols})

    try:
        pd.DataFrame(rows, columns=cols).to_parquet(parquet_path, index=False)
    except ImportError:
        # No pyarrow/fastparquet: CSV is the artifact.
        logger.debug("Parquet engine unavailable; skipped %s", parquet_path.name)
    except (ValueError, TypeError, OSError) as e:
        msg = f"Parquet not written ({parquet_path.name}): {e}. CSV written to {csv_path.name} instead."
        logger.warning(msg)
        warnings.append(msg)
    return warnings


def write_marts(data: PortfolioData, out_dir: Path) -> list[str]:
    """Write holdings, closed positions and the value series as CSV (+Parquet), plus portfolio.json."""
    out_dir.mkdir(parents=True, exist_ok=True)
    holding_cols = [f.name for f in fields(Holding)]
    series_cols = [f.name for f in fields(TimeSeriesPoint) if f.name != "account_values"]

    warnings: list[str] = []
    warnings += _write_csv_and_parquet(
        [asdict(h) for h in data.current_holdings],
        holding_cols,
        csv_path=out_dir / "holdings.csv",
        parquet_path=out_dir / "holdings.parquet",
    )
    warnings += _write_csv_and_parquet(
        [asdict(h) for h in data.closed_positions],
        holding_cols,
        csv_path=out_dir / "closed_positions.csv",
        parquet_path=out_dir / "closed_positions.parquet",
    )
    warnings += _write_csv_and_parquet(
        [_series_row(p) for p in data.time_series],
        series_cols,
        csv_path=out_dir / "time_series.csv",
        parquet_path=out_dir / "time_series.parquet",
    )
    (out_dir / "portfolio.json").write_text(json.dumps(portfolio_to_dict(data), indent=2), encoding="utf-8")
    logger.info("Wrote marts to %s", out_dir)
    return warnings
