from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer

from portfolio_tracker.config import Settings, load_settings
from portfolio_tracker.exceptions import ConfigError, EnvelopeError
from portfolio_tracker.exports import (
    export_filename,
    export_inputs,
    reprocess_envelope,
    write_envelope,
    write_marts,
)
from portfolio_tracker.measures import measures_report
from portfolio_tracker.pipeline import ALL_ACCOUNTS, STATUS_FAILED, STATUS_MISSING_INPUT, PortfolioData, process_portfolio

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Portfolio tracker CLI")


def _setup(config: Optional[Path]) -> Settings:
    try:
        settings, source = load_settings(config)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if source:
        logging.getLogger(__name__).info("Loaded settings from %s", source)
    return settings


def _read(path: Path, label: str) -> str:
    if not path.exists():
        raise typer.BadParameter(f"{label} file not found: {path}")
    return path.read_text(encoding="utf-8-sig")


def _finish(data: PortfolioData, *, out: Path, account: str, settings: Settings) -> None:
    warnings = write_marts(data, out)
    (out / "measures.json").write_text(
        json.dumps(measures_report(data, account, settings), indent=2), encoding="utf-8"
    )
    result = {
        "status": data.status,
        "accounts": data.account_names,
        "selected_account": data.selected_account,
        "summary": asdict(data.summary),
        "errors": data.errors,
        "warnings": data.warnings + warnings,
        "out": str(out),
    }
    typer.echo(json.dumps(result, indent=2))
    if data.status in (STATUS_MISSING_INPUT, STATUS_FAILED):
        raise typer.Exit(code=1)


@app.command("process")
def process_cmd(
    transactions: Path = typer.Option(..., help="Transactions extract (CSV/TSV)."),
    symbols: Path = typer.Option(..., help="Symbols reference extract."),
    quotes: Path = typer.Option(..., help="Daily quotes extract."),
    account: str = typer.Option(ALL_ACCOUNTS, help='Account to select, or "all".'),
    out: Path = typer.Option(Path("./out"), help="Output directory for marts."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML."),
):
    """
    Build holdings, closed positions and the value series, then write marts and measures.
    """
    settings = _setup(config)
    data = process_portfolio(
        _read(transactions, "Transactions"),
        _read(symbols, "Symbols"),
        _read(quotes, "Quotes"),
        selected_account=account,
        settings=settings,
    )
    _finish(data, out=out, account=account, settings=settings)


@app.command("export-inputs")
def export_inputs_cmd(
    transactions: Path = typer.Option(..., help="Transactions extract (CSV/TSV)."),
    symbols: Path = typer.Option(..., help="Symbols reference extract."),
    quotes: Path = typer.Option(..., help="Daily quotes extract."),
    out: Optional[Path] = typer.Option(None, help='Envelope path (default "Portfolio Data <latest date>.json").'),
    config: Optional[Path] = typer.Option(None, help="Settings YAML."),
):
    """
    Bundle the three raw extracts into a single JSON envelope.
    """
    settings = _setup(config)
    texts = (_read(transactions, "Transactions"), _read(symbols, "Symbols"), _read(quotes, "Quotes"))
    if out is None:
        out = Path(export_filename(process_portfolio(*texts, settings=settings)))
    path = write_envelope(export_inputs(*texts), out)
    typer.echo(f"Wrote {path}")


@app.command("reprocess")
def reprocess_cmd(
    envelope: Path = typer.Argument(..., help="Envelope written by export-inputs."),
    account: str = typer.Option(ALL_ACCOUNTS, help='Account to select, or "all".'),
    out: Path = typer.Option(Path("./out"), help="Output directory for marts."),
    config: Optional[Path] = typer.Option(None, help="Settings YAML."),
):
    """
    Re-run the full pipeline from a raw-input envelope.
    """
    settings = _setup(config)
    try:
        data = reprocess_envelope(_read(envelope, "Envelope"), selected_account=account, settings=settings)
    except EnvelopeError as e:
        typer.echo(f"Invalid envelope: {e}", err=True)
        raise typer.Exit(code=2)
    _finish(data, out=out, account=account, settings=settings)


if __name__ == "__main__":
    app()
