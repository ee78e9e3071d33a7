from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from portfolio_tracker.aggregate import CLOSED_DEPOSIT, CLOSED_POSITION, OPEN_DEPOSIT, OPEN_POSITION, TIME_DEPOSIT, is_time_deposit, split_by_status
from portfolio_tracker.config import Settings
from portfolio_tracker.exceptions import AccountProcessingError, MissingInputError
from portfolio_tracker.quotes import Quote, load_quotes
from portfolio_tracker.reference import ReferenceData, build_reference
from portfolio_tracker.rollup import SummaryMetrics, flatten_holdings, merge_time_series, sum_summaries
from portfolio_tracker.symbols import load_symbols
from portfolio_tracker.timeseries import TimeSeriesPoint, build_time_series
from portfolio_tracker.transactions import Transaction, date_range, load_transactions, transactions_by_account
from portfolio_tracker.valuation import Holding, build_holdings

logger = logging.getLogger(__name__)

ALL_ACCOUNTS = "all"

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_MISSING_INPUT = "missing_input"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class AccountPortfolio:
    name: str
    current_holdings: list[Holding]
    closed_positions: list[Holding]
    open_deposits: list[Holding]
    closed_deposits: list[Holding]
    time_deposits: list[Holding]
    time_series: list[TimeSeriesPoint]
    summary: SummaryMetrics


@dataclass(frozen=True)
class PortfolioData:
    accounts: list[AccountPortfolio] = field(default_factory=list)
    current_holdings: list[Holding] = field(default_factory=list)
    closed_positions: list[Holding] = field(default_factory=list)
    open_deposits: list[Holding] = field(default_factory=list)
    closed_deposits: list[Holding] = field(default_factory=list)
    time_series: list[TimeSeriesPoint] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    quotes: list[Quote] = field(default_factory=list)
    latest_quotes: dict[str, Quote] = field(default_factory=dict)
    summary: SummaryMetrics = field(default_factory=SummaryMetrics)
    selected_account: str = ALL_ACCOUNTS
    status: str = STATUS_OK
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def account(self, name: str) -> Optional[AccountPortfolio]:
        for a in self.accounts:
            if a.name == name:
                return a
        return None

    @property
    def account_names(self) -> list[str]:
        return [a.name for a in self.accounts]


def build_account(name: str, txs: list[Transaction], reference: ReferenceData, settings: Settings) -> AccountPortfolio:
    """Every holding view, the replayed series and the summary for one account."""
    by_status = split_by_status(txs)

    current = build_holdings(by_status[OPEN_POSITION], reference, status="Open Items")
    closed = build_holdings(by_status[CLOSED_POSITION], reference, include_zero=True, closed=True, by_status=True)
    open_deposits = build_holdings(by_status[OPEN_DEPOSIT], reference, status="Open Deposits", fixed_income=True)
    closed_deposits = build_holdings(
        by_status[CLOSED_DEPOSIT], reference, status="Closed Deposits", include_zero=True, closed=True, fixed_income=True
    )
    time_deposits = build_holdings([t for t in txs if is_time_deposit(t)], reference, status=TIME_DEPOSIT, fixed_income=True)

    series = build_time_series(txs, reference, account=name, cash_symbols=settings.cash_symbols)

    cash = sum(t.cash_impact for t in txs)
    equity = sum(h.value for h in current)
    summary = SummaryMetrics(
        total_value=equity + cash,
        cash_balance=cash,
        equity_value=equity,
        realized_gain=sum(h.realized_gain for h in closed),
        unrealized_gain=sum(h.unrealized_gain for h in current) + sum(h.unrealized_gain for h in time_deposits),
    )
    logger.info(
        "Account %s: %d current, %d closed, %d open deposits, %d closed deposits, %d time deposits",
        name,
        len(current),
        len(closed),
        len(open_deposits),
        len(closed_deposits),
        len(time_deposits),
    )
    return AccountPortfolio(
        name=name,
        current_holdings=current,
        closed_positions=closed,
        open_deposits=open_deposits,
        closed_deposits=closed_deposits,
        time_deposits=time_deposits,
        time_series=series,
        summary=summary,
    )


def _build_accounts(
    grouped: dict[str, list[Transaction]], reference: ReferenceData, settings: Settings
) -> tuple[list[AccountPortfolio], list[str]]:
    errors: list[str] = []
    accounts: list[AccountPortfolio] = []
    if not grouped:
        return accounts, errors
    workers = max(1, min(settings.max_workers, len(grouped)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures: dict[str, Future] = {
            name: pool.submit(build_account, name, txs, reference, settings) for name, txs in grouped.items()
        }
        # Join in sorted account order regardless of completion order.
        for name in sorted(futures):
            try:
                accounts.append(futures[name].result())
            except Exception as e:
                err = AccountProcessingError(name, e)
                logger.exception("Failed to process account %s", name)
                errors.append(str(err))
    return accounts, errors


def _select(accounts: list[AccountPortfolio], selected: str, warnings: list[str]) -> dict:
    if selected == ALL_ACCOUNTS:
        return {
            "current_holdings": flatten_holdings(a.current_holdings for a in accounts),
            "closed_positions": flatten_holdings(a.closed_positions for a in accounts),
            "open_deposits": flatten_holdings(a.open_deposits for a in accounts),
            "closed_deposits": flatten_holdings(a.closed_deposits for a in accounts),
            "time_series": merge_time_series([a.time_series for a in accounts]),
            "summary": sum_summaries(a.summary for a in accounts),
        }
    for a in accounts:
        if a.name == selected:
            return {
                "current_holdings": list(a.current_holdings),
                "closed_positions": list(a.closed_positions),
                "open_deposits": list(a.open_deposits),
                "closed_deposits": list(a.closed_deposits),
                "time_series": list(a.time_series),
                "summary": a.summary,
            }
    msg = f"Account not found: {selected}"
    logger.warning(msg)
    warnings.append(msg)
    return {}


def process_portfolio(
    transactions_text: str,
    symbols_text: str,
    quotes_text: str,
    *,
    selected_account: str = ALL_ACCOUNTS,
    settings: Optional[Settings] = None,
) -> PortfolioData:
    """
    Run the whole pipeline over the three raw extracts.

    Never raises: missing inputs and unexpected failures come back as a
    PortfolioData with empty views, a non-"ok" status and the message in
    `errors`.
    """
    settings = settings or Settings()
    selected_account = (selected_account or ALL_ACCOUNTS).strip() or ALL_ACCOUNTS
    try:
        missing = [
            label
            for label, text in (("transactions", transactions_text), ("symbols", symbols_text), ("quotes", quotes_text))
            if not (text or "").strip()
        ]
        if missing:
            raise MissingInputError(f"Missing input: {', '.join(missing)}")

        warnings: list[str] = []
        txs, w = load_transactions(transactions_text)
        warnings.extend(w)
        symbols, w = load_symbols(symbols_text)
        warnings.extend(w)
        quotes, w = load_quotes(quotes_text)
        warnings.extend(w)
        logger.info("Parsed %d transactions, %d symbols, %d quotes", len(txs), len(symbols), len(quotes))

        tx_range = date_range([t.date for t in txs])
        if tx_range:
            logger.info("Transaction dates: %s to %s", *tx_range)
        q_range = date_range([q.date for q in quotes])
        if q_range:
            logger.info("Quote dates: %s to %s", *q_range)

        reference = build_reference(symbols, quotes, benchmark_symbol=settings.benchmark_symbol)
        grouped = transactions_by_account(txs, excluded=settings.excluded_account_names)
        logger.info("Found %d account(s): %s", len(grouped), ", ".join(grouped))

        accounts, errors = _build_accounts(grouped, reference, settings)
        views = _select(accounts, selected_account, warnings)
        return PortfolioData(
            accounts=accounts,
            transactions=txs,
            quotes=quotes,
            latest_quotes=dict(reference.quotes.latest),
            selected_account=selected_account,
            status=STATUS_PARTIAL if errors else STATUS_OK,
            errors=errors,
            warnings=warnings,
            **views,
        )
    except MissingInputError as e:
        logger.error("%s", e)
        return PortfolioData(selected_account=selected_account, status=STATUS_MISSING_INPUT, errors=[str(e)])
    except Exception as e:
        logger.exception("Portfolio processing failed")
        return PortfolioData(
            selected_account=selected_account, status=STATUS_FAILED, errors=[f"{type(e).__name__}: {e}"]
        )
