from __future__ import annotations

import logging
from dataclasses import dataclass

from portfolio_tracker.util import clean_str, is_canonical_date, normalize_date, parse_number, pick, read_rows, uniq_sorted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    trans_id: str
    symbol: str
    account: str
    date: str  # YYYY-MM-DD, or the raw cell when it could not be normalized
    status: str
    sub_type: str

    # Signed fields already carry direction (buy/sell, in/out); never re-sign downstream.
    qty_change: float
    cost_change: float
    realized: float
    cash_impact: float

    net_price: float
    debit: float
    name: str


def load_transactions(text: str) -> tuple[list[Transaction], list[str]]:
    """
    Parse the transactions extract.

    Rows keep their input order. Unparseable dates are kept verbatim and reported
    once each in the returned warnings.
    """
    warnings: list[str] = []
    out: list[Transaction] = []
    for row in read_rows(text):
        raw_date = clean_str(pick(row, ["date", "trade_date", "trans_date"]))
        date = normalize_date(raw_date)
        if raw_date and not is_canonical_date(date):
            logger.warning("Could not standardize date: %s", raw_date)
            warnings.append(f"Could not standardize transaction date: {raw_date}")
        out.append(
            Transaction(
                trans_id=clean_str(pick(row, ["transid", "trans_id", "id"])),
                symbol=clean_str(pick(row, ["symbol", "ticker"])),
                account=clean_str(pick(row, ["account", "account_name"])),
                date=date,
                status=clean_str(pick(row, ["status_tr", "status"])),
                sub_type=clean_str(pick(row, ["transsubtype", "trans_sub_type", "sub_type"])),
                qty_change=parse_number(pick(row, ["qty_change"])),
                cost_change=parse_number(pick(row, ["cost_change"])),
                realized=parse_number(pick(row, ["realized3", "realized"])),
                cash_impact=parse_number(pick(row, ["cash_impact"])),
                net_price=parse_number(pick(row, ["net_price"])),
                debit=parse_number(pick(row, ["db", "debit"])),
                name=clean_str(pick(row, ["sh_name_eng", "name"])),
            )
        )
    if not out:
        warnings.append("No transactions parsed (check delimiter/headers).")
    elif not uniq_sorted(t.symbol for t in out):
        warnings.append("No symbols found in transactions (symbol column missing or empty).")
    return out, warnings


def date_range(dates: list[str]) -> tuple[str, str] | None:
    ds = sorted(d for d in dates if d)
    if not ds:
        return None
    return ds[0], ds[-1]


def transactions_by_account(txs: list[Transaction], *, excluded: list[str] | tuple[str, ...] = ()) -> dict[str, list[Transaction]]:
    """Group by trimmed account name, skipping blanks and the pseudo "all" names."""
    out: dict[str, list[Transaction]] = {}
    skip = set(excluded)
    for t in txs:
        if not t.account or t.account in skip:
            continue
        out.setdefault(t.account, []).append(t)
    return {k: out[k] for k in sorted(out)}
