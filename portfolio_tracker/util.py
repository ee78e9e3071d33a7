from __future__ import annotations

import csv
import datetime as dt
import io
import re
from typing import Any, Iterable


_NUMBER_RE = re.compile(r"[-+]?\d[\d,]*\.?\d*(?:[eE][-+]?\d+)?")
_DATE_SPLIT_RE = re.compile(r"[/-]")

# Unambiguous formats only; day/month ordering is settled by the split fallback.
_DIRECT_FORMATS = (
    "%Y/%m/%d",
    "%d-%b-%y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y%m%d",
)


def sniff_delimiter(text: str) -> str:
    sample = "\n".join((text or "").splitlines()[:30])
    if not sample:
        return ","
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",\t;")
        return getattr(dialect, "delimiter", ",") or ","
    except csv.Error:
        return ","


def read_rows(text: str) -> list[dict[str, Any]]:
    """
    Parse delimited text with a header row into dicts.

    Empty lines are skipped; a row made only of blank cells is dropped.
    """
    text = (text or "").lstrip("\ufeff")
    if not text.strip():
        return []
    reader = csv.DictReader(io.StringIO(text), delimiter=sniff_delimiter(text))
    out: list[dict[str, Any]] = []
    for row in reader:
        if not row:
            continue
        if all(v is None or not str(v).strip() for v in row.values()):
            continue
        out.append(row)
    return out


def norm_key(s: str) -> str:
    return "".join(ch.lower() if ch.isalnum() else "_" for ch in (s or "")).strip("_")


def pick(row: dict[str, Any], keys: list[str]) -> Any:
    norm = {}
    for k in row.keys():
        if k:
            # "Cash \nBalance" style headers collapse to "cash__balance"; squeeze repeats.
            norm.setdefault(re.sub(r"_+", "_", norm_key(k)), k)
    for k in keys:
        if k in norm:
            return row.get(norm[k])
    return None


def clean_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _direct_parse(s: str) -> dt.date | None:
    try:
        return dt.date.fromisoformat(s[:10])
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(s).date()
    except ValueError:
        pass
    # Full string first ("15 Jan 2024"), then the leading token ("2024/01/15 00:00").
    for candidate in dict.fromkeys((s, s.split()[0])):
        for fmt in _DIRECT_FORMATS:
            try:
                return dt.datetime.strptime(candidate, fmt).date()
            except ValueError:
                continue
    return None


def _date_from_parts(year: str, month: str, day: str) -> dt.date | None:
    try:
        y = int(year)
        if len(year.strip()) == 2:
            y += 2000
        return dt.date(y, int(month), int(day))
    except ValueError:
        return None


def normalize_date(value: Any) -> str:
    """
    Canonicalize a date string to YYYY-MM-DD.

    Tries a direct parse first, then splits on "/" or "-" and tries the
    MM/DD/YYYY ordering followed by DD/MM/YYYY. When nothing yields a valid
    calendar date the original string is returned unchanged; callers decide
    whether to warn.
    """
    s = clean_str(value)
    if not s:
        return s
    d = _direct_parse(s)
    if d is not None:
        return d.isoformat()
    parts = _DATE_SPLIT_RE.split(s.split()[0])
    if len(parts) == 3 and len(parts[0]) == 4:
        d = _date_from_parts(*parts)
        if d is not None:
            return d.isoformat()
    elif len(parts) == 3:
        first, second, year = parts
        for month, day in ((first, second), (second, first)):
            d = _date_from_parts(year, month, day)
            if d is not None:
                return d.isoformat()
    return s


def is_canonical_date(s: str) -> bool:
    try:
        return dt.date.fromisoformat(s).isoformat() == s
    except (TypeError, ValueError):
        return False


def parse_number(value: Any) -> float:
    """
    Loose numeric coercion: blanks, None and garbage become 0.0.

    Handles thousands separators, currency symbols and "(123.45)" negatives.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        x = float(value)
        return x if x == x and x not in (float("inf"), float("-inf")) else 0.0
    s = str(value).strip()
    if not s:
        return 0.0
    neg = False
    if s.startswith("(") and s.endswith(")"):
        neg = True
        s = s[1:-1]
    m = _NUMBER_RE.search(s.replace("$", "").replace(" ", ""))
    if not m:
        return 0.0
    try:
        x = float(m.group(0).replace(",", ""))
    except ValueError:
        return 0.0
    return -x if neg else x


def safe_pct(numerator: float, denominator: float) -> float:
    """Percentage of abs(denominator); 0.0 when the denominator is 0."""
    d = abs(float(denominator))
    if d == 0:
        return 0.0
    return float(numerator) / d * 100.0


def uniq_sorted(xs: Iterable[str]) -> list[str]:
    return sorted({str(x).strip() for x in xs if str(x).strip()})
