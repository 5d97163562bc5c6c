# scoretrack/corpus.py
"""Readers for the on-disk price and dividend corpora.

Both corpora shelve one JSON file per symbol under
``<root>/data/<LETTER>/<SYMBOL>.json``.
"""
from __future__ import annotations
import json
import logging
from datetime import date
from pathlib import Path
from typing import List, Tuple, Union

from pydantic import ValidationError

from scoretrack.currency import parse_number
from scoretrack.errors import NotFoundError, ParseError
from scoretrack.models import DailyBar, DividendCorpusEntry, DividendRecord, PriceCorpusEntry

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


def symbol_from_ticker(ticker: str) -> str:
    """``NYSE:HEI.A`` -> ``HEI-A``. Only used to locate corpus files."""
    symbol = ticker.rsplit(":", 1)[-1]
    return symbol.replace(".", "-")


def corpus_path(root: Path, symbol: str) -> Path:
    letter = symbol[0].upper() if symbol else "X"
    return Path(root) / "data" / letter / f"{symbol}.json"


def _load_json(path: Path):
    if not path.is_file():
        raise NotFoundError(f"No corpus file at {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {path}: {e}") from e


def read_price_entry(price_root: Path, ticker: str) -> PriceCorpusEntry:
    symbol = symbol_from_ticker(ticker)
    path = corpus_path(price_root, symbol)
    raw = _load_json(path)
    if not isinstance(raw, dict):
        raise ParseError(f"Unexpected price document in {path}")
    meta = raw.get("Meta Data") or {}
    series = raw.get("Time Series (Daily)") or {}
    if not isinstance(series, dict):
        raise ParseError(f"Unexpected time series in {path}")
    try:
        daily = {d: DailyBar.model_validate(bar) for d, bar in series.items()}
    except ValidationError as e:
        raise ParseError(f"Malformed daily bar in {path}: {e}") from e
    return PriceCorpusEntry(symbol=meta.get("2. Symbol") or symbol, daily=daily)


def read_dividend_entry(dividend_root: Path, ticker: str) -> DividendCorpusEntry:
    symbol = symbol_from_ticker(ticker)
    path = corpus_path(dividend_root, symbol)
    raw = _load_json(path)
    if not isinstance(raw, dict):
        raise ParseError(f"Unexpected dividend document in {path}")
    raw.setdefault("symbol", symbol)
    try:
        return DividendCorpusEntry.model_validate(raw)
    except ValidationError as e:
        raise ParseError(f"Malformed dividend document {path}: {e}") from e


def _as_date(value: DateLike) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def _in_range(iso: str, start: date, end: date) -> bool:
    try:
        d = date.fromisoformat(iso)
    except ValueError:
        return False
    return start <= d <= end


def filter_prices(entry: PriceCorpusEntry, start: DateLike, end: DateLike) -> List[Tuple[str, float]]:
    """(iso_date, close) within [start, end], ascending; bad dates/closes dropped."""
    lo, hi = _as_date(start), _as_date(end)
    out = []
    for iso, bar in entry.daily.items():
        if not _in_range(iso, lo, hi):
            continue
        close = parse_number(bar.close)
        if close is None:
            continue
        out.append((iso, close))
    return sorted(out, key=lambda row: date.fromisoformat(row[0]))


def dividend_records_in_range(entry: DividendCorpusEntry, start: DateLike, end: DateLike) -> List[DividendRecord]:
    lo, hi = _as_date(start), _as_date(end)
    kept = [
        rec for rec in entry.records
        if _in_range(rec.ex_dividend_date, lo, hi) and parse_number(rec.amount) is not None
    ]
    return sorted(kept, key=lambda rec: date.fromisoformat(rec.ex_dividend_date))


def filter_dividends(entry: DividendCorpusEntry, start: DateLike, end: DateLike) -> List[Tuple[str, float]]:
    """(ex_dividend_date, amount) within [start, end], ascending."""
    return [(rec.ex_dividend_date, parse_number(rec.amount)) for rec in dividend_records_in_range(entry, start, end)]


def dividends_total(dividend_root: Path, ticker: str, start: DateLike, end: DateLike) -> float:
    """Sum of dividends paid in [start, end]; 0 when the corpus has no entry."""
    try:
        entry = read_dividend_entry(dividend_root, ticker)
    except NotFoundError:
        logger.debug(f"No dividend corpus entry for {ticker}")
        return 0.0
    return float(sum(amount for _, amount in filter_dividends(entry, start, end)))
