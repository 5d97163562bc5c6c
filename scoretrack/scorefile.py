# scoretrack/scorefile.py
from __future__ import annotations
import calendar
import logging
import re
from datetime import date
from pathlib import Path
from typing import List

import pandas as pd
from pydantic import ValidationError

from scoretrack.errors import InvalidArgumentError, NotFoundError, ParseError
from scoretrack.models import StockRecord

logger = logging.getLogger(__name__)

# TSV header -> StockRecord field
COLUMNS = {
    "Stock": "ticker",
    "Score": "score",
    "Target": "target_price",
    "ExDividendDate": "ex_dividend_date",
    "DividendPerShare": "dividend_per_share",
    "Notes": "notes",
    "intrinsicValuePerShareBasic": "intrinsic_value_basic",
    "intrinsicValuePerShareAdjusted": "intrinsic_value_adjusted",
}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(text: str) -> date:
    if not text or not _ISO_DATE.match(text):
        raise InvalidArgumentError(f"Expected a YYYY-MM-DD date, got {text!r}")
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid date {text!r}: {e}") from e


def score_path_for_date(docs_root: Path, score_date: date) -> Path:
    """``<docs>/scores/2024/November/15.tsv``"""
    month_name = calendar.month_name[score_date.month]
    return Path(docs_root) / "scores" / str(score_date.year) / month_name / f"{score_date.day}.tsv"


def _read_frame(path: Path) -> pd.DataFrame:
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"Score file not found: {path}")
    try:
        df = pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Unreadable score file {path}: {e}") from e
    if "Stock" not in df.columns:
        raise ParseError(f"Score file {path} has no 'Stock' column")
    return df


def read_tickers(path: Path) -> List[str]:
    """Tickers in file order, exchange prefix retained."""
    df = _read_frame(path)
    return [t for t in df["Stock"].str.strip().tolist() if t]


def read_score_file(path: Path) -> List[StockRecord]:
    df = _read_frame(path)
    present = [c for c in COLUMNS if c in df.columns]
    records: List[StockRecord] = []
    for i, row in df.loc[:, present].iterrows():
        values = {COLUMNS[c]: row[c] for c in present}
        values["ticker"] = values["ticker"].strip()
        if not values["ticker"]:
            logger.warning(f"{path}: row {i + 2} has no ticker, dropped")
            continue
        try:
            records.append(StockRecord(**values))
        except (ValidationError, ParseError) as e:
            logger.warning(f"{path}: row {i + 2} ({values['ticker']}) dropped: {e}")
    return records
