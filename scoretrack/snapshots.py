# scoretrack/snapshots.py
"""Per-score CSV snapshots of the price and dividend corpora.

For ``.../2024/November/15.tsv`` the price snapshot lands in ``15.csv`` and the
dividend snapshot in ``15-dividends.csv``, next to the score file. Both are
rewritten from scratch on every run.
"""
from __future__ import annotations
import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Iterable, List

import numpy as np
import pandas as pd

from scoretrack.corpus import dividend_records_in_range, filter_prices, read_dividend_entry, read_price_entry
from scoretrack.errors import NotFoundError, ParseError

logger = logging.getLogger(__name__)

PRICE_COLUMNS = ["date", "ticker", "high", "low", "open", "close", "split_coefficient"]
DIVIDEND_COLUMNS = ["date", "symbol", "amount"]


def price_snapshot_path(score_path: Path) -> Path:
    score_path = Path(score_path)
    return score_path.with_name(score_path.name.removesuffix(".tsv") + ".csv")


def dividend_snapshot_path(score_path: Path) -> Path:
    score_path = Path(score_path)
    return score_path.with_name(score_path.name.removesuffix(".tsv") + "-dividends.csv")


def _write(rows: List[dict], columns: List[str], path: Path) -> None:
    df = pd.DataFrame(rows, columns=columns)
    df.to_csv(path, index=False, lineterminator="\n")


def write_price_snapshot(score_path: Path, tickers: Iterable[str], score_date: date,
                         price_root: Path, window_days: int = 180) -> Path:
    end = score_date + timedelta(days=window_days)
    rows: List[dict] = []
    for ticker in tickers:
        try:
            entry = read_price_entry(price_root, ticker)
        except NotFoundError:
            logger.warning(f"No price data for {ticker}, skipped")
            continue
        except ParseError as e:
            logger.error(f"Bad price data for {ticker}, skipped: {e}")
            continue
        kept = filter_prices(entry, score_date, end)
        if not kept:
            logger.debug(f"No prices for {ticker} between {score_date} and {end}")
        for iso, _close in kept:
            bar = entry.daily[iso]
            rows.append({
                "date": iso,
                "ticker": ticker,
                "high": bar.high,
                "low": bar.low,
                "open": bar.open,
                "close": bar.close,
                "split_coefficient": bar.split_coefficient,
            })

    out = price_snapshot_path(score_path)
    _write(rows, PRICE_COLUMNS, out)
    logger.info(f"Wrote {len(rows)} price rows to {out}")
    return out


def write_dividend_snapshot(score_path: Path, tickers: Iterable[str], score_date: date,
                            dividend_root: Path, window_days: int = 180) -> Path:
    end = score_date + timedelta(days=window_days)
    rows: List[dict] = []
    for ticker in tickers:
        try:
            entry = read_dividend_entry(dividend_root, ticker)
        except NotFoundError:
            logger.debug(f"No dividend data for {ticker}")
            continue
        except ParseError as e:
            logger.error(f"Bad dividend data for {ticker}, skipped: {e}")
            continue
        for rec in dividend_records_in_range(entry, score_date, end):
            rows.append({"date": rec.ex_dividend_date, "symbol": ticker, "amount": rec.amount})

    out = dividend_snapshot_path(score_path)
    _write(rows, DIVIDEND_COLUMNS, out)
    logger.info(f"Wrote {len(rows)} dividend rows to {out}")
    return out


def load_price_snapshot(path: Path) -> pd.DataFrame:
    """Snapshot rows with a usable close, typed for arithmetic.

    Columns: ``date`` (datetime.date), ``ticker``, ``high``, ``close``.
    Rows whose close is not a positive finite number are dropped.
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"Price snapshot not found: {path}")
    try:
        raw = pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raw = pd.DataFrame(columns=PRICE_COLUMNS)
    except pd.errors.ParserError as e:
        raise ParseError(f"Unreadable price snapshot {path}: {e}") from e
    if raw.shape[1] < len(PRICE_COLUMNS):
        raise ParseError(f"Price snapshot {path} has {raw.shape[1]} columns, expected 7")

    df = pd.DataFrame({
        "date": pd.to_datetime(raw.iloc[:, 0], format="%Y-%m-%d", errors="coerce"),
        "ticker": raw.iloc[:, 1],
        "high": pd.to_numeric(raw.iloc[:, 2], errors="coerce").astype(float),
        "close": pd.to_numeric(raw.iloc[:, 5], errors="coerce").astype(float),
    })
    ok = df["date"].notna() & np.isfinite(df["close"]) & (df["close"] > 0)
    df = df.loc[ok].copy()
    df["date"] = df["date"].dt.date
    return df.reset_index(drop=True)
