# scoretrack/performance.py
"""90-day portfolio performance of a score, measured or projected.

A score is *measured* once 90 days have elapsed since its date; before that
its trajectory so far is extrapolated to 90 days and damped.
"""
from __future__ import annotations
import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple

import numpy as np
import pandas as pd

from scoretrack.corpus import dividends_total
from scoretrack.errors import EngineError
from scoretrack.models import PortfolioPerformance, StockPerformance, StockRecord
from scoretrack.scorefile import read_score_file, read_tickers
from scoretrack.snapshots import load_price_snapshot, price_snapshot_path

logger = logging.getLogger(__name__)

HORIZON_DAYS = 90
DAYS_PER_YEAR = 365.25

# (elapsed days upper bound, factor); anything beyond the last bound gets FINAL_DAMPING
DAMPING = ((30, 0.3), (60, 0.5))
FINAL_DAMPING = 0.7
PROJECTION_BOUNDS = (-100.0, 200.0)

PriceSeries = Dict[date, float]
Mode = Literal["measured", "projected"]


def damping_factor(days: int) -> float:
    for bound, factor in DAMPING:
        if days < bound:
            return factor
    return FINAL_DAMPING


def project_gain(gain_pct: float, days: int, horizon: int = HORIZON_DAYS) -> float:
    """Extrapolate a gain observed over ``days`` to ``horizon`` days, damped and clamped."""
    if days <= 0:
        raise EngineError(f"Cannot project from {days} elapsed days")
    raw = gain_pct / days * horizon
    lo, hi = PROJECTION_BOUNDS
    return float(min(hi, max(lo, raw * damping_factor(days))))


def annualize(performance_pct: float, effective_days: int) -> float:
    if performance_pct == 0 or effective_days <= 0:
        return 0.0
    base = 1 + performance_pct / 100
    if base <= 0:
        return -100.0
    try:
        return (base ** (DAYS_PER_YEAR / effective_days) - 1) * 100
    except OverflowError:
        raise EngineError(
            f"Annualizing {performance_pct:.2f}% over {effective_days}d overflows"
        ) from None


def build_price_maps(snapshot: pd.DataFrame) -> Tuple[Dict[str, PriceSeries], Dict[str, PriceSeries]]:
    """ticker -> {date: close} and ticker -> {date: high}."""
    closes: Dict[str, PriceSeries] = {}
    highs: Dict[str, PriceSeries] = {}
    for ticker, g in snapshot.groupby("ticker", sort=False):
        closes[ticker] = dict(zip(g["date"], g["close"].astype(float)))
        highs[ticker] = {d: float(h) for d, h in zip(g["date"], g["high"]) if not pd.isna(h)}
    return closes, highs


def buy_price_for(closes: PriceSeries, score_date: date) -> Optional[Tuple[date, float]]:
    """Close on the score date, else the first close after it."""
    if score_date in closes:
        return score_date, closes[score_date]
    later = [d for d in closes if d > score_date]
    if not later:
        return None
    first = min(later)
    return first, closes[first]


def latest_close_between(closes: PriceSeries, start: date, end: date) -> Optional[Tuple[date, float]]:
    window = [d for d in closes if start <= d <= end]
    if not window:
        return None
    last = max(window)
    return last, closes[last]


def measured_current_price(closes: PriceSeries, score_date: date, end_date: date) -> Optional[Tuple[date, float]]:
    if end_date in closes:
        return end_date, closes[end_date]
    return latest_close_between(closes, score_date, end_date)


def _reached_target(highs: PriceSeries, start: date, end: date, target: float) -> bool:
    return any(h >= target for d, h in highs.items() if start <= d <= end)


def _stock_performance(record: StockRecord, closes: PriceSeries, highs: PriceSeries,
                       score_date: date, end_date: date, mode: Mode, today: date,
                       dividend_root: Path, horizon: int) -> Optional[StockPerformance]:
    ticker = record.ticker
    buy = buy_price_for(closes, score_date)
    if buy is None:
        logger.debug(f"{ticker}: no buy price on or after {score_date}")
        return None
    buy_date, buy_price = buy

    if mode == "measured":
        current = measured_current_price(closes, score_date, end_date)
    else:
        current = latest_close_between(closes, score_date, today)
    if current is None:
        logger.debug(f"{ticker}: no current price")
        return None
    current_date, current_price = current

    gain = (current_price - buy_price) / buy_price * 100
    if mode == "projected":
        elapsed = (current_date - score_date).days
        if elapsed <= 0:
            logger.debug(f"{ticker}: only score-date prices, nothing to project")
            return None
        gain = project_gain(gain, elapsed, horizon)

    divs = dividends_total(dividend_root, ticker, score_date, end_date)
    return StockPerformance(
        ticker=ticker,
        buy_price=buy_price,
        target_price=record.target_price,
        current_price=current_price,
        current_date=current_date,
        price_gain_loss_pct=gain,
        dividends_total=divs,
        total_return_pct=gain + divs / buy_price * 100,
        target_upside_pct=(record.target_price - buy_price) / buy_price * 100,
        reached_target=_reached_target(highs, buy_date, current_date, record.target_price),
    )


def _calculate(score_path: Path, score_date: date, dividend_root: Path, mode: Mode,
               today: date, horizon: int) -> PortfolioPerformance:
    records = read_score_file(score_path)
    # rows dropped by the reader still count as listed stocks
    listed = len(read_tickers(score_path))
    end_date = score_date + timedelta(days=horizon)
    snapshot = load_price_snapshot(price_snapshot_path(score_path))
    closes, highs = build_price_maps(snapshot)

    perfs: List[StockPerformance] = []
    for record in records:
        if record.ticker not in closes:
            logger.debug(f"{record.ticker}: not in price snapshot")
            continue
        perf = _stock_performance(record, closes[record.ticker], highs.get(record.ticker, {}),
                                  score_date, end_date, mode, today, dividend_root, horizon)
        if perf is not None:
            perfs.append(perf)

    performance_90_day = float(np.mean([p.total_return_pct for p in perfs])) if perfs else 0.0
    latest = max([p.current_date for p in perfs], default=score_date)
    effective_days = min(horizon, max(0, (latest - score_date).days))

    result = PortfolioPerformance(
        score_date=score_date,
        mode=mode,
        total_stocks=listed,
        performance_90_day=performance_90_day,
        performance_annualized=annualize(performance_90_day, effective_days),
        effective_days=effective_days,
        targets_reached=sum(1 for p in perfs if p.reached_target),
        individual=perfs,
    )
    logger.info(
        f"{score_date} ({mode}): {len(perfs)}/{listed} stocks, "
        f"90d={result.performance_90_day:.2f}% annualized={result.performance_annualized:.2f}% "
        f"over {effective_days}d"
    )
    return result


def calculate_measured_performance(score_path: Path, score_date: date, dividend_root: Path,
                                   today: Optional[date] = None,
                                   horizon: int = HORIZON_DAYS) -> PortfolioPerformance:
    return _calculate(Path(score_path), score_date, Path(dividend_root), "measured",
                      today or date.today(), horizon)


def calculate_projected_performance(score_path: Path, score_date: date, dividend_root: Path,
                                    today: Optional[date] = None,
                                    horizon: int = HORIZON_DAYS) -> PortfolioPerformance:
    today = today or date.today()
    if (today - score_date).days >= horizon:
        raise EngineError(f"Score {score_date} is at least {horizon} days old; measure it instead")
    return _calculate(Path(score_path), score_date, Path(dividend_root), "projected", today, horizon)


def is_measurable(score_date: date, today: Optional[date] = None, horizon: int = HORIZON_DAYS) -> bool:
    return ((today or date.today()) - score_date).days >= horizon


def calculate_performance(score_path: Path, score_date: date, dividend_root: Path,
                          today: Optional[date] = None,
                          horizon: int = HORIZON_DAYS) -> PortfolioPerformance:
    """Measured once ``horizon`` days have elapsed, projected before."""
    today = today or date.today()
    if is_measurable(score_date, today, horizon):
        return calculate_measured_performance(score_path, score_date, dividend_root, today, horizon)
    return calculate_projected_performance(score_path, score_date, dividend_root, today, horizon)
