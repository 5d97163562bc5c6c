# scoretrack/batch.py
"""Drive snapshots, performance and index updates over a set of scores."""
from __future__ import annotations
import logging
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional, Tuple

from scoretrack.errors import NotFoundError
from scoretrack.index_store import index_path, load_index_document, read_index, update_index
from scoretrack.models import BatchResult, Paths, PortfolioPerformance, ScoreEntry, Settings
from scoretrack.performance import calculate_performance
from scoretrack.scorefile import parse_iso_date, read_tickers, score_path_for_date
from scoretrack.snapshots import price_snapshot_path, write_dividend_snapshot, write_price_snapshot

logger = logging.getLogger(__name__)


def select_scores(entries: List[ScoreEntry], today: date, recency_days: int,
                  process_all: bool = False) -> Tuple[List[ScoreEntry], int]:
    """Entries inside the recency window (all when ``process_all``), plus the count left out."""
    if process_all:
        return list(entries), 0
    cutoff = today - timedelta(days=recency_days)
    kept = []
    for e in entries:
        try:
            if e.score_date >= cutoff:
                kept.append(e)
        except ValueError:
            logger.warning(f"Index entry with bad date {e.iso_date!r} ignored")
    return kept, len(entries) - len(kept)


def write_snapshots(score_path: Path, score_date: date, paths: Paths, settings: Settings) -> None:
    tickers = read_tickers(score_path)
    logger.info(f"Found {len(tickers)} tickers in {score_path}")
    write_price_snapshot(score_path, tickers, score_date, paths.price_root,
                         settings.snapshot_window_days)
    write_dividend_snapshot(score_path, tickers, score_date, paths.dividend_root,
                            settings.snapshot_window_days)


def process_score(score_path: Path, score_date: date, paths: Paths, settings: Settings,
                  today: date, snapshots: bool = True) -> PortfolioPerformance:
    if snapshots:
        write_snapshots(score_path, score_date, paths, settings)
    perf = calculate_performance(score_path, score_date, paths.dividend_root, today,
                                 settings.analysis_window_days)
    update_index(paths.docs_root, score_date.isoformat(), perf)
    return perf


def run_batch(paths: Paths, settings: Settings, today: Optional[date] = None,
              process_all: bool = False, performance_only: bool = False,
              calculate_performance_only: bool = False) -> BatchResult:
    """Process every selected index entry; per-score failures are counted, not raised.

    A missing or unreadable index is fatal and propagates.
    """
    today = today or date.today()
    entries = read_index(paths.docs_root)
    logger.info(f"Found {len(entries)} score files in the index")

    if calculate_performance_only:
        process_all = True
        performance_only = True
    selected, left_out = select_scores(entries, today, settings.recency_days, process_all)
    if left_out:
        logger.info(f"Skipped {left_out} score files older than {settings.recency_days} days")

    result = BatchResult()
    for i, entry in enumerate(selected, start=1):
        score_path = paths.docs_root / "scores" / entry.relative_file_path
        logger.info(f"Processing score file {i}/{len(selected)}: {score_path}")
        try:
            score_date = entry.score_date
            if calculate_performance_only and not price_snapshot_path(score_path).is_file():
                logger.info(f"No price snapshot for {entry.iso_date}, skipped")
                result.skipped += 1
                continue
            perf = process_score(score_path, score_date, paths, settings, today,
                                 snapshots=not performance_only)
        except Exception:
            logger.exception(f"Failed to process {score_path}")
            result.errors += 1
            continue
        result.processed += 1
        result.performances[entry.iso_date] = perf

    logger.info(
        f"Processing completed: {result.processed} successful, {result.errors} errors, "
        f"{result.skipped} skipped"
    )
    if result.errors:
        logger.warning("Some files had errors, but processing continued")
    return result


def run_single_date(paths: Paths, settings: Settings, iso_date: str,
                    today: Optional[date] = None, performance_only: bool = False) -> PortfolioPerformance:
    """Process the one score published on ``iso_date``. Every failure propagates."""
    today = today or date.today()
    score_date = parse_iso_date(iso_date)
    load_index_document(index_path(paths.docs_root))

    score_path = score_path_for_date(paths.docs_root, score_date)
    if not score_path.is_file():
        raise NotFoundError(f"No score file for {iso_date} at {score_path}")
    logger.info(f"Processing single date {iso_date}: {score_path}")
    return process_score(score_path, score_date, paths, settings, today,
                         snapshots=not performance_only)
