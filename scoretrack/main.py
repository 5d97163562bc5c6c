# scoretrack/main.py
import logging
import os
from datetime import date
from pathlib import Path
from typing import Optional

import typer
import yaml

from scoretrack.batch import run_batch, run_single_date
from scoretrack.errors import ScoretrackError
from scoretrack.models import Paths, PortfolioPerformance, Settings

app = typer.Typer(add_completion=False)


def load_cfg(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def build_config(cfg: dict, docs_path: str):
    paths = Paths(
        docs_root=Path(docs_path),
        price_root=Path(cfg.get("price_root", Paths().price_root)),
        dividend_root=Path(cfg.get("dividend_root", Paths().dividend_root)),
    )
    settings = Settings(**{k: cfg[k] for k in Settings.model_fields if k in cfg})
    return paths, settings


def _echo_performance(perf: PortfolioPerformance, per_stock: bool):
    if per_stock:
        for p in perf.individual:
            typer.echo(
                f"  - {p.ticker}: buy {p.buy_price:.2f} -> {p.current_price:.2f} on {p.current_date}, "
                f"projected {p.price_gain_loss_pct:.2f}% (total {p.total_return_pct:.2f}%)"
            )
    typer.echo(
        f" {perf.score_date} [{perf.mode}] stocks={perf.total_stocks} "
        f"90d={perf.performance_90_day:.2f}% annualized={perf.performance_annualized:.2f}% "
        f"days={perf.effective_days} targets_reached={perf.targets_reached}"
    )


@app.command()
def run(
    docs_path: str = typer.Option("docs", "--docs-path", help="Docs directory holding scores/"),
    config: str = typer.Option("config.yaml", "--config"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    process_all: bool = typer.Option(False, "--process-all", help="Ignore the recency window"),
    calculate_performance: bool = typer.Option(
        False, "--calculate-performance",
        help="Only recompute metrics, for every score that already has a snapshot"),
    performance_only: bool = typer.Option(False, "--performance-only", help="Skip snapshot generation"),
    date_: Optional[str] = typer.Option(None, "--date", help="Process a single score (YYYY-MM-DD)"),
):
    # Load config
    cfg = load_cfg(config)
    level = "DEBUG" if verbose else str(cfg.get("log_level", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))
    if not os.path.isfile(config):
        logging.debug(f"No config file at {config}, using defaults")
    paths, settings = build_config(cfg, docs_path)
    logging.info(f"Docs path: {paths.docs_root}")
    logging.debug(f"Price corpus: {paths.price_root}, dividend corpus: {paths.dividend_root}")

    if date_:
        try:
            perf = run_single_date(paths, settings, date_, performance_only=performance_only)
        except ScoretrackError as e:
            logging.error(str(e))
            raise typer.Exit(code=1)
        _echo_performance(perf, per_stock=perf.mode == "projected")
        return

    try:
        result = run_batch(
            paths, settings, today=date.today(),
            process_all=process_all,
            performance_only=performance_only,
            calculate_performance_only=calculate_performance,
        )
    except ScoretrackError as e:
        logging.error(f"Cannot run batch: {e}")
        raise typer.Exit(code=1)

    for perf in result.performances.values():
        _echo_performance(perf, per_stock=False)
    typer.echo(f" Processed: {result.processed}, errors: {result.errors}, skipped: {result.skipped}")


if __name__ == "__main__":
    app()
