import calendar
import json
from datetime import date
from pathlib import Path

import pytest

from scoretrack.models import Paths, Settings

SCORE_HEADER = [
    "Stock", "Score", "Target", "ExDividendDate", "DividendPerShare", "Notes",
    "intrinsicValuePerShareBasic", "intrinsicValuePerShareAdjusted",
]


def _bar(close, high=None):
    close = str(close)
    return {
        "1. open": close,
        "2. high": str(high) if high is not None else close,
        "3. low": close,
        "4. close": close,
        "5. adjusted close": close,
        "6. volume": "1000",
        "7. dividend amount": "0.0000",
        "8. split coefficient": "1.0",
    }


@pytest.fixture
def paths(tmp_path):
    p = Paths(
        docs_root=tmp_path / "docs",
        price_root=tmp_path / "prices",
        dividend_root=tmp_path / "dividends",
    )
    (p.docs_root / "scores").mkdir(parents=True)
    return p


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def write_prices(paths):
    """write_prices("SEM", {"2024-11-15": 15.0}) -> corpus file path"""
    def _write(symbol, closes, highs=None):
        highs = highs or {}
        letter = symbol[0].upper() if symbol else "X"
        path = paths.price_root / "data" / letter / f"{symbol}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        doc = {
            "Meta Data": {"1. Information": "Daily Prices", "2. Symbol": symbol},
            "Time Series (Daily)": {d: _bar(c, highs.get(d)) for d, c in closes.items()},
        }
        path.write_text(json.dumps(doc), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_dividends(paths):
    def _write(symbol, amounts):
        letter = symbol[0].upper()
        path = paths.dividend_root / "data" / letter / f"{symbol}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        doc = {
            "symbol": symbol,
            "data": [
                {"ex_dividend_date": d, "declaration_date": None, "record_date": None,
                 "payment_date": None, "amount": str(a)}
                for d, a in amounts.items()
            ],
        }
        path.write_text(json.dumps(doc), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_score(paths):
    """write_score(date(2024, 11, 15), [("NYSE:SEM", "3", "22.63")]) -> score path"""
    def _write(score_date, rows):
        path = (paths.docs_root / "scores" / str(score_date.year)
                / calendar.month_name[score_date.month] / f"{score_date.day}.tsv")
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = ["\t".join(SCORE_HEADER)]
        for row in rows:
            cells = list(row) + [""] * (len(SCORE_HEADER) - len(row))
            lines.append("\t".join(cells))
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_index(paths):
    def _write(dates, extra=None):
        entries = []
        for d in dates:
            entry = {
                "year": str(d.year),
                "month": calendar.month_name[d.month],
                "day": str(d.day),
                "file": f"{d.year}/{calendar.month_name[d.month]}/{d.day}.tsv",
                "date": d.isoformat(),
            }
            entry.update((extra or {}).get(d, {}))
            entries.append(entry)
        path = paths.docs_root / "scores" / "index.json"
        path.write_text(json.dumps({"scores": entries}, indent=2) + "\n", encoding="utf-8")
        return path
    return _write
