import json
from datetime import date, timedelta

import pytest

from scoretrack.batch import run_batch, run_single_date, select_scores
from scoretrack.errors import InvalidArgumentError, NotFoundError
from scoretrack.index_store import read_index
from scoretrack.snapshots import dividend_snapshot_path, price_snapshot_path

TODAY = date(2025, 6, 1)
OLD = date(2024, 11, 15)       # outside the default 180 day window
MEASURED = date(2025, 2, 3)    # 118 days old
YOUNG = date(2025, 5, 2)       # 30 days old


@pytest.fixture
def docs(paths, write_index, write_score, write_prices):
    write_index([OLD, MEASURED, YOUNG])
    for d in (OLD, MEASURED, YOUNG):
        write_score(d, [("NYSE:SEM", "3", "$22.63"), ("NYSE:GONE", "1", "4")])
    write_prices("SEM", {
        "2024-11-15": "10", "2025-02-03": "20", "2025-02-13": "11",
        "2025-05-02": "25", "2025-05-04": "22", "2025-05-30": "26",
    })
    return paths


def _index_doc(paths):
    return json.loads((paths.docs_root / "scores" / "index.json").read_text(encoding="utf-8"))


def test_select_scores_window(docs):
    entries = read_index(docs.docs_root)
    kept, left_out = select_scores(entries, TODAY, 180)
    assert [e.iso_date for e in kept] == ["2025-02-03", "2025-05-02"]
    assert left_out == 1
    kept, left_out = select_scores(entries, TODAY, 180, process_all=True)
    assert len(kept) == 3 and left_out == 0


def test_batch_writes_snapshots_and_metrics(docs, settings):
    result = run_batch(docs, settings, today=TODAY)
    assert result.processed == 2
    assert result.errors == 0

    score = docs.docs_root / "scores" / "2025" / "February" / "3.tsv"
    assert price_snapshot_path(score).is_file()
    assert dividend_snapshot_path(score).is_file()
    assert not price_snapshot_path(docs.docs_root / "scores" / "2024" / "November" / "15.tsv").exists()

    scores = _index_doc(docs)["scores"]
    assert "performance_90_day" not in scores[0]
    assert scores[1]["total_stocks"] == 2
    # bought at 20, 22 on the 90th day
    assert scores[1]["performance_90_day"] == pytest.approx(10.0)
    assert result.performances["2025-02-03"].mode == "measured"
    assert result.performances["2025-05-02"].mode == "projected"


def test_batch_tolerates_broken_score(docs, settings):
    (docs.docs_root / "scores" / "2025" / "May" / "2.tsv").write_text("nonsense\n", encoding="utf-8")
    result = run_batch(docs, settings, today=TODAY)
    assert result.processed == 1
    assert result.errors == 1
    assert "performance_90_day" in _index_doc(docs)["scores"][1]


def test_batch_is_idempotent(docs, settings):
    run_batch(docs, settings, today=TODAY, process_all=True)
    snapshot = price_snapshot_path(docs.docs_root / "scores" / "2025" / "February" / "3.tsv")
    first_csv, first_index = snapshot.read_bytes(), _index_doc(docs)
    run_batch(docs, settings, today=TODAY, process_all=True)
    assert snapshot.read_bytes() == first_csv
    assert _index_doc(docs) == first_index


def test_missing_index_is_fatal(paths, settings):
    with pytest.raises(NotFoundError):
        run_batch(paths, settings, today=TODAY)


def test_performance_only_needs_snapshots(docs, settings):
    result = run_batch(docs, settings, today=TODAY, performance_only=True)
    assert result.processed == 0
    assert result.errors == 2


def test_calculate_performance_skips_scores_without_snapshot(docs, settings):
    run_batch(docs, settings, today=TODAY)
    result = run_batch(docs, settings, today=TODAY, calculate_performance_only=True)
    assert result.processed == 2
    assert result.skipped == 1
    assert result.errors == 0


def test_single_date_projected(docs, settings):
    perf = run_single_date(docs, settings, "2025-05-02", today=TODAY)
    assert perf.mode == "projected"
    assert perf.total_stocks == 2
    assert _index_doc(docs)["scores"][2]["total_stocks"] == 2


def test_single_date_errors(docs, settings):
    with pytest.raises(InvalidArgumentError):
        run_single_date(docs, settings, "2025-5-2", today=TODAY)
    with pytest.raises(NotFoundError):
        run_single_date(docs, settings, "2025-05-03", today=TODAY)


def test_overflowing_score_is_counted_and_batch_continues(paths, settings, write_index,
                                                          write_score, write_prices):
    spike, normal = date(2024, 11, 15), date(2024, 11, 18)
    write_index([spike, normal])
    write_score(spike, [("NYSE:PNY", "3", "2")])
    write_score(normal, [("NYSE:SEM", "3", "22.63")])
    write_prices("PNY", {"2024-11-15": "1.00", "2024-11-16": "12.00"})
    write_prices("SEM", {"2024-11-18": "15.00", "2025-02-16": "16.50"})

    result = run_batch(paths, settings, today=TODAY, process_all=True)

    assert result.errors == 1
    assert result.processed == 1
    scores = _index_doc(paths)["scores"]
    assert "performance_90_day" not in scores[0]
    assert scores[1]["performance_90_day"] == pytest.approx(10.0)


def test_unexpected_error_does_not_stop_batch(docs, settings, monkeypatch):
    import scoretrack.batch as batch

    real = batch.calculate_performance

    def flaky(score_path, score_date, *args, **kwargs):
        if score_date == MEASURED:
            raise ZeroDivisionError("boom")
        return real(score_path, score_date, *args, **kwargs)

    monkeypatch.setattr(batch, "calculate_performance", flaky)
    result = run_batch(docs, settings, today=TODAY)
    assert result.errors == 1
    assert result.processed == 1
