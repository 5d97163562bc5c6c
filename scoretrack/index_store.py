# scoretrack/index_store.py
from __future__ import annotations
import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from scoretrack.errors import NotFoundError, ParseError
from scoretrack.models import PortfolioPerformance, ScoreEntry

logger = logging.getLogger(__name__)


def index_path(docs_root: Path) -> Path:
    return Path(docs_root) / "scores" / "index.json"


def load_index_document(path: Path) -> Dict[str, Any]:
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"Index not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid index JSON {path}: {e}") from e
    if not isinstance(doc, dict) or not isinstance(doc.get("scores"), list):
        raise ParseError(f"Index {path} has no 'scores' list")
    return doc


def read_index(docs_root: Path) -> List[ScoreEntry]:
    doc = load_index_document(index_path(docs_root))
    try:
        return [ScoreEntry.model_validate(e) for e in doc["scores"]]
    except ValidationError as e:
        raise ParseError(f"Malformed index entry: {e}") from e


def write_index_document(path: Path, doc: Dict[str, Any]) -> None:
    """Pretty-print ``doc`` to a sibling temp file and move it over ``path``."""
    path = Path(path)
    fd, tmp = tempfile.mkstemp(prefix=".index-", suffix=".json", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(doc, f, ensure_ascii=False, indent=2)
            f.write("\n")
        if path.exists():
            os.chmod(tmp, stat.S_IMODE(os.stat(path).st_mode))
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def patch_entry(entry: Dict[str, Any], perf: PortfolioPerformance) -> None:
    entry["performance_90_day"] = perf.performance_90_day
    entry["performance_annualized"] = perf.performance_annualized
    entry["total_stocks"] = perf.total_stocks


def update_index(docs_root: Path, iso_date: str, perf: PortfolioPerformance) -> bool:
    """Patch the metrics of the entry dated ``iso_date``; False when none matches.

    The index is re-read right before writing so metrics written earlier in the
    same run survive.
    """
    path = index_path(docs_root)
    doc = load_index_document(path)
    matched = [e for e in doc["scores"] if isinstance(e, dict) and e.get("date") == iso_date]
    if not matched:
        logger.warning(f"No index entry for {iso_date}; index left untouched")
        return False
    for entry in matched:
        patch_entry(entry, perf)
    write_index_document(path, doc)
    logger.debug(f"Index updated for {iso_date}")
    return True
