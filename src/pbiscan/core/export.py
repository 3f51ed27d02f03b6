"""Write run outputs to a timestamped directory.

Per run: one merged JSON document, one CSV per non-empty entity family and a
JSON statistics summary. CSVs are written to a temporary file first and then
renamed, so a table on disk is either complete or absent.
"""

from __future__ import annotations

import csv
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

from pbiscan.core.errors import ExportError
from pbiscan.core.flatten import COLUMNS, FlatTables
from pbiscan.core.stats import RunStatistics

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def run_timestamp(now: datetime | None = None) -> str:
    """Return the timestamp used for the run directory and file suffixes."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def create_run_dir(base: Path, timestamp: str) -> Path:
    """
    Create ``<base>/<timestamp>`` and return it.

    Raises:
        ExportError: If the directory cannot be created.
    """
    run_dir = Path(base) / timestamp
    try:
        run_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ExportError(f"Cannot create output directory {run_dir}: {exc}") from exc
    return run_dir


@dataclass
class ExportResult:
    """Paths written for one run."""

    document: Path | None = None
    tables: dict[str, Path] = field(default_factory=dict)
    statistics: Path | None = None


def _write_json(path: Path, payload: Any) -> Path:
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False, default=str)
    os.replace(tmp, path)
    return path


def write_csv(path: Path, rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> Path:
    """Write rows as UTF-8 CSV with a header row. Extra keys are ignored."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(columns), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    os.replace(tmp, path)
    return path


def write_tables(run_dir: Path, tables: FlatTables, timestamp: str) -> dict[str, Path]:
    """Write one CSV per family that has at least one record."""
    written: dict[str, Path] = {}
    for family, rows in tables.items():
        if not rows:
            log.debug("Skipping empty family %s", family)
            continue
        columns = COLUMNS.get(family) or list(rows[0].keys())
        path = write_csv(run_dir / f"{family}_{timestamp}.csv", rows, columns)
        log.info("Wrote %d %s record(s) to %s", len(rows), family, path.name)
        written[family] = path
    return written


def write_statistics(run_dir: Path, stats: RunStatistics, timestamp: str) -> Path:
    return _write_json(run_dir / f"run_statistics_{timestamp}.json", stats.to_dict())


def export_run(
    run_dir: Path,
    *,
    merged: Mapping[str, Any] | None,
    tables: FlatTables | None,
    stats: RunStatistics,
    timestamp: str,
) -> ExportResult:
    """
    Persist everything produced by a run.

    The statistics summary is always written, after the document and tables,
    so it still lands on disk when there is nothing else to export.
    """
    result = ExportResult()
    try:
        if merged is not None and merged.get("workspaces"):
            result.document = _write_json(run_dir / f"scan_result_{timestamp}.json", merged)
        if tables:
            result.tables = write_tables(run_dir, tables, timestamp)
    finally:
        result.statistics = write_statistics(run_dir, stats, timestamp)
    return result
