import csv
import json
from datetime import datetime

import pytest

from pbiscan.core.errors import ExportError
from pbiscan.core.export import create_run_dir, export_run, run_timestamp, write_csv
from pbiscan.core.flatten import COLUMNS
from pbiscan.core.stats import RunStatistics

TS = "20240301_101500"


def test_run_timestamp_format():
    assert run_timestamp(datetime(2024, 3, 1, 10, 15, 0)) == TS


def test_create_run_dir_is_nested_under_base(tmp_path):
    run_dir = create_run_dir(tmp_path / "out", TS)

    assert run_dir == tmp_path / "out" / TS
    assert run_dir.is_dir()


def test_create_run_dir_wraps_os_errors(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(ExportError, match="Cannot create output directory"):
        create_run_dir(blocker, TS)


def test_write_csv_has_header_and_ignores_extra_keys(tmp_path):
    path = write_csv(tmp_path / "t.csv", [{"a": 1, "b": "x", "extra": True}], ["a", "b"])

    with open(path, newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows == [["a", "b"], ["1", "x"]]
    assert not (tmp_path / "t.csv.tmp").exists()


def test_export_skips_empty_families_and_writes_statistics(tmp_path):
    tables = {family: [] for family in COLUMNS}
    tables["workspaces"] = [{"workspaceId": "w1", "workspaceName": "Sales"}]
    stats = RunStatistics(workspaces=1)

    result = export_run(
        tmp_path, merged={"workspaces": [{"id": "w1"}]}, tables=tables, stats=stats, timestamp=TS
    )

    assert result.document == tmp_path / f"scan_result_{TS}.json"
    assert set(result.tables) == {"workspaces"}
    assert result.tables["workspaces"].name == f"workspaces_{TS}.csv"
    assert not (tmp_path / f"datasets_{TS}.csv").exists()
    assert json.loads(result.statistics.read_text(encoding="utf-8"))["workspaces"] == 1


def test_statistics_are_written_when_nothing_else_was_produced(tmp_path):
    stats = RunStatistics(batches_failed=3)
    stats.add_error("Batch 1/3 failed")

    result = export_run(tmp_path, merged=None, tables=None, stats=stats, timestamp=TS)

    assert result.document is None
    assert result.tables == {}
    payload = json.loads((tmp_path / f"run_statistics_{TS}.json").read_text(encoding="utf-8"))
    assert payload["batches_failed"] == 3
    assert payload["errors"] == ["Batch 1/3 failed"]
