import json
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from pbiscan.cli.cli import app
from pbiscan.cli.commands import scan as scan_cmd

runner = CliRunner()


def test_flatten_writes_tables_for_an_existing_result(tmp_path):
    source = tmp_path / "scan.json"
    source.write_text(
        json.dumps(
            {
                "workspaces": [
                    {
                        "id": "w1",
                        "name": "Sales",
                        "datasets": [{"id": "d1", "name": "Orders", "tables": [{"name": "T"}]}],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["scan", "flatten", str(source), "--output-dir", str(out_dir)])

    assert result.exit_code == 0, result.output
    (run_dir,) = list(out_dir.iterdir())
    names = sorted(p.name.rsplit("_", 2)[0] for p in run_dir.iterdir())
    assert names == ["datasets", "run_statistics", "scan_result", "tables", "workspaces"]


def test_flatten_rejects_non_object_json(tmp_path):
    source = tmp_path / "scan.json"
    source.write_text("[]", encoding="utf-8")

    result = runner.invoke(app, ["scan", "flatten", str(source), "--output-dir", str(tmp_path)])

    assert result.exit_code == 2


def test_run_rejects_invalid_settings_before_signing_in(clean_env):
    clean_env.setenv("PBISCAN_BATCH_SIZE", "500")

    result = runner.invoke(app, ["scan", "run", "--yes"])

    assert result.exit_code == 2


@pytest.mark.parametrize(
    "args",
    [
        ["scan", "run", "--dry-run"],
        ["workspaces", "list"],
    ],
)
def test_malformed_integer_setting_is_a_usage_error(clean_env, args):
    clean_env.setenv("PBISCAN_MAX_RETRIES", "three")

    result = runner.invoke(app, args)

    assert result.exit_code == 2
    assert "PBISCAN_MAX_RETRIES must be an integer" in result.output


def test_flatten_rejects_malformed_integer_setting(clean_env, tmp_path):
    clean_env.setenv("PBISCAN_BATCH_SIZE", "lots")
    source = tmp_path / "scan.json"
    source.write_text("{}", encoding="utf-8")

    result = runner.invoke(app, ["scan", "flatten", str(source), "--output-dir", str(tmp_path)])

    assert result.exit_code == 2


class _ListingAdapter:
    def __init__(self):
        self.started: list = []

    def list_workspaces_page(self, top, skip):
        return [{"id": f"w{i}", "name": f"ws {i}", "state": "Active", "type": "Workspace"} for i in range(3)]

    def start_scan(self, workspace_ids, options):
        self.started.append(list(workspace_ids))
        return "scan-1"


def test_cancelled_interactive_pick_exits_without_scanning(clean_env, monkeypatch, tmp_path):
    adapter = _ListingAdapter()
    monkeypatch.setattr(scan_cmd, "build_scan_context", lambda config: SimpleNamespace(adapter=adapter))
    monkeypatch.setattr(scan_cmd, "tui_select_workspaces", lambda shown: None)

    result = runner.invoke(
        app, ["scan", "run", "--interactive", "--yes", "--output-dir", str(tmp_path)]
    )

    assert result.exit_code == 1
    assert "Cancelled" in result.output
    assert adapter.started == []
    assert list(tmp_path.iterdir()) == []
