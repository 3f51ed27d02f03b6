"""Commands for running workspace scans and exporting the results."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from pbiscan.cli.common.context import build_scan_context
from pbiscan.cli.common.exits import (
    EXIT_FAILURE,
    EXIT_USAGE,
    die,
    exit_from_exc,
    ok_exit,
    warn_exit,
)
from pbiscan.cli.common.log_setup import add_file_log
from pbiscan.cli.common.options import (
    DatasetExpressionsOpt,
    DatasetSchemaOpt,
    DatasourceDetailsOpt,
    DryRunOpt,
    InteractiveOpt,
    LikeOpt,
    LineageOpt,
    MaxPollsOpt,
    MaxRetriesOpt,
    OutputDirOpt,
    PollIntervalOpt,
    RefreshHistoryOpt,
    RetryDelayOpt,
    RetrySubmitOpt,
    TenantOpt,
    YesOpt,
)
from pbiscan.cli.common.output import out
from pbiscan.cli.common.progress import ScanProgress
from pbiscan.cli.tui import select_workspaces as tui_select_workspaces
from pbiscan.core.config import ScanConfig
from pbiscan.core.errors import ExportError, GatewayError
from pbiscan.core.export import create_run_dir, export_run, run_timestamp
from pbiscan.core.flatten import flatten_document
from pbiscan.core.merge import merge_scan_documents
from pbiscan.core.pipeline import run_pipeline
from pbiscan.core.scans import partition_ids
from pbiscan.core.selectors import select_workspaces
from pbiscan.core.stats import RunStatistics
from pbiscan.core.workspaces import list_all_workspaces

log = logging.getLogger(__name__)

app = typer.Typer(help="Scan workspaces and export metadata", no_args_is_help=True)


@app.command()
def run(
    like: str | None = LikeOpt,
    interactive: bool = InteractiveOpt,
    tenant: str | None = TenantOpt,
    lineage: bool | None = LineageOpt,
    datasource_details: bool | None = DatasourceDetailsOpt,
    dataset_schema: bool | None = DatasetSchemaOpt,
    dataset_expressions: bool | None = DatasetExpressionsOpt,
    refresh_history: bool | None = RefreshHistoryOpt,
    max_retries: int | None = MaxRetriesOpt,
    retry_delay: int | None = RetryDelayOpt,
    retry_submit: bool | None = RetrySubmitOpt,
    poll_interval: int | None = PollIntervalOpt,
    max_polls: int | None = MaxPollsOpt,
    output_dir: Path | None = OutputDirOpt,
    yes: bool = YesOpt,
    dry_run: bool = DryRunOpt,
):
    """
    Scan the selected workspaces and export flat tables.
    """
    try:
        config = ScanConfig.from_env().with_overrides(
            like=like,
            interactive=interactive,
            tenant_id=tenant,
            lineage=lineage,
            datasource_details=datasource_details,
            dataset_schema=dataset_schema,
            dataset_expressions=dataset_expressions,
            refresh_history=refresh_history,
            max_retries=max_retries,
            retry_delay_seconds=retry_delay,
            retry_submit=retry_submit,
            poll_interval=poll_interval,
            max_polls=max_polls,
            output_dir=output_dir,
        )
        config.validate()
    except ValueError as e:
        die(str(e), code=EXIT_USAGE)

    appctx = build_scan_context(config)

    try:
        with out.status("Loading workspaces..."):
            workspaces = list_all_workspaces(appctx.adapter)
    except GatewayError as exc:
        exit_from_exc(exc, message="Could not list workspaces.", code=1)

    try:
        selection = select_workspaces(
            workspaces,
            like=config.like,
            picker=tui_select_workspaces if config.interactive else None,
        )
    except ValueError as e:
        die(str(e), code=EXIT_USAGE)

    if selection.cancelled:
        die("Cancelled: no workspaces were selected", code=EXIT_FAILURE)
    if selection.error:
        die(f"Nothing to scan: {selection.error}", code=1)

    ids = selection.ids
    batches = len(partition_ids(ids, config.batch_size))
    out.header("Scan plan")
    out.kv(
        {
            "Workspaces": len(ids),
            "Batches": batches,
            "Options": ", ".join(config.scan_options.as_query()) or "(none)",
            "Refresh history": "yes" if config.refresh_history else "no",
            "Output": config.output_dir,
        }
    )

    if dry_run:
        out.workspaces_table(selection.workspaces, title="Would scan")
        warn_exit("Dry-run enabled: no scans were submitted", code=0)

    if not yes and not out.confirm(f"Submit {batches} scan batch(es)?"):
        ok_exit("Cancelled")

    timestamp = run_timestamp()
    try:
        run_dir = create_run_dir(config.output_dir, timestamp)
    except ExportError as exc:
        exit_from_exc(exc, message="Cannot prepare output directory.", code=1)

    file_log = add_file_log(run_dir / "run.log")
    stats = RunStatistics()
    try:
        with ScanProgress(batches) as progress:
            result = run_pipeline(
                appctx.adapter,
                ids,
                config,
                stats,
                run_dir,
                timestamp,
                on_status=progress.on_status,
                on_batch=progress.on_batch,
            )
    except Exception as exc:  # noqa: BLE001 - top-level run guard
        log.exception("Scan run failed for %d workspace(s)", len(ids))
        out.stats_table(stats)
        out.errors_list(stats.errors)
        exit_from_exc(exc, message=f"Scan run aborted; partial output in {run_dir}", code=1)
    finally:
        logging.getLogger().removeHandler(file_log)
        file_log.close()

    out.batches_table(result.outcomes)
    out.stats_table(stats)
    out.errors_list(stats.errors)
    if result.export is not None:
        out.exports_table(result.export)

    if stats.batches_failed:
        out.error(f"{stats.batches_failed} of {batches} batch(es) failed.")
        raise typer.Exit(1)

    out.success(f"Scanned {len(ids)} workspace(s) into {run_dir}")


@app.command()
def flatten(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Merged scan JSON"),
    output_dir: Path | None = OutputDirOpt,
):
    """
    Flatten an existing scan result JSON into CSV tables (offline).
    """
    try:
        config = ScanConfig.from_env().with_overrides(output_dir=output_dir)
    except ValueError as e:
        die(str(e), code=EXIT_USAGE)

    try:
        raw = path.read_text(encoding="utf-8")
        merged = merge_scan_documents([raw])
    except (OSError, ValueError) as exc:
        exit_from_exc(exc, message=f"Cannot read scan result '{path}'.", code=EXIT_USAGE)

    timestamp = run_timestamp()
    try:
        run_dir = create_run_dir(config.output_dir, timestamp)
    except ExportError as exc:
        exit_from_exc(exc, message="Cannot prepare output directory.", code=1)

    stats = RunStatistics()
    tables = flatten_document(merged, stats=stats)
    export = export_run(run_dir, merged=merged, tables=tables, stats=stats, timestamp=timestamp)

    out.stats_table(stats)
    out.exports_table(export)
    out.success(f"Flattened {stats.workspaces} workspace(s) into {run_dir}")
