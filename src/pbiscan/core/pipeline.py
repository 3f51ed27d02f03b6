"""End-to-end scan pipeline.

scan batches -> validate -> merge -> flatten (+ refresh history) -> export.
The statistics summary is exported even when every batch failed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

from pbiscan.core.config import ScanConfig
from pbiscan.core.export import ExportResult, export_run
from pbiscan.core.flatten import FlatTables, flatten_document
from pbiscan.core.merge import merge_scan_documents, parse_document
from pbiscan.core.refresh import RefreshAdapter, RefreshEnricher
from pbiscan.core.scans import (
    BatchCallback,
    BatchOutcome,
    ScanAdapter,
    StatusCallback,
    run_scans,
)
from pbiscan.core.stats import RunStatistics
from pbiscan.core.validation import validate_scan_document

log = logging.getLogger(__name__)


class PipelineAdapter(ScanAdapter, RefreshAdapter, Protocol):
    """Everything the pipeline needs from the admin API."""


@dataclass
class PipelineResult:
    """What a run produced."""

    outcomes: list[BatchOutcome] = field(default_factory=list)
    merged: Mapping[str, Any] | None = None
    tables: FlatTables | None = None
    export: ExportResult | None = None


def validate_outcomes(
    outcomes: Sequence[BatchOutcome],
    stats: RunStatistics,
    *,
    dataset_schema: bool,
) -> list[Mapping[str, Any]]:
    """
    Parse and validate each succeeded batch, returning parsed documents.

    A result that cannot be parsed counts as a failed batch.
    """
    documents: list[Mapping[str, Any]] = []
    for outcome in outcomes:
        if not outcome.ok:
            continue
        try:
            doc = parse_document(outcome.raw or "")
        except ValueError as exc:
            message = f"Batch {outcome.request.batch_id} returned an unreadable result: {exc}"
            log.error(message)
            stats.add_error(message)
            stats.batches_succeeded -= 1
            stats.batches_failed += 1
            continue

        for issue in validate_scan_document(
            doc, outcome.request.workspace_ids, dataset_schema=dataset_schema
        ):
            log.warning("Batch %d: %s", outcome.request.batch_id, issue)
            stats.add_error(f"Batch {outcome.request.batch_id}: {issue}")
        documents.append(doc)
    return documents


def run_pipeline(
    adapter: PipelineAdapter,
    workspace_ids: Sequence[str],
    config: ScanConfig,
    stats: RunStatistics,
    run_dir: Path,
    timestamp: str,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_status: StatusCallback | None = None,
    on_batch: BatchCallback | None = None,
) -> PipelineResult:
    """
    Run every pipeline stage for the selected workspaces.

    Unexpected failures after scanning propagate to the caller, but the
    statistics gathered so far are written first.
    """
    result = PipelineResult()
    try:
        result.outcomes = run_scans(
            adapter,
            workspace_ids,
            config.scan_options,
            stats,
            batch_size=config.batch_size,
            poll_interval=config.poll_interval,
            sleep=sleep,
            max_polls=config.max_polls,
            on_status=on_status,
            on_batch=on_batch,
        )
        documents = validate_outcomes(
            result.outcomes, stats, dataset_schema=config.dataset_schema
        )
        result.merged = merge_scan_documents(documents)

        enricher = RefreshEnricher(adapter, stats) if config.refresh_history else None
        result.tables = flatten_document(result.merged, refresh=enricher, stats=stats)
    finally:
        result.export = export_run(
            run_dir,
            merged=result.merged,
            tables=result.tables,
            stats=stats,
            timestamp=timestamp,
        )
    return result
