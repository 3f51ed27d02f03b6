"""Live progress view for scan batches."""

from __future__ import annotations

from rich.console import Group
from rich.live import Live
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from pbiscan.cli.common.output import console
from pbiscan.core.scans import BatchOutcome, ScanRequest, ScanStatus


def _style_for(status: ScanStatus | None) -> str:
    if status == ScanStatus.SUCCEEDED:
        return "green"
    if status in (ScanStatus.FAILED, ScanStatus.UNKNOWN):
        return "red"
    if status in (ScanStatus.RUNNING, ScanStatus.NOT_STARTED):
        return "yellow"
    return "dim"


def _batch_label(request: ScanRequest, total: int) -> str:
    """Render `batch <n>/<total>  (<k> ws)` with the count column aligned."""
    width = len(str(total))
    return f"batch {str(request.batch_id).rjust(width)}/{total}  ({len(request.workspace_ids)} ws)"


class ScanProgress:
    """
    Shows:
      - an overall progress bar (x/y batches done + failures)
      - one spinner row per batch with its latest scan status and elapsed time

    Use as a context manager and pass ``on_status``/``on_batch`` to the
    scheduler.
    """

    def __init__(self, total_batches: int) -> None:
        self.total = total_batches
        self.failures = 0

        self.overall = Progress(
            TextColumn("[bold]Batches[/]"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("failures=[bold red]{task.fields[failures]}[/]"),
            TimeElapsedColumn(),
            console=console,
        )
        self.per_batch = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.fields[label]}[/]"),
            TextColumn(
                "status=[{task.fields[style]}]{task.fields[status]}[/{task.fields[style]}]"
            ),
            TimeElapsedColumn(),
            console=console,
        )
        self._overall_id = self.overall.add_task(
            "overall", total=max(total_batches, 1), failures=0
        )
        self._task_ids: dict[int, TaskID] = {}
        self._live = Live(
            Group(self.overall, self.per_batch),
            console=console,
            refresh_per_second=10,
            transient=True,
        )

    def __enter__(self) -> ScanProgress:
        self._live.__enter__()
        return self

    def __exit__(self, *exc_info) -> None:
        self._live.__exit__(*exc_info)

    def _task_for(self, request: ScanRequest) -> TaskID:
        task_id = self._task_ids.get(request.batch_id)
        if task_id is None:
            task_id = self.per_batch.add_task(
                "",
                total=1,
                label=_batch_label(request, self.total),
                status="Submitted",
                style="dim",
            )
            self._task_ids[request.batch_id] = task_id
        return task_id

    def on_status(self, request: ScanRequest, status: ScanStatus) -> None:
        self.per_batch.update(
            self._task_for(request), status=status.value, style=_style_for(status)
        )

    def on_batch(self, outcome: BatchOutcome) -> None:
        task_id = self._task_for(outcome.request)
        if outcome.ok:
            self.per_batch.update(task_id, status="DONE", style="green", completed=1)
        else:
            self.failures += 1
            self.overall.update(self._overall_id, failures=self.failures)
            self.per_batch.update(task_id, status="FAILED", style="red", completed=1)
        self.overall.advance(self._overall_id, 1)
