"""Scan job state machine and batch scheduler.

Workspace ids are split into batches under the platform's per-request cap.
Each batch goes through submit -> poll -> fetch before the next one starts:

    Submitted -> {NotStarted, Running}* -> {Succeeded | Failed | ...}

A failing batch is recorded in the run statistics and skipped; it never
aborts the run. Polling has no timeout unless ``max_polls`` is given, so a
scan that never leaves ``Running`` blocks its batch until interrupted.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, Sequence

from pbiscan.core.errors import ScanJobError, ScanTimeoutError
from pbiscan.core.stats import RunStatistics

log = logging.getLogger(__name__)

MAX_WORKSPACES_PER_SCAN = 100
DEFAULT_POLL_INTERVAL = 5


@dataclass(frozen=True)
class ScanOptions:
    """Detail flags sent with each scan request."""

    lineage: bool = True
    datasource_details: bool = True
    dataset_schema: bool = True
    dataset_expressions: bool = True

    def as_query(self) -> dict[str, str]:
        """Render enabled flags as query parameters; disabled flags are omitted."""
        flags = {
            "lineage": self.lineage,
            "datasourceDetails": self.datasource_details,
            "datasetSchema": self.dataset_schema,
            "datasetExpressions": self.dataset_expressions,
        }
        return {name: "true" for name, enabled in flags.items() if enabled}


@dataclass(frozen=True)
class ScanRequest:
    """
    One batch of workspaces submitted as a single scan.

    Attributes:
        batch_id: 1-based ordinal of the batch within the run.
        workspace_ids: Ordered workspace ids, at most 100.
        options: Detail flags for the scan.
    """

    batch_id: int
    workspace_ids: tuple[str, ...]
    options: ScanOptions


class ScanStatus(str, Enum):
    """
    Status values reported by the scan status endpoint.

    Values:
        NOT_STARTED: Accepted but not picked up yet.
        RUNNING: Being processed.
        SUCCEEDED: Result is ready to fetch.
        FAILED: The scan failed server-side.
        UNKNOWN: Any other value; treated as a failed terminal state.
    """

    NOT_STARTED = "NotStarted"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: object) -> ScanStatus:
        for member in cls:
            if member.value == value:
                return member
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self not in (ScanStatus.NOT_STARTED, ScanStatus.RUNNING)


@dataclass
class ScanJob:
    """A submitted scan. ``status`` changes only through polling."""

    scan_id: str
    request: ScanRequest
    status: ScanStatus = ScanStatus.NOT_STARTED


@dataclass(frozen=True)
class BatchOutcome:
    """
    Result of driving one batch through the state machine.

    Attributes:
        request: The submitted batch.
        scan_id: Scan identifier, if submission got that far.
        status: Last observed status, if any.
        raw: Raw scan result text for a succeeded batch, else None.
        error: Failure message for a failed batch, else None.
    """

    request: ScanRequest
    scan_id: str | None = None
    status: ScanStatus | None = None
    raw: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.raw is not None and self.error is None


class ScanAdapter(Protocol):
    """Interface for submitting, polling and fetching scans."""

    def start_scan(self, workspace_ids: Sequence[str], options: ScanOptions) -> str | None:
        """Submit a scan and return its id (None if the response carried none)."""
        ...

    def get_scan_status(self, scan_id: str) -> ScanStatus:
        """Return the current status of a scan."""
        ...

    def get_scan_result(self, scan_id: str) -> str:
        """Return the raw JSON text of a succeeded scan."""
        ...


StatusCallback = Callable[[ScanRequest, ScanStatus], None]
BatchCallback = Callable[[BatchOutcome], None]


def partition_ids(ids: Sequence[str], size: int = MAX_WORKSPACES_PER_SCAN) -> list[list[str]]:
    """
    Split ids into consecutive chunks of at most ``size`` items.

    Concatenating the chunks reproduces the input exactly.
    """
    if size < 1:
        raise ValueError("size must be >= 1")
    return [list(ids[i : i + size]) for i in range(0, len(ids), size)]


def build_requests(
    ids: Sequence[str],
    options: ScanOptions,
    batch_size: int = MAX_WORKSPACES_PER_SCAN,
) -> list[ScanRequest]:
    """Build one ScanRequest per chunk, numbered from 1."""
    if batch_size > MAX_WORKSPACES_PER_SCAN:
        raise ValueError(f"batch_size must be <= {MAX_WORKSPACES_PER_SCAN}")
    return [
        ScanRequest(batch_id=n, workspace_ids=tuple(chunk), options=options)
        for n, chunk in enumerate(partition_ids(ids, batch_size), start=1)
    ]


def submit_scan(adapter: ScanAdapter, request: ScanRequest) -> ScanJob:
    """
    Submit one batch and return its job handle.

    Raises:
        ScanJobError: If the response did not contain a scan id.
    """
    scan_id = adapter.start_scan(request.workspace_ids, request.options)
    if not scan_id:
        raise ScanJobError(f"No scan id returned for batch {request.batch_id}")
    log.info(
        "Batch %d submitted as scan %s (%d workspace(s))",
        request.batch_id,
        scan_id,
        len(request.workspace_ids),
    )
    return ScanJob(scan_id=scan_id, request=request)


def wait_for_scan(
    adapter: ScanAdapter,
    job: ScanJob,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    *,
    sleep: Callable[[float], None] = time.sleep,
    max_polls: int | None = None,
    on_status: StatusCallback | None = None,
) -> ScanStatus:
    """
    Block until a scan reaches a terminal state.

    Args:
        adapter: Adapter used to query scan status.
        job: Job to poll; its ``status`` is updated in place.
        poll_interval: Seconds to wait between status checks.
        sleep: Sleep function, injectable for tests.
        max_polls: Optional ceiling on status checks. None polls forever.
        on_status: Called with every observed status.

    Returns:
        The terminal ScanStatus.

    Raises:
        ScanTimeoutError: If ``max_polls`` checks did not reach a terminal state.
    """
    polls = 0
    while True:
        job.status = adapter.get_scan_status(job.scan_id)
        polls += 1
        log.debug("Scan %s status: %s", job.scan_id, job.status.value)
        if on_status is not None:
            on_status(job.request, job.status)
        if job.status.is_terminal:
            return job.status
        if max_polls is not None and polls >= max_polls:
            raise ScanTimeoutError(
                f"Scan {job.scan_id} still {job.status.value} after {polls} status checks"
            )
        sleep(poll_interval)


def run_batch(
    adapter: ScanAdapter,
    request: ScanRequest,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    max_polls: int | None = None,
    on_status: StatusCallback | None = None,
) -> BatchOutcome:
    """
    Drive one batch through submit -> poll -> fetch.

    Raises:
        ScanJobError: If the scan ends in anything but Succeeded.
        GatewayError: If a call to the admin API fails after retries.
    """
    job = submit_scan(adapter, request)
    status = wait_for_scan(
        adapter,
        job,
        poll_interval,
        sleep=sleep,
        max_polls=max_polls,
        on_status=on_status,
    )
    if status != ScanStatus.SUCCEEDED:
        raise ScanJobError(f"Scan {job.scan_id} ended with status {status.value}")

    raw = adapter.get_scan_result(job.scan_id)
    return BatchOutcome(request=request, scan_id=job.scan_id, status=status, raw=raw)


def run_scans(
    adapter: ScanAdapter,
    ids: Sequence[str],
    options: ScanOptions,
    stats: RunStatistics,
    *,
    batch_size: int = MAX_WORKSPACES_PER_SCAN,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    max_polls: int | None = None,
    on_status: StatusCallback | None = None,
    on_batch: BatchCallback | None = None,
) -> list[BatchOutcome]:
    """
    Scan all ids batch by batch, isolating per-batch failures.

    Batches run sequentially in input order. A failed batch (submit error,
    non-succeeded terminal status, fetch error) is counted, logged and
    recorded in ``stats.errors``; the remaining batches still run.

    Returns:
        One BatchOutcome per batch, in batch order.
    """
    requests = build_requests(ids, options, batch_size)
    total = len(requests)
    outcomes: list[BatchOutcome] = []

    for request in requests:
        try:
            outcome = run_batch(
                adapter,
                request,
                poll_interval=poll_interval,
                sleep=sleep,
                max_polls=max_polls,
                on_status=on_status,
            )
            stats.batches_succeeded += 1
        except Exception as exc:  # noqa: BLE001 - isolate the batch, keep the run going
            message = (
                f"Batch {request.batch_id}/{total} failed "
                f"({len(request.workspace_ids)} workspace(s)): {exc}"
            )
            log.error(message)
            stats.batches_failed += 1
            stats.add_error(message)
            outcome = BatchOutcome(request=request, error=str(exc))

        outcomes.append(outcome)
        if on_batch is not None:
            on_batch(outcome)

    return outcomes
