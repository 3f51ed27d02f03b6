import math

import pytest

from pbiscan.core.errors import GatewayError, ScanJobError, ScanTimeoutError
from pbiscan.core.scans import (
    ScanJob,
    ScanOptions,
    ScanRequest,
    ScanStatus,
    build_requests,
    partition_ids,
    run_scans,
    submit_scan,
    wait_for_scan,
)
from pbiscan.core.stats import RunStatistics


class _ScanAdapterStub:
    """Each submitted batch walks NotStarted -> Running -> Succeeded."""

    def __init__(self, fail_submit_for_batch: int | None = None, final: str = "Succeeded"):
        self.fail_submit_for_batch = fail_submit_for_batch
        self.final = final
        self.submitted: list[tuple[str, ...]] = []
        self.polls: dict[str, list[str]] = {}

    def start_scan(self, workspace_ids, options):
        self.submitted.append(tuple(workspace_ids))
        if len(self.submitted) == self.fail_submit_for_batch:
            raise GatewayError("POST admin/workspaces/getInfo returned HTTP 503", status=503)
        scan_id = f"scan-{len(self.submitted)}"
        self.polls[scan_id] = ["NotStarted", "Running", self.final]
        return scan_id

    def get_scan_status(self, scan_id):
        return ScanStatus.parse(self.polls[scan_id].pop(0))

    def get_scan_result(self, scan_id):
        return f'{{"scanId": "{scan_id}"}}'


def _request(ids=("a",)) -> ScanRequest:
    return ScanRequest(batch_id=1, workspace_ids=tuple(ids), options=ScanOptions())


@pytest.mark.parametrize("n", [0, 1, 99, 100, 101, 250, 1000])
def test_partition_covers_input_exactly_once(n: int):
    ids = [f"ws-{i}" for i in range(n)]

    chunks = partition_ids(ids, 100)

    assert [i for chunk in chunks for i in chunk] == ids
    assert len(chunks) == math.ceil(n / 100)
    assert all(1 <= len(chunk) <= 100 for chunk in chunks)


def test_partition_rejects_non_positive_size():
    with pytest.raises(ValueError, match="size"):
        partition_ids(["a"], 0)


def test_build_requests_numbers_batches_from_one():
    requests = build_requests([str(i) for i in range(250)], ScanOptions())

    assert [r.batch_id for r in requests] == [1, 2, 3]
    assert [len(r.workspace_ids) for r in requests] == [100, 100, 50]


def test_build_requests_rejects_batch_size_above_platform_cap():
    with pytest.raises(ValueError, match="100"):
        build_requests(["a"], ScanOptions(), batch_size=101)


def test_scan_options_as_query_omits_disabled_flags():
    options = ScanOptions(lineage=True, datasource_details=False, dataset_schema=True, dataset_expressions=False)

    assert options.as_query() == {"lineage": "true", "datasetSchema": "true"}


def test_scan_status_parse_maps_unknown_values():
    assert ScanStatus.parse("Succeeded") is ScanStatus.SUCCEEDED
    assert ScanStatus.parse("Cancelled") is ScanStatus.UNKNOWN
    assert ScanStatus.parse(None) is ScanStatus.UNKNOWN
    assert ScanStatus.UNKNOWN.is_terminal is True
    assert ScanStatus.RUNNING.is_terminal is False


def test_submit_scan_without_id_is_a_batch_error():
    class _NoId(_ScanAdapterStub):
        def start_scan(self, workspace_ids, options):
            return None

    with pytest.raises(ScanJobError, match="No scan id"):
        submit_scan(_NoId(), _request())


def test_wait_for_scan_polls_until_terminal_without_real_sleep():
    adapter = _ScanAdapterStub()
    job = submit_scan(adapter, _request())
    sleeps: list[float] = []
    seen: list[ScanStatus] = []

    status = wait_for_scan(
        adapter,
        job,
        poll_interval=5,
        sleep=sleeps.append,
        on_status=lambda _req, st: seen.append(st),
    )

    assert status is ScanStatus.SUCCEEDED
    assert job.status is ScanStatus.SUCCEEDED
    assert seen == [ScanStatus.NOT_STARTED, ScanStatus.RUNNING, ScanStatus.SUCCEEDED]
    assert sleeps == [5, 5]


def test_wait_for_scan_raises_when_poll_ceiling_reached():
    class _Stuck(_ScanAdapterStub):
        def get_scan_status(self, scan_id):
            return ScanStatus.RUNNING

    job = ScanJob(scan_id="s1", request=_request())

    with pytest.raises(ScanTimeoutError, match="3 status checks"):
        wait_for_scan(_Stuck(), job, sleep=lambda _s: None, max_polls=3)


def test_run_scans_isolates_failed_batch_and_keeps_order():
    adapter = _ScanAdapterStub(fail_submit_for_batch=2)
    stats = RunStatistics()
    ids = [f"ws-{i}" for i in range(250)]

    outcomes = run_scans(adapter, ids, ScanOptions(), stats, sleep=lambda _s: None)

    assert [o.request.batch_id for o in outcomes] == [1, 2, 3]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert [len(ids) for ids in adapter.submitted] == [100, 100, 50]
    assert stats.batches_succeeded == 2
    assert stats.batches_failed == 1
    assert len(stats.errors) == 1
    assert stats.errors[0].startswith("Batch 2/3 failed")


def test_run_scans_treats_failed_terminal_status_as_batch_failure():
    adapter = _ScanAdapterStub(final="Failed")
    stats = RunStatistics()
    done = []

    outcomes = run_scans(
        adapter, ["a", "b"], ScanOptions(), stats, sleep=lambda _s: None, on_batch=done.append
    )

    assert outcomes[0].ok is False
    assert "ended with status Failed" in (outcomes[0].error or "")
    assert stats.batches_failed == 1
    assert done == outcomes


def test_run_scans_with_no_ids_submits_nothing():
    adapter = _ScanAdapterStub()
    stats = RunStatistics()

    assert run_scans(adapter, [], ScanOptions(), stats) == []
    assert adapter.submitted == []
