"""Per-dataset refresh history lookups.

Each lookup is classified as exactly one of four outcomes. "Not supported"
(the endpoint answered 404 because the dataset's content type has no refresh
history, e.g. lakehouse or warehouse models) is kept apart from "error" (any
other failure) so callers never mistake one for the other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Protocol

from pbiscan.core.errors import NotFoundError
from pbiscan.core.stats import RunStatistics

log = logging.getLogger(__name__)

SUMMARY_TOP = 1
DETAIL_TOP = 5


class RefreshOutcome(str, Enum):
    """
    Classification of a refresh history lookup.

    Values:
        HAS_HISTORY: At least one refresh entry was returned.
        NO_HISTORY: The endpoint answered with zero entries.
        NOT_SUPPORTED: The endpoint answered 404 for this dataset.
        ERROR: Any other failure; the message is kept on the lookup.
    """

    HAS_HISTORY = "HasRefreshHistory"
    NO_HISTORY = "NoHistory"
    NOT_SUPPORTED = "NotSupported"
    ERROR = "Error"


@dataclass(frozen=True)
class RefreshLookup:
    """Outcome plus entries (or error message) of one lookup."""

    outcome: RefreshOutcome
    entries: list[Mapping[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def has_history(self) -> bool:
        return self.outcome == RefreshOutcome.HAS_HISTORY


class RefreshAdapter(Protocol):
    """Interface for dataset refresh history lookups."""

    def get_refresh_history(
        self, workspace_id: str, dataset_id: str, top: int
    ) -> list[Mapping[str, Any]]:
        """Return the most recent ``top`` refresh entries for a dataset."""
        ...


def lookup_refresh_history(
    adapter: RefreshAdapter,
    workspace_id: str,
    dataset_id: str,
    top: int,
) -> RefreshLookup:
    """Fetch and classify refresh history for one dataset. Never raises."""
    try:
        entries = adapter.get_refresh_history(workspace_id, dataset_id, top)
    except NotFoundError:
        return RefreshLookup(outcome=RefreshOutcome.NOT_SUPPORTED)
    except Exception as exc:  # noqa: BLE001 - classified, not propagated
        log.warning("Refresh history lookup failed for %s/%s: %s", workspace_id, dataset_id, exc)
        return RefreshLookup(outcome=RefreshOutcome.ERROR, error=str(exc))

    if not entries:
        return RefreshLookup(outcome=RefreshOutcome.NO_HISTORY)
    return RefreshLookup(outcome=RefreshOutcome.HAS_HISTORY, entries=list(entries))


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def duration_minutes(start: Any, end: Any) -> float | None:
    """Return ``end - start`` in minutes, or None if either is unparsable."""
    started = _parse_timestamp(start)
    ended = _parse_timestamp(end)
    if started is None or ended is None:
        return None
    try:
        delta = ended - started
    except TypeError:
        # naive vs aware timestamps
        return None
    return round(delta.total_seconds() / 60, 2)


class RefreshEnricher:
    """Adds refresh history to flattened datasets and counts hits in the stats."""

    def __init__(
        self,
        adapter: RefreshAdapter,
        stats: RunStatistics | None = None,
        *,
        summary_top: int = SUMMARY_TOP,
        detail_top: int = DETAIL_TOP,
    ) -> None:
        self.adapter = adapter
        self.stats = stats
        self.summary_top = summary_top
        self.detail_top = detail_top

    def summary(self, workspace_id: str, dataset_id: str) -> dict[str, Any]:
        """Return the inline refresh summary columns for a dataset record."""
        lookup = lookup_refresh_history(
            self.adapter, workspace_id, dataset_id, self.summary_top
        )
        if lookup.has_history and self.stats is not None:
            self.stats.refresh_history_hits += 1

        last = lookup.entries[0] if lookup.entries else {}
        return {
            "hasRefreshHistory": lookup.has_history,
            "refreshHistoryStatus": lookup.outcome.value,
            "lastRefreshStatus": last.get("status"),
            "lastRefreshType": last.get("refreshType"),
            "lastRefreshStartTime": last.get("startTime"),
            "lastRefreshEndTime": last.get("endTime"),
            "refreshHistoryError": lookup.error,
        }

    def details(
        self,
        parent: Mapping[str, Any],
        workspace_id: str,
        dataset_id: str,
    ) -> list[dict[str, Any]]:
        """Return detailed refresh rows for a dataset, keyed by ``parent`` fields."""
        lookup = lookup_refresh_history(
            self.adapter, workspace_id, dataset_id, self.detail_top
        )
        rows: list[dict[str, Any]] = []
        for entry in lookup.entries:
            rows.append(
                {
                    **parent,
                    "requestId": entry.get("requestId") or entry.get("id"),
                    "refreshType": entry.get("refreshType"),
                    "status": entry.get("status"),
                    "startTime": entry.get("startTime"),
                    "endTime": entry.get("endTime"),
                    "durationMinutes": duration_minutes(
                        entry.get("startTime"), entry.get("endTime")
                    ),
                    "serviceExceptionJson": entry.get("serviceExceptionJson"),
                }
            )
        return rows
