"""Workspace domain model and tenant-wide enumeration.

Workspaces are listed through the admin API in fixed-size pages. A page that
comes back exactly full means there may be more; a short or empty page ends
the listing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5000


@dataclass(frozen=True)
class WorkspaceRef:
    """
    Represents a workspace as returned by the admin listing.

    Attributes:
        id: Opaque (GUID-shaped) workspace identifier. Merge key for a run.
        name: Display name of the workspace.
        state: Lifecycle state, e.g. "Active" or "Deleted".
        type: Workspace type, e.g. "Workspace" or "PersonalGroup".
        is_on_dedicated_capacity: True when hosted on a dedicated capacity.
        capacity_id: Capacity identifier, if any.
    """

    id: str
    name: str
    state: str | None = None
    type: str | None = None
    is_on_dedicated_capacity: bool = False
    capacity_id: str | None = None


class WorkspacesAdapter(Protocol):
    """Interface for paged workspace listing."""

    def list_workspaces_page(self, top: int, skip: int) -> list[Mapping[str, Any]]:
        """Return one page of raw workspace items."""
        ...


def workspace_from_api(item: Mapping[str, Any]) -> WorkspaceRef | None:
    """Build a WorkspaceRef from a raw listing item, or None if it has no id."""
    ws_id = item.get("id")
    if not ws_id:
        return None
    return WorkspaceRef(
        id=str(ws_id),
        name=str(item.get("name") or ""),
        state=item.get("state"),
        type=item.get("type"),
        is_on_dedicated_capacity=bool(item.get("isOnDedicatedCapacity", False)),
        capacity_id=item.get("capacityId"),
    )


def list_all_workspaces(
    adapter: WorkspacesAdapter,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> list[WorkspaceRef]:
    """
    Page through every workspace visible to the admin principal.

    Args:
        adapter: Adapter used to fetch listing pages.
        page_size: Number of items requested per page.

    Returns:
        All workspaces in listing order. Empty when the tenant view is empty.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    workspaces: list[WorkspaceRef] = []
    skip = 0
    while True:
        page = adapter.list_workspaces_page(top=page_size, skip=skip)
        log.debug("Workspace page skip=%d returned %d item(s)", skip, len(page))
        for item in page:
            ws = workspace_from_api(item)
            if ws is not None:
                workspaces.append(ws)
        if len(page) < page_size:
            break
        skip += page_size

    log.info("Enumerated %d workspace(s)", len(workspaces))
    return workspaces
