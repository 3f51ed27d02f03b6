"""Workspace selector abstractions and implementations.

Selectors decide whether a workspace is a scan target. They are pure,
side-effect-free objects and can be composed with AND to express the
default "active shared workspaces, optionally matching a name wildcard" rule.
"""

from __future__ import annotations

import fnmatch
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Sequence

from pbiscan.core.workspaces import WorkspaceRef

ACTIVE_STATE = "Active"
WORKSPACE_TYPE = "Workspace"

# Returns None when the operator cancels the prompt.
WorkspacePicker = Callable[[list[WorkspaceRef]], list[WorkspaceRef] | None]


class WorkspaceSelector(ABC):
    """
    Abstract base class for all workspace selectors.

    A WorkspaceSelector encapsulates a single piece of matching logic that
    determines whether a given workspace satisfies a specific criterion.
    """

    @abstractmethod
    def matches(self, workspace: WorkspaceRef) -> bool:
        """
        Determine whether the given workspace matches this selector.

        Args:
            workspace: Workspace to evaluate.

        Returns:
            True if the workspace matches the selector criteria, False otherwise.
        """
        ...


class ActiveWorkspaceSelector(WorkspaceSelector):
    """
    Selector that keeps active, shared workspaces only.

    Personal workspaces, deleted/orphaned ones and other types are skipped.
    """

    def matches(self, workspace: WorkspaceRef) -> bool:
        return workspace.state == ACTIVE_STATE and workspace.type == WORKSPACE_TYPE


class NameWildcardSelector(WorkspaceSelector):
    """
    Selector that matches the whole workspace name against a glob pattern.

    Supports ``*``, ``?`` and ``[...]``. Matching is case-insensitive.
    """

    def __init__(self, pattern: str):
        """
        Create a name-based wildcard selector.

        Args:
            pattern: Wildcard pattern, e.g. ``"Finance*"``.
        """
        if not pattern:
            raise ValueError("Wildcard pattern must not be empty")
        self.pattern = pattern
        self.regex = re.compile(fnmatch.translate(pattern), re.IGNORECASE)

    def matches(self, workspace: WorkspaceRef) -> bool:
        return bool(self.regex.match(workspace.name))


class AndSelector(WorkspaceSelector):
    """
    Composite selector that matches a workspace only if all child selectors match.
    """

    def __init__(self, selectors: list[WorkspaceSelector]):
        self.selectors = selectors

    def matches(self, workspace: WorkspaceRef) -> bool:
        return all(s.matches(workspace) for s in self.selectors)


def build_selector(*, like: str | None = None, active_only: bool = True) -> WorkspaceSelector:
    """
    Build the selector used to narrow the enumerated workspaces.

    Args:
        like: Optional wildcard applied to workspace names.
        active_only: Keep only active workspaces of type ``Workspace``.

    Returns:
        A single selector. Matches everything when no criteria apply.
    """
    selectors: list[WorkspaceSelector] = []
    if active_only:
        selectors.append(ActiveWorkspaceSelector())
    if like:
        selectors.append(NameWildcardSelector(like))

    if len(selectors) == 1:
        return selectors[0]
    return AndSelector(selectors)


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of workspace selection. ``error`` is set when nothing matched."""

    workspaces: list[WorkspaceRef] = field(default_factory=list)
    error: str | None = None
    cancelled: bool = False

    @property
    def ids(self) -> list[str]:
        return [ws.id for ws in self.workspaces]


def select_workspaces(
    workspaces: Sequence[WorkspaceRef],
    *,
    like: str | None = None,
    picker: WorkspacePicker | None = None,
) -> SelectionResult:
    """
    Narrow the enumerated workspaces down to the scan targets.

    Args:
        workspaces: All enumerated workspaces.
        like: Optional wildcard on workspace names.
        picker: Optional interactive multi-select. An empty pick means
                "everything that was shown"; None means the prompt was
                cancelled.

    Returns:
        SelectionResult with the chosen workspaces, or with ``error`` set
        when the filter left nothing to scan or the picker was cancelled
        (``cancelled`` is then True). Never raises for an empty set.
    """
    selector = build_selector(like=like)
    filtered = [ws for ws in workspaces if selector.matches(ws)]

    if not filtered:
        reason = "No active workspaces found"
        if like:
            reason = f"{reason} matching '{like}'"
        return SelectionResult(error=reason)

    if picker is None:
        return SelectionResult(workspaces=filtered)

    picked = picker(filtered)
    if picked is None:
        return SelectionResult(error="Workspace selection cancelled", cancelled=True)
    return SelectionResult(workspaces=list(picked) if picked else filtered)
