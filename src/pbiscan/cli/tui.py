"""Interactive workspace picker for ``scan run --interactive``."""

from __future__ import annotations

import questionary

from pbiscan.cli.common.tui_style import QUESTIONARY_STYLE_SELECT
from pbiscan.core.workspaces import WorkspaceRef

_MAX_WORKSPACE_NAME_WIDTH = 72


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _capacity_hint(workspace: WorkspaceRef) -> str:
    if not workspace.is_on_dedicated_capacity:
        return "shared"
    if workspace.capacity_id:
        return f"dedicated {str(workspace.capacity_id)[:8]}"
    return "dedicated"


def _workspace_choice_title(workspace: WorkspaceRef, *, name_width: int) -> str:
    """Render `<name>  [<capacity>]  (id: <workspace_id>)`, name column padded to name_width."""
    name = _truncate(workspace.name, _MAX_WORKSPACE_NAME_WIDTH).ljust(name_width)
    capacity = f"[{_capacity_hint(workspace)}]".ljust(20)
    return f"{name}  {capacity}  (id: {workspace.id})"


def select_workspaces(workspaces: list[WorkspaceRef]) -> list[WorkspaceRef] | None:
    """Ask which of the filtered workspaces to scan.

    Returns:
        The picked workspaces; an empty list when the operator confirmed
        without picking (the caller scans everything shown); None when the
        prompt was cancelled with Ctrl-C.
    """
    name_width = max(
        (len(_truncate(ws.name, _MAX_WORKSPACE_NAME_WIDTH)) for ws in workspaces),
        default=0,
    )
    picked = questionary.checkbox(
        f"Select workspaces to scan ({len(workspaces)} shown, none = all):",
        choices=[
            questionary.Choice(title=_workspace_choice_title(ws, name_width=name_width), value=ws)
            for ws in workspaces
        ],
        style=QUESTIONARY_STYLE_SELECT,
    ).ask()
    if picked is None:
        return None
    return list(picked)
