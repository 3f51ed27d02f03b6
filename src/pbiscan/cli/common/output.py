"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import questionary
from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from pbiscan.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q(self, message: str) -> str:
        """Prefix Questionary prompts consistently."""
        return f"[pbiscan] {message}"

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise.
        """
        console.print("[meta]Use y/n then Enter[/]")
        prompt = questionary.confirm(
            self._q(message),
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def workspaces_table(self, workspaces: Iterable[Any], title: str = "Workspaces") -> None:
        """
        Expects objects with .id .name .state .type
        (like pbiscan.core.workspaces.WorkspaceRef)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Workspace ID", style="meta", no_wrap=True)
        t.add_column("Name", style="ok")
        t.add_column("State")
        t.add_column("Type", style="meta")
        t.add_column("Dedicated", style="meta")

        for ws in workspaces:
            state = str(getattr(ws, "state", "") or "")
            state_style = "ok" if state == "Active" else "warn"
            t.add_row(
                str(ws.id),
                ws.name,
                f"[{state_style}]{state}[/{state_style}]",
                str(getattr(ws, "type", "") or ""),
                "yes" if getattr(ws, "is_on_dedicated_capacity", False) else "no",
            )

        console.print(t)

    def batches_table(self, outcomes: Iterable[Any], title: str = "Scan batches") -> None:
        """
        Expects BatchOutcome objects (.request, .scan_id, .ok, .error).
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Batch", style="ok", no_wrap=True)
        t.add_column("Workspaces", justify="right")
        t.add_column("Scan ID", style="meta", no_wrap=True)
        t.add_column("Result")

        for o in outcomes:
            result = "[ok]OK[/]" if o.ok else f"[err]FAIL[/] {o.error}"
            t.add_row(
                str(o.request.batch_id),
                str(len(o.request.workspace_ids)),
                str(o.scan_id or ""),
                result,
            )

        console.print(t)

    def stats_table(self, stats: Any, title: str = "Run statistics") -> None:
        """Render the counters of a RunStatistics object (errors are listed separately)."""
        t = Table(title=title, show_lines=False)
        t.add_column("Counter", style="meta")
        t.add_column("Value", justify="right")

        for key, value in stats.to_dict().items():
            if key == "errors":
                continue
            style = "err" if key == "batches_failed" and value else "ok"
            t.add_row(key, f"[{style}]{value}[/{style}]")

        console.print(t)

    def errors_list(self, errors: Iterable[str], title: str = "Issues") -> None:
        """Print processing errors and validation issues, one per line."""
        items = list(errors)
        if not items:
            return
        self.header(f"{title} ({len(items)})")
        for e in items:
            console.print(f"  [warn]•[/] {e}")

    def exports_table(self, export: Any, title: str = "Outputs") -> None:
        """Render the files written by a run (ExportResult)."""
        t = Table(title=title, show_lines=False)
        t.add_column("Output", style="ok")
        t.add_column("Path", style="meta")

        if getattr(export, "document", None):
            t.add_row("scan_result", str(export.document))
        for family, path in (getattr(export, "tables", None) or {}).items():
            t.add_row(family, str(path))
        if getattr(export, "statistics", None):
            t.add_row("run_statistics", str(export.statistics))

        console.print(t)


out = Out()
