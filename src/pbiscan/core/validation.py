"""Sanity checks for a fetched scan result.

Issues are reported as strings and never interrupt processing.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pbiscan.core.nodes import child_list, field


def validate_scan_document(
    document: Mapping[str, Any],
    expected_ids: Iterable[str],
    *,
    dataset_schema: bool = False,
) -> list[str]:
    """
    Compare a scan result with the workspace ids it was requested for.

    Args:
        document: Parsed scan result.
        expected_ids: Workspace ids submitted for this scan.
        dataset_schema: Whether dataset schema collection was requested.

    Returns:
        Human-readable issues; empty when nothing looks off.
    """
    issues: list[str] = []
    workspaces = child_list(document, "workspaces")

    returned = {str(ws.get("id")) for ws in workspaces if ws.get("id")}
    missing = [ws_id for ws_id in expected_ids if ws_id not in returned]
    if missing:
        issues.append(
            f"{len(missing)} requested workspace(s) missing from scan result: "
            + ", ".join(missing)
        )

    no_datasets = [ws for ws in workspaces if not child_list(ws, "datasets")]
    if no_datasets:
        issues.append(f"{len(no_datasets)} workspace(s) returned with zero datasets")

    if dataset_schema:
        for ws in workspaces:
            ws_name = field(ws, "name") or field(ws, "id")
            for ds in child_list(ws, "datasets"):
                if child_list(ds, "tables"):
                    continue
                ds_name = field(ds, "name") or field(ds, "id")
                issues.append(f"Dataset missing schema (zero tables): {ws_name}/{ds_name}")

    return issues
