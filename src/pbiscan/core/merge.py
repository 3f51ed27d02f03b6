"""Merge per-batch scan results into one document.

The workspace id is the merge key. The first occurrence wins; any later
workspace with the same id is dropped whole, without comparing fields.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping

from pbiscan.core.nodes import child_list

log = logging.getLogger(__name__)


def parse_document(raw: str | Mapping[str, Any]) -> Mapping[str, Any]:
    """Parse raw scan JSON text. Already-parsed mappings pass through."""
    if isinstance(raw, Mapping):
        return raw
    doc = json.loads(raw)
    if not isinstance(doc, Mapping):
        raise ValueError("Scan result is not a JSON object")
    return doc


def _dedupe(
    items: Iterable[Mapping[str, Any]],
    key: str,
    seen: set[str],
    out: list[Mapping[str, Any]],
) -> int:
    """Append items whose ``key`` has not been seen; return how many were dropped."""
    dropped = 0
    for item in items:
        value = item.get(key)
        if value is None:
            out.append(item)
            continue
        # ids may be any JSON value; compare on their string form
        marker = str(value)
        if marker in seen:
            dropped += 1
            continue
        seen.add(marker)
        out.append(item)
    return dropped


def merge_scan_documents(
    raw_documents: Iterable[str | Mapping[str, Any]],
) -> dict[str, list[Mapping[str, Any]]]:
    """
    Concatenate scan results, dropping repeated workspaces.

    Args:
        raw_documents: Raw JSON texts (or parsed documents) in arrival order.

    Returns:
        A document with ``workspaces`` and ``datasourceInstances`` lists.
        Deterministic for a given input order.
    """
    workspaces: list[Mapping[str, Any]] = []
    datasources: list[Mapping[str, Any]] = []
    seen_ws: set[str] = set()
    seen_ds: set[str] = set()
    dropped = 0

    for raw in raw_documents:
        doc = parse_document(raw)
        dropped += _dedupe(child_list(doc, "workspaces"), "id", seen_ws, workspaces)
        _dedupe(child_list(doc, "datasourceInstances"), "datasourceId", seen_ds, datasources)

    if dropped:
        log.debug("Dropped %d duplicate workspace(s) while merging", dropped)
    return {"workspaces": workspaces, "datasourceInstances": datasources}
