"""Permissive accessors for the loosely-typed scan document.

Every nested field of a scan result is optional. These helpers return an
empty list or None on absence (or on an unexpected type) instead of raising.
"""

from __future__ import annotations

from typing import Any, Mapping


def child_list(node: Any, key: str) -> list[Mapping[str, Any]]:
    """Return ``node[key]`` as a list of mappings; anything else becomes []."""
    if not isinstance(node, Mapping):
        return []
    value = node.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def field(node: Any, *path: str) -> Any:
    """Return the value at ``path`` inside nested mappings, or None."""
    current = node
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current
