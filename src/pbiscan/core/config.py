"""Run configuration.

Defaults can be set through ``PBISCAN_*`` environment variables; CLI options
override them with ``dataclasses.replace``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from pbiscan.core.gateway import DEFAULT_API_BASE
from pbiscan.core.scans import DEFAULT_POLL_INTERVAL, MAX_WORKSPACES_PER_SCAN, ScanOptions


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _get_int(name: str, default: int | None) -> int | None:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        return int(v)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {v!r}") from None


@dataclass(frozen=True)
class ScanConfig:
    # Gateway
    api_base: str = DEFAULT_API_BASE
    tenant_id: str | None = None
    max_retries: int = 3
    retry_delay_seconds: int = 5
    retry_submit: bool = False

    # Scan detail flags
    lineage: bool = True
    datasource_details: bool = True
    dataset_schema: bool = True
    dataset_expressions: bool = True
    refresh_history: bool = False

    # Batching / polling
    batch_size: int = MAX_WORKSPACES_PER_SCAN
    poll_interval: int = DEFAULT_POLL_INTERVAL
    max_polls: int | None = None

    # Selection
    like: str | None = None
    interactive: bool = False

    # Output
    output_dir: Path = Path("output")

    @property
    def scan_options(self) -> ScanOptions:
        return ScanOptions(
            lineage=self.lineage,
            datasource_details=self.datasource_details,
            dataset_schema=self.dataset_schema,
            dataset_expressions=self.dataset_expressions,
        )

    @classmethod
    def from_env(cls) -> ScanConfig:
        return cls(
            api_base=os.getenv("PBISCAN_API_BASE", DEFAULT_API_BASE),
            tenant_id=os.getenv("PBISCAN_TENANT_ID") or None,
            max_retries=_get_int("PBISCAN_MAX_RETRIES", 3),
            retry_delay_seconds=_get_int("PBISCAN_RETRY_DELAY", 5),
            retry_submit=_get_bool("PBISCAN_RETRY_SUBMIT", False),
            lineage=_get_bool("PBISCAN_LINEAGE", True),
            datasource_details=_get_bool("PBISCAN_DATASOURCE_DETAILS", True),
            dataset_schema=_get_bool("PBISCAN_DATASET_SCHEMA", True),
            dataset_expressions=_get_bool("PBISCAN_DATASET_EXPRESSIONS", True),
            refresh_history=_get_bool("PBISCAN_REFRESH_HISTORY", False),
            batch_size=_get_int("PBISCAN_BATCH_SIZE", MAX_WORKSPACES_PER_SCAN),
            poll_interval=_get_int("PBISCAN_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            max_polls=_get_int("PBISCAN_MAX_POLLS", None),
            output_dir=Path(os.getenv("PBISCAN_OUTPUT_DIR", "output")),
        )

    def with_overrides(self, **overrides: Any) -> ScanConfig:
        """Return a copy with every override that is not None applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")
        if not 1 <= self.batch_size <= MAX_WORKSPACES_PER_SCAN:
            raise ValueError(f"batch_size must be between 1 and {MAX_WORKSPACES_PER_SCAN}")
        if self.poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        if self.max_polls is not None and self.max_polls < 1:
            raise ValueError("max_polls must be >= 1 when set")
