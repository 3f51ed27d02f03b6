"""Run statistics accumulator.

One RunStatistics instance is created per run and passed explicitly through
the pipeline stages. Each stage only adds to it; it is serialized once at the
end of the run, including when every batch failed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass
class RunStatistics:
    """Process-wide counters plus an ordered list of processing errors."""

    workspaces: int = 0
    reports: int = 0
    datasets: int = 0
    datasets_with_schema: int = 0
    tables: int = 0
    columns: int = 0
    measures: int = 0
    refresh_history_hits: int = 0
    batches_succeeded: int = 0
    batches_failed: int = 0
    errors: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Record a processing error or validation issue."""
        self.errors.append(message)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
