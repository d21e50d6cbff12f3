from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .field_spec import EntityType
from .pipeline_state import CompletionStatus, PipelineState
from .row_data import RowError

"""Result models for a bulk import flow.

ImportResult is what the remote endpoint reports back. PipelineSnapshot is
the read-only view of the orchestrator handed to callers (CLI, UI layer);
the orchestrator replaces it on every transition and never mutates one that
was already handed out.
"""

__all__ = [
    "ImportResult",
    "PreviewRow",
    "PipelineSnapshot",
]


@dataclass(frozen=True)
class ImportResult:
    """Remote outcome of a batch: how many rows were created and why others were not."""
    imported_count: int
    errors: tuple[str, ...] = ()

    def classify(self) -> CompletionStatus:
        # nothing created is a failure even when the server sent no reasons
        if self.imported_count <= 0:
            return CompletionStatus.FAILED
        if not self.errors:
            return CompletionStatus.SUCCESS
        return CompletionStatus.PARTIAL


@dataclass(frozen=True)
class PreviewRow:
    """One of the first rows of a file, shown before the user confirms."""
    row_index: int
    row_number: int
    s_no: Any  # S.No cell, or position + 1 when the column is blank
    values: dict[str, Any]
    errors: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class PipelineSnapshot:
    state: PipelineState
    entity_type: EntityType
    file_name: str | None = None
    total_rows: int = 0  # non-blank data rows in the file
    preview: tuple[PreviewRow, ...] = ()
    valid_count: int = 0  # rows turned into payloads by the full pass
    row_errors: tuple[RowError, ...] = ()  # rows rejected by the full pass
    result: ImportResult | None = None
    status: CompletionStatus | None = None
    message: str | None = None  # banner text for the current state
    error: Exception | None = None  # surfaced, non-fatal error for the current state

    @property
    def preview_errors(self) -> dict[int, tuple[str, ...]]:
        """Preview row index -> validation messages, for rows that failed."""
        return {p.row_index: p.errors for p in self.preview if p.errors}

    @property
    def invalid_count(self) -> int:
        return len(self.row_errors)
