from __future__ import annotations

from collections.abc import Sequence

from ..models.import_result import ImportResult, PipelineSnapshot
from ..models.pipeline_state import CompletionStatus

"""Rendering of import outcomes: status banner, server error list, SUMMARY line."""

__all__ = [
    "DEFAULT_ERROR_LIMIT",
    "render_banner",
    "format_server_errors",
    "render_summary_line",
]

DEFAULT_ERROR_LIMIT = 10


def render_banner(status: CompletionStatus, result: ImportResult, plural: str) -> str:
    """One-line status banner shown after the remote result arrives.

    Examples:
        >>> render_banner(CompletionStatus.PARTIAL, ImportResult(3, ("Row 2: duplicate tax ID",)), "Parties")
        'Completed with issues: 3 imported, 1 rejected by the server.'
    """
    noun = plural.lower()
    if status is CompletionStatus.SUCCESS:
        return f"Successfully uploaded {result.imported_count} {noun}."
    if status is CompletionStatus.PARTIAL:
        return (
            f"Completed with issues: {result.imported_count} imported, "
            f"{len(result.errors)} rejected by the server."
        )
    return f"Upload failed. No {noun} were imported."


def format_server_errors(errors: Sequence[str], limit: int = DEFAULT_ERROR_LIMIT) -> list[str]:
    """First ``limit`` errors verbatim, then a "+N more" line when truncated.

    Examples:
        >>> format_server_errors(["a", "b", "c"], limit=2)
        ['a', 'b', '+1 more']
    """
    shown = list(errors[:limit])
    hidden = len(errors) - len(shown)
    if hidden > 0:
        shown.append(f"+{hidden} more")
    return shown


def render_summary_line(snapshot: PipelineSnapshot) -> str:
    """SUMMARY line for one import flow.

    Format:
    SUMMARY entity={entity} rows={rows} valid={valid} invalid={invalid}
    imported={imported} server_errors={server_errors} status={status}
    """
    result = snapshot.result
    imported = result.imported_count if result is not None else 0
    server_errors = len(result.errors) if result is not None else 0
    if snapshot.status is not None:
        status = snapshot.status.value
    else:
        status = snapshot.state.value
    return (
        f"SUMMARY entity={snapshot.entity_type.value} "
        f"rows={snapshot.total_rows} "
        f"valid={snapshot.valid_count} "
        f"invalid={snapshot.invalid_count} "
        f"imported={imported} "
        f"server_errors={server_errors} "
        f"status={status}"
    )
