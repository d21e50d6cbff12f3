from __future__ import annotations

from enum import Enum

"""Pipeline state and completion status enums for the import orchestrator.

State transitions:
    idle -> file_selected -> previewing -> submitting -> completed
    submitting -> ready_to_submit (no valid rows, nothing sent)
    file_selected -> idle (file could not be read)
    any -> file_selected (another file chosen)
    any -> idle (flow closed)
"""

__all__ = [
    "PipelineState",
    "CompletionStatus",
]


class PipelineState(Enum):
    """Lifecycle of a single import flow.

    - IDLE: nothing loaded
    - FILE_SELECTED: a file was chosen and is being read
    - PREVIEWING: file read, first rows validated for display
    - READY_TO_SUBMIT: confirmed but no row survived validation
    - SUBMITTING: payloads handed to the batch submitter
    - COMPLETED: remote result received and classified
    """
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    PREVIEWING = "previewing"
    READY_TO_SUBMIT = "ready_to_submit"
    SUBMITTING = "submitting"
    COMPLETED = "completed"


class CompletionStatus(Enum):
    """Outcome of a submitted batch.

    PARTIAL is a first-class outcome: some rows were created and the server
    rejected others.
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
