from .orchestrator import EmptyPayloadError, ImportOrchestrator, InvalidTransitionError
from .submitter import BatchSubmitter, HttpBatchSubmitter, LocalBatchSubmitter, SubmissionError
from .transformer import transform

__all__ = [
    "ImportOrchestrator",
    "InvalidTransitionError",
    "EmptyPayloadError",
    "BatchSubmitter",
    "HttpBatchSubmitter",
    "LocalBatchSubmitter",
    "SubmissionError",
    "transform",
]
