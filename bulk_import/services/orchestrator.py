from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from ..excel.reader import FileFormatError, check_upload, read_rows
from ..excel.template import build_template, template_filename
from ..logging.error_log import EMPTY_PAYLOAD, FILE_FORMAT_ERROR, SUBMISSION_ERROR, ErrorLogBuffer, ErrorRecord
from ..models.config_models import FallbackLocation
from ..models.field_spec import EntityType
from ..models.import_result import ImportResult, PipelineSnapshot, PreviewRow
from ..models.payload import Payload
from ..models.pipeline_state import PipelineState
from ..models.row_data import RawRow, RowError
from ..schema.registry import get_schema, parse_entity_type
from ..validation.validator import validate_row, validate_rows
from .progress import ProgressTracker
from .submitter import BatchSubmitter, SubmissionError
from .summary import render_banner
from .transformer import DEFAULT_FALLBACK, transform

"""Import orchestration: the state machine behind one bulk upload flow.

Sequence:
1. select_file: read the file, validate the first rows for a preview
2. confirm_upload: re-read and validate the whole file, transform the valid
   rows, submit them in one batch, classify the remote result
3. close: drop everything and return to idle

The orchestrator owns exactly one flow. Selecting another file supersedes
the current one. Each flow carries a generation number; an awaited read or
submission whose flow was superseded or closed in the meantime has its
outcome discarded, so nothing changes after a reset.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "InvalidTransitionError",
    "EmptyPayloadError",
    "ImportOrchestrator",
    "NO_VALID_ROWS_MESSAGE",
    "SUBMISSION_FAILED_MESSAGE",
]

PREVIEW_ROWS = 5
NO_VALID_ROWS_MESSAGE = "No valid rows found to upload."
SUBMISSION_FAILED_MESSAGE = "Upload failed. The import service could not be reached."

_CONFIRMABLE = (PipelineState.PREVIEWING, PipelineState.READY_TO_SUBMIT)


class InvalidTransitionError(Exception):
    """Raised when an operation is not allowed in the current pipeline state."""


class EmptyPayloadError(Exception):
    """Surfaced when no row of the file survived validation; nothing is submitted."""


class ImportOrchestrator:
    """Drives one import flow for one entity type and organization.

    Callers only use the transition methods and ``snapshot``; all rows and
    payloads stay private to the orchestrator.
    """

    def __init__(
        self,
        entity_type: EntityType | str,
        organization_id: str | None,
        submitter: BatchSubmitter,
        *,
        organization_name: str | None = None,
        preview_rows: int = PREVIEW_ROWS,
        fallback: FallbackLocation = DEFAULT_FALLBACK,
        null_sentinels: frozenset[str] | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.entity_type = parse_entity_type(entity_type)
        self.schema = get_schema(self.entity_type)
        self.organization_id = organization_id
        self.organization_name = organization_name
        self.submitter = submitter
        self.preview_rows = preview_rows
        self.fallback = fallback
        self.null_sentinels = null_sentinels
        self.error_log = error_log

        self._generation = 0
        self._file_name: str | None = None
        self._file_data: bytes | None = None
        self._payloads: list[Payload] = []
        self._snapshot = PipelineSnapshot(state=PipelineState.IDLE, entity_type=self.entity_type)

    @property
    def state(self) -> PipelineState:
        return self._snapshot.state

    def snapshot(self) -> PipelineSnapshot:
        return self._snapshot

    def template(self) -> tuple[str, bytes]:
        """(file name, xlsx bytes) of the template for this flow's entity."""
        name = template_filename(self.entity_type, self.organization_name)
        return name, build_template(self.entity_type, context_label=self.organization_name)

    def _transition(self, state: PipelineState, **changes) -> PipelineSnapshot:
        logger.debug(
            "pipeline entity=%s %s -> %s", self.entity_type.value, self._snapshot.state.value, state.value
        )
        self._snapshot = replace(self._snapshot, state=state, **changes)
        return self._snapshot

    def _reset(self) -> None:
        self._generation += 1
        self._file_name = None
        self._file_data = None
        self._payloads = []

    def _log_error(self, row: int, error_type: str, message: str) -> None:
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(self._file_name or "<unknown>", self.entity_type.value, row, error_type, message)
            )

    async def _read(self, data: bytes, name: str) -> list[RawRow]:
        return await asyncio.to_thread(read_rows, data, name, self.null_sentinels)

    def _build_preview(self, rows: list[RawRow]) -> tuple[PreviewRow, ...]:
        s_no_spec = self.schema.field("s_no")
        preview: list[PreviewRow] = []
        for row in rows[: self.preview_rows]:
            outcome = validate_row(row, self.schema)
            errors = outcome.messages if isinstance(outcome, RowError) else ()
            s_no = row.lookup(s_no_spec)
            preview.append(
                PreviewRow(
                    row_index=row.row_index,
                    row_number=row.row_number,
                    s_no=s_no if s_no is not None else row.row_index + 1,
                    values=dict(row.values),
                    errors=errors,
                )
            )
        return tuple(preview)

    async def select_file(self, name: str, data: bytes) -> PipelineSnapshot:
        """Load a file and compute its preview.

        Allowed in every state; the previous flow (if any) is discarded. An
        unreadable file leaves the pipeline idle with the reason in
        ``message``/``error``.
        """
        self._reset()
        generation = self._generation
        self._file_name = name
        self._file_data = data
        self._snapshot = PipelineSnapshot(state=PipelineState.IDLE, entity_type=self.entity_type)
        self._transition(PipelineState.FILE_SELECTED, file_name=name)

        try:
            check_upload(name, len(data))
            rows = await self._read(data, name)
        except FileFormatError as e:
            if generation != self._generation:
                return self._snapshot
            logger.warning("file=%s unreadable: %s", name, e)
            self._log_error(-1, FILE_FORMAT_ERROR, str(e))
            self._reset()
            return self._transition(PipelineState.IDLE, file_name=None, message=str(e), error=e)

        if generation != self._generation:
            logger.debug("file=%s superseded while reading; preview discarded", name)
            return self._snapshot

        preview = self._build_preview(rows)
        logger.info("file=%s loaded rows=%d", name, len(rows))
        return self._transition(
            PipelineState.PREVIEWING,
            total_rows=len(rows),
            preview=preview,
            message=f"File loaded. Found {len(rows)} rows.",
        )

    async def confirm_upload(self) -> PipelineSnapshot:
        """Validate the whole file, transform valid rows and submit them.

        Raises InvalidTransitionError unless a preview (or an earlier
        "no valid rows" outcome) is showing; in particular a second confirm
        while submitting is rejected.
        """
        if self.state not in _CONFIRMABLE:
            raise InvalidTransitionError(f"cannot confirm upload while {self.state.value}")
        if not self.organization_id:
            raise InvalidTransitionError("cannot confirm upload without an organization id")

        generation = self._generation
        name = self._file_name or ""
        data = self._file_data or b""
        self._transition(PipelineState.SUBMITTING, message=None, error=None)

        try:
            rows = await self._read(data, name)
        except FileFormatError as e:
            if generation != self._generation:
                return self._snapshot
            logger.warning("file=%s unreadable on submit: %s", name, e)
            self._log_error(-1, FILE_FORMAT_ERROR, str(e))
            self._reset()
            return self._transition(PipelineState.IDLE, file_name=None, message=str(e), error=e)
        if generation != self._generation:
            return self._snapshot

        with ProgressTracker(len(rows), description=f"Validating {self.schema.plural.lower()}") as progress:
            report = validate_rows(rows, self.schema, on_row=progress.advance)
        self._payloads = transform(report.valid, self.entity_type, self.fallback)
        if self.error_log is not None:
            self.error_log.append_row_errors(name, self.entity_type.value, report.errors)
        logger.info(
            "file=%s rows=%d valid=%d invalid=%d", name, len(rows), len(report.valid), len(report.errors)
        )
        self._snapshot = replace(
            self._snapshot,
            total_rows=len(rows),
            valid_count=len(self._payloads),
            row_errors=tuple(report.errors),
        )

        if not self._payloads:
            err = EmptyPayloadError(NO_VALID_ROWS_MESSAGE)
            logger.warning("file=%s has no valid rows; nothing submitted", name)
            self._log_error(-1, EMPTY_PAYLOAD, NO_VALID_ROWS_MESSAGE)
            return self._transition(PipelineState.READY_TO_SUBMIT, message=NO_VALID_ROWS_MESSAGE, error=err)

        try:
            result = await self.submitter.submit_batch(self.entity_type, self.organization_id, self._payloads)
            error: Exception | None = None
        except SubmissionError as e:
            logger.error("submission failed entity=%s: %s", self.entity_type.value, e)
            result = ImportResult(imported_count=0, errors=(SUBMISSION_FAILED_MESSAGE,))
            error = e
        except Exception as e:
            # any submitter failure ends the flow as failed, never stuck in SUBMITTING
            logger.exception("submitter raised unexpectedly entity=%s", self.entity_type.value)
            result = ImportResult(imported_count=0, errors=(SUBMISSION_FAILED_MESSAGE,))
            error = e

        if generation != self._generation:
            logger.debug("flow closed during submission; result discarded")
            return self._snapshot

        if error is not None:
            self._log_error(-1, SUBMISSION_ERROR, str(error))
        elif self.error_log is not None:
            self.error_log.append_server_errors(name, self.entity_type.value, result.errors)

        status = result.classify()
        logger.info(
            "submitted entity=%s payloads=%d imported=%d server_errors=%d status=%s",
            self.entity_type.value,
            len(self._payloads),
            result.imported_count,
            len(result.errors),
            status.value,
        )
        return self._transition(
            PipelineState.COMPLETED,
            result=result,
            status=status,
            message=render_banner(status, result, self.schema.plural),
            error=error,
        )

    def close(self) -> PipelineSnapshot:
        """Discard file, rows, payloads and result; back to idle."""
        self._reset()
        self._snapshot = PipelineSnapshot(state=PipelineState.IDLE, entity_type=self.entity_type)
        logger.debug("pipeline entity=%s closed", self.entity_type.value)
        return self._snapshot
