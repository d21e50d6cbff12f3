from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord
from ..models.row_data import RowError

"""Error log buffering.

Records are kept in memory during a run and written once as JSON Lines to
``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC). The file name is fixed on first
access so repeated flushes of one run append to the same file.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "ROW_VALIDATION_ERROR",
    "FILE_FORMAT_ERROR",
    "EMPTY_PAYLOAD",
    "SUBMISSION_ERROR",
    "SERVER_REJECTED",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

ROW_VALIDATION_ERROR = "ROW_VALIDATION_ERROR"
FILE_FORMAT_ERROR = "FILE_FORMAT_ERROR"
EMPTY_PAYLOAD = "EMPTY_PAYLOAD"
SUBMISSION_ERROR = "SUBMISSION_ERROR"
SERVER_REJECTED = "SERVER_REJECTED"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    Not thread-safe; one buffer per import flow.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def append_row_errors(self, file: str, entity: str, row_errors: Iterable[RowError]) -> None:
        """One record per rejected row; messages joined with '; '."""
        for err in row_errors:
            self.append(
                ErrorRecord.create(
                    file=file,
                    entity=entity,
                    row=err.row_number,
                    error_type=ROW_VALIDATION_ERROR,
                    message="; ".join(err.messages),
                )
            )

    def append_server_errors(self, file: str, entity: str, errors: Iterable[str]) -> None:
        for message in errors:
            self.append(ErrorRecord.create(file, entity, -1, SERVER_REJECTED, message))

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def clear(self) -> None:
        self._records.clear()

    def flush(self) -> Path | None:
        """Append buffered records to the log file; None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
