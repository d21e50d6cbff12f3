from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per rejected row, per server-reported error, or per file-level
problem. ``row`` is the sheet row number; -1 marks records that cannot be
attributed to a row (file format errors, server messages, submission
failures).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: name of the uploaded file
        entity: entity type value ("party", "product")
        row: sheet row number, -1 when unknown
        error_type: classification in UPPER_SNAKE_CASE
        message: human-readable description
    """
    timestamp: str
    file: str
    entity: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, entity: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            entity=entity,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # asdict keeps the key set fixed to the dataclass fields
        return json.dumps(asdict(self), ensure_ascii=False)
