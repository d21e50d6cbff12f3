from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .field_spec import FieldSpec

"""Row models flowing through the import pipeline.

RawRow is what the reader produces for every non-blank data row. The
validator turns each RawRow into exactly one of ValidatedRow or RowError,
so every row read from a file is accounted for in one of the two lists.

row_index is the 0-based position among the data rows that were kept;
row_number is the 1-based sheet row (3rd row = 1st data row) used when
reporting problems back to the person who filled the sheet.
"""

__all__ = [
    "RawRow",
    "ValidatedRow",
    "RowError",
    "ValidationReport",
]


@dataclass(frozen=True)
class RawRow:
    """One data row as found in the file: header label -> cell value."""
    row_index: int
    row_number: int
    values: dict[str, Any]

    def lookup(self, spec: FieldSpec) -> Any:
        """Return the cell for ``spec`` matching its label or any alias, or None."""
        normalized = {str(k).strip().lower(): v for k, v in self.values.items()}
        for name in spec.header_names:
            if name in normalized:
                return normalized[name]
        return None


@dataclass(frozen=True)
class ValidatedRow:
    """A row that passed every FieldSpec check, keyed by FieldSpec.key.

    Blank optional fields are present with value None.
    """
    row_index: int
    row_number: int
    values: dict[str, Any]


@dataclass(frozen=True)
class RowError:
    row_index: int
    row_number: int
    messages: tuple[str, ...]


@dataclass(frozen=True)
class ValidationReport:
    """Partition of a batch of rows into valid rows and row errors."""
    valid: list[ValidatedRow]
    errors: list[RowError]

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.errors)
