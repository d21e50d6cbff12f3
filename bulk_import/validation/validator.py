from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import Any

from ..models.field_spec import FieldKind, FieldSpec, ImportSchema
from ..models.row_data import RawRow, RowError, ValidatedRow, ValidationReport

"""Row validation against an ImportSchema.

Every FieldSpec is checked in schema order and every failure is collected,
so the person fixing the sheet sees all problems of a row in one pass.
validate_row never raises for bad cell data: it returns either a
ValidatedRow with normalized values or a RowError with the messages.

Normalization:
- text: trimmed string; integral floats lose their ".0" (9841234567.0 -> "9841234567")
- number: int for integer fields, float otherwise
- blank optional fields: None
"""

__all__ = [
    "validate_row",
    "validate_rows",
    "is_blank",
    "is_valid_email",
]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def _to_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def is_valid_email(text: str) -> bool:
    """Exactly one '@', a non-empty local part and a dotted domain."""
    if any(ch.isspace() for ch in text):
        return False
    parts = text.split("@")
    if len(parts) != 2:
        return False
    local, domain = parts
    if not local or "." not in domain:
        return False
    return all(label for label in domain.split("."))


def _check_field(spec: FieldSpec, value: Any) -> tuple[Any, str | None]:
    """Return (normalized value, error message or None) for a non-blank cell."""
    if spec.kind is FieldKind.NUMBER:
        number = _to_number(value)
        if number is None:
            return None, f"{spec.label} must be a number"
        if spec.integer and not number.is_integer():
            return None, f"{spec.label} must be a whole number"
        if spec.minimum is not None and number < spec.minimum:
            return None, f"{spec.label} must be at least {spec.minimum:g}"
        return (int(number) if spec.integer else number), None

    text = _to_text(value)
    if spec.kind is FieldKind.PHONE:
        digits = sum(ch.isdigit() for ch in text)
        if digits < (spec.min_length or 0):
            return None, f"{spec.label} must have at least {spec.min_length} digits"
    elif spec.kind is FieldKind.EMAIL:
        if not is_valid_email(text):
            return None, f"{spec.label} must be a valid email address"
    return text, None


def validate_row(row: RawRow, schema: ImportSchema) -> ValidatedRow | RowError:
    values: dict[str, Any] = {}
    messages: list[str] = []
    for spec in schema.fields:
        raw = row.lookup(spec)
        if is_blank(raw):
            if spec.required:
                messages.append(f"{spec.label} is required")
            values[spec.key] = None
            continue
        normalized, message = _check_field(spec, raw)
        if message is not None:
            messages.append(message)
        values[spec.key] = normalized

    if messages:
        return RowError(row_index=row.row_index, row_number=row.row_number, messages=tuple(messages))
    return ValidatedRow(row_index=row.row_index, row_number=row.row_number, values=values)


def validate_rows(
    rows: Iterable[RawRow],
    schema: ImportSchema,
    on_row: Callable[[], None] | None = None,
) -> ValidationReport:
    """Validate every row, partitioning the outcomes.

    ``on_row`` is called once per row (progress reporting).
    """
    valid: list[ValidatedRow] = []
    errors: list[RowError] = []
    for row in rows:
        outcome = validate_row(row, schema)
        if isinstance(outcome, RowError):
            errors.append(outcome)
        else:
            valid.append(outcome)
        if on_row is not None:
            on_row()
    return ValidationReport(valid=valid, errors=errors)
