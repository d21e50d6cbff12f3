from __future__ import annotations

import re
from io import BytesIO
from pathlib import Path

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

from ..models.field_spec import EntityType, FieldKind, ImportSchema
from ..schema.registry import get_schema

"""Downloadable import templates.

Row 1 holds the column labels, row 2 the Required/Optional hint for each
column. Required columns are red, optional columns blue, so a user filling
the sheet can tell the mandatory columns apart at a glance. Numeric columns
carry an Excel data validation on the data rows.
"""

__all__ = [
    "build_template",
    "template_filename",
    "save_template",
]

VALIDATION_LAST_ROW = 1000

REQUIRED_FILL = PatternFill("solid", fgColor="FFFFE6E6")
REQUIRED_FONT = Font(bold=True, size=12, color="FF990000")
OPTIONAL_FILL = PatternFill("solid", fgColor="FFE6F0FF")
OPTIONAL_FONT = Font(bold=True, size=12, color="FF003366")
HINT_FILL = PatternFill("solid", fgColor="FFF3F4F6")
REQUIRED_HINT_FONT = Font(italic=True, bold=True, size=10, color="FFDC2626")
OPTIONAL_HINT_FONT = Font(italic=True, size=10, color="FF6B7280")
CENTER = Alignment(horizontal="center", vertical="center")


def _border(color: str) -> Border:
    thin = Side(style="thin", color=color)
    return Border(top=thin, left=thin, right=thin, bottom=Side(style="medium", color=color))


def _style_header(ws: Worksheet, schema: ImportSchema) -> None:
    ws.row_dimensions[1].height = 25
    for idx, spec in enumerate(schema.fields, start=1):
        cell = ws.cell(row=1, column=idx)
        cell.alignment = CENTER
        if spec.required:
            cell.fill = REQUIRED_FILL
            cell.font = REQUIRED_FONT
            cell.border = _border("FF990000")
        else:
            cell.fill = OPTIONAL_FILL
            cell.font = OPTIONAL_FONT
            cell.border = _border("FF003366")
        ws.column_dimensions[get_column_letter(idx)].width = spec.width


def _style_hints(ws: Worksheet, schema: ImportSchema) -> None:
    ws.row_dimensions[2].height = 24
    for idx, spec in enumerate(schema.fields, start=1):
        cell = ws.cell(row=2, column=idx)
        cell.alignment = CENTER
        cell.fill = HINT_FILL
        cell.font = REQUIRED_HINT_FONT if spec.required else OPTIONAL_HINT_FONT


def _add_number_validation(ws: Worksheet, schema: ImportSchema) -> None:
    for idx, spec in enumerate(schema.fields, start=1):
        if spec.kind is not FieldKind.NUMBER:
            continue
        minimum = spec.minimum if spec.minimum is not None else 0
        kind = "whole" if spec.integer else "decimal"
        dv = DataValidation(
            type=kind,
            operator="greaterThanOrEqual",
            formula1=f"{minimum:g}",
            allow_blank=not spec.required,
            showErrorMessage=True,
            errorStyle="stop",
            errorTitle=f"Invalid {spec.label}",
            error=(
                f"{spec.label} must be a {'whole number' if spec.integer else 'number'} "
                f"greater than or equal to {minimum:g}."
            ),
        )
        column = get_column_letter(idx)
        dv.add(f"{column}3:{column}{VALIDATION_LAST_ROW}")
        ws.add_data_validation(dv)


def build_template(entity_type: EntityType | str, context_label: str | None = None) -> bytes:
    """Build the xlsx template for ``entity_type`` and return its bytes.

    ``context_label`` (usually the organization name) is recorded in the
    workbook title; it does not change the sheet contents.
    """
    schema = get_schema(entity_type)
    frame = pd.DataFrame([schema.hints], columns=schema.labels)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=schema.sheet_title, index=False)
        ws = writer.sheets[schema.sheet_title]
        _style_header(ws, schema)
        _style_hints(ws, schema)
        _add_number_validation(ws, schema)
        ws.freeze_panes = "A3"
        title = f"{schema.plural} Upload Template"
        if context_label:
            title = f"{title} - {context_label}"
        writer.book.properties.title = title
    return buffer.getvalue()


def template_filename(entity_type: EntityType | str, organization_name: str | None = None) -> str:
    """``<EntityPlural>_Upload_Template_<OrganizationName>.xlsx`` with whitespace as ``_``."""
    schema = get_schema(entity_type)
    name = (organization_name or "").strip() or "Organization"
    safe_name = re.sub(r"\s+", "_", name)
    return f"{schema.plural}_Upload_Template_{safe_name}.xlsx"


def save_template(
    entity_type: EntityType | str, directory: Path, organization_name: str | None = None
) -> Path:
    """Write the template into ``directory`` and return the file path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / template_filename(entity_type, organization_name)
    path.write_bytes(build_template(entity_type, context_label=organization_name))
    return path
