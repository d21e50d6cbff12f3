from __future__ import annotations

from io import BytesIO
from pathlib import PurePath
from typing import Any

import numpy as np
import pandas as pd

from ..models.row_data import RawRow

"""Tabular file reader for uploaded import files.

Layout of every accepted file (as produced by the template generator):
- row 1: column labels
- row 2: Required/Optional hints (skipped)
- row 3+: data rows

Accepted formats: xlsx, xls and CSV. Only the first worksheet is read.
Rows whose every cell is blank are dropped; they are formatting leftovers,
not user data.
"""

__all__ = [
    "FileFormatError",
    "SUPPORTED_EXTENSIONS",
    "MAX_FILE_BYTES",
    "check_upload",
    "detect_format",
    "read_frame",
    "rows_from_frame",
    "read_rows",
]

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")
MAX_FILE_BYTES = 10 * 1024 * 1024
FIRST_DATA_ROW = 3  # 1-based sheet row of the first data row

_XLSX_MAGIC = b"PK\x03\x04"
_XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_ENGINES = {"xlsx": "openpyxl", "xls": "xlrd"}


class FileFormatError(Exception):
    """Raised when an uploaded file cannot be read as tabular data or has no header row."""


def check_upload(filename: str | None, size: int) -> None:
    """Reject files by extension and size before reading them."""
    if filename:
        suffix = PurePath(filename).suffix.lower()
        if suffix and suffix not in SUPPORTED_EXTENSIONS:
            raise FileFormatError(
                f"Invalid file type '{suffix}'. Please upload an Excel (.xlsx, .xls) or CSV file"
            )
    if size > MAX_FILE_BYTES:
        raise FileFormatError("File too large. Maximum file size is 10MB")


def detect_format(data: bytes, filename: str | None = None) -> str:
    """Return "xlsx", "xls" or "csv" from magic bytes, then extension."""
    if data.startswith(_XLSX_MAGIC):
        return "xlsx"
    if data.startswith(_XLS_MAGIC):
        return "xls"
    if filename:
        suffix = PurePath(filename).suffix.lower()
        if suffix in (".xlsx", ".xls"):
            return suffix[1:]
    return "csv"


def read_frame(data: bytes, filename: str | None = None) -> pd.DataFrame:
    """Parse the first sheet of ``data`` into a header-less object DataFrame.

    Cell text is kept verbatim: only empty cells become NaN, so strings such
    as "NA" or "None" survive as text.
    """
    fmt = detect_format(data, filename)
    try:
        if fmt == "csv":
            if b"\x00" in data:
                raise FileFormatError("file is not a spreadsheet or CSV document")
            return pd.read_csv(
                BytesIO(data),
                header=None,
                dtype=str,
                keep_default_na=False,
                na_values=[""],
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
        return pd.read_excel(
            BytesIO(data),
            sheet_name=0,
            header=None,
            dtype=object,
            engine=_ENGINES[fmt],
            keep_default_na=False,
            na_values=[""],
        )
    except FileFormatError:
        raise
    except Exception as e:
        raise FileFormatError(f"could not read {fmt} file: {e}") from e


def _clean_cell(value: Any, null_sentinels: frozenset[str] | set[str] | None) -> Any:
    if value is None:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if stripped == "":
            return None
        if null_sentinels and stripped.upper() in null_sentinels:
            return None
    return value


def rows_from_frame(
    df: pd.DataFrame, null_sentinels: frozenset[str] | set[str] | None = None
) -> list[RawRow]:
    """Turn a raw DataFrame into RawRows using the first row as header.

    Steps:
    1. Validate a non-blank first row exists (header)
    2. Skip the second row (hints)
    3. Zip every remaining non-blank row with the header labels
    """
    if df.shape[0] < 1 or df.iloc[0].isna().all():
        raise FileFormatError("file has no header row")
    columns = ["" if pd.isna(c) else str(c).strip() for c in df.iloc[0].tolist()]
    if not any(columns):
        raise FileFormatError("file has no header row")

    rows: list[RawRow] = []
    for offset, (_, raw) in enumerate(df.iloc[FIRST_DATA_ROW - 1:].iterrows()):
        values: dict[str, Any] = {}
        for col, val in zip(columns, raw.tolist(), strict=False):
            if not col:
                continue  # unlabeled column
            values[col] = _clean_cell(val, null_sentinels)
        if all(v is None for v in values.values()):
            continue
        rows.append(
            RawRow(
                row_index=len(rows),
                row_number=FIRST_DATA_ROW + offset,
                values=values,
            )
        )
    return rows


def read_rows(
    data: bytes,
    filename: str | None = None,
    null_sentinels: frozenset[str] | set[str] | None = None,
) -> list[RawRow]:
    """Read an uploaded file into RawRows (header and hint rows skipped)."""
    if not data:
        raise FileFormatError("file is empty")
    df = read_frame(data, filename)
    return rows_from_frame(df, null_sentinels=null_sentinels)
