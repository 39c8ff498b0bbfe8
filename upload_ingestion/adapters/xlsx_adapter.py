"""
XLSX tabular parser.

Reads the first worksheet of a workbook with openpyxl in read-only,
values-only mode.  Whole-number floats (how Excel stores integers) are
rendered without a trailing ``.0`` so codes like ``1001`` survive intact.
"""

from __future__ import annotations

import io
import zipfile
from typing import Any

from upload_kernel.exceptions import MalformedInputError

from upload_ingestion.adapters.base import clean_rows


def _cell_text(value: Any) -> str:
    """Render a cell value as text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _strip_trailing(cells: list[str]) -> list[str]:
    """Drop the empty cells a sheet's used range pads each row with."""
    while cells and not cells[-1].strip():
        cells.pop()
    return cells


class XlsxTabularParser:
    """Decode the first worksheet of an .xlsx file into trimmed, non-blank rows."""

    file_format = "xlsx"

    def parse(self, data: bytes) -> list[list[str]]:
        import openpyxl

        try:
            wb = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except (zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
            raise MalformedInputError(f"unreadable workbook ({exc})") from exc

        try:
            sheet = wb.worksheets[0]
            raw_rows = (
                _strip_trailing([_cell_text(v) for v in row])
                for row in sheet.iter_rows(values_only=True)
            )
            return clean_rows(raw_rows)
        finally:
            wb.close()
