"""
Tabular parser protocol and registry.

Contract:
    TabularParser.parse() turns raw upload bytes into ordered rows of trimmed
    string fields.  Rows whose fields are all empty are dropped.  Decode
    failures surface as MalformedInputError; nothing is swallowed.

Architecture: upload_ingestion/adapters. Bytes in, rows out. No DB imports.
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from upload_kernel.exceptions import UnsupportedFileFormatError


@runtime_checkable
class TabularParser(Protocol):
    """Protocol for decoding an uploaded file into rows."""

    file_format: str

    def parse(self, data: bytes) -> list[list[str]]:
        """Return every non-blank row as a list of trimmed fields."""
        ...


def clean_rows(raw_rows: Iterable[Iterable[object]]) -> list[list[str]]:
    """Trim every field and drop rows that are entirely empty."""
    rows: list[list[str]] = []
    for raw in raw_rows:
        row = ["" if value is None else str(value).strip() for value in raw]
        if any(row):
            rows.append(row)
    return rows


def parser_for(file_format: str) -> TabularParser:
    """
    Return the parser for ``file_format`` ("csv" or "xlsx").

    Raises:
        UnsupportedFileFormatError: for any other format.
    """
    from upload_ingestion.adapters.csv_adapter import CsvTabularParser
    from upload_ingestion.adapters.xlsx_adapter import XlsxTabularParser

    parsers: dict[str, type] = {
        CsvTabularParser.file_format: CsvTabularParser,
        XlsxTabularParser.file_format: XlsxTabularParser,
    }
    key = str(file_format).lower()
    if key not in parsers:
        raise UnsupportedFileFormatError(file_format, tuple(parsers))
    return parsers[key]()
