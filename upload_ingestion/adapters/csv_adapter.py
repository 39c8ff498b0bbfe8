"""
CSV tabular parser.

Uses csv.reader with ``,`` as separator and ``"`` as quote character, so
quoted fields may contain separators and line breaks.  UTF-8 input is read
through utf-8-sig to strip a leading BOM.
"""

from __future__ import annotations

import csv
import io

from upload_kernel.exceptions import MalformedInputError

from upload_ingestion.adapters.base import clean_rows


class CsvTabularParser:
    """Decode CSV bytes into trimmed, non-blank rows."""

    file_format = "csv"

    def __init__(self, delimiter: str = ",", quotechar: str = '"', encoding: str = "utf-8"):
        self.delimiter = delimiter
        self.quotechar = quotechar
        self.encoding = "utf-8-sig" if encoding.lower() == "utf-8" else encoding

    def parse(self, data: bytes) -> list[list[str]]:
        try:
            text = data.decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise MalformedInputError(f"not valid {self.encoding} text ({exc.reason})") from exc

        reader = csv.reader(
            io.StringIO(text, newline=""),
            delimiter=self.delimiter,
            quotechar=self.quotechar,
            strict=True,
        )
        try:
            return clean_rows(reader)
        except csv.Error as exc:
            raise MalformedInputError(f"line {reader.line_num}: {exc}") from exc
