"""Tabular parsers for uploaded files (bytes in, rows out, no DB)."""

from upload_ingestion.adapters.base import TabularParser, clean_rows, parser_for
from upload_ingestion.adapters.csv_adapter import CsvTabularParser
from upload_ingestion.adapters.xlsx_adapter import XlsxTabularParser

__all__ = [
    "CsvTabularParser",
    "TabularParser",
    "XlsxTabularParser",
    "clean_rows",
    "parser_for",
]
