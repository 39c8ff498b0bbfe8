"""Row mapping: parsed rows to pending Work Items. Pure, no I/O."""

from upload_ingestion.mapping.row_mapper import iter_work_items, map_row, resolve_column

__all__ = ["iter_work_items", "map_row", "resolve_column"]
