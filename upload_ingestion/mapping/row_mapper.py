"""
Row mapper: pure transformation from a parsed data row to a pending Work Item.

ZERO I/O.  Columns are zipped positionally with the header; surplus or
missing trailing fields are ignored.  Blank cells become ``None``.  Header
names resolve through the alias map (keyed by the case-folded header when
the rules are case-insensitive).  Job-level constant fields override row
fields of the same name.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterator, Sequence
from uuid import UUID

from upload_ingestion.domain.header import ColumnRules
from upload_ingestion.domain.types import RowRecord, WorkItem, WorkItemStatus


def resolve_column(name: str, rules: ColumnRules) -> str:
    """Return the stored field name for a header column."""
    if rules.alias_map:
        return rules.alias_map.get(rules.fold(name), name)
    return name


def map_row(
    header: Sequence[str],
    fields: Sequence[str],
    rules: ColumnRules,
    constants: dict[str, Any] | None = None,
) -> RowRecord:
    """Build a RowRecord from one data row."""
    payload: dict[str, Any] = {}
    for column, raw in zip(header, fields):
        value = raw.strip() if raw is not None else ""
        payload[resolve_column(column, rules)] = value or None
    if constants:
        payload.update(constants)

    values = {c: payload[c] for c in rules.known_columns if c in payload}
    extras = {k: v for k, v in payload.items() if k not in values}
    return RowRecord(values=values, extras=extras)


def iter_work_items(
    rows: Sequence[Sequence[str]],
    rules: ColumnRules,
    job_id: UUID,
    created_on: datetime,
    constants: dict[str, Any] | None = None,
) -> Iterator[WorkItem]:
    """
    Yield a NEW Work Item for every data row.

    ``rows[0]`` is the header.  Sequence ids count from 1 in data-row order.
    """
    header = rows[0]
    for sequence_id, fields in enumerate(rows[1:], start=1):
        record = map_row(header, fields, rules, constants)
        yield WorkItem(
            job_id=job_id,
            sequence_id=sequence_id,
            status=WorkItemStatus.NEW,
            data=record.as_payload(),
            created_on=created_on,
            last_updated_on=created_on,
        )
