"""
Tests for the row mapper -- parsed rows into NEW Work Items.
"""

from datetime import datetime, timezone
from uuid import uuid4

from upload_ingestion.domain.header import ColumnRules
from upload_ingestion.domain.types import WorkItemStatus
from upload_ingestion.mapping import iter_work_items, map_row, resolve_column

NOW = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)

STATIC_RULES = ColumnRules(
    allowed_columns=("orgName", "locationCode", "status", "homeUrl"),
    known_columns=("orgName", "locationCode", "status"),
)

ALIAS_RULES = ColumnRules(
    allowed_columns=("organisation name", "orgName", "orgname"),
    known_columns=("orgName",),
    case_insensitive=True,
    alias_map={"organisation name": "orgName", "orgname": "orgName"},
)


class TestResolveColumn:

    def test_identity_without_alias_map(self):
        assert resolve_column("orgName", STATIC_RULES) == "orgName"

    def test_alias_lookup_is_case_folded(self):
        assert resolve_column("Organisation NAME", ALIAS_RULES) == "orgName"

    def test_unmapped_name_kept(self):
        assert resolve_column("other", ALIAS_RULES) == "other"


class TestMapRow:

    def test_known_columns_and_extras_split(self):
        record = map_row(
            ["orgName", "homeUrl", "locationCode"],
            ["Alpha", "http://alpha", "A"],
            STATIC_RULES,
        )
        assert record.values == {"orgName": "Alpha", "locationCode": "A"}
        assert record.extras == {"homeUrl": "http://alpha"}

    def test_blank_fields_become_none(self):
        record = map_row(["orgName", "status"], ["Alpha", "   "], STATIC_RULES)
        assert record.get("status") is None

    def test_missing_trailing_fields_ignored(self):
        record = map_row(["orgName", "locationCode", "status"], ["Alpha"], STATIC_RULES)
        assert record.as_payload() == {"orgName": "Alpha"}

    def test_surplus_fields_ignored(self):
        record = map_row(["orgName"], ["Alpha", "extra", "more"], STATIC_RULES)
        assert record.as_payload() == {"orgName": "Alpha"}

    def test_constants_override_row_fields(self):
        record = map_row(
            ["orgName", "channel"],
            ["Alpha", "from-file"],
            STATIC_RULES,
            constants={"channel": "ch-1"},
        )
        assert record.get("channel") == "ch-1"

    def test_aliased_header_stored_under_internal_name(self):
        record = map_row(["Organisation Name"], ["Alpha"], ALIAS_RULES)
        assert record.values == {"orgName": "Alpha"}


class TestIterWorkItems:

    def test_sequence_ids_count_from_one(self):
        job_id = uuid4()
        rows = [["orgName"], ["Alpha"], ["Bravo"], ["Charlie"]]
        items = list(iter_work_items(rows, STATIC_RULES, job_id, NOW))

        assert [i.sequence_id for i in items] == [1, 2, 3]
        assert all(i.status == WorkItemStatus.NEW for i in items)
        assert all(i.job_id == job_id for i in items)
        assert all(i.iteration_id == 0 for i in items)
        assert items[1].data == {"orgName": "Bravo"}
        assert items[0].created_on == NOW

    def test_constants_applied_to_every_item(self):
        rows = [["orgName"], ["Alpha"], ["Bravo"]]
        items = list(iter_work_items(rows, STATIC_RULES, uuid4(), NOW, {"channel": "ch-1"}))
        assert all(i.data["channel"] == "ch-1" for i in items)
