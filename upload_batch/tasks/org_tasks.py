"""
Work item handler: organisation rows (create or update an organisation).

Per row:
    1. ``status`` normalises to ACTIVE / INACTIVE (blank means ACTIVE).
       Anything else fails the row before any downstream call.
    2. Configured mandatory columns must be non-blank.
    3. ``organisationType`` must be one of the configured types, if any
       are configured.
    4. No ``organisationId`` -> OrganisationClient.create(); otherwise
       OrganisationClient.update().  Exactly one mutation per row; a raised
       exception fails the row and nothing is compensated.
    5. Every location code is resolved through the pass's EnrichmentCache,
       falling back to LocationClient.resolve_by_code() and caching the hit.
       One code gives scalar ``locationCode`` / ``locationName``; several
       give lists.  An unknown code fails the row.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, Sequence, runtime_checkable

from upload_kernel.logging_config import get_logger

from upload_batch.domain.enrichment import Location
from upload_batch.domain.types import ItemOutcome
from upload_batch.tasks.base import ProcessingContext
from upload_ingestion.domain.types import RowRecord, WorkItem

logger = get_logger("batch.org_tasks")

ORGANISATION_OBJECT_TYPE = "organisation"

ORGANISATION_ID = "organisationId"
STATUS = "status"
ORGANISATION_TYPE = "organisationType"
LOCATION_CODE = "locationCode"
LOCATION_NAME = "locationName"

INVALID_STATUS_MESSAGE = "Invalid value supplied for status"
INVALID_ORG_TYPE_MESSAGE = "Invalid value supplied for organisationType"
MISSING_ORG_ID_MESSAGE = "Internal error: organisation service returned no id"


class OrgStatus(str, Enum):
    """Organisation status accepted in an upload."""

    ACTIVE = "active"
    INACTIVE = "inactive"


@runtime_checkable
class OrganisationClient(Protocol):
    """Downstream organisation mutation service."""

    def create(self, record: dict[str, Any]) -> str | None: ...

    def update(self, record: dict[str, Any]) -> None: ...


@runtime_checkable
class LocationClient(Protocol):
    """Downstream location resolution service."""

    def resolve_by_code(self, code: str) -> Location | None: ...


def normalize_status(value: Any) -> OrgStatus | None:
    """Map a raw status cell to OrgStatus; None when the value is not valid."""
    if value is None or not str(value).strip():
        return OrgStatus.ACTIVE
    try:
        return OrgStatus(str(value).strip().lower())
    except ValueError:
        return None


def split_location_codes(value: Any) -> list[str]:
    """A locationCode cell may carry several comma separated codes."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        raw = [str(v) for v in value]
    else:
        raw = str(value).split(",")
    return [code.strip() for code in raw if code and code.strip()]


class OrgWorkItemHandler:
    """Creates or updates one organisation per Work Item."""

    def __init__(
        self,
        org_client: OrganisationClient,
        location_client: LocationClient,
        mandatory_columns: Sequence[str] = (),
        organisation_types: Sequence[str] = (),
        known_columns: Sequence[str] = (),
        object_type: str = ORGANISATION_OBJECT_TYPE,
    ):
        self._org_client = org_client
        self._location_client = location_client
        self._mandatory_columns = tuple(mandatory_columns)
        self._organisation_types = {t.lower(): t for t in organisation_types}
        self._known_columns = tuple(known_columns)
        self._object_type = object_type

    @classmethod
    def from_config(
        cls,
        config: Any,
        org_client: OrganisationClient,
        location_client: LocationClient,
    ) -> OrgWorkItemHandler:
        """Build from an ObjectTypeConfig."""
        return cls(
            org_client,
            location_client,
            mandatory_columns=config.record_mandatory_columns,
            organisation_types=config.organisation_types,
            known_columns=config.known_columns,
            object_type=config.object_type,
        )

    @property
    def object_type(self) -> str:
        return self._object_type

    def process(self, item: WorkItem, context: ProcessingContext) -> ItemOutcome:
        record = RowRecord.from_payload(item.data, self._known_columns)
        row = record.as_payload()

        status = normalize_status(record.get(STATUS))
        if status is None:
            return ItemOutcome.failed(row, INVALID_STATUS_MESSAGE)
        row[STATUS] = status.value

        missing = [c for c in self._mandatory_columns if not record.get(c)]
        if missing:
            return ItemOutcome.failed(row, f"Mandatory parameter {', '.join(missing)} is missing")

        org_type = record.get(ORGANISATION_TYPE)
        if org_type and self._organisation_types:
            normalized = self._organisation_types.get(str(org_type).strip().lower())
            if normalized is None:
                return ItemOutcome.failed(row, INVALID_ORG_TYPE_MESSAGE)
            row[ORGANISATION_TYPE] = normalized

        codes = split_location_codes(record.get(LOCATION_CODE))
        request = dict(row)
        request[LOCATION_CODE] = codes

        org_id = record.get(ORGANISATION_ID)
        if not org_id:
            try:
                new_id = self._org_client.create(request)
            except Exception as exc:
                logger.warning("organisation_create_failed", extra={"error": str(exc)})
                return ItemOutcome.failed(row, str(exc))
            if not new_id:
                return ItemOutcome.failed(row, MISSING_ORG_ID_MESSAGE)
            row[ORGANISATION_ID] = new_id
        else:
            try:
                self._org_client.update(request)
            except Exception as exc:
                logger.warning("organisation_update_failed", extra={"error": str(exc)})
                return ItemOutcome.failed(row, str(exc))

        if codes:
            names: list[str] = []
            for code in codes:
                location = context.cache.get(code)
                if location is None:
                    try:
                        location = self._location_client.resolve_by_code(code)
                    except Exception as exc:
                        return ItemOutcome.failed(row, f"Location lookup failed for {code}: {exc}")
                    if location is None:
                        return ItemOutcome.failed(row, f"Invalid location code: {code}")
                    context.cache.put(code, location)
                names.append(location.name)
            if len(codes) == 1:
                row[LOCATION_CODE] = codes[0]
                row[LOCATION_NAME] = names[0]
            else:
                row[LOCATION_CODE] = codes
                row[LOCATION_NAME] = names

        return ItemOutcome.completed(row)
