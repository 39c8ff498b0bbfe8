"""
Lookup collaborators used during submission.

Contract:
    LookupService serves the supported-column aliasing for an object type;
    ``None`` means "use the static allowed-column list".  IdentityService
    resolves users and organisations by id.  resolve_requester_scope() walks
    requester -> root organisation -> channel the way submission needs it.

Architecture: upload_ingestion/services.  Protocols are runtime_checkable so
tests can substitute plain fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from upload_config.schema import UploadSettings
from upload_kernel.logging_config import get_logger

from upload_ingestion.domain.types import SupportedColumns

logger = get_logger("ingestion.lookup")

USER_KIND = "user"
ORGANISATION_KIND = "organisation"

# Organisation status values that count as active; a missing status is active too.
_ACTIVE_ORG_STATUS = frozenset({1, "1", "active"})


@runtime_checkable
class LookupService(Protocol):
    """Serves column aliasing for an object type."""

    def get_supported_columns(self, object_type: str) -> SupportedColumns | None: ...


@runtime_checkable
class IdentityService(Protocol):
    """Resolves an entity record by kind and id."""

    def get_entity_by_id(self, kind: str, entity_id: str) -> dict[str, Any] | None: ...


class ConfigLookupService:
    """LookupService backed by the ``supported_columns`` block of UploadSettings."""

    def __init__(self, settings: UploadSettings):
        self._settings = settings

    def get_supported_columns(self, object_type: str) -> SupportedColumns | None:
        config = self._settings.object_types.get(object_type)
        if config is None or config.supported_columns is None:
            return None
        return SupportedColumns(
            alias_map=dict(config.supported_columns.alias_map),
            mandatory_columns=tuple(config.supported_columns.mandatory_columns),
        )


@dataclass(frozen=True)
class RequesterScope:
    """Organisation scope of the user submitting an upload."""

    root_org_id: str | None = None
    channel: str | None = None


def _is_active(org: dict[str, Any]) -> bool:
    status = org.get("status")
    if status is None:
        return True
    if isinstance(status, str):
        status = status.strip().lower()
    return status in _ACTIVE_ORG_STATUS


def resolve_requester_scope(
    identity: IdentityService | None,
    requested_by: str,
) -> RequesterScope:
    """
    Find the requester's root organisation and, if it is active, its channel.

    A user without a root organisation, or a root organisation that is not
    active, yields a scope without a channel.
    """
    if identity is None:
        return RequesterScope()

    user = identity.get_entity_by_id(USER_KIND, requested_by)
    if not user:
        logger.info("requester_not_found", extra={"requested_by": requested_by})
        return RequesterScope()

    root_org_id = user.get("rootOrgId")
    if not root_org_id:
        return RequesterScope()

    org = identity.get_entity_by_id(ORGANISATION_KIND, root_org_id)
    if not org or not _is_active(org):
        logger.info(
            "root_org_unavailable",
            extra={"root_org_id": root_org_id, "found": bool(org)},
        )
        return RequesterScope(root_org_id=root_org_id)

    return RequesterScope(root_org_id=root_org_id, channel=org.get("channel"))
