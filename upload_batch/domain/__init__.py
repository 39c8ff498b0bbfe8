"""Pure processing types: outcomes, pass results, rollup and the enrichment cache."""

from upload_batch.domain.enrichment import EnrichmentCache, Location
from upload_batch.domain.rollup import failure_summary, rollup_status
from upload_batch.domain.types import ERROR_MESSAGE_KEY, ItemOutcome, PassResult

__all__ = [
    "ERROR_MESSAGE_KEY",
    "EnrichmentCache",
    "ItemOutcome",
    "Location",
    "PassResult",
    "failure_summary",
    "rollup_status",
]
