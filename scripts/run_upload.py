#!/usr/bin/env python3
"""
Submit a bulk upload file and optionally process it in the background.

Uses the upload settings from BULK_UPLOAD_CONFIG (or --config, or the
bundled default set).  Tables are created on first use.

Downstream organisation and location services are replaced by in-process
clients: organisations get fresh ids, locations come from --locations
(a YAML mapping of code -> name).

Usage:
    python3 scripts/run_upload.py <file> --object-type organisation --requested-by <user> [options]

Examples:
    # Validate and store only; the Job stays NEW
    python3 scripts/run_upload.py orgs.csv --object-type organisation --requested-by u1 --no-channel-check

    # Store and process, resolving locations from a file
    python3 scripts/run_upload.py orgs.xlsx --format xlsx --object-type organisation \\
        --requested-by u1 --process --locations locations.yaml
"""

from __future__ import annotations

import argparse
import sys
from functools import partial
from pathlib import Path
from typing import Any
from uuid import uuid4

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


class LocalOrganisationClient:
    """Accepts every mutation; create() hands out a fresh id."""

    def create(self, record: dict[str, Any]) -> str:
        return str(uuid4())

    def update(self, record: dict[str, Any]) -> None:
        return None


class MappingLocationClient:
    """Resolves location codes from a code -> name mapping."""

    def __init__(self, names: dict[str, str]):
        self._names = names

    def resolve_by_code(self, code: str):
        from upload_batch.domain.enrichment import Location

        name = self._names.get(code)
        if name is None:
            return None
        return Location(code=code, name=name)


class StaticIdentityService:
    """Every requester belongs to one active root organisation with a channel."""

    def __init__(self, channel: str):
        self._channel = channel

    def get_entity_by_id(self, kind: str, entity_id: str) -> dict[str, Any]:
        if kind == "user":
            return {"id": entity_id, "rootOrgId": "local-root"}
        return {"id": entity_id, "channel": self._channel, "status": 1}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Submit a bulk upload: parse -> validate -> store -> [process].",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("file", type=Path, help="Path to the upload file (CSV or XLSX).")
    parser.add_argument("--object-type", required=True, help="Configured object type, e.g. organisation.")
    parser.add_argument("--requested-by", required=True, help="Id of the requesting user.")
    parser.add_argument(
        "--format",
        dest="file_format",
        default=None,
        help="File format (csv or xlsx). Default: the configured default_file_format.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Upload settings YAML.")
    parser.add_argument("--db-url", default=None, help="Database URL (default: from settings).")
    parser.add_argument("--channel", default="local", help="Channel of the requester's root organisation.")
    parser.add_argument(
        "--no-channel-check",
        action="store_true",
        help="Submit without an identity service (no channel is resolved).",
    )
    parser.add_argument("--locations", type=Path, default=None, help="YAML mapping of location code -> name.")
    parser.add_argument(
        "--process",
        action="store_true",
        help="Hand the Job to an in-process dispatcher and wait for its pass.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=300.0,
        help="Seconds to wait for processing with --process (default: 300).",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    source_path = args.file.resolve()
    if not source_path.is_file():
        print(f"ERROR: File not found: {source_path}", file=sys.stderr)
        return 1

    # Lazy imports so we fail fast on args first
    from upload_batch.services import JobDispatcher, run_processing_pass
    from upload_batch.tasks import HandlerRegistry, OrgWorkItemHandler
    from upload_config import get_upload_settings
    from upload_config.loader import load_yaml_file
    from upload_ingestion.services import SqlAlchemyRecordStore, UploadService
    from upload_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from upload_kernel.domain.clock import SystemClock
    from upload_kernel.exceptions import BulkUploadError

    try:
        settings = get_upload_settings(args.config)
    except Exception as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    try:
        init_engine_from_url(args.db_url or settings.database_url)
        create_tables()
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    locations: dict[str, str] = {}
    if args.locations is not None:
        locations = {str(k): str(v) for k, v in (load_yaml_file(args.locations) or {}).items()}

    session_factory = get_session_factory()
    clock = SystemClock()
    identity = None if args.no_channel_check else StaticIdentityService(args.channel)

    dispatcher = None
    if args.process:
        registry = HandlerRegistry()
        registry.register(
            OrgWorkItemHandler.from_config(
                settings.object_type(args.object_type),
                LocalOrganisationClient(),
                MappingLocationClient(locations),
            )
        )
        dispatcher = JobDispatcher(
            partial(
                run_processing_pass,
                session_factory=session_factory,
                registry=registry,
                clock=clock,
                batch_size=settings.write_batch_size,
            ),
            workers=settings.dispatcher_workers,
        )
        dispatcher.start()

    session = session_factory()
    try:
        upload_svc = UploadService(
            SqlAlchemyRecordStore(session), settings, clock=clock, identity=identity, queue=dispatcher,
        )
        print(f"Submitting {source_path} as {args.object_type}...")
        try:
            job_id = upload_svc.submit(
                source_path.read_bytes(),
                args.object_type,
                args.requested_by,
                file_format=args.file_format,
            )
        except BulkUploadError as e:
            if dispatcher is not None:
                dispatcher.stop()
            print(f"REJECTED [{e.code}]: {e}", file=sys.stderr)
            return 2
    finally:
        session.close()

    if dispatcher is not None:
        print("Processing...")
        idle = dispatcher.wait_idle(timeout=args.timeout)
        dispatcher.stop()
        if not idle:
            print(f"ERROR: processing did not finish within {args.timeout}s", file=sys.stderr)
            return 1

    session = session_factory()
    try:
        store = SqlAlchemyRecordStore(session)
        job = store.get_job(job_id)
        print(
            f"  Job {job_id}: status={job.status.value}, tasks={job.task_count}, "
            f"succeeded={job.succeeded_count}, failed={job.failed_count}"
        )
        failed = [w for w in store.list_work_items(job_id) if w.failure_result]
    finally:
        session.close()

    for item in failed[:10]:
        print(f"  Row {item.sequence_id}: {item.failure_result.get('errorMessage')}")
    if len(failed) > 10:
        print(f"  ... and {len(failed) - 10} more failed rows.")
    return 0 if not failed else 1


if __name__ == "__main__":
    sys.exit(main())
