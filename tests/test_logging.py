"""Tests for the structured logging system (upload_kernel/logging_config.py)."""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest

from upload_kernel.exceptions import InvalidColumnError, WorkItemNotFoundError
from upload_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "upload_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("job_submitted", extra={"task_count": 42, "written": 41})

        record = _parse_log(stream)
        assert record["task_count"] == 42
        assert record["written"] == 41

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(correlation_id="job-1", sequence_id="7"):
            get_logger("test").info("work_item_failed")

        record = _parse_log(stream)
        assert record["correlation_id"] == "job-1"
        assert record["sequence_id"] == "7"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_upload_error_code_and_attributes_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise WorkItemNotFoundError("job-9", 3)
        except WorkItemNotFoundError:
            get_logger("test").error("work_item_update_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "WORK_ITEM_NOT_FOUND"
        assert record["exc_type"] == "WorkItemNotFoundError"
        assert record["exc_job_id"] == "job-9"
        assert record["exc_sequence_id"] == 3

    def test_list_attributes_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidColumnError("bogus", ["name", "code"])
        except InvalidColumnError:
            get_logger("test").warning("header_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_valid_columns"] == ["name", "code"]

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "sequence_id" not in record

    def test_uuid_and_datetime_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        when = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)
        get_logger("test").info("with_values", extra={"job_id": uid, "at": when})

        record = _parse_log(stream)
        assert record["job_id"] == str(uid)
        assert record["at"] == when.isoformat()

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_bind_and_get(self):
        with LogContext.bind(correlation_id="x", actor_id="y"):
            assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "y"}
        assert LogContext.get_all() == {}

    def test_clear(self):
        with LogContext.bind(correlation_id="x"):
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer(self):
        with LogContext.bind(correlation_id="outer", actor_id="u1"):
            with LogContext.bind(correlation_id="inner"):
                assert LogContext.get_all() == {"correlation_id": "inner", "actor_id": "u1"}
            assert LogContext.get_all()["correlation_id"] == "outer"

    def test_bind_restores_none(self):
        assert "sequence_id" not in LogContext.get_all()
        with LogContext.bind(sequence_id="1"):
            assert LogContext.get_all()["sequence_id"] == "1"
        assert "sequence_id" not in LogContext.get_all()

    def test_bind_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(correlation_id="job-1"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_bind_ignores_unknown_and_none(self):
        with LogContext.bind(correlation_id=None, not_a_field="z"):
            assert LogContext.get_all() == {}

    def test_all_fields(self):
        with LogContext.bind(
            correlation_id="c",
            actor_id="a",
            producer="p",
            object_type="organisation",
            sequence_id="5",
        ):
            ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["object_type"] == "organisation"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("upload_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("batch.processor").name == "upload_kernel.batch.processor"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "upload_kernel.deep.nested.module"
