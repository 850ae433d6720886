"""
Unit tests for the logging formatters and the request-ID filter.
"""

import json
import logging
import sys

from app.core.logging import ConsoleFormatter, JSONFormatter, RequestIDFilter
from app.middleware import request_id_ctx


def _record(msg: str = "Created donor %s", args=(7,), level: int = logging.INFO, **extra):
    record = logging.LogRecord(
        name="app.services.donor_service",
        level=level,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestIDFilter:
    def test_copies_context_request_id(self):
        token = request_id_ctx.set("rid-1")
        try:
            record = _record()
            assert RequestIDFilter().filter(record) is True
        finally:
            request_id_ctx.reset(token)

        assert record.request_id == "rid-1"

    def test_explicit_request_id_wins(self):
        token = request_id_ctx.set("from-context")
        try:
            record = _record(request_id="explicit")
            RequestIDFilter().filter(record)
        finally:
            request_id_ctx.reset(token)

        assert record.request_id == "explicit"

    def test_outside_request_is_none(self):
        record = _record()
        RequestIDFilter().filter(record)
        assert record.request_id is None


class TestJSONFormatter:
    def test_single_line_json_with_extras(self):
        record = _record(request_id="rid-2", donor_id=7, status_code=201)

        line = JSONFormatter().format(record)
        entry = json.loads(line)

        assert "\n" not in line
        assert entry["level"] == "INFO"
        assert entry["logger"] == "app.services.donor_service"
        assert entry["message"] == "Created donor 7"
        assert entry["request_id"] == "rid-2"
        assert entry["donor_id"] == 7
        assert entry["status_code"] == 201
        assert "method" not in entry

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record("failed", args=(), level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad" in entry["exception"]


class TestConsoleFormatter:
    def test_short_request_id_and_message(self):
        record = _record(request_id="0123456789abcdef")

        line = ConsoleFormatter().format(record)

        assert "[01234567]" in line
        assert line.endswith("Created donor 7")
        assert "INFO" in line
