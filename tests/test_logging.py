from __future__ import annotations

import json
import logging
import sys

from faultline.context import DispatchKind
from faultline.logging import HANDLER_NAME, JsonFormatter, configure_logging


def test_formatter_emits_pipeline_fields() -> None:
    record = logging.LogRecord("faultline.dispatch", logging.INFO, __file__, 1, "error_forward", None, None)
    record.dispatch_kind = DispatchKind.ERROR
    record.status_code = 404
    record.forward_path = "/error-page/404"
    record.handler = None

    payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "error_forward"
    assert payload["level"] == "INFO"
    assert payload["dispatch_kind"] == "error"
    assert payload["status_code"] == 404
    assert payload["forward_path"] == "/error-page/404"
    assert "handler" not in payload
    assert "exc_info" not in payload


def test_formatter_includes_traceback() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "unresolved_failure", None, sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))
    assert "RuntimeError: boom" in payload["exc_info"]


def test_configure_logging_replaces_only_its_own_handler() -> None:
    root = logging.getLogger()
    other = logging.NullHandler()
    root.addHandler(other)
    try:
        first = configure_logging("debug")
        second = configure_logging("info")

        names = [h.get_name() for h in root.handlers]
        assert names.count(HANDLER_NAME) == 1
        assert first not in root.handlers
        assert second in root.handlers
        assert other in root.handlers
        assert root.level == logging.INFO
    finally:
        root.removeHandler(other)
