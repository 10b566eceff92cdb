"""
JSON line logging for the error pipeline.

Every record is one JSON object. Pipeline fields passed through ``extra``
(request id, dispatch kind, failure classification, forward path) become
top-level keys so a failure can be followed from the original request into
its error dispatch.
"""

from __future__ import annotations

import enum
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple

from .config import get_settings

HANDLER_NAME = "faultline-json"

PIPELINE_FIELDS: Tuple[str, ...] = (
    "request_id",
    "dispatch_kind",
    "path",
    "status_code",
    "exception_type",
    "failure_kind",
    "error_message",
    "handler",
    "forward_path",
    "resolver",
    "outcome",
    "producer",
)


def _pipeline_fields(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    for key in PIPELINE_FIELDS:
        value = getattr(record, key, None)
        if value is None:
            continue
        if isinstance(value, enum.Enum):
            value = value.value
        yield key, value


class JsonFormatter(logging.Formatter):
    """One JSON object per record; unknown values fall back to ``str``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update(_pipeline_fields(record))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> logging.Handler:
    """Install the JSON handler on the root logger, replacing one installed earlier."""

    root = logging.getLogger()
    root.setLevel((level or get_settings().log_level).upper())

    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    return handler
