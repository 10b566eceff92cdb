"""
Request logging middleware tagging every dispatch with its kind.
"""

from __future__ import annotations

import logging
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .context import get_dispatch_kind, scope_state

logger = logging.getLogger(__name__)

RequestResponseEndpoint = Callable[[Request], Awaitable[Response]]

_HEADER_NAME = "X-Request-ID"
_REQUEST_ID_KEY = "request_id"


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log the start and end of client requests and internal error dispatches."""

    def __init__(self, app: ASGIApp, header_name: str = _HEADER_NAME) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        state = scope_state(request.scope)
        # Forwarded dispatches keep the id of the request they were forwarded from.
        request_id = state.get(_REQUEST_ID_KEY) or request.headers.get(self.header_name) or str(uuid.uuid4())
        state[_REQUEST_ID_KEY] = request_id

        extra = {
            "request_id": request_id,
            "dispatch_kind": get_dispatch_kind(request).value,
            "path": request.url.path,
        }
        logger.info("request_started", extra=extra)
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.info("request_failed", extra={**extra, "exception_type": type(exc).__qualname__})
            raise

        logger.info("request_completed", extra={**extra, "status_code": response.status_code})
        response.headers.setdefault(self.header_name, request_id)
        return response
