"""
Exception taxonomy and the handlers registered for errors raised outside a route.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .context import get_response_state

logger = logging.getLogger(__name__)


class FaultlineError(Exception):
    """Base class for failures raised by application code."""

    def __init__(self, message: str = "", *, cause: Optional[BaseException] = None) -> None:
        self.message = message
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause


class ClientInputError(FaultlineError, ValueError):
    """The client sent an argument the handler cannot accept."""


class DomainError(FaultlineError):
    """Application-declared failure; its status comes from the status registry."""


class UserError(DomainError):
    """A failure attributed to the calling user."""


class BadRequestError(DomainError):
    """Declared failure mapped to 400 with the reason key ``error.bad``."""


class NotFoundError(FaultlineError):
    """The addressed resource does not exist."""


class ResponseStatusError(FaultlineError):
    """Failure carrying its own status, for cases a static mapping cannot express."""

    def __init__(
        self,
        status_code: int,
        reason: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(reason or "", cause=cause)


class ResolverError(FaultlineError):
    """A resolver raised while resolving a failure."""


class ConfigurationError(Exception):
    """Invalid registration detected while the application is being built."""


def register_exception_handlers(app: FastAPI) -> None:
    """Route HTTP errors raised by the router itself into the error-page dispatch."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        logger.info(
            "router_http_error",
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
        state = get_response_state(request)
        state.send_error(exc.status_code, str(exc.detail) if exc.detail else None)
        return Response(status_code=exc.status_code, headers=getattr(exc, "headers", None))
