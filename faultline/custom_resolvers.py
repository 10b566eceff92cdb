"""
Application resolvers registered between the built-in ones.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus

from fastapi import Request

from .context import ResponseState
from .errors import UserError
from .negotiation import wants_html
from .resolvers import SUPPRESSED, UNHANDLED, HandlerExceptionResolver, Rendered, ResolutionOutcome

logger = logging.getLogger(__name__)


class IllegalArgumentResolver(HandlerExceptionResolver):
    """Turns ``ValueError`` into a 400 error status."""

    order = 250

    def resolve(self, failure: Exception, request: Request, response: ResponseState) -> ResolutionOutcome:
        if not isinstance(failure, ValueError):
            return UNHANDLED

        logger.info("illegal_argument_to_400", extra={"path": request.url.path})
        try:
            response.send_error(HTTPStatus.BAD_REQUEST.value, str(failure) or None)
        except OSError:
            logger.exception("resolver_io_error", extra={"resolver": type(self).__name__})
            return UNHANDLED
        return SUPPRESSED


class UserErrorResolver(HandlerExceptionResolver):
    """Finishes ``UserError`` in place: a JSON body for API clients, the 500 page for browsers."""

    order = 150

    def resolve(self, failure: Exception, request: Request, response: ResponseState) -> ResolutionOutcome:
        if not isinstance(failure, UserError):
            return UNHANDLED

        logger.info("user_error_to_400", extra={"path": request.url.path})
        status = HTTPStatus.BAD_REQUEST
        response.set_status(status.value)

        if wants_html(request.headers.get("accept")):
            return Rendered(
                status=status.value,
                view="error/500.html",
                model={"status": status.value, "phrase": status.phrase, "message": str(failure)},
            )

        payload = json.dumps({"ex": type(failure).__qualname__, "message": str(failure)}, ensure_ascii=False)
        try:
            response.write(payload, media_type="application/json")
        except OSError:
            logger.exception("resolver_io_error", extra={"resolver": type(self).__name__})
            return UNHANDLED
        return SUPPRESSED
