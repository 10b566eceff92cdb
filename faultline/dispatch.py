"""
Error-page dispatch: the server-level fallback behind the resolver chain.

``ErrorPageDispatcher`` wraps the application. When a request ends with a
pending ``send_error`` or an exception escapes before the response started,
it forwards the same request internally to the error page registered for the
failure's class or status. The forward is a single hop: anything going wrong
inside it ends in a minimal built-in page.
"""

from __future__ import annotations

import html
import logging
from http import HTTPStatus
from typing import Any, Dict, Optional, Type, Union

from starlette.datastructures import Headers
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import Settings, get_settings
from .context import (
    DISPATCH_KIND_KEY,
    ERROR_CONTEXT_KEY,
    RESPONSE_STATE_KEY,
    DispatchKind,
    RequestErrorContext,
    ResponseState,
    scope_state,
)
from .error_pages import public_message, reason_phrase
from .errors import ConfigurationError
from .negotiation import wants_html
from .status import StatusRegistry, classify

logger = logging.getLogger(__name__)

ErrorKey = Union[int, Type[BaseException]]

MINIMAL_PAGE = (
    "<!DOCTYPE html><html><head><title>{status} {phrase}</title></head>"
    "<body><h1>{status} {phrase}</h1><p>{message}</p></body></html>"
)


class ErrorPageRegistry:
    """Forward paths keyed by status code or exception class."""

    def __init__(self) -> None:
        self._by_status: Dict[int, str] = {}
        self._by_exception: Dict[Type[BaseException], str] = {}
        self._frozen = False

    def register(self, key: ErrorKey, path: str) -> None:
        if self._frozen:
            raise ConfigurationError("Error page registry is frozen")
        if not path.startswith("/"):
            raise ConfigurationError(f"Error page path must be absolute: {path!r}")

        if isinstance(key, type) and issubclass(key, BaseException):
            table: Dict[Any, str] = self._by_exception
        elif isinstance(key, int) and not isinstance(key, bool):
            table = self._by_status
        else:
            raise ConfigurationError(f"Error page key must be a status code or exception class, not {key!r}")

        if key in table:
            raise ConfigurationError(f"Error page already registered for {key!r}")
        table[key] = path

    def freeze(self) -> None:
        self._frozen = True

    def lookup(self, status_code: int, exc: Optional[BaseException] = None) -> Optional[str]:
        if exc is not None:
            for cls in type(exc).__mro__:
                path = self._by_exception.get(cls)
                if path is not None:
                    return path
        return self._by_status.get(status_code)


def _handler_name(endpoint: Any) -> Optional[str]:
    if endpoint is None:
        return None
    return f"{getattr(endpoint, '__module__', '?')}.{getattr(endpoint, '__qualname__', repr(endpoint))}"


async def _empty_receive() -> Message:
    return {"type": "http.disconnect"}


class ErrorPageDispatcher:
    """Pure ASGI middleware performing the internal error forward."""

    def __init__(
        self,
        app: ASGIApp,
        registry: ErrorPageRegistry,
        status_registry: StatusRegistry,
        settings: Optional[Settings] = None,
    ) -> None:
        self.app = app
        self.registry = registry
        self.status_registry = status_registry
        self.settings = settings or get_settings()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope_state(scope)
        state.setdefault(DISPATCH_KIND_KEY, DispatchKind.REQUEST)
        response = state.get(RESPONSE_STATE_KEY)
        if response is None:
            response = state[RESPONSE_STATE_KEY] = ResponseState()

        started = False
        discarding = False

        async def guarded_send(message: Message) -> None:
            nonlocal started, discarding
            if message["type"] == "http.response.start":
                if response.error_pending:
                    discarding = True
                else:
                    started = True
            if not discarding:
                await send(message)

        try:
            await self.app(scope, receive, guarded_send)
        except Exception as exc:
            if started:
                logger.exception("failure_after_response_started", extra={"path": scope.get("path")})
                raise
            classification = classify(exc, self.status_registry)
            logger.error(
                "unresolved_failure",
                exc_info=exc,
                extra={
                    "path": scope.get("path"),
                    "exception_type": type(exc).__qualname__,
                    "failure_kind": classification.kind.value,
                },
            )
            await self._forward(scope, receive, send, response, HTTPStatus.INTERNAL_SERVER_ERROR.value, exc)
            return

        if discarding or (response.error_pending and not started):
            await self._forward(scope, receive, send, response, response.status_code, None)

    async def _forward(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        response: ResponseState,
        status_code: int,
        exc: Optional[BaseException],
    ) -> None:
        context = RequestErrorContext(
            status_code=status_code,
            message=response.error_message if exc is None else (str(exc) or None),
            request_uri=scope.get("path", "/"),
            exception=exc,
            exception_type=type(exc).__qualname__ if exc is not None else None,
            handler_name=_handler_name(scope.get("endpoint")),
            dispatch_kind=DispatchKind.ERROR,
        )
        response.reset_for_forward()
        response.set_status(status_code)

        path = self.registry.lookup(status_code, exc)
        if path is None:
            logger.info("error_page_missing", extra=context.as_log_extra())
            await self._send_minimal_page(scope, send, context)
            return

        forward_scope = self._forward_scope(scope, path, context)
        started = False
        discarding = False

        async def forward_send(message: Message) -> None:
            nonlocal started, discarding
            if message["type"] == "http.response.start":
                if response.error_pending:
                    discarding = True
                else:
                    started = True
            if not discarding:
                await send(message)

        logger.info("error_forward", extra={**context.as_log_extra(), "forward_path": path})
        try:
            await self.app(forward_scope, receive, forward_send)
        except Exception:
            logger.exception("error_page_failure", extra=context.as_log_extra())
            if not started:
                await self._send_minimal_page(scope, send, context)
            return

        if not started:
            await self._send_minimal_page(scope, send, context)

    def _forward_scope(self, scope: Scope, path: str, context: RequestErrorContext) -> Scope:
        forward_scope = dict(scope)
        for key in ("endpoint", "route", "path_params"):
            forward_scope.pop(key, None)
        full_path = scope.get("root_path", "") + path
        forward_scope["path"] = full_path
        forward_scope["raw_path"] = full_path.encode("utf-8")
        forward_scope["state"] = {
            **scope_state(scope),
            ERROR_CONTEXT_KEY: context,
            DISPATCH_KIND_KEY: DispatchKind.ERROR,
        }
        return forward_scope

    async def _send_minimal_page(self, scope: Scope, send: Send, context: RequestErrorContext) -> None:
        message = public_message(context, self.settings)
        if wants_html(Headers(scope=scope).get("accept")):
            page = MINIMAL_PAGE.format(
                status=context.status_code,
                phrase=reason_phrase(context.status_code),
                message=html.escape(message),
            )
            minimal: Response = HTMLResponse(page, status_code=context.status_code)
        else:
            minimal = JSONResponse({"status": context.status_code, "message": message}, status_code=context.status_code)

        try:
            await minimal(scope, _empty_receive, send)
        except Exception:
            # Nothing is left to report to; the client may already be gone.
            logger.exception("error_body_write_failed", extra=context.as_log_extra())