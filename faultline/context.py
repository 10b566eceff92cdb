"""
Per-request error state shared between route handlers, resolvers and the dispatcher.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, MutableMapping, Optional, Union

from starlette.requests import Request
from starlette.responses import Response

RESPONSE_STATE_KEY = "response_state"
ERROR_CONTEXT_KEY = "error_context"
DISPATCH_KIND_KEY = "dispatch_kind"


class DispatchKind(str, enum.Enum):
    """Why the current dispatch is running."""

    REQUEST = "request"
    ERROR = "error"
    FORWARD = "forward"
    INCLUDE = "include"


@dataclass(slots=True)
class ResponseState:
    """Mutable response descriptor owned by a single request."""

    status_code: int = 200
    error_pending: bool = False
    error_message: Optional[str] = None
    body: Optional[bytes] = None
    media_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def committed(self) -> bool:
        return self.body is not None

    def set_status(self, status_code: int) -> None:
        self.status_code = status_code

    def send_error(self, status_code: int, message: Optional[str] = None) -> None:
        """Flag the response as an error to be rendered by the error-page dispatch."""

        self.status_code = status_code
        self.error_message = message
        self.error_pending = True

    def write(self, content: Union[str, bytes], media_type: str = "text/plain", charset: str = "utf-8") -> None:
        data = content.encode(charset) if isinstance(content, str) else content
        self.body = (self.body or b"") + data
        self.media_type = media_type if "charset=" in media_type else f"{media_type}; charset={charset}"

    def reset_for_forward(self) -> None:
        # Status and message survive the forward; the pending flag and any body do not.
        self.error_pending = False
        self.body = None
        self.media_type = None

    def to_response(self) -> Response:
        return Response(
            content=self.body or b"",
            status_code=self.status_code,
            headers=dict(self.headers),
            media_type=self.media_type,
        )


@dataclass(frozen=True, slots=True)
class RequestErrorContext:
    """What the error-page endpoint knows about the failure it renders."""

    status_code: int
    message: Optional[str]
    request_uri: str
    exception: Optional[BaseException] = None
    exception_type: Optional[str] = None
    handler_name: Optional[str] = None
    dispatch_kind: DispatchKind = DispatchKind.ERROR

    def as_log_extra(self) -> Dict[str, Any]:
        return {
            "status_code": self.status_code,
            "exception_type": self.exception_type,
            "error_message": self.message,
            "path": self.request_uri,
            "handler": self.handler_name,
            "dispatch_kind": self.dispatch_kind.value,
        }


def scope_state(scope: MutableMapping[str, Any]) -> Dict[str, Any]:
    return scope.setdefault("state", {})


def get_response_state(request: Request) -> ResponseState:
    """FastAPI dependency returning the request's ``ResponseState``."""

    state = scope_state(request.scope)
    response_state = state.get(RESPONSE_STATE_KEY)
    if response_state is None:
        response_state = state[RESPONSE_STATE_KEY] = ResponseState()
    return response_state


def get_error_context(request: Request) -> Optional[RequestErrorContext]:
    return scope_state(request.scope).get(ERROR_CONTEXT_KEY)


def get_dispatch_kind(request: Request) -> DispatchKind:
    return scope_state(request.scope).get(DISPATCH_KIND_KEY, DispatchKind.REQUEST)
