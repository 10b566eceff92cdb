"""
Resolver chain: ordered strategies that get first refusal on a failure raised by a route handler.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .advice import ExceptionAdvice
from .context import ResponseState
from .errors import ResolverError
from .status import StatusRegistry

logger = logging.getLogger(__name__)

ADVICE_ORDER = 100
RESPONSE_STATUS_ORDER = 200
DEFAULT_HANDLER_ORDER = 300


@dataclass(frozen=True, slots=True)
class Unhandled:
    """No opinion: offer the failure to the next resolver."""


@dataclass(frozen=True, slots=True)
class Suppressed:
    """Handled; the response state already says everything that will be sent."""


@dataclass(frozen=True, slots=True)
class Rendered:
    """Handled with content: either a JSON body or a template view and its model."""

    status: int
    body: Any = None
    view: Optional[str] = None
    model: Mapping[str, Any] = field(default_factory=dict)


UNHANDLED = Unhandled()
SUPPRESSED = Suppressed()

ResolutionOutcome = Union[Unhandled, Suppressed, Rendered]


class HandlerExceptionResolver(abc.ABC):
    """Strategy deciding whether, and how, a failure becomes a response."""

    order: int = 0

    @abc.abstractmethod
    def resolve(self, failure: Exception, request: Request, response: ResponseState) -> ResolutionOutcome:
        raise NotImplementedError


class ResolverChain:
    """Resolvers sorted by ``order``; the first outcome other than ``Unhandled`` wins."""

    def __init__(self, resolvers: Iterable[HandlerExceptionResolver]) -> None:
        self._resolvers: Tuple[HandlerExceptionResolver, ...] = tuple(sorted(resolvers, key=lambda r: r.order))

    @property
    def resolvers(self) -> Tuple[HandlerExceptionResolver, ...]:
        return self._resolvers

    def resolve(self, failure: Exception, request: Request, response: ResponseState) -> ResolutionOutcome:
        for resolver in self._resolvers:
            name = type(resolver).__name__
            try:
                outcome = resolver.resolve(failure, request, response)
            except Exception as exc:
                logger.exception(
                    "resolver_failure",
                    extra={"resolver": name, "exception_type": type(failure).__qualname__},
                )
                raise ResolverError(f"{name} raised while resolving {type(failure).__qualname__}") from exc

            if not isinstance(outcome, (Unhandled, Suppressed, Rendered)):
                raise ResolverError(f"{name} returned {outcome!r} instead of a resolution outcome")
            if isinstance(outcome, Unhandled):
                continue

            logger.info(
                "failure_resolved",
                extra={
                    "resolver": name,
                    "outcome": type(outcome).__name__,
                    "exception_type": type(failure).__qualname__,
                },
            )
            return outcome
        return UNHANDLED


class ExceptionHandlerResolver(HandlerExceptionResolver):
    """Consults the exception advice whose scope covers the failing handler."""

    order = ADVICE_ORDER

    def __init__(self, advices: Sequence[ExceptionAdvice], status_registry: StatusRegistry) -> None:
        self._advices = tuple(advices)
        self._status_registry = status_registry

    def resolve(self, failure: Exception, request: Request, response: ResponseState) -> ResolutionOutcome:
        handler = request.scope.get("endpoint")
        for advice in self._advices:
            if not advice.applies_to(handler):
                continue
            mapping = advice.lookup(type(failure))
            if mapping is None:
                continue
            logger.error(
                "advice_exception_handler",
                exc_info=failure,
                extra={"exception_type": type(failure).__qualname__, "producer": mapping.producer.__name__},
            )
            body, status = mapping.produce(failure, default_status=self._status_registry.status_for(failure))
            return Rendered(status=status, body=body)
        return UNHANDLED


class ResponseStatusResolver(HandlerExceptionResolver):
    """Applies a declared ``StatusMapping`` by sending an error status."""

    order = RESPONSE_STATUS_ORDER

    def __init__(self, status_registry: StatusRegistry, reason_messages: Optional[Mapping[str, str]] = None) -> None:
        self._status_registry = status_registry
        self._reason_messages = dict(reason_messages or {})

    def resolve(self, failure: Exception, request: Request, response: ResponseState) -> ResolutionOutcome:
        seen = set()
        current: Optional[BaseException] = failure
        # The declared status of a wrapped cause applies when the wrapper has none.
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            mapping = self._status_registry.lookup(current)
            if mapping is not None:
                if mapping.reason:
                    message = self._reason_messages.get(mapping.reason, mapping.reason)
                else:
                    message = str(current) or None
                response.send_error(mapping.status, message)
                return SUPPRESSED
            current = current.__cause__
        return UNHANDLED


class DefaultHandlerResolver(HandlerExceptionResolver):
    """Framework errors: parameter binding failures and explicit HTTP exceptions."""

    order = DEFAULT_HANDLER_ORDER

    def resolve(self, failure: Exception, request: Request, response: ResponseState) -> ResolutionOutcome:
        if isinstance(failure, RequestValidationError):
            response.send_error(HTTPStatus.BAD_REQUEST.value, "Invalid request parameters")
            return SUPPRESSED
        if isinstance(failure, StarletteHTTPException):
            if failure.headers:
                response.headers.update(failure.headers)
            response.send_error(failure.status_code, str(failure.detail) if failure.detail else None)
            return SUPPRESSED
        return UNHANDLED
