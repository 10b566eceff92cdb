"""
Declared HTTP statuses for exception classes, and failure classification.

The registry replaces status annotations on exception classes: mappings are
registered explicitly while the application is built and only read afterwards.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from http import HTTPStatus
from typing import Dict, Optional, Type

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import (
    BadRequestError,
    ClientInputError,
    ConfigurationError,
    DomainError,
    NotFoundError,
    ResponseStatusError,
    UserError,
)

DEFAULT_STATUS = HTTPStatus.INTERNAL_SERVER_ERROR.value


@dataclass(frozen=True, slots=True)
class StatusMapping:
    status: int
    reason: Optional[str] = None


class FailureKind(str, enum.Enum):
    CLIENT_INPUT = "client_input"
    DOMAIN = "domain"
    NOT_FOUND = "not_found"
    UNHANDLED = "unhandled"


@dataclass(frozen=True, slots=True)
class Classification:
    kind: FailureKind
    status: int
    reason: Optional[str] = None


class StatusRegistry:
    """Exception class to ``StatusMapping`` table with nearest-ancestor lookup."""

    def __init__(self) -> None:
        self._mappings: Dict[Type[BaseException], StatusMapping] = {}
        self._frozen = False

    def register(self, exc_type: Type[BaseException], status: int, reason: Optional[str] = None) -> None:
        if self._frozen:
            raise ConfigurationError("Status registry is frozen")
        if not (isinstance(exc_type, type) and issubclass(exc_type, BaseException)):
            raise ConfigurationError(f"{exc_type!r} is not an exception class")
        if exc_type in self._mappings:
            raise ConfigurationError(f"Status already declared for {exc_type.__qualname__}")
        try:
            HTTPStatus(status)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown HTTP status {status!r}") from exc
        self._mappings[exc_type] = StatusMapping(status=status, reason=reason)

    def freeze(self) -> None:
        self._frozen = True

    def lookup(self, exc: BaseException) -> Optional[StatusMapping]:
        if isinstance(exc, ResponseStatusError):
            return StatusMapping(status=exc.status_code, reason=exc.reason)
        for cls in type(exc).__mro__:
            mapping = self._mappings.get(cls)
            if mapping is not None:
                return mapping
        return None

    def status_for(self, exc: BaseException) -> int:
        mapping = self.lookup(exc)
        return mapping.status if mapping else DEFAULT_STATUS


def classify(exc: BaseException, registry: StatusRegistry) -> Classification:
    """Place a failure in the client-input / domain / not-found / unhandled taxonomy."""

    mapping = registry.lookup(exc)
    if isinstance(exc, StarletteHTTPException):
        mapping = mapping or StatusMapping(exc.status_code, str(exc.detail) if exc.detail else None)
    elif isinstance(exc, RequestValidationError):
        mapping = mapping or StatusMapping(HTTPStatus.BAD_REQUEST.value)

    if mapping is None:
        if isinstance(exc, ValueError):
            return Classification(FailureKind.CLIENT_INPUT, HTTPStatus.BAD_REQUEST.value)
        return Classification(FailureKind.UNHANDLED, DEFAULT_STATUS)

    status, reason = mapping.status, mapping.reason
    if status == HTTPStatus.NOT_FOUND or isinstance(exc, NotFoundError):
        kind = FailureKind.NOT_FOUND
    elif status >= 500:
        kind = FailureKind.UNHANDLED
    elif isinstance(exc, (ClientInputError, RequestValidationError)):
        kind = FailureKind.CLIENT_INPUT
    else:
        kind = FailureKind.DOMAIN
    return Classification(kind, status, reason)


def build_status_registry() -> StatusRegistry:
    """Registry holding the statuses declared by the application's exception types."""

    registry = StatusRegistry()
    registry.register(BadRequestError, HTTPStatus.BAD_REQUEST.value, reason="error.bad")
    registry.register(UserError, HTTPStatus.BAD_REQUEST.value)
    registry.register(ClientInputError, HTTPStatus.BAD_REQUEST.value)
    registry.register(NotFoundError, HTTPStatus.NOT_FOUND.value)
    registry.register(DomainError, HTTPStatus.UNPROCESSABLE_ENTITY.value)
    registry.freeze()
    return registry
