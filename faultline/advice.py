"""
Exception handlers scoped to a group of route handlers.

An ``ExceptionAdvice`` maps exception classes to producer functions. It only
applies to handlers defined in the modules it was scoped to, and picks the
producer registered for the nearest class in the failure's MRO.
"""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Type, TypeVar

from fastapi.encoders import jsonable_encoder

from .errors import ConfigurationError

Producer = Callable[[BaseException], Any]
P = TypeVar("P", bound=Producer)


@dataclass(frozen=True, slots=True)
class ExceptionMapping:
    exc_type: Type[BaseException]
    producer: Producer
    status: Optional[int] = None

    def produce(self, failure: BaseException, *, default_status: int) -> Tuple[Any, int]:
        """Run the producer and return its JSON-ready body with the status to send."""

        result = self.producer(failure)
        if (
            isinstance(result, tuple)
            and len(result) == 2
            and isinstance(result[1], int)
            and not isinstance(result[1], bool)
        ):
            body, status = result
        else:
            body, status = result, self.status if self.status is not None else default_status
        return jsonable_encoder(body), status


class ExceptionAdvice:
    """Per-handler-scope table from exception class to producer."""

    def __init__(self, base_modules: Iterable[str] = ()) -> None:
        self.base_modules: Tuple[str, ...] = tuple(base_modules)
        self._mappings: Dict[Type[BaseException], ExceptionMapping] = {}

    def applies_to(self, handler: Optional[Callable[..., Any]]) -> bool:
        if not self.base_modules:
            return True
        module = getattr(handler, "__module__", None)
        if not module:
            return False
        return any(module == base or module.startswith(base + ".") for base in self.base_modules)

    def register(self, exc_type: Type[BaseException], producer: Producer, *, status: Optional[int] = None) -> None:
        if not (isinstance(exc_type, type) and issubclass(exc_type, BaseException)):
            raise ConfigurationError(f"{exc_type!r} is not an exception class")
        existing = self._mappings.get(exc_type)
        if existing is not None:
            raise ConfigurationError(
                f"Ambiguous handler for {exc_type.__qualname__}: "
                f"{existing.producer.__name__} and {producer.__name__}"
            )
        self._mappings[exc_type] = ExceptionMapping(exc_type=exc_type, producer=producer, status=status)

    def exception_handler(self, *exc_types: Type[BaseException], status: Optional[int] = None) -> Callable[[P], P]:
        """Register the decorated producer; without types, its first parameter's annotation is used."""

        def decorator(producer: P) -> P:
            types = exc_types or (_annotated_exception_type(producer),)
            for exc_type in types:
                self.register(exc_type, producer, status=status)
            return producer

        return decorator

    def lookup(self, exc_type: Type[BaseException]) -> Optional[ExceptionMapping]:
        for cls in exc_type.__mro__:
            mapping = self._mappings.get(cls)
            if mapping is not None:
                return mapping
        return None


def _annotated_exception_type(producer: Producer) -> Type[BaseException]:
    params = list(inspect.signature(producer).parameters.values())
    if not params:
        raise ConfigurationError(f"{producer.__name__} takes no exception parameter")
    hints = typing.get_type_hints(producer)
    annotation = hints.get(params[0].name)
    if not (isinstance(annotation, type) and issubclass(annotation, BaseException)):
        raise ConfigurationError(f"Cannot infer the exception type handled by {producer.__name__}")
    return annotation
