"""
Exception producers for the JSON API handlers.
"""

from __future__ import annotations

from typing import Iterable, Tuple

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .advice import ExceptionAdvice
from .errors import NotFoundError, UserError
from .models import ErrorResult


def build_api_advice(base_modules: Iterable[str], internal_error_message: str) -> ExceptionAdvice:
    """Advice covering the handlers under ``base_modules``; every failure there answers with an ``ErrorResult``."""

    advice = ExceptionAdvice(base_modules)

    @advice.exception_handler(ValueError, status=400)
    def illegal_argument_handler(exc: ValueError) -> ErrorResult:
        return ErrorResult(code="BAD", message=str(exc))

    @advice.exception_handler()
    def user_error_handler(exc: UserError) -> Tuple[ErrorResult, int]:
        return ErrorResult(code="USER-EX", message=str(exc)), 400

    @advice.exception_handler(status=404)
    def not_found_handler(exc: NotFoundError) -> ErrorResult:
        return ErrorResult(code="NOT-FOUND", message=str(exc))

    @advice.exception_handler(status=400)
    def binding_error_handler(exc: RequestValidationError) -> ErrorResult:
        return ErrorResult(code="BAD", message="Invalid request parameters")

    @advice.exception_handler()
    def http_error_handler(exc: StarletteHTTPException) -> Tuple[ErrorResult, int]:
        return ErrorResult(code="HTTP", message=str(exc.detail)), exc.status_code

    @advice.exception_handler(status=500)
    def internal_error_handler(exc: Exception) -> ErrorResult:
        # The failure's own message never reaches the client.
        return ErrorResult(code="EX", message=internal_error_message)

    return advice
