"""
JSON error bodies.
"""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResult(BaseModel):
    """Body returned by handler-scoped exception producers."""

    code: str
    message: str


class StatusErrorResult(BaseModel):
    """Body returned by the error-page endpoint to JSON clients."""

    status: int
    message: str
