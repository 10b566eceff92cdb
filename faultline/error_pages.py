"""
Error-page endpoint: the target of internal error forwards.

The endpoint reads the ``RequestErrorContext`` left by the dispatcher and
answers in the representation the original request asked for: an HTML page
chosen by status, or a ``{status, message}`` JSON body.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from .config import Settings, get_settings
from .context import DispatchKind, RequestErrorContext, get_dispatch_kind, get_error_context
from .models import StatusErrorResult
from .negotiation import wants_html
from .templating import select_error_template, templates

logger = logging.getLogger(__name__)

ERROR_PAGE_PREFIX = "/error-page"
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter(include_in_schema=False)


def reason_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def public_message(context: RequestErrorContext, settings: Settings) -> str:
    """Client-facing message; server-side failures are genericised unless configured otherwise."""

    if context.status_code >= 500 and not settings.expose_error_messages:
        return settings.internal_error_message
    return context.message or reason_phrase(context.status_code)


def render_error(request: Request, context: RequestErrorContext, settings: Settings) -> Response:
    message = public_message(context, settings)

    if wants_html(request.headers.get("accept")):
        model = {
            "status": context.status_code,
            "phrase": reason_phrase(context.status_code),
            "message": message,
            "detail": None,
        }
        if settings.include_exception_detail:
            model["detail"] = {
                "exception_type": context.exception_type,
                "request_uri": context.request_uri,
                "message": context.message,
            }
        return templates.TemplateResponse(
            request,
            select_error_template(context.status_code),
            model,
            status_code=context.status_code,
        )

    body = StatusErrorResult(status=context.status_code, message=message)
    return JSONResponse(content=body.model_dump(), status_code=context.status_code)


def current_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def _direct_context(request: Request, status_code: int) -> RequestErrorContext:
    return RequestErrorContext(
        status_code=status_code,
        message=None,
        request_uri=request.url.path,
        dispatch_kind=get_dispatch_kind(request),
    )


@router.api_route(ERROR_PAGE_PREFIX + "/{status_code:int}", methods=ALL_METHODS)
async def error_page(
    request: Request,
    status_code: int,
    context: Optional[RequestErrorContext] = Depends(get_error_context),
    settings: Settings = Depends(current_settings),
) -> Response:
    if context is None or get_dispatch_kind(request) is not DispatchKind.ERROR:
        context = _direct_context(request, status_code)

    if settings.log_error_context:
        logger.info("error_page", extra=context.as_log_extra())

    return render_error(request, context, settings)
