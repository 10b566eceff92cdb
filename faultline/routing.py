"""
Route class that offers handler failures to the resolver chain.
"""

from __future__ import annotations

from typing import Any, Callable, Coroutine

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from fastapi.routing import APIRoute

from .context import DispatchKind, ResponseState, get_dispatch_kind, get_response_state
from .resolvers import Rendered, ResolutionOutcome, ResolverChain, Unhandled
from .templating import templates


def render_outcome(outcome: ResolutionOutcome, request: Request, response: ResponseState) -> Response:
    """Build the ASGI response for a resolved failure."""

    if isinstance(outcome, Rendered):
        # The rendered body is final; an error sent by an earlier resolver is dropped.
        response.error_pending = False
        response.set_status(outcome.status)
        if outcome.view is not None:
            return templates.TemplateResponse(
                request,
                outcome.view,
                dict(outcome.model),
                status_code=outcome.status,
                headers=dict(response.headers),
            )
        return JSONResponse(content=outcome.body, status_code=outcome.status, headers=dict(response.headers))

    if response.error_pending:
        # Discarded by the error-page dispatcher, which forwards instead.
        return Response(status_code=response.status_code)
    return response.to_response()


class ResolvingRoute(APIRoute):
    """``APIRoute`` whose handler failures go through the application's ``ResolverChain``."""

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        route_handler = super().get_route_handler()

        async def resolving_route_handler(request: Request) -> Response:
            try:
                return await route_handler(request)
            except Exception as exc:
                # Error dispatches never re-enter resolution.
                if get_dispatch_kind(request) is DispatchKind.ERROR:
                    raise
                chain: ResolverChain | None = getattr(request.app.state, "resolver_chain", None)
                if chain is None:
                    raise
                response = get_response_state(request)
                outcome = chain.resolve(exc, request, response)
                if isinstance(outcome, Unhandled):
                    raise
                return render_outcome(outcome, request, response)

        return resolving_route_handler
