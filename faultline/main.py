"""
Application entrypoint exposing the FastAPI instance.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from . import api, error_pages, pages
from .api_advice import build_api_advice
from .config import Settings, get_settings
from .custom_resolvers import IllegalArgumentResolver, UserErrorResolver
from .dispatch import ErrorPageDispatcher, ErrorPageRegistry
from .errors import register_exception_handlers
from .logging import configure_logging
from .request_log import RequestLogMiddleware
from .resolvers import (
    DefaultHandlerResolver,
    ExceptionHandlerResolver,
    ResolverChain,
    ResponseStatusResolver,
)
from .status import StatusRegistry, build_status_registry


def build_error_page_registry(settings: Settings) -> ErrorPageRegistry:
    registry = ErrorPageRegistry()
    for status_code, path in settings.error_pages.items():
        registry.register(int(status_code), path)
    registry.register(RuntimeError, f"{error_pages.ERROR_PAGE_PREFIX}/500")
    registry.freeze()
    return registry


def build_resolver_chain(settings: Settings, status_registry: StatusRegistry) -> ResolverChain:
    advice = build_api_advice(settings.advice_modules, settings.internal_error_message)
    return ResolverChain(
        [
            ExceptionHandlerResolver([advice], status_registry),
            ResponseStatusResolver(status_registry, settings.reason_messages),
            DefaultHandlerResolver(),
            UserErrorResolver(),
            IllegalArgumentResolver(),
        ]
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Instantiate and configure the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="faultline",
        summary="Error-resolution pipeline: resolver chain, error-page dispatch and negotiated error pages.",
        version="0.1.0",
    )

    status_registry = build_status_registry()
    app.state.settings = settings
    app.state.status_registry = status_registry
    app.state.resolver_chain = build_resolver_chain(settings, status_registry)

    register_exception_handlers(app)

    # Added first so it runs inside the dispatcher and also sees error forwards.
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        ErrorPageDispatcher,
        registry=build_error_page_registry(settings),
        status_registry=status_registry,
        settings=settings,
    )

    app.include_router(api.router)
    app.include_router(pages.router)
    app.include_router(error_pages.router)

    return app


app = create_app()
