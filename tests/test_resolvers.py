"""Resolver chain ordering and the built-in resolvers."""

from __future__ import annotations

import pytest
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from conftest import build_request
from faultline.api_advice import build_api_advice
from faultline.context import ResponseState
from faultline.custom_resolvers import IllegalArgumentResolver, UserErrorResolver
from faultline.errors import BadRequestError, NotFoundError, ResolverError, UserError
from faultline.resolvers import (
    SUPPRESSED,
    UNHANDLED,
    DefaultHandlerResolver,
    ExceptionHandlerResolver,
    HandlerExceptionResolver,
    Rendered,
    ResolverChain,
    ResponseStatusResolver,
    Suppressed,
    Unhandled,
)
from faultline.routing import render_outcome
from faultline.status import build_status_registry


class Recording(HandlerExceptionResolver):
    def __init__(self, name, order, outcome, calls):
        self.name = name
        self.order = order
        self.outcome = outcome
        self.calls = calls

    def resolve(self, failure, request, response):
        self.calls.append(self.name)
        return self.outcome


def api_endpoint() -> None:
    pass


api_endpoint.__module__ = "faultline.api"


def test_chain_runs_by_order_and_stops_at_first_outcome() -> None:
    calls = []
    chain = ResolverChain(
        [
            Recording("late", 300, SUPPRESSED, calls),
            Recording("first", 100, UNHANDLED, calls),
            Recording("middle", 200, Rendered(status=418, body={"a": 1}), calls),
        ]
    )
    outcome = chain.resolve(RuntimeError(), build_request(), ResponseState())
    assert calls == ["first", "middle"]
    assert outcome == Rendered(status=418, body={"a": 1})


def test_equal_orders_keep_registration_order() -> None:
    calls = []
    chain = ResolverChain([Recording("a", 150, UNHANDLED, calls), Recording("b", 150, UNHANDLED, calls)])
    assert isinstance(chain.resolve(RuntimeError(), build_request(), ResponseState()), Unhandled)
    assert calls == ["a", "b"]


def test_resolver_raising_is_fatal() -> None:
    class Exploding(HandlerExceptionResolver):
        def resolve(self, failure, request, response):
            raise KeyError("boom")

    calls = []
    chain = ResolverChain([Exploding(), Recording("never", 10, SUPPRESSED, calls)])
    with pytest.raises(ResolverError) as info:
        chain.resolve(RuntimeError(), build_request(), ResponseState())
    assert isinstance(info.value.__cause__, KeyError)
    assert calls == []


def test_none_is_not_a_resolution_outcome() -> None:
    chain = ResolverChain([Recording("bad", 1, None, [])])
    with pytest.raises(ResolverError):
        chain.resolve(RuntimeError(), build_request(), ResponseState())


def test_response_status_resolver_sends_declared_error() -> None:
    resolver = ResponseStatusResolver(build_status_registry(), {"error.bad": "bad request message"})
    response = ResponseState()

    assert resolver.resolve(BadRequestError(), build_request(), response) is SUPPRESSED
    assert response.error_pending
    assert (response.status_code, response.error_message) == (400, "bad request message")

    assert resolver.resolve(RuntimeError("x"), build_request(), ResponseState()) is UNHANDLED


def test_response_status_resolver_follows_the_cause() -> None:
    resolver = ResponseStatusResolver(build_status_registry())
    response = ResponseState()
    try:
        try:
            raise NotFoundError("no member")
        except NotFoundError as inner:
            raise RuntimeError("wrapper") from inner
    except RuntimeError as wrapper:
        outcome = resolver.resolve(wrapper, build_request(), response)

    assert isinstance(outcome, Suppressed)
    assert (response.status_code, response.error_message) == (404, "no member")


def test_default_handler_resolver() -> None:
    resolver = DefaultHandlerResolver()

    response = ResponseState()
    assert resolver.resolve(RequestValidationError([]), build_request(), response) is SUPPRESSED
    assert response.status_code == 400

    response = ResponseState()
    failure = HTTPException(405, headers={"Allow": "GET"})
    assert resolver.resolve(failure, build_request(), response) is SUPPRESSED
    assert response.status_code == 405
    assert response.headers == {"Allow": "GET"}

    assert resolver.resolve(ValueError(), build_request(), ResponseState()) is UNHANDLED


def test_exception_handler_resolver_respects_scope() -> None:
    registry = build_status_registry()
    resolver = ExceptionHandlerResolver([build_api_advice(["faultline.api"], "internal")], registry)

    inside = build_request(endpoint=api_endpoint)
    outcome = resolver.resolve(UserError("user error"), inside, ResponseState())
    assert outcome == Rendered(status=400, body={"code": "USER-EX", "message": "user error"})

    outcome = resolver.resolve(KeyError("secret"), inside, ResponseState())
    assert outcome == Rendered(status=500, body={"code": "EX", "message": "internal"})

    outside = build_request(endpoint=test_chain_runs_by_order_and_stops_at_first_outcome)
    assert resolver.resolve(UserError("user error"), outside, ResponseState()) is UNHANDLED


def test_illegal_argument_resolver() -> None:
    resolver = IllegalArgumentResolver()
    response = ResponseState()
    assert resolver.resolve(ValueError("bad input"), build_request(), response) is SUPPRESSED
    assert (response.status_code, response.error_message, response.error_pending) == (400, "bad input", True)
    assert resolver.resolve(KeyError(), build_request(), ResponseState()) is UNHANDLED


def test_user_error_resolver_negotiates() -> None:
    resolver = UserErrorResolver()

    response = ResponseState()
    outcome = resolver.resolve(UserError("user error"), build_request(headers={"Accept": "application/json"}), response)
    assert outcome is SUPPRESSED
    assert response.status_code == 400
    assert not response.error_pending
    assert response.body == '{"ex": "UserError", "message": "user error"}'.encode()
    assert response.media_type == "application/json; charset=utf-8"

    outcome = resolver.resolve(UserError("user error"), build_request(headers={"Accept": "text/html"}), ResponseState())
    assert isinstance(outcome, Rendered)
    assert (outcome.status, outcome.view) == (400, "error/500.html")


def test_rendered_outcome_drops_error_sent_by_earlier_resolver() -> None:
    class SendsThenPasses(HandlerExceptionResolver):
        order = 10

        def resolve(self, failure, request, response):
            response.send_error(404, "earlier")
            return UNHANDLED

    calls = []
    chain = ResolverChain([SendsThenPasses(), Recording("render", 20, Rendered(status=409, body={"code": "X"}), calls)])
    response = ResponseState()
    outcome = chain.resolve(RuntimeError(), build_request(), response)

    result = render_outcome(outcome, build_request(), response)
    assert result.status_code == 409
    assert result.body == b'{"code":"X"}'
    assert not response.error_pending
