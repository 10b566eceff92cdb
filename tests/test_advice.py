"""Per-handler exception mapping."""

from __future__ import annotations

import pytest

from faultline.advice import ExceptionAdvice
from faultline.errors import ConfigurationError, DomainError, UserError
from faultline.models import ErrorResult


class SpecialUserError(UserError):
    pass


def scoped_handler() -> None:
    pass


def test_exact_match_beats_ancestor() -> None:
    advice = ExceptionAdvice()

    @advice.exception_handler(DomainError)
    def domain(exc):
        return "domain"

    @advice.exception_handler(UserError)
    def user(exc):
        return "user"

    assert advice.lookup(UserError).producer is user
    assert advice.lookup(DomainError).producer is domain


def test_closest_ancestor_wins() -> None:
    advice = ExceptionAdvice()
    advice.register(Exception, lambda exc: "any")
    advice.register(DomainError, lambda exc: "domain")
    advice.register(UserError, lambda exc: "user")

    mapping = advice.lookup(SpecialUserError)
    assert mapping.exc_type is UserError
    assert advice.lookup(KeyError).exc_type is Exception
    assert ExceptionAdvice().lookup(KeyError) is None


def test_duplicate_exact_registration_fails_at_setup() -> None:
    advice = ExceptionAdvice()
    advice.register(UserError, lambda exc: "first")
    with pytest.raises(ConfigurationError):
        advice.register(UserError, lambda exc: "second")


def test_exception_type_inferred_from_annotation() -> None:
    advice = ExceptionAdvice()

    @advice.exception_handler(status=400)
    def user(exc: UserError) -> ErrorResult:
        return ErrorResult(code="USER-EX", message=str(exc))

    mapping = advice.lookup(SpecialUserError)
    assert mapping.producer is user
    assert mapping.status == 400


def test_uninferable_producer_is_rejected() -> None:
    advice = ExceptionAdvice()
    with pytest.raises(ConfigurationError):
        advice.exception_handler()(lambda exc: None)


def test_scope_by_module_prefix() -> None:
    module = scoped_handler.__module__
    advice = ExceptionAdvice([module.split(".")[0]])
    assert advice.applies_to(scoped_handler)
    assert not advice.applies_to(None)
    assert not ExceptionAdvice(["faultline.api"]).applies_to(scoped_handler)
    assert not ExceptionAdvice([module[:-2]]).applies_to(scoped_handler)
    assert ExceptionAdvice().applies_to(scoped_handler)


def test_produce_statuses() -> None:
    advice = ExceptionAdvice()
    advice.register(UserError, lambda exc: ErrorResult(code="U", message=str(exc)), status=400)
    advice.register(DomainError, lambda exc: (ErrorResult(code="D", message=str(exc)), 409))
    advice.register(KeyError, lambda exc: {"code": "K"})

    assert advice.lookup(UserError).produce(UserError("u"), default_status=500) == (
        {"code": "U", "message": "u"},
        400,
    )
    assert advice.lookup(DomainError).produce(DomainError("d"), default_status=500) == (
        {"code": "D", "message": "d"},
        409,
    )
    assert advice.lookup(KeyError).produce(KeyError("k"), default_status=500) == ({"code": "K"}, 500)


def test_boolean_second_item_is_not_a_status() -> None:
    advice = ExceptionAdvice()
    advice.register(KeyError, lambda exc: ("missing", True), status=404)

    body, status = advice.lookup(KeyError).produce(KeyError("k"), default_status=500)
    assert status == 404
    assert body == ["missing", True]
