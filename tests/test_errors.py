"""Tests for perch.errors: hierarchy and messages."""

import dataclasses

import pytest

from perch.errors import (
    ConfigurationError,
    HTTPError,
    MethodNotAllowed,
    MissingParameter,
    NotFound,
    PerchError,
    TemplateNotFound,
    UnknownRoute,
    UnmappedHandler,
    URLGenerationError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_type",
        [ConfigurationError, HTTPError, URLGenerationError, UnmappedHandler, TemplateNotFound],
    )
    def test_perch_error_base(self, exc_type: type) -> None:
        assert issubclass(exc_type, PerchError)

    def test_http_errors(self) -> None:
        assert issubclass(NotFound, HTTPError)
        assert issubclass(MethodNotAllowed, HTTPError)

    def test_url_errors_are_lookup_errors(self) -> None:
        assert issubclass(UnknownRoute, LookupError)
        assert issubclass(MissingParameter, LookupError)


class TestHTTPError:
    def test_str(self) -> None:
        assert str(HTTPError(status=418, detail="teapot")) == "418: teapot"
        assert str(HTTPError(status=500)) == "500"

    def test_frozen(self) -> None:
        err = HTTPError(status=400)
        with pytest.raises(dataclasses.FrozenInstanceError):
            err.status = 500  # type: ignore[misc]

    def test_not_found(self) -> None:
        err = NotFound()
        assert err.status == 404
        assert err.detail == "Not Found"

    def test_method_not_allowed(self) -> None:
        err = MethodNotAllowed(frozenset({"POST", "GET"}))
        assert err.status == 405
        assert err.headers == (("Allow", "GET, POST"),)
        assert err.detail == "Method not allowed. Allowed methods: GET, POST"
        assert err.allowed == frozenset({"GET", "POST"})


class TestMessages:
    def test_unmapped_handler(self) -> None:
        err = UnmappedHandler("doesNotExist")
        assert str(err) == "doesNotExist must be a mapped method."
        assert err.name == "doesNotExist"

    def test_unknown_route(self) -> None:
        assert "'nope'" in str(UnknownRoute("nope"))

    def test_missing_parameter(self) -> None:
        err = MissingParameter("user", "id")
        assert str(err) == "Route 'user' requires parameter 'id'"

    def test_template_not_found(self) -> None:
        err = TemplateNotFound("views/x.html")
        assert str(err) == "Template file not found: views/x.html"
        assert err.path == "views/x.html"
