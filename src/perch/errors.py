"""Perch exception hierarchy.

Shared across the router, URL generator, dispatcher and middleware so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when a route declaration or configuration value is invalid.

    Pattern compilation raises this at declaration time, so a bad
    pattern never reaches dispatch.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the route table or by handlers. The dispatcher catches
    these and writes the status, detail and headers to the response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route pattern matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: a route pattern matched, but not for this HTTP method.

    Carries an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )

    @property
    def allowed(self) -> frozenset[str]:
        """The methods the matching routes accept."""
        value = dict(self.headers).get("Allow", "")
        return frozenset(m for m in value.split(", ") if m)


class UnmappedHandler(PerchError):
    """A mapped event was called by name but never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} must be a mapped method.")
        self.name = name


class URLGenerationError(PerchError):
    """Base for failures while building a URL from a named route."""


class UnknownRoute(URLGenerationError, LookupError):
    """No route is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No route found with name {name!r}")
        self.name = name


class MissingParameter(URLGenerationError, LookupError):
    """A required path parameter was not supplied to ``url_for``."""

    def __init__(self, route_name: str, param: str) -> None:
        super().__init__(f"Route {route_name!r} requires parameter {param!r}")
        self.route_name = route_name
        self.param = param


class TemplateNotFound(PerchError):
    """The view could not find a template file."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Template file not found: {path}")
        self.path = path
