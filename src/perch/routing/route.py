"""Route, RouteMatch and the RouteHandle returned at registration."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from perch.routing.pattern import CompiledPattern

ANY_METHOD = "*"

type Handler = Callable[..., Any]


@dataclass(slots=True, eq=False)
class Route:
    """A registered route.

    Fixed at declaration time, except for the middleware list and the
    streaming flags, which only a ``RouteHandle`` changes.
    """

    pattern: str
    compiled: CompiledPattern
    handler: Handler
    methods: frozenset[str] = frozenset({ANY_METHOD})
    name: str | None = None
    middleware: list[Any] = field(default_factory=list)
    pass_route: bool = False
    streamed: bool = False
    stream_headers: dict[str, Any] | None = None

    def matches_method(self, method: str) -> bool:
        """True if this route accepts *method* (case-insensitive)."""
        return ANY_METHOD in self.methods or method.upper() in self.methods

    def __repr__(self) -> str:
        methods = "|".join(sorted(self.methods))
        suffix = f" name={self.name!r}" if self.name else ""
        return f"<Route {methods} {self.pattern!r}{suffix}>"


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: dict[str, str | None]
    splat: str = ""

    @property
    def args(self) -> tuple[str | None, ...]:
        """Captured values in pattern order."""
        return tuple(self.params.values())


class RouteHandle:
    """Builder returned by every route declaration.

    Usage::

        router.get("/feed", feed).stream()
        router.get("/admin", admin).add_middleware(AuthMiddleware())
    """

    __slots__ = ("route",)

    def __init__(self, route: Route) -> None:
        self.route = route

    def add_middleware(self, middleware: Any) -> RouteHandle:
        """Append one middleware, or each item of a list or tuple."""
        if isinstance(middleware, Sequence) and not isinstance(middleware, str):
            self.route.middleware.extend(middleware)
        else:
            self.route.middleware.append(middleware)
        return self

    def stream(self) -> RouteHandle:
        """Send handler output straight to the client, unbuffered."""
        self.route.streamed = True
        return self

    def stream_with_headers(self, headers: Mapping[str, Any]) -> RouteHandle:
        """Stream, emitting *headers* before the handler runs.

        A ``status`` key sets the status code instead of a header.
        """
        self.route.streamed = True
        self.route.stream_headers = dict(headers)
        return self
