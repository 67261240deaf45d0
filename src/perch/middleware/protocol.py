"""Middleware capabilities and the context they receive.

A middleware is any object with a ``before`` and/or ``after`` method::

    class Timing:
        def before(self, ctx: RouteContext) -> None:
            ctx.response.header("X-Start", str(time.monotonic()))

        def after(self, ctx: RouteContext) -> None:
            ...

A bare callable counts as a ``before``. Returning exactly ``False`` from
``before`` stops the chain. No base class required. The dispatcher
checks the shape, not the lineage.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from perch.http.request import Request
from perch.http.response import Response
from perch.routing.route import Route

if TYPE_CHECKING:
    from perch.dispatcher import Dispatcher


@dataclass(frozen=True, slots=True)
class RouteContext:
    """What a middleware phase sees of the current dispatch."""

    request: Request
    response: Response
    route: Route
    params: dict[str, str | None]
    dispatcher: Dispatcher | None = None


@runtime_checkable
class BeforeMiddleware(Protocol):
    def before(self, ctx: RouteContext) -> bool | None: ...


@runtime_checkable
class AfterMiddleware(Protocol):
    def after(self, ctx: RouteContext) -> Any: ...


type Middleware = BeforeMiddleware | AfterMiddleware | Callable[[RouteContext], Any]


def before_phase(middleware: Any) -> Callable[[RouteContext], Any] | None:
    """The ``before`` capability of *middleware*, or ``None``."""
    method = getattr(middleware, "before", None)
    if callable(method):
        return method
    if callable(middleware) and not hasattr(middleware, "after"):
        return middleware
    return None


def after_phase(middleware: Any) -> Callable[[RouteContext], Any] | None:
    """The ``after`` capability of *middleware*, or ``None``."""
    method = getattr(middleware, "after", None)
    return method if callable(method) else None
