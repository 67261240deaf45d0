"""Route declaration surface.

Declarations pass through the group stack (prefix and middleware),
are compiled, and land in the ordered route table.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from perch.routing.groups import GroupStack
from perch.routing.pattern import compile_pattern
from perch.routing.route import ANY_METHOD, Handler, Route, RouteHandle, RouteMatch
from perch.routing.table import RouteTable
from perch.routing.urls import UrlGenerator

logger = logging.getLogger("perch.routing")


def split_methods(method_and_pattern: str) -> tuple[frozenset[str], str]:
    """Split ``"GET|POST /path"`` into methods and pattern.

    Without a verb prefix the route accepts any method.
    """
    text = method_and_pattern.strip()
    if " " not in text:
        return frozenset({ANY_METHOD}), text
    verbs, pattern = text.split(" ", 1)
    methods = frozenset(v.strip().upper() for v in verbs.split("|") if v.strip())
    return methods or frozenset({ANY_METHOD}), pattern.strip()


class Router:
    """Declares routes and groups, matches requests, builds URLs.

    Usage::

        router = Router()
        router.get("/users/@id:[0-9]+", show_user, name="user")

        def admin(r: Router) -> None:
            r.get("/dashboard", dashboard)

        router.group("/admin", admin, middleware=[RequireLogin()])

        router.url_for("user", {"id": 42})  # "/users/42"
    """

    __slots__ = ("case_sensitive", "groups", "table", "urls")

    def __init__(self, *, case_sensitive: bool = False, encode_url_params: bool = False) -> None:
        self.case_sensitive = case_sensitive
        self.table = RouteTable()
        self.groups = GroupStack()
        self.urls = UrlGenerator(self.table, encode=encode_url_params)

    # -- Declaration --

    def route(
        self,
        method_and_pattern: str,
        handler: Handler,
        pass_route: bool = False,
        name: str | None = None,
    ) -> RouteHandle:
        """Register *handler* for ``"[METHODS ]pattern"``."""
        methods, pattern = split_methods(method_and_pattern)
        return self._add(methods, pattern, handler, pass_route, name)

    def _add(
        self,
        methods: frozenset[str],
        pattern: str,
        handler: Handler,
        pass_route: bool,
        name: str | None,
    ) -> RouteHandle:
        effective = self.groups.resolve(pattern)
        route = Route(
            pattern=effective,
            compiled=compile_pattern(effective, case_sensitive=self.case_sensitive),
            handler=handler,
            methods=methods,
            name=name,
            middleware=self.groups.current_middleware(),
            pass_route=pass_route,
        )
        if name and self.table.by_name(name) is not None:
            logger.debug("Route name %r reassigned to %s", name, effective)
        self.table.add(route)
        logger.debug("Registered %r", route)
        return RouteHandle(route)

    def get(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self._add(frozenset({"GET"}), pattern, handler, pass_route, name)

    def post(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self._add(frozenset({"POST"}), pattern, handler, pass_route, name)

    def put(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self._add(frozenset({"PUT"}), pattern, handler, pass_route, name)

    def patch(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self._add(frozenset({"PATCH"}), pattern, handler, pass_route, name)

    def delete(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self._add(frozenset({"DELETE"}), pattern, handler, pass_route, name)

    def group(
        self,
        prefix: str,
        block: Callable[["Router"], Any],
        middleware: Sequence[Any] = (),
    ) -> None:
        """Run *block* with *prefix* and *middleware* applied to its routes."""
        with self.groups.frame(prefix, middleware):
            block(self)

    # -- Lookup --

    def match(self, method: str, path: str) -> RouteMatch:
        """First matching route. Raises ``NotFound`` / ``MethodNotAllowed``."""
        return self.table.match(method, path)

    def find(self, method: str, path: str) -> RouteMatch | None:
        return self.table.find(method, path)

    @property
    def routes(self) -> list[Route]:
        return self.table.routes

    def url_for(
        self, name: str, params: Mapping[str, object] | None = None, **kwargs: object
    ) -> str:
        """Build the path of the route named *name*."""
        values = {**(params or {}), **kwargs}
        return self.urls.url_for(name, values)

    def clear(self) -> None:
        self.table.clear()
