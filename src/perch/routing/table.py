"""Ordered route table with first-match-wins lookup.

Routes are tried in declaration order. There is no specificity
ranking: the first route whose method and pattern both accept the
request wins.
"""

from collections.abc import Iterator

from perch.errors import MethodNotAllowed, NotFound
from perch.routing.route import ANY_METHOD, Route, RouteMatch


class RouteTable:
    """Routes in insertion order plus a name index.

    Usage::

        table = RouteTable()
        table.add(route)
        match = table.match("GET", "/users/42")
    """

    __slots__ = ("_names", "_routes")

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._names: dict[str, Route] = {}

    def add(self, route: Route) -> None:
        """Append *route*. A reused name now points at *route*."""
        self._routes.append(route)
        if route.name:
            self._names[route.name] = route

    def by_name(self, name: str) -> Route | None:
        return self._names.get(name)

    @property
    def routes(self) -> list[Route]:
        """All routes, in declaration order."""
        return list(self._routes)

    def clear(self) -> None:
        self._routes.clear()
        self._names.clear()

    def __len__(self) -> int:
        return len(self._routes)

    def iter_matches(self, method: str, path: str) -> Iterator[RouteMatch]:
        """Yield every route accepting *method* and *path*, in order."""
        for route in self._routes:
            if not route.matches_method(method):
                continue
            found = route.compiled.match(path)
            if found is not None:
                yield RouteMatch(route=route, params=found.params, splat=found.splat)

    def find(self, method: str, path: str) -> RouteMatch | None:
        """Return the first match, or ``None``."""
        return next(self.iter_matches(method, path), None)

    def allowed_methods(self, path: str) -> frozenset[str]:
        """Methods of every route whose pattern matches *path*."""
        allowed: set[str] = set()
        for route in self._routes:
            if route.compiled.match(path) is not None:
                allowed.update(route.methods)
        return frozenset(allowed)

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request method and path.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no pattern matches the path.
        Raises ``MethodNotAllowed`` if a pattern matches but no route
        accepts the method.
        """
        found = self.find(method, path)
        if found is not None:
            return found

        allowed = self.allowed_methods(path)
        if not allowed:
            raise NotFound(f"No route matches {method.upper()} {path!r}")
        # A wildcard route would have matched already
        allowed = allowed - {ANY_METHOD}
        raise MethodNotAllowed(allowed)
