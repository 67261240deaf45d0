"""Reverse URL generation from named routes.

Encoding policy: substituted values are inserted verbatim by default,
the caller is trusted to pass path-safe values. Construct the generator
with ``encode=True`` (``AppConfig.encode_url_params``) to percent-encode
every value instead.
"""

from collections.abc import Mapping
from urllib.parse import quote

from perch.errors import MissingParameter, UnknownRoute
from perch.routing.pattern import OptionalGroup, Param, Segment, Static
from perch.routing.table import RouteTable


class _Skip(Exception):
    """An optional group lacks one of its parameters."""


def format_param(value: object) -> str:
    """Render a scalar path value as text."""
    if isinstance(value, bool):
        msg = "Boolean values are not valid path parameters"
        raise TypeError(msg)
    if isinstance(value, (str, int, float)):
        return str(value)
    msg = f"Path parameters must be str, int or float, not {type(value).__name__}"
    raise TypeError(msg)


class UrlGenerator:
    """Build paths from named routes.

    Usage::

        urls = UrlGenerator(table)
        urls.url_for("user", {"id": 42})  # "/users/42"
    """

    __slots__ = ("encode", "table")

    def __init__(self, table: RouteTable, *, encode: bool = False) -> None:
        self.table = table
        self.encode = encode

    def url_for(self, name: str, params: Mapping[str, object] | None = None) -> str:
        """Return the path for route *name* with *params* substituted.

        Raises ``UnknownRoute`` if no route has that name and
        ``MissingParameter`` if a required parameter is absent.
        """
        route = self.table.by_name(name)
        if route is None:
            raise UnknownRoute(name)

        values = dict(params or {})
        try:
            url = self._render(route.compiled.segments, values, optional=False)
        except KeyError as exc:
            raise MissingParameter(name, exc.args[0]) from None

        if url != "/":
            url = url.rstrip("/") or "/"
        return url

    def _render(
        self, segments: tuple[Segment, ...], values: dict[str, object], *, optional: bool
    ) -> str:
        out: list[str] = []
        for seg in segments:
            if isinstance(seg, Static):
                out.append(seg.text)
            elif isinstance(seg, Param):
                value = values.get(seg.name)
                if value is None:
                    if optional:
                        raise _Skip(seg.name)
                    raise KeyError(seg.name)
                text = format_param(value)
                out.append(quote(text, safe="") if self.encode else text)
            elif isinstance(seg, OptionalGroup):
                try:
                    out.append(self._render(seg.children, values, optional=True))
                except _Skip:
                    continue
            # Wildcards have no value to substitute
        return "".join(out)
