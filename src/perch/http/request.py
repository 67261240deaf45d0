"""HTTP request collaborator.

The router only needs the method and the path. The request stays
mutable so a ``before('start')`` hook or a test can rewrite them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Request:
    """The request being dispatched.

    ``url`` is the request target as received (path plus query string).
    """

    method: str = "GET"
    url: str = "/"
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @property
    def path(self) -> str:
        """The URL path without the query string."""
        path, _, _ = self.url.partition("?")
        return path or "/"

    @path.setter
    def path(self, value: str) -> None:
        query = self.query_string
        self.url = f"{value}?{query}" if query else value

    @property
    def query_string(self) -> str:
        return self.url.partition("?")[2]

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> Request:
        """Build a request from a WSGI environ.

        ``X-HTTP-Method-Override`` replaces the method when present.
        """
        headers: dict[str, str] = {}
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                headers[key[5:].replace("_", "-").lower()] = value
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
                headers[key.replace("_", "-").lower()] = value

        method = headers.get("x-http-method-override") or environ.get("REQUEST_METHOD", "GET")

        url = (environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")) or "/"
        query = environ.get("QUERY_STRING", "")
        if query:
            url = f"{url}?{query}"

        return cls(method=method, url=url, headers=headers)
