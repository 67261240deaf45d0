"""HTTP response collaborator.

Unlike a value object, this response is filled in while the dispatch
runs: handlers and middleware write to it, the dispatcher assigns the
captured handler output to it, and ``send()`` finally pushes headers
and body out through ``set_real_header`` and the output sink.
"""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus

from perch.output import Output

_VALID_STATUS = frozenset(s.value for s in HTTPStatus)


class Response:
    """The response for the current dispatch.

    Usage::

        response = Response()
        response.status = 201
        response.header("Content-Type", "text/plain")
        response.write("created")
    """

    __slots__ = (
        "_body",
        "_headers",
        "_status",
        "buffer_output",
        "content_length",
        "headers_sent",
        "real_headers",
        "sent",
    )

    def __init__(self, *, content_length: bool = True) -> None:
        self._status = 200
        self._headers: dict[str, str] = {}
        self._body = ""
        self.content_length = content_length
        # False while a streamed route writes straight to the output
        self.buffer_output = True
        self.headers_sent = False
        self.sent = False
        # Lines passed to set_real_header, in order
        self.real_headers: list[tuple[str, bool, int]] = []

    # -- Status --

    @property
    def status(self) -> int:
        return self._status

    @status.setter
    def status(self, code: int) -> None:
        if code not in _VALID_STATUS:
            msg = f"Invalid status code: {code}"
            raise ValueError(msg)
        self._status = code

    # -- Headers --

    def header(self, name: str | Mapping[str, str], value: str | None = None) -> Response:
        """Set one header, or several from a mapping. Returns self."""
        if isinstance(name, Mapping):
            for key, val in name.items():
                self._set_header(key, val)
        else:
            if value is None:
                msg = f"Header {name!r} needs a value"
                raise TypeError(msg)
            self._set_header(name, value)
        return self

    def _set_header(self, name: str, value: str) -> None:
        # A later set replaces an earlier one regardless of case
        for existing in list(self._headers):
            if existing.lower() == name.lower():
                del self._headers[existing]
        self._headers[name] = str(value)

    @property
    def headers(self) -> dict[str, str]:
        """A copy of the headers, in the order they were set."""
        return dict(self._headers)

    def get_header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self._headers.items():
            if key.lower() == lowered:
                return value
        return default

    # -- Body --

    @property
    def body(self) -> str:
        return self._body

    def write(self, text: str, overwrite: bool = False) -> Response:
        """Append *text* to the body, or replace the body when *overwrite*."""
        if overwrite:
            self._body = text
        else:
            self._body += text
        return self

    def clear(self) -> Response:
        """Reset status, headers and body."""
        self._status = 200
        self._headers = {}
        self._body = ""
        return self

    # -- Sending --

    def set_real_header(self, line: str, replace: bool = True, status: int = 0) -> None:
        """Hand one header line to the transport.

        The default records the line on ``real_headers``. Boundary
        adapters override or replace this to reach the wire.
        """
        self.real_headers.append((line, replace, status))

    def emit_real_headers(self) -> Response:
        """Emit the status line and headers through ``set_real_header``."""
        if self.headers_sent:
            return self
        phrase = HTTPStatus(self._status).phrase
        self.set_real_header(f"HTTP/1.1 {self._status} {phrase}", True, self._status)
        for name, value in self._headers.items():
            self.set_real_header(f"{name}: {value}")
        if self.content_length and self._body and self.get_header("Content-Length") is None:
            length = len(self._body.encode("utf-8"))
            self.set_real_header(f"Content-Length: {length}")
        self.headers_sent = True
        return self

    def send(self, output: Output) -> None:
        """Emit headers (once) and write the body to the output sink."""
        if self.sent:
            return
        self.emit_real_headers()
        output.emit(self._body)
        self.sent = True
