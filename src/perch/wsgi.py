"""WSGI boundary for a ``Dispatcher``.

The dispatcher holds per-request state, so the adapter serializes
requests through a lock. Headers are collected from the lines the
response hands to ``set_real_header``; the body is whatever reached the
output sink, so hook output, streamed chunks and the response body all
arrive in the order they were written.
"""

import io
import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any
from wsgiref.util import is_hop_by_hop

from perch.dispatcher import Dispatcher
from perch.http.request import Request
from perch.output import Output

logger = logging.getLogger("perch.server")

type StartResponse = Callable[..., Any]


def parse_header_lines(lines: Iterable[str]) -> tuple[str, list[tuple[str, str]]]:
    """Split real header lines into a WSGI status and header list.

    A line starting with ``HTTP/`` is a status line; the last one wins.
    Hop-by-hop headers are left to the server, and ``Content-Length`` is
    recomputed from what actually reached the sink.
    """
    status = "200 OK"
    headers: list[tuple[str, str]] = []
    for line in lines:
        if line.startswith("HTTP/"):
            _, _, status = line.partition(" ")
            continue
        name, sep, value = line.partition(":")
        if not sep:
            logger.warning("Dropping malformed header line %r", line)
            continue
        name = name.strip()
        if is_hop_by_hop(name) or name.lower() == "content-length":
            continue
        headers.append((name, value.strip()))
    return status, headers


class WSGIAdapter:
    """Serve a dispatcher as a WSGI application.

    Usage::

        app = Dispatcher()
        app.get("/", lambda: "hello")
        application = WSGIAdapter(app)
    """

    __slots__ = ("_lock", "dispatcher")

    def __init__(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher
        self._lock = threading.Lock()

    def __call__(self, environ: dict[str, Any], start_response: StartResponse) -> list[bytes]:
        request = Request.from_environ(environ)
        sink = io.StringIO()
        with self._lock:
            self.dispatcher.reset(request, output=Output(sink))
            outcome = self.dispatcher.start()
            real_headers = [line for line, _, _ in self.dispatcher.response.real_headers]

        body = sink.getvalue().encode("utf-8")
        status, headers = parse_header_lines(real_headers)
        headers.append(("Content-Length", str(len(body))))
        logger.info("%s %s -> %s (%s)", request.method, request.url, status, outcome)
        start_response(status, headers)
        return [body]
