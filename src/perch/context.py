"""Dispatch-scoped context via ContextVar.

Provides:
- ``request_var``: The ``Request`` being dispatched.
- ``output_var``: The ``Output`` that ``echo()`` writes to.

Both are set by ``Dispatcher.start()`` and reset when it returns.
Accessing them outside a dispatch raises ``LookupError``.
"""

from contextvars import ContextVar

from perch.http.request import Request
from perch.output import Output

request_var: ContextVar[Request] = ContextVar("perch_request")
"""The current request. Set by the dispatcher before routing."""

output_var: ContextVar[Output] = ContextVar("perch_output")
"""The output channel of the current dispatch."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a dispatch.
    """
    return request_var.get()


def get_output() -> Output:
    return output_var.get()


def echo(*parts: object, sep: str = "") -> None:
    """Write to the current dispatch's output.

    Where the text ends up depends on the buffering mode: the handler's
    capture buffer, the legacy whole-dispatch buffer, or the client
    directly for streamed routes.
    """
    output_var.get().write(sep.join(str(p) for p in parts))
