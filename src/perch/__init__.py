"""Perch: a small synchronous router and dispatcher.

Routes are declared with a compact pattern syntax, matched first-wins
in declaration order, and dispatched through hooks and onion-style
middleware.

Basic usage::

    from perch import Dispatcher, Request

    app = Dispatcher()
    app.get("/hello/@name", lambda name: f"Hello, {name}!", name="hello")

    app.request = Request("GET", "/hello/bob")
    app.start()

    app.url_for("hello", name="bob")  # "/hello/bob"

Serving over WSGI::

    from perch.wsgi import WSGIAdapter
    application = WSGIAdapter(app)
"""

__version__ = "0.1.0"
__all__ = [
    "AppConfig",
    "ConfigurationError",
    "DispatchOutcome",
    "Dispatcher",
    "HTTPError",
    "Halt",
    "MethodNotAllowed",
    "NotFound",
    "Output",
    "PerchError",
    "Request",
    "Response",
    "RouteContext",
    "Router",
    "View",
    "echo",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in ("Dispatcher", "DispatchOutcome", "Halt"):
        from perch import dispatcher as _dispatcher

        return getattr(_dispatcher, name)

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name in ("Request", "Response"):
        from perch import http as _http

        return getattr(_http, name)

    if name == "Router":
        from perch.routing.router import Router

        return Router

    if name == "RouteContext":
        from perch.middleware.protocol import RouteContext

        return RouteContext

    if name == "Output":
        from perch.output import Output

        return Output

    if name == "View":
        from perch.templating.view import View

        return View

    if name in ("echo", "get_request"):
        from perch import context as _ctx

        return getattr(_ctx, name)

    if name in ("PerchError", "ConfigurationError", "HTTPError", "MethodNotAllowed", "NotFound"):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
