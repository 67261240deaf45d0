"""The dispatcher: hooks, middleware, handler, and response finalizing.

One ``start()`` call routes and dispatches the current request to
completion::

    Idle -> Matching -> HooksBefore -> MiddlewareBefore -> Handling
         -> MiddlewareAfter -> HooksAfter -> Finalizing -> Done

with ``Error`` reachable from any stage when an exception escapes.

Every framework step (``start``, ``handle``, ``stop``, ``halt``,
``not_found``, ``method_not_allowed``, ``error``, ``render``, ``json``,
``redirect``) is a *mapped event*: it runs between its ``before`` and
``after`` hooks and can be replaced with ``map()``.

Buffering modes:

- default: only the handler's output is captured; it is appended to the
  response body right after the handler returns, so middleware ``after``
  phases see (and may rewrite) it. Hook output goes straight to the sink.
- legacy (``AppConfig.v2_output_buffering``): everything echoed during the
  dispatch, hooks included, is captured and written to the response body
  when the dispatch stops.
- streamed routes bypass both: headers are emitted before the handler
  runs and its output flows straight to the sink.
"""

import html
import json as json_module
import logging
import traceback
from collections.abc import Callable, Mapping, Sequence
from contextlib import ExitStack
from enum import Enum
from typing import Any

from perch.config import AppConfig
from perch.context import output_var, request_var
from perch.errors import ConfigurationError, HTTPError, UnmappedHandler
from perch.hooks import Hook, HookContext, HookRegistry
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import RouteContext, after_phase, before_phase
from perch.output import Output
from perch.routing.route import ANY_METHOD, Handler, RouteHandle, RouteMatch
from perch.routing.router import Router
from perch.templating.view import View

logger = logging.getLogger("perch.dispatch")

EVENTS = (
    "start",
    "handle",
    "stop",
    "halt",
    "error",
    "not_found",
    "method_not_allowed",
    "render",
    "json",
    "redirect",
)

NOT_FOUND_BODY = (
    "<h1>404 Not Found</h1>"
    "<h3>The page you have requested could not be found.</h3>"
)


class DispatchState(Enum):
    IDLE = "idle"
    MATCHING = "matching"
    HOOKS_BEFORE = "hooks_before"
    MIDDLEWARE_BEFORE = "middleware_before"
    HANDLING = "handling"
    MIDDLEWARE_AFTER = "middleware_after"
    HOOKS_AFTER = "hooks_after"
    FINALIZING = "finalizing"
    DONE = "done"
    ERROR = "error"


class DispatchOutcome(Enum):
    """How a ``start()`` call ended."""

    DISPATCHED = "dispatched"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    FORBIDDEN = "forbidden"
    HALTED = "halted"
    HTTP_ERROR = "http_error"
    ERROR = "error"


class Halt(Exception):  # noqa: N818
    """Ends the current dispatch. Raised by ``Dispatcher.halt()``."""

    def __init__(self, status: int) -> None:
        super().__init__(status)
        self.status = status


class Dispatcher:
    """Routes the current request and runs it to completion.

    Collaborators are injected; anything omitted gets a default::

        app = Dispatcher(AppConfig(handle_errors=True))
        app.get("/hello/@name", lambda name: f"Hello, {name}!")
        app.before("start", lambda ctx: log_request(app.request))
        app.request = Request("GET", "/hello/bob")
        app.start()
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        router: Router | None = None,
        request: Request | None = None,
        response: Response | None = None,
        view: View | None = None,
        output: Output | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.router = router or Router(
            case_sensitive=self.config.case_sensitive,
            encode_url_params=self.config.encode_url_params,
        )
        self.request = request or Request()
        self.response = response or Response(content_length=self.config.content_length)
        self.output = output or Output()
        self.view = view or View(
            self.config.views_path,
            extension=self.config.views_extension,
            autoescape=self.config.autoescape,
            output=self.output,
        )
        self.hooks = HookRegistry()
        self.state = DispatchState.IDLE
        self._events: dict[str, Callable[..., Any]] = {
            name: getattr(self, f"_{name}") for name in EVENTS
        }
        self._legacy_open = False

    # -- Mapped events --

    def map(self, name: str, callback: Callable[..., Any]) -> None:
        """Replace a framework event or register a custom one."""
        if name not in EVENTS and hasattr(type(self), name):
            msg = f"Cannot override an existing framework method: {name}"
            raise ConfigurationError(msg)
        self._events[name] = callback

    def call(self, name: str, *args: Any) -> Any:
        """Run mapped event *name* between its hooks."""
        return self._fire(name, *args)

    def before(self, event: str, hook: Hook | None = None) -> Any:
        """Register a hook to run before *event*. Usable as a decorator."""
        if hook is None:
            return lambda fn: self.before(event, fn)
        self.hooks.add("before", event, hook)
        return hook

    def after(self, event: str, hook: Hook | None = None) -> Any:
        """Register a hook to run after *event*. Usable as a decorator."""
        if hook is None:
            return lambda fn: self.after(event, fn)
        self.hooks.add("after", event, hook)
        return hook

    def _fire(
        self,
        name: str,
        *args: Any,
        states: tuple[DispatchState, DispatchState] | None = None,
    ) -> Any:
        impl = self._events.get(name)
        if impl is None:
            raise UnmappedHandler(name)

        ctx = HookContext(event=name, args=args)
        if states is not None:
            self._set_state(states[0])
        ctx.buffered = self.output.peek()
        self.hooks.run("before", name, ctx)
        ctx.output = impl(*ctx.args)
        if states is not None:
            self._set_state(states[1])
        ctx.buffered = self.output.peek()
        self.hooks.run("after", name, ctx)
        return ctx.output

    def _set_state(self, state: DispatchState) -> None:
        logger.debug("dispatch %s -> %s", self.state.value, state.value)
        self.state = state

    # -- Declaration (delegates to the router) --

    def route(
        self,
        method_and_pattern: str,
        handler: Handler,
        pass_route: bool = False,
        name: str | None = None,
    ) -> RouteHandle:
        return self.router.route(method_and_pattern, handler, pass_route, name)

    def get(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self.router.get(pattern, handler, pass_route, name)

    def post(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self.router.post(pattern, handler, pass_route, name)

    def put(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self.router.put(pattern, handler, pass_route, name)

    def patch(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self.router.patch(pattern, handler, pass_route, name)

    def delete(
        self, pattern: str, handler: Handler, pass_route: bool = False, name: str | None = None
    ) -> RouteHandle:
        return self.router.delete(pattern, handler, pass_route, name)

    def group(
        self, prefix: str, block: Callable[[Router], Any], middleware: Sequence[Any] = ()
    ) -> None:
        self.router.group(prefix, block, middleware)

    def url_for(
        self, name: str, params: Mapping[str, object] | None = None, **kwargs: object
    ) -> str:
        return self.router.url_for(name, params, **kwargs)

    # -- Per-request state --

    def reset(
        self,
        request: Request | None = None,
        *,
        response: Response | None = None,
        output: Output | None = None,
    ) -> None:
        """Prepare for a new request: fresh response and output."""
        self.request = request or Request()
        self.response = response or Response(content_length=self.config.content_length)
        self.output = output or Output()
        self.view.output = self.output
        self.state = DispatchState.IDLE
        self._legacy_open = False

    # -- Public event entry points --

    def start(self) -> DispatchOutcome:
        """Route and dispatch the current request, then send the response."""
        request_token = request_var.set(self.request)
        output_token = output_var.set(self.output)
        base_level = self.output.level
        self.state = DispatchState.IDLE

        if self.config.v2_output_buffering:
            self.output.push()
            self._legacy_open = True

        try:
            try:
                outcome = self._fire("start")
            except Halt as halt:
                logger.debug("dispatch halted with status %d", halt.status)
                outcome = DispatchOutcome.HALTED
            self._set_state(DispatchState.FINALIZING)
            self.stop()
            self._set_state(DispatchState.DONE)
            return outcome
        except BaseException:
            self._set_state(DispatchState.ERROR)
            raise
        finally:
            self._legacy_open = False
            self.output.unwind(base_level)
            output_var.reset(output_token)
            request_var.reset(request_token)

    def stop(self, code: int | None = None) -> None:
        """Flush legacy output into the body and send the response."""
        self._fire("stop", code)

    def halt(self, code: int = 200, message: str = "") -> None:
        """Replace the response with *code*/*message* and end the dispatch."""
        self._fire("halt", code, message)
        raise Halt(code)

    def not_found(self) -> None:
        self._fire("not_found")

    def method_not_allowed(self, allowed: frozenset[str]) -> None:
        self._fire("method_not_allowed", allowed)

    def error(self, exc: BaseException) -> None:
        self._fire("error", exc)

    def render(
        self, name: str, data: Mapping[str, Any] | None = None, key: str | None = None
    ) -> None:
        self._fire("render", name, data, key)

    def json(self, data: Any, code: int = 200, encode: bool = True, charset: str = "utf-8") -> None:
        self._fire("json", data, code, encode, charset)

    def redirect(self, url: str, code: int = 303) -> None:
        self._fire("redirect", url, code)

    # -- Event implementations --

    def _start(self) -> DispatchOutcome:
        request = self.request
        method, path = request.method, request.path
        self._set_state(DispatchState.MATCHING)

        tried = False
        try:
            for match in self.router.table.iter_matches(method, path):
                tried = True
                logger.debug("%s %s matched %r", method, path, match.route)
                result = self._fire(
                    "handle",
                    match,
                    states=(DispatchState.HOOKS_BEFORE, DispatchState.HOOKS_AFTER),
                )
                if result is not None:
                    return result
                self._set_state(DispatchState.MATCHING)
        except (Halt, UnmappedHandler):
            raise
        except HTTPError as exc:
            self._write_http_error(exc)
            if exc.status == 404:
                return DispatchOutcome.NOT_FOUND
            if exc.status == 405:
                return DispatchOutcome.METHOD_NOT_ALLOWED
            return DispatchOutcome.HTTP_ERROR
        except Exception as exc:
            if not self.config.handle_errors:
                raise
            self.error(exc)
            return DispatchOutcome.ERROR

        if not tried:
            allowed = self.router.table.allowed_methods(path) - {ANY_METHOD}
            if allowed:
                logger.debug("%s %s: method not allowed (%s)", method, path, sorted(allowed))
                self.method_not_allowed(allowed)
                return DispatchOutcome.METHOD_NOT_ALLOWED

        logger.debug("%s %s: not found", method, path)
        self.not_found()
        return DispatchOutcome.NOT_FOUND

    def _handle(self, match: RouteMatch) -> DispatchOutcome | None:
        """Run one matched route. ``None`` passes to the next match."""
        route = match.route
        response = self.response
        ctx = RouteContext(
            request=self.request,
            response=response,
            route=route,
            params=match.params,
            dispatcher=self,
        )

        outcome: DispatchOutcome | None
        with ExitStack() as unwind:
            self._set_state(DispatchState.MIDDLEWARE_BEFORE)
            stopped = False
            for middleware in route.middleware:
                before = before_phase(middleware)
                result = before(ctx) if before is not None else None
                after = after_phase(middleware)
                if after is not None:
                    unwind.callback(after, ctx)
                if result is False:
                    stopped = True
                    break

            if stopped:
                logger.debug("middleware stopped %r", route)
                self._reset_response()
                response.status = 403
                response.write("Forbidden")
                outcome = DispatchOutcome.FORBIDDEN
            else:
                self._set_state(DispatchState.HANDLING)
                if route.streamed:
                    self._open_stream(route.stream_headers)
                passed = self._invoke(match)
                outcome = None if passed else DispatchOutcome.DISPATCHED

            self._set_state(DispatchState.MIDDLEWARE_AFTER)
        return outcome

    def _open_stream(self, stream_headers: Mapping[str, Any] | None) -> None:
        response = self.response
        response.buffer_output = False
        if stream_headers:
            headers = dict(stream_headers)
            status = headers.pop("status", None)
            if status is not None:
                response.status = int(status)
            response.header(headers)
        response.header("X-Accel-Buffering", "no")
        response.header("Connection", "close")
        response.emit_real_headers()
        if self._legacy_open:
            self.output.emit(self.output.pop())
            self._legacy_open = False

    def _invoke(self, match: RouteMatch) -> bool:
        """Call the handler. True if it passed to the next route."""
        route = match.route
        args: list[Any] = list(match.params.values())
        if route.pass_route:
            args.append(match)

        if route.streamed:
            with self.output.direct():
                result = route.handler(*args)
                self._echo(result)
        elif self._legacy_open:
            result = route.handler(*args)
            self._echo(result)
        else:
            with self.output.capture() as captured:
                result = route.handler(*args)
                self._echo(result)
            self.response.write(captured.value)
        return result is True

    def _echo(self, result: Any) -> None:
        if isinstance(result, str):
            self.output.write(result)
        elif isinstance(result, bytes):
            self.output.write(result.decode("utf-8"))

    def _reset_response(self) -> None:
        self.response.clear()
        if self._legacy_open:
            self.output.discard()

    def _write_http_error(self, exc: HTTPError) -> None:
        self._reset_response()
        try:
            self.response.status = exc.status
        except ValueError:
            self.response.status = 500
        for name, value in exc.headers:
            self.response.header(name, value)
        self.response.write(html.escape(exc.detail))

    def _stop(self, code: int | None = None) -> None:
        response = self.response
        if self._legacy_open:
            response.write(self.output.pop())
            self._legacy_open = False
        if code is not None:
            response.status = code
        response.send(self.output)

    def _halt(self, code: int = 200, message: str = "") -> None:
        self._reset_response()
        self.response.status = code
        self.response.write(message)

    def _not_found(self) -> None:
        self._reset_response()
        self.response.status = 404
        self.response.write(NOT_FOUND_BODY)

    def _method_not_allowed(self, allowed: frozenset[str]) -> None:
        allow = ", ".join(sorted(allowed))
        self._reset_response()
        self.response.status = 405
        self.response.header("Allow", allow)
        self.response.write(
            "<h1>405 Method Not Allowed</h1>"
            f"<h3>Allowed methods: {html.escape(allow)}</h3>"
        )

    def _error(self, exc: BaseException) -> None:
        if self.config.log_errors:
            logger.exception("Unhandled exception in handler", exc_info=exc)
        self._reset_response()
        self.response.status = 500
        body = f"<h1>500 Internal Server Error</h1><h3>{html.escape(str(exc))}</h3>"
        if self.config.debug:
            trace = "".join(traceback.format_exception(exc))
            body += f"<pre>{html.escape(trace)}</pre>"
        self.response.write(body)

    def _render(
        self, name: str, data: Mapping[str, Any] | None = None, key: str | None = None
    ) -> None:
        if key is not None:
            self.view.set(key, self.view.fetch(name, data))
        else:
            self.view.render(name, data)

    def _json(
        self, data: Any, code: int = 200, encode: bool = True, charset: str = "utf-8"
    ) -> None:
        body = json_module.dumps(data) if encode else data
        self.response.status = code
        self.response.header("Content-Type", f"application/json; charset={charset}")
        self.response.write(body)

    def _redirect(self, url: str, code: int = 303) -> None:
        self.response.clear()
        self.response.status = code
        self.response.header("Location", url)
