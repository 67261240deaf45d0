"""Tests for route middleware: onion order, short-circuit, body rewriting."""

import re

from perch.config import AppConfig
from perch.context import echo
from perch.dispatcher import Dispatcher, DispatchOutcome
from perch.middleware import (
    AfterMiddleware,
    BeforeMiddleware,
    RouteContext,
    SecurityHeadersConfig,
    SecurityHeadersMiddleware,
)
from perch.middleware.protocol import after_phase, before_phase
from perch.routing.router import Router
from perch.testing import TestClient


class Recorder:
    """Records its phases into a shared list."""

    def __init__(self, name: str, calls: list[str], *, stop: bool = False) -> None:
        self.name = name
        self.calls = calls
        self.stop = stop

    def before(self, ctx: RouteContext) -> bool | None:
        self.calls.append(f"{self.name}:before")
        return False if self.stop else None

    def after(self, ctx: RouteContext) -> None:
        self.calls.append(f"{self.name}:after")


class StripTags:
    def after(self, ctx: RouteContext) -> None:
        text = re.sub(r"<[^>]+>", "", ctx.response.body)
        ctx.response.write(text.replace(" ", ""), overwrite=True)


class TestCapabilities:
    def test_protocols(self) -> None:
        recorder = Recorder("r", [])
        assert isinstance(recorder, BeforeMiddleware)
        assert isinstance(recorder, AfterMiddleware)
        assert not isinstance(StripTags(), BeforeMiddleware)

    def test_bare_callable_is_before(self) -> None:
        def check(ctx: RouteContext) -> None:
            return None

        assert before_phase(check) is check
        assert after_phase(check) is None

    def test_after_only(self) -> None:
        strip = StripTags()
        assert before_phase(strip) is None
        assert after_phase(strip) is not None


class TestOnion:
    def test_before_outer_to_inner_after_reversed(self) -> None:
        calls: list[str] = []
        app = Dispatcher()

        def block(r: Router) -> None:
            r.get("/x", lambda: calls.append("handler")).add_middleware(Recorder("own", calls))

        app.group("/g", block, middleware=[Recorder("outer", calls), Recorder("inner", calls)])
        TestClient(app).get("/g/x")
        assert calls == [
            "outer:before",
            "inner:before",
            "own:before",
            "handler",
            "own:after",
            "inner:after",
            "outer:after",
        ]

    def test_stop_short_circuits(self) -> None:
        calls: list[str] = []
        app = Dispatcher()
        app.get("/x", lambda: calls.append("handler")).add_middleware([
            Recorder("a", calls),
            Recorder("b", calls, stop=True),
            Recorder("c", calls),
        ])
        result = TestClient(app).get("/x")
        assert calls == ["a:before", "b:before", "b:after", "a:after"]
        assert result.status == 403
        assert result.body == "Forbidden"
        assert result.outcome is DispatchOutcome.FORBIDDEN

    def test_after_runs_when_handler_raises(self) -> None:
        calls: list[str] = []

        def boom() -> None:
            raise ValueError("boom")

        app = Dispatcher(AppConfig(handle_errors=True))
        app.get("/x", boom).add_middleware(Recorder("a", calls))
        result = TestClient(app).get("/x")
        assert calls == ["a:before", "a:after"]
        assert result.status == 500

    def test_raising_before_unwinds_entered_layers(self) -> None:
        calls: list[str] = []

        class Raising(Recorder):
            def before(self, ctx: RouteContext) -> bool | None:
                super().before(ctx)
                raise ValueError("rejected")

        app = Dispatcher(AppConfig(handle_errors=True))
        app.get("/x", lambda: calls.append("handler")).add_middleware([
            Recorder("a", calls),
            Raising("b", calls),
            Recorder("c", calls),
        ])
        result = TestClient(app).get("/x")
        assert calls == ["a:before", "b:before", "a:after"]
        assert result.status == 500

    def test_callable_before_can_stop(self) -> None:
        app = Dispatcher()
        app.get("/x", lambda: "secret").add_middleware(lambda ctx: False)
        assert TestClient(app).get("/x").status == 403

    def test_context_carries_params(self) -> None:
        seen: list[dict[str, str | None]] = []
        app = Dispatcher()
        app.get("/users/@id", lambda id: None).add_middleware(lambda ctx: seen.append(ctx.params))
        TestClient(app).get("/users/7")
        assert seen == [{"id": "7"}]


class TestBodyRewriting:
    def test_after_rewrites_body(self) -> None:
        app = Dispatcher()
        app.get("/html", lambda: echo("<p>This is a route with html</p>")).add_middleware(
            StripTags()
        )
        result = TestClient(app).get("/html")
        assert result.body == "Thisisaroutewithhtml"
        assert result.output == "Thisisaroutewithhtml"


class TestSecurityHeaders:
    def test_html_response_gets_headers(self) -> None:
        app = Dispatcher()
        app.get("/", lambda: "Hello").add_middleware(SecurityHeadersMiddleware())
        result = TestClient(app).get("/")
        assert result.header("X-Frame-Options") == "DENY"
        assert result.header("X-Content-Type-Options") == "nosniff"
        assert result.header("Referrer-Policy") == "strict-origin-when-cross-origin"
        assert result.header("Content-Security-Policy") is not None
        assert result.header("Strict-Transport-Security") is None

    def test_json_response_skipped(self) -> None:
        app = Dispatcher()
        app.get("/api", lambda: app.json({"ok": True})).add_middleware(SecurityHeadersMiddleware())
        result = TestClient(app).get("/api")
        assert result.header("X-Frame-Options") is None

    def test_custom_config(self) -> None:
        config = SecurityHeadersConfig(
            x_frame_options="SAMEORIGIN",
            content_security_policy=None,
            strict_transport_security="max-age=63072000",
        )
        app = Dispatcher()
        app.get("/", lambda: "Hello").add_middleware(SecurityHeadersMiddleware(config))
        result = TestClient(app).get("/")
        assert result.header("X-Frame-Options") == "SAMEORIGIN"
        assert result.header("Content-Security-Policy") is None
        assert result.header("Strict-Transport-Security") == "max-age=63072000"

    def test_streamed_route_skipped(self) -> None:
        app = Dispatcher()
        app.get("/s", lambda: "chunk").stream().add_middleware(SecurityHeadersMiddleware())
        result = TestClient(app).get("/s")
        assert result.header("X-Frame-Options") is None
