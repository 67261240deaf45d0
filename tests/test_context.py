"""Tests for perch.context: dispatch-scoped request and output."""

import pytest

from perch.context import echo, get_output, get_request
from perch.dispatcher import Dispatcher
from perch.testing import TestClient


class TestContext:
    def test_outside_dispatch_raises(self) -> None:
        with pytest.raises(LookupError):
            get_request()
        with pytest.raises(LookupError):
            get_output()

    def test_set_during_dispatch_and_reset_after(self) -> None:
        seen: list[object] = []
        app = Dispatcher()
        app.get("/", lambda: seen.extend([get_request(), get_output()]))
        TestClient(app).get("/")
        assert seen == [app.request, app.output]
        with pytest.raises(LookupError):
            get_request()

    def test_echo_joins_parts(self) -> None:
        app = Dispatcher()
        app.get("/", lambda: echo("a", 1, "b", sep="-"))
        assert TestClient(app).get("/").body == "a-1-b"
