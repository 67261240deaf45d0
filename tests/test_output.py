"""Tests for perch.output: the sink and its capture layers."""

import io

import pytest

from perch.errors import HTTPError, NotFound
from perch.output import Output


class TestOutput:
    def test_writes_reach_sink_without_layers(self) -> None:
        out = Output()
        out.write("hello")
        assert out.getvalue() == "hello"

    def test_custom_sink(self) -> None:
        sink = io.StringIO()
        out = Output(sink)
        out.write("x")
        assert sink.getvalue() == "x"

    def test_capture(self) -> None:
        out = Output()
        with out.capture() as captured:
            out.write("inside")
        assert captured.value == "inside"
        assert str(captured) == "inside"
        assert out.getvalue() == ""

    def test_nested_captures(self) -> None:
        out = Output()
        with out.capture() as outer:
            out.write("a")
            with out.capture() as inner:
                out.write("b")
            out.write("c")
        assert inner.value == "b"
        assert outer.value == "ac"

    def test_capture_dropped_on_exception(self) -> None:
        out = Output()
        with pytest.raises(ValueError), out.capture():
            out.write("lost")
            raise ValueError
        assert out.level == 0
        out.write("after")
        assert out.getvalue() == "after"

    def test_direct_bypasses_capture(self) -> None:
        out = Output()
        with out.capture() as captured:
            out.write("buffered")
            with out.direct():
                out.write("live")
        assert captured.value == "buffered"
        assert out.getvalue() == "live"

    def test_emit_ignores_layers(self) -> None:
        out = Output()
        out.push()
        out.emit("raw")
        assert out.getvalue() == "raw"
        assert out.pop() == ""

    def test_pop_without_layer(self) -> None:
        with pytest.raises(RuntimeError):
            Output().pop()

    def test_discard(self) -> None:
        out = Output()
        out.push()
        out.write("old")
        out.discard()
        out.write("new")
        assert out.pop() == "new"

    def test_unwind(self) -> None:
        out = Output()
        out.push()
        out.push()
        out.push()
        out.unwind(1)
        assert out.level == 1
        out.unwind()
        assert out.level == 0

    def test_getvalue_needs_retaining_sink(self) -> None:
        class Sink:
            def write(self, text: str) -> int:
                return len(text)

        with pytest.raises(TypeError, match="does not retain"):
            Output(Sink()).getvalue()  # type: ignore[arg-type]

    def test_http_error_passes_through_capture(self) -> None:
        out = Output()
        with pytest.raises(NotFound) as exc_info, out.capture():
            raise NotFound()
        assert exc_info.value.status == 404
        assert out.level == 0

    def test_http_error_passes_through_direct(self) -> None:
        out = Output()
        with pytest.raises(HTTPError) as exc_info, out.direct():
            raise HTTPError(status=409, detail="clash")
        assert exc_info.value.detail == "clash"
        assert out.level == 0

    def test_peek(self) -> None:
        out = Output()
        assert out.peek() == ""
        out.push()
        out.write("so far")
        assert out.peek() == "so far"
        with out.direct():
            assert out.peek() == ""
        assert out.pop() == "so far"
