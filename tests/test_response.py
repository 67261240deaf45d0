"""Tests for perch.http.response."""

import pytest

from perch.http.response import Response
from perch.output import Output


class TestStatus:
    def test_default(self) -> None:
        assert Response().status == 200

    def test_set(self) -> None:
        response = Response()
        response.status = 404
        assert response.status == 404

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid status code"):
            Response().status = 999


class TestHeaders:
    def test_set_and_get(self) -> None:
        response = Response().header("Content-Type", "text/plain")
        assert response.get_header("content-type") == "text/plain"
        assert response.headers == {"Content-Type": "text/plain"}

    def test_replace_case_insensitive(self) -> None:
        response = Response()
        response.header("X-Thing", "a")
        response.header("x-thing", "b")
        assert response.headers == {"x-thing": "b"}

    def test_mapping(self) -> None:
        response = Response()
        response.header({"A": "1", "B": "2"})
        assert response.headers == {"A": "1", "B": "2"}

    def test_value_required(self) -> None:
        with pytest.raises(TypeError):
            Response().header("X-Empty")

    def test_headers_is_a_copy(self) -> None:
        response = Response()
        response.headers["X"] = "1"
        assert response.headers == {}


class TestBody:
    def test_write_appends(self) -> None:
        response = Response()
        response.write("a").write("b")
        assert response.body == "ab"

    def test_overwrite(self) -> None:
        response = Response().write("a")
        response.write("b", overwrite=True)
        assert response.body == "b"

    def test_clear(self) -> None:
        response = Response()
        response.status = 500
        response.header("X", "1").write("body")
        response.clear()
        assert (response.status, response.headers, response.body) == (200, {}, "")


class TestSend:
    def test_send(self) -> None:
        response = Response()
        response.header("Content-Type", "text/plain").write("héllo")
        out = Output()
        response.send(out)
        assert out.getvalue() == "héllo"
        assert [line for line, _, _ in response.real_headers] == [
            "HTTP/1.1 200 OK",
            "Content-Type: text/plain",
            "Content-Length: 6",
        ]
        assert response.headers_sent is True
        assert response.sent is True

    def test_status_line_carries_code(self) -> None:
        response = Response()
        response.status = 201
        response.emit_real_headers()
        assert response.real_headers[0] == ("HTTP/1.1 201 Created", True, 201)

    def test_send_once(self) -> None:
        response = Response().write("x")
        out = Output()
        response.send(out)
        response.send(out)
        assert out.getvalue() == "x"
        assert len(response.real_headers) == 2

    def test_no_content_length_for_empty_body(self) -> None:
        response = Response()
        response.emit_real_headers()
        assert [line for line, _, _ in response.real_headers] == ["HTTP/1.1 200 OK"]

    def test_content_length_disabled(self) -> None:
        response = Response(content_length=False).write("x")
        response.emit_real_headers()
        assert [line for line, _, _ in response.real_headers] == ["HTTP/1.1 200 OK"]

    def test_headers_emitted_once(self) -> None:
        response = Response()
        response.emit_real_headers()
        response.header("X-Late", "1")
        response.emit_real_headers()
        assert len(response.real_headers) == 1
