"""Tests for perch.routing.groups: prefix joins and the frame stack."""

import pytest

from perch.routing.groups import GroupStack, join_path


class TestJoinPath:
    @pytest.mark.parametrize(
        ("prefix", "path", "expected"),
        [
            ("/a", "/b", "/a/b"),
            ("", "/b", "/b"),
            ("/", "/", "/"),
            ("/users", "/", "/users"),
            ("/users", "", "/users"),
            ("/api/", "/v1", "/api/v1"),
            ("/api/", "v1", "/api/v1"),
            ("/api", "v1", "/apiv1"),
            ("/", "/b", "/b"),
        ],
    )
    def test_join(self, prefix: str, path: str, expected: str) -> None:
        assert join_path(prefix, path) == expected


class TestGroupStack:
    def test_empty(self) -> None:
        stack = GroupStack()
        assert stack.depth == 0
        assert stack.current_prefix() == ""
        assert stack.current_middleware() == []
        assert stack.resolve("/users") == "/users"

    def test_empty_pattern_resolves_to_root(self) -> None:
        assert GroupStack().resolve("") == "/"

    def test_nested_prefixes(self) -> None:
        stack = GroupStack()
        stack.push("/a")
        stack.push("/b")
        stack.push("/c")
        assert stack.current_prefix() == "/a/b/c"
        assert stack.resolve("/d") == "/a/b/c/d"

    def test_root_groups_do_not_double_slashes(self) -> None:
        stack = GroupStack()
        stack.push("/")
        stack.push("/")
        assert stack.current_prefix() == "/"
        assert stack.resolve("/") == "/"
        assert stack.resolve("/x") == "/x"

    def test_middleware_outer_first(self) -> None:
        stack = GroupStack()
        stack.push("/a", ["outer"])
        stack.push("/b", ["inner1", "inner2"])
        assert stack.current_middleware() == ["outer", "inner1", "inner2"]

    def test_current_middleware_is_a_copy(self) -> None:
        stack = GroupStack()
        stack.push("/a", ["m"])
        stack.current_middleware().append("extra")
        assert stack.current_middleware() == ["m"]

    def test_pop(self) -> None:
        stack = GroupStack()
        stack.push("/a")
        stack.push("/b")
        frame = stack.pop()
        assert frame.prefix == "/b"
        assert stack.current_prefix() == "/a"

    def test_pop_empty_raises(self) -> None:
        with pytest.raises(RuntimeError):
            GroupStack().pop()

    def test_frame_pops_on_exception(self) -> None:
        stack = GroupStack()
        with pytest.raises(ValueError), stack.frame("/a"):
            assert stack.depth == 1
            raise ValueError
        assert stack.depth == 0
