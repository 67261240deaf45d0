"""Declaration-time group scopes.

A group contributes a prefix and middleware to every route declared
while it is open. Frames nest; the effective prefix is the join of all
open frames and the effective middleware is their concatenation,
outermost first.

Join rule: strings concatenate literally, except that when the left
side ends with ``/`` and the right side starts with ``/`` the boundary
slash appears once. A route declared as ``/`` (or empty) inside a group
takes the group prefix itself.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any


def join_path(prefix: str, path: str) -> str:
    """Join a group prefix and a pattern.

    Examples::

        join_path("/a", "/b")   -> "/a/b"
        join_path("/", "/")     -> "/"
        join_path("/api/", "/v1") -> "/api/v1"
        join_path("/users", "/")  -> "/users"
    """
    if not prefix:
        return path
    if path in ("", "/"):
        return prefix
    if prefix.endswith("/") and path.startswith("/"):
        return prefix + path[1:]
    return prefix + path


@dataclass(frozen=True, slots=True)
class GroupFrame:
    """One open group: its own prefix and middleware."""

    prefix: str
    middleware: tuple[Any, ...] = ()


class GroupStack:
    """The stack of open group frames."""

    __slots__ = ("_frames",)

    def __init__(self) -> None:
        self._frames: list[GroupFrame] = []

    def push(self, prefix: str, middleware: Sequence[Any] = ()) -> None:
        self._frames.append(GroupFrame(prefix, tuple(middleware)))

    def pop(self) -> GroupFrame:
        if not self._frames:
            msg = "No group is open."
            raise RuntimeError(msg)
        return self._frames.pop()

    @contextmanager
    def frame(self, prefix: str, middleware: Sequence[Any] = ()) -> Iterator[GroupFrame]:
        """Open a frame for the duration of the block."""
        self.push(prefix, middleware)
        try:
            yield self._frames[-1]
        finally:
            self.pop()

    @property
    def depth(self) -> int:
        return len(self._frames)

    def current_prefix(self) -> str:
        prefix = ""
        for frame in self._frames:
            prefix = join_path(prefix, frame.prefix) if prefix else frame.prefix
        return prefix

    def current_middleware(self) -> list[Any]:
        middleware: list[Any] = []
        for frame in self._frames:
            middleware.extend(frame.middleware)
        return middleware

    def resolve(self, pattern: str) -> str:
        """The effective pattern for a route declared now."""
        prefix = self.current_prefix()
        if not prefix:
            return pattern or "/"
        return join_path(prefix, pattern)
