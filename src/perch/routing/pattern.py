"""Route pattern compilation.

Turns a pattern string into a parsed segment tree and a compiled regex.

Pattern syntax::

    /users                  static text
    /users/@id              named parameter (any run of non-slash chars)
    /users/@id:[0-9]+       parameter with an inline regex constraint
    /blog(/@year(/@month))  optional groups, nestable
    /files/*                wildcard: the rest of the path, slashes included
    *                       every path

A pattern ending in ``/`` makes that slash optional; any other pattern
accepts one optional trailing slash. Nothing else is normalised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import unquote

from perch.errors import ConfigurationError

SPLAT_GROUP = "__splat__"

DEFAULT_PARAM_REGEX = r"[^/?]+"

# @name, then an optional :constraint running to the next / ( or )
_PARAM_RE = re.compile(r"@([A-Za-z_]\w*)(?::([^/()]*))?")


@dataclass(frozen=True, slots=True)
class Static:
    """Literal pattern text, matched exactly."""

    text: str


@dataclass(frozen=True, slots=True)
class Param:
    """A named parameter: ``@name`` or ``@name:constraint``."""

    name: str
    constraint: str | None = None

    @property
    def regex(self) -> str:
        return self.constraint or DEFAULT_PARAM_REGEX


@dataclass(frozen=True, slots=True)
class Wildcard:
    """``*``: consumes the remainder of the path."""


@dataclass(frozen=True, slots=True)
class OptionalGroup:
    """``( ... )``: segments that may be absent as a unit."""

    children: tuple[Segment, ...]


type Segment = Static | Param | Wildcard | OptionalGroup


@dataclass(frozen=True, slots=True)
class PatternMatch:
    """Result of matching a path against a compiled pattern."""

    params: dict[str, str | None]
    splat: str
    # characters of the path matched, query string excluded
    length: int


def parse_pattern(pattern: str) -> tuple[Segment, ...]:
    """Parse a route pattern into segments.

    Examples::

        "/users"        -> (Static("/users"),)
        "/users/@id"    -> (Static("/users/"), Param("id"))
        "/a(/@b)"       -> (Static("/a"), OptionalGroup((Static("/"), Param("b"))))
        "/files/*"      -> (Static("/files/"), Wildcard())
    """
    stack: list[list[Segment]] = [[]]
    literal: list[str] = []

    def flush() -> None:
        if literal:
            stack[-1].append(Static("".join(literal)))
            literal.clear()

    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "@":
            match = _PARAM_RE.match(pattern, i)
            if match is not None:
                flush()
                stack[-1].append(Param(match.group(1), match.group(2) or None))
                i = match.end()
                continue
        elif char == "(":
            flush()
            stack.append([])
            i += 1
            continue
        elif char == ")":
            if len(stack) == 1:
                msg = f"Unbalanced ')' in route pattern {pattern!r}"
                raise ConfigurationError(msg)
            flush()
            children = stack.pop()
            stack[-1].append(OptionalGroup(tuple(children)))
            i += 1
            continue
        elif char == "*":
            flush()
            stack[-1].append(Wildcard())
            i += 1
            continue
        literal.append(char)
        i += 1

    flush()
    if len(stack) != 1:
        msg = f"Unclosed '(' in route pattern {pattern!r}"
        raise ConfigurationError(msg)

    segments = tuple(stack[0])
    _validate(pattern, segments)
    return segments


def _validate(pattern: str, segments: tuple[Segment, ...]) -> None:
    seen: set[str] = set()

    def walk(items: tuple[Segment, ...], top: bool) -> None:
        for index, seg in enumerate(items):
            if isinstance(seg, Param):
                if seg.name == SPLAT_GROUP:
                    msg = f"Parameter name {seg.name!r} is reserved (in {pattern!r})"
                    raise ConfigurationError(msg)
                if seg.name in seen:
                    msg = f"Duplicate parameter {seg.name!r} in route pattern {pattern!r}"
                    raise ConfigurationError(msg)
                seen.add(seg.name)
            elif isinstance(seg, Wildcard):
                if not top or index != len(items) - 1:
                    msg = f"Wildcard must be the last segment of route pattern {pattern!r}"
                    raise ConfigurationError(msg)
            elif isinstance(seg, OptionalGroup):
                walk(seg.children, top=False)

    walk(segments, top=True)


def _segments_regex(segments: tuple[Segment, ...]) -> str:
    parts: list[str] = []
    for index, seg in enumerate(segments):
        if isinstance(seg, Static):
            text = seg.text
            # "/*" accepts the bare prefix, a trailing slash, or a remainder
            nxt = segments[index + 1] if index + 1 < len(segments) else None
            if isinstance(nxt, Wildcard) and text.endswith("/"):
                text = text[:-1]
            parts.append(re.escape(text))
        elif isinstance(seg, Param):
            parts.append(f"(?P<{seg.name}>{seg.regex})")
        elif isinstance(seg, OptionalGroup):
            parts.append(f"(?:{_segments_regex(seg.children)})?")
        else:
            prev = segments[index - 1] if index > 0 else None
            if isinstance(prev, Static) and prev.text.endswith("/"):
                parts.append(f"(?:/?|/(?P<{SPLAT_GROUP}>.*?))")
            else:
                parts.append(f"(?P<{SPLAT_GROUP}>.*?)")
    return "".join(parts)


class CompiledPattern:
    """A parsed, regex-compiled route pattern.

    Usage::

        compiled = compile_pattern("/users/@id:[0-9]+")
        compiled.match("/users/42").params  # {"id": "42"}
    """

    __slots__ = ("case_sensitive", "param_names", "regex", "segments", "source")

    def __init__(self, source: str, *, case_sensitive: bool = False) -> None:
        self.source = source or "/"
        self.case_sensitive = case_sensitive
        self.segments = parse_pattern(self.source)
        self.param_names: tuple[str, ...] = tuple(_param_names(self.segments))

        if self.source == "*":
            body = f"(?P<{SPLAT_GROUP}>[^?]*)"
        else:
            body = _segments_regex(self.segments)
            body += "?" if self.source.endswith("/") else "/?"

        flags = 0 if case_sensitive else re.IGNORECASE
        try:
            self.regex: re.Pattern[str] = re.compile(rf"^{body}(?:\?[\s\S]*)?$", flags)
        except re.error as exc:
            msg = f"Invalid constraint in route pattern {self.source!r}: {exc}"
            raise ConfigurationError(msg) from exc

    @property
    def has_wildcard(self) -> bool:
        return any(isinstance(seg, Wildcard) for seg in self.segments)

    def match(self, path: str) -> PatternMatch | None:
        """Match *path*; return captured params or ``None``."""
        found = self.regex.match(path)
        if found is None:
            return None

        groups = found.groupdict()
        params: dict[str, str | None] = {}
        for name in self.param_names:
            value = groups.get(name)
            params[name] = unquote(value) if value is not None else None

        if self.source == "*":
            splat = (groups.get(SPLAT_GROUP) or "").lstrip("/")
        else:
            splat = groups.get(SPLAT_GROUP) or ""

        length = len(path.partition("?")[0])
        return PatternMatch(params=params, splat=splat, length=length)

    def __repr__(self) -> str:
        return f"CompiledPattern({self.source!r})"


def _param_names(segments: tuple[Segment, ...]) -> list[str]:
    names: list[str] = []
    for seg in segments:
        if isinstance(seg, Param):
            names.append(seg.name)
        elif isinstance(seg, OptionalGroup):
            names.extend(_param_names(seg.children))
    return names


def compile_pattern(pattern: str, *, case_sensitive: bool = False) -> CompiledPattern:
    """Compile a route pattern. Raises ``ConfigurationError`` if malformed."""
    return CompiledPattern(pattern, case_sensitive=case_sensitive)
