"""Before/after hooks on named dispatcher events.

Hooks are filters around a mapped event: every ``before`` hook runs
before the event, every ``after`` hook after it, in registration order.
Each receives the same mutable ``HookContext``; a hook that returns
exactly ``False`` ends its phase early.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

type Phase = Literal["before", "after"]

type Hook = Callable[["HookContext"], Any]


@dataclass(slots=True)
class HookContext:
    """What a hook sees of the event it wraps.

    ``args`` are the event's arguments; ``output`` is the event's result
    once it has run (``None`` during the ``before`` phase). An ``after``
    hook may replace ``output``. ``buffered`` is the text echoed so far
    into the open capture buffer, refreshed before each phase.
    """

    event: str
    args: tuple[Any, ...] = ()
    output: Any = None
    buffered: str = ""


class HookRegistry:
    """Hooks keyed by phase and event name."""

    __slots__ = ("_hooks",)

    def __init__(self) -> None:
        self._hooks: dict[tuple[Phase, str], list[Hook]] = {}

    def add(self, phase: Phase, event: str, hook: Hook) -> None:
        if phase not in ("before", "after"):
            msg = f"Unknown hook phase {phase!r}"
            raise ValueError(msg)
        self._hooks.setdefault((phase, event), []).append(hook)

    def get(self, phase: Phase, event: str) -> list[Hook]:
        return list(self._hooks.get((phase, event), ()))

    def has(self, event: str) -> bool:
        return bool(self._hooks.get(("before", event)) or self._hooks.get(("after", event)))

    def run(self, phase: Phase, event: str, ctx: HookContext) -> None:
        for hook in self.get(phase, event):
            if hook(ctx) is False:
                break

    def clear(self, event: str | None = None) -> None:
        if event is None:
            self._hooks.clear()
            return
        for key in [k for k in self._hooks if k[1] == event]:
            del self._hooks[key]
