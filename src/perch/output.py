"""The output channel.

Everything a handler, hook or middleware echoes goes through an
``Output``. It owns the real sink (any text stream) and a stack of
layers on top of it:

- a capture layer collects writes into a buffer until it is popped;
- a direct layer routes writes straight to the sink, bypassing any
  capture layers beneath it (used by streamed routes).

Only the top layer receives writes. With no layers, writes reach the sink.
"""

import io
from types import TracebackType
from typing import TextIO


class Capture:
    """Context manager returned by :meth:`Output.capture`.

    ``value`` is empty until the block exits normally. Exceptions leave
    the block untouched.
    """

    __slots__ = ("_output", "value")

    def __init__(self, output: "Output") -> None:
        self._output = output
        self.value = ""

    def __enter__(self) -> "Capture":
        self._output.push()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc_type is None:
            self.value = self._output.pop()
        else:
            self._output._layers.pop()
        return False

    def __str__(self) -> str:
        return self.value


class Direct:
    """Context manager returned by :meth:`Output.direct`."""

    __slots__ = ("_output",)

    def __init__(self, output: "Output") -> None:
        self._output = output

    def __enter__(self) -> None:
        self._output._layers.append(None)

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self._output._layers.pop()
        return False


class Output:
    """A text sink with nested capture buffers."""

    __slots__ = ("_layers", "sink")

    def __init__(self, sink: TextIO | None = None) -> None:
        self.sink: TextIO = sink if sink is not None else io.StringIO()
        # None marks a direct layer
        self._layers: list[io.StringIO | None] = []

    @property
    def level(self) -> int:
        """Number of open layers."""
        return len(self._layers)

    def write(self, text: str) -> None:
        """Write to the top layer (or the sink when nothing is open)."""
        if not text:
            return
        top = self._layers[-1] if self._layers else None
        if top is None:
            self.sink.write(text)
        else:
            top.write(text)

    def emit(self, text: str) -> None:
        """Write straight to the sink regardless of open layers."""
        if text:
            self.sink.write(text)

    def push(self) -> None:
        """Open a capture layer."""
        self._layers.append(io.StringIO())

    def pop(self) -> str:
        """Close the top capture layer and return what it collected."""
        if not self._layers or self._layers[-1] is None:
            msg = "No capture layer is open."
            raise RuntimeError(msg)
        buffer = self._layers.pop()
        assert buffer is not None
        return buffer.getvalue()

    def discard(self) -> None:
        """Throw away everything collected so far by the top capture layer."""
        if self._layers and self._layers[-1] is not None:
            self._layers[-1] = io.StringIO()

    def unwind(self, level: int = 0) -> None:
        """Drop layers until only *level* remain. Dropped captures are lost."""
        del self._layers[level:]

    def capture(self) -> Capture:
        """Collect writes made inside a ``with`` block.

        The collected text is stored on the returned ``Capture`` when the
        block exits normally. On an exception the layer is popped and its
        contents dropped.
        """
        return Capture(self)

    def direct(self) -> Direct:
        """Route writes inside a ``with`` block straight to the sink."""
        return Direct(self)

    def peek(self) -> str:
        """What the top capture layer holds so far (empty if none is open)."""
        top = self._layers[-1] if self._layers else None
        return top.getvalue() if top is not None else ""

    def getvalue(self) -> str:
        """Return what the sink has received, when the sink supports it."""
        getvalue = getattr(self.sink, "getvalue", None)
        if getvalue is None:
            msg = f"{type(self.sink).__name__} sink does not retain its output."
            raise TypeError(msg)
        return getvalue()
