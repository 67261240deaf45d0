"""Template view backed by kida.

The view is an opaque handler target as far as routing is concerned:
a handler calls ``view.render(...)`` and the rendered text is echoed
into the dispatch output like any other handler output.

Variables set on the view are shared by every render. With
``preserve_vars`` on (the default), data passed to ``render``/``fetch``
is merged into those variables and stays visible to later renders.
"""

import html
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from kida import Environment, FileSystemLoader

from perch.context import output_var
from perch.errors import TemplateNotFound
from perch.output import Output


class View:
    """Render templates from a directory.

    Usage::

        view = View("templates")
        view.set("site", "perch")
        view.render("hello", {"name": "Bob"})  # echoes templates/hello.html
        html = view.fetch("hello", {"name": "Bob"})
    """

    __slots__ = (
        "_env",
        "_env_path",
        "autoescape",
        "extension",
        "output",
        "path",
        "preserve_vars",
        "vars",
    )

    def __init__(
        self,
        path: str | Path = "views",
        *,
        extension: str = ".html",
        autoescape: bool = True,
        output: Output | None = None,
    ) -> None:
        self.path = Path(path)
        self.extension = extension
        self.autoescape = autoescape
        self.vars: dict[str, Any] = {}
        self.preserve_vars = True
        # Used when render() is called outside a dispatch
        self.output = output or Output()
        self._env: Environment | None = None
        self._env_path: Path | None = None

    # -- Variables --

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> None:
        """Set one variable, or several from a mapping."""
        if isinstance(key, Mapping):
            self.vars.update(key)
        else:
            self.vars[key] = value

    def get(self, key: str) -> Any:
        return self.vars.get(key)

    def has(self, key: str) -> bool:
        return key in self.vars

    def clear(self, key: str | None = None) -> None:
        """Remove one variable, or all of them."""
        if key is None:
            self.vars.clear()
        else:
            self.vars.pop(key, None)

    # -- Files --

    def get_template(self, name: str) -> str:
        """Resolve *name* to a template file path.

        The extension is appended when missing. Absolute paths are used
        as they are.
        """
        if self.extension and not name.endswith(self.extension):
            name += self.extension
        candidate = Path(name)
        if candidate.is_absolute():
            return str(candidate)
        return str(self.path / candidate)

    def exists(self, name: str) -> bool:
        return Path(self.get_template(name)).is_file()

    # -- Rendering --

    def _environment(self) -> Environment:
        if self._env is None or self._env_path != self.path:
            self._env = Environment(
                loader=FileSystemLoader(str(self.path)),
                autoescape=self.autoescape,
            )
            self._env_path = self.path
        return self._env

    def fetch(self, name: str, data: Mapping[str, Any] | None = None) -> str:
        """Render template *name* and return the text."""
        file = Path(self.get_template(name))
        if not file.is_file():
            raise TemplateNotFound(str(file))

        context = {**self.vars, **(data or {})}
        if self.preserve_vars and data:
            self.vars.update(data)

        env = self._environment()
        try:
            relative = file.resolve().relative_to(self.path.resolve())
        except ValueError:
            template = env.from_string(file.read_text(encoding="utf-8"))
        else:
            template = env.get_template(relative.as_posix())
        return template.render(context)

    def render(self, name: str, data: Mapping[str, Any] | None = None) -> None:
        """Render template *name* into the current output."""
        self._write(self.fetch(name, data))

    def e(self, text: object) -> str:
        """HTML-escape *text*, echo it, and return it."""
        escaped = html.escape(str(text))
        self._write(escaped)
        return escaped

    def _write(self, text: str) -> None:
        output = output_var.get(None)
        (output or self.output).write(text)
