"""Choosing the renderers for a book and where their output goes."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pagebind.preprocessors import is_default_preprocessor

HTML = "html"
MARKDOWN = "markdown"
_BUILTIN_RENDERERS = (HTML, MARKDOWN)

DEFAULT_BUILD_DIR = "book"
DEFAULT_SRC_DIR = "src"


@dataclass(frozen=True)
class RendererSpec:
    """A renderer to run: a built-in one, or an external command."""

    name: str
    command: str | None = None

    @property
    def is_builtin(self) -> bool:
        """Whether this renderer ships with the package."""
        return self.command is None


def _table(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key)
    return value if isinstance(value, Mapping) else {}


def _use_default_preprocessors(config: Mapping[str, Any]) -> bool:
    value = _table(config, "build").get("use-default-preprocessors", True)
    return value if isinstance(value, bool) else True


def interpret_custom_renderer(key: str, table: Any) -> RendererSpec:
    """A renderer run as a command, taken from ``command`` or ``mdbook-<key>``."""
    command = table.get("command") if isinstance(table, Mapping) else None
    if not isinstance(command, str):
        command = f"mdbook-{key}"
    return RendererSpec(key, command)


def determine_renderers(config: Mapping[str, Any]) -> list[RendererSpec]:
    """Work out the renderers from the ``output`` table, defaulting to HTML."""
    renderers = [
        RendererSpec(key) if key in _BUILTIN_RENDERERS else interpret_custom_renderer(key, table)
        for key, table in _table(config, "output").items()
    ]
    return renderers or [RendererSpec(HTML)]


def preprocessor_should_run(
    name: str,
    supports_renderer: Callable[[str], bool],
    renderer_name: str,
    config: Mapping[str, Any],
) -> bool:
    """Whether the preprocessor ``name`` should run for ``renderer_name``.

    Default preprocessors run whenever they support the renderer (if defaults
    are enabled); otherwise an explicit ``preprocessor.<name>.renderers`` list
    decides, falling back to ``supports_renderer``.
    """
    if _use_default_preprocessors(config) and is_default_preprocessor(name):
        return supports_renderer(renderer_name)

    table = _table(config, "preprocessor").get(name)
    if isinstance(table, Mapping):
        explicit = table.get("renderers")
        if isinstance(explicit, list):
            return any(entry == renderer_name for entry in explicit if isinstance(entry, str))

    return supports_renderer(renderer_name)


def build_dir_for(
    root: str | Path,
    config: Mapping[str, Any],
    renderer_count: int,
    backend_name: str,
) -> Path:
    """Where a backend puts its output.

    With one renderer that is ``build.build-dir`` itself; with several, each
    renderer gets its own sub-directory named after it.
    """
    build_dir = _table(config, "build").get("build-dir", DEFAULT_BUILD_DIR)
    path = Path(root) / str(build_dir)
    return path if renderer_count <= 1 else path / backend_name


def source_dir(root: str | Path, config: Mapping[str, Any]) -> Path:
    """The directory holding the book's source files."""
    src = _table(config, "book").get("src", DEFAULT_SRC_DIR)
    return Path(root) / str(src)