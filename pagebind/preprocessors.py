"""Choosing which preprocessors run over a book, and in what order."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)

LINKS = "links"
INDEX = "index"
DEFAULT_PREPROCESSORS: tuple[str, ...] = (LINKS, INDEX)


class PipelineError(ValueError):
    """Raised when the preprocessor configuration is invalid."""


@dataclass(frozen=True)
class PreprocessorSpec:
    """A preprocessor to run: a built-in one, or an external command."""

    name: str
    command: str | None = None

    @property
    def is_builtin(self) -> bool:
        """Whether this is one of the preprocessors that ship with the package."""
        return self.command is None


def is_default_preprocessor(name: str) -> bool:
    """Whether ``name`` is one of the built-in default preprocessors."""
    return name in DEFAULT_PREPROCESSORS


def get_custom_preprocessor_cmd(key: str, table: Any) -> str:
    """The command for a custom preprocessor, defaulting to ``mdbook-<key>``."""
    if isinstance(table, Mapping):
        command = table.get("command")
        if isinstance(command, str):
            return command
    return f"mdbook-{key}"


def _use_default_preprocessors(config: Mapping[str, Any]) -> bool:
    build = config.get("build")
    if isinstance(build, Mapping):
        value = build.get("use-default-preprocessors", True)
        if isinstance(value, bool):
            return value
    return True


class _OrderGraph:
    """Nodes with "must run before" edges, drained one tier at a time."""

    def __init__(self) -> None:
        self._successors: dict[str, set[str]] = {}
        self._predecessor_counts: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._predecessor_counts)

    def insert(self, name: str) -> None:
        self._successors.setdefault(name, set())
        self._predecessor_counts.setdefault(name, 0)

    def add_dependency(self, first: str, then: str) -> None:
        self.insert(first)
        self.insert(then)
        if then not in self._successors[first]:
            self._successors[first].add(then)
            self._predecessor_counts[then] += 1

    def pop_all(self) -> list[str]:
        ready = [name for name, count in self._predecessor_counts.items() if count == 0]
        for name in ready:
            del self._predecessor_counts[name]
            for successor in self._successors.pop(name):
                self._predecessor_counts[successor] -= 1
        return ready


def _string_list(table: Mapping[str, Any], name: str, key: str) -> list[str] | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise PipelineError(f"Expected preprocessor.{name}.{key} to be an array")
    for entry in value:
        if not isinstance(entry, str):
            raise PipelineError(f"Expected preprocessor.{name}.{key} to contain strings")
    return value


def determine_preprocessors(config: Mapping[str, Any]) -> list[PreprocessorSpec]:
    """Work out which preprocessors to run, ordered by their ``before``/``after`` keys.

    Ties are broken by sorting names by code point.
    """
    use_defaults = _use_default_preprocessors(config)
    graph = _OrderGraph()

    if use_defaults:
        for name in DEFAULT_PREPROCESSORS:
            graph.insert(name)

    preprocessor_table = config.get("preprocessor")
    if not isinstance(preprocessor_table, Mapping):
        preprocessor_table = {}

    def exists(name: str) -> bool:
        return (use_defaults and name in DEFAULT_PREPROCESSORS) or name in preprocessor_table

    for name, table in preprocessor_table.items():
        graph.insert(name)
        if not isinstance(table, Mapping):
            continue

        before = _string_list(table, name, "before")
        for later in before or []:
            if exists(later):
                graph.add_dependency(name, later)
            else:
                # Only warn, so preprocessors can be toggled without reordering.
                log.warning(
                    'preprocessor.%s.after contains "%s", which was not found', name, later
                )

        after = _string_list(table, name, "after")
        for earlier in after or []:
            if exists(earlier):
                graph.add_dependency(earlier, name)
            else:
                log.warning(
                    'preprocessor.%s.before contains "%s", which was not found', name, earlier
                )

    specs: list[PreprocessorSpec] = []
    while names := graph.pop_all():
        for name in sorted(names):
            if is_default_preprocessor(name):
                specs.append(PreprocessorSpec(name))
            else:
                command = get_custom_preprocessor_cmd(name, preprocessor_table[name])
                specs.append(PreprocessorSpec(name, command))

    if len(graph):
        raise PipelineError("Cyclic dependency detected in preprocessors")
    return specs