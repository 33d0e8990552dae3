"""A preprocessor that leaves the book untouched, run as a command.

Invoked with ``supports <renderer>`` it reports through its exit status
whether it can work with that renderer.  Invoked with no sub-command it reads
a ``[context, book]`` JSON array from standard input and writes the
processed book as JSON to standard output.
"""

from __future__ import annotations

import argparse
import json
import re
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from pagebind.book import Book, BookError

BUILT_AGAINST_VERSION = "0.4.21"

_VERSION_RE = re.compile(
    r"^(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)


@dataclass
class PreprocessorContext:
    """What a preprocessor is told about the book it runs over."""

    root: Path
    config: dict[str, Any] = field(default_factory=dict)
    renderer: str = ""
    mdbook_version: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PreprocessorContext:
        """Build a context from its JSON form."""
        if not isinstance(data, Mapping):
            raise ValueError("the preprocessor context must be an object")
        try:
            config = data["config"]
            if not isinstance(config, Mapping):
                raise ValueError("the preprocessor context's config must be an object")
            return cls(
                root=Path(data["root"]),
                config=dict(config),
                renderer=str(data["renderer"]),
                mdbook_version=str(data["mdbook_version"]),
            )
        except KeyError as err:
            raise ValueError(f"the preprocessor context is missing the field {err}") from err


def _preprocessor_table(config: Mapping[str, Any], name: str) -> Mapping[str, Any] | None:
    tables = config.get("preprocessor")
    if not isinstance(tables, Mapping):
        return None
    table = tables.get(name)
    return table if isinstance(table, Mapping) else None


class NopPreprocessor:
    """A preprocessor that does nothing to the book."""

    name = "nop-preprocessor"

    def run(self, context: PreprocessorContext, book: Book) -> Book:
        """Return the book unchanged, unless the config asks it to fail."""
        table = _preprocessor_table(context.config, self.name)
        if table is not None and "blow-up" in table:
            raise RuntimeError("Boom!!1!")
        return book

    def supports_renderer(self, renderer: str) -> bool:
        """Every renderer is supported except one called ``not-supported``."""
        return renderer != "not-supported"


def parse_input(stream: IO[str]) -> tuple[PreprocessorContext, Book]:
    """Read the ``[context, book]`` JSON array a preprocessor is given."""
    try:
        data = json.load(stream)
    except json.JSONDecodeError as err:
        raise ValueError(f"Unable to parse the input: {err}") from err
    if not isinstance(data, list) or len(data) != 2:
        raise ValueError("the input must be a JSON array of a context and a book")
    context_data, book_data = data
    return PreprocessorContext.from_dict(context_data), Book.from_dict(book_data)


def _parse_version(text: str) -> tuple[tuple[int, int, int], str | None]:
    match = _VERSION_RE.match(text.strip())
    if match is None:
        raise ValueError(f"invalid version: {text!r}")
    major, minor, patch, pre = match.groups()
    return (int(major), int(minor), int(patch)), pre


def _caret_matches(requirement: str, version: str) -> bool:
    """Whether ``version`` satisfies the caret requirement ``^requirement``."""
    (req, _), (got, pre) = _parse_version(requirement), _parse_version(version)
    if pre is not None:
        return False
    if got < req:
        return False
    if req[0] > 0:
        return got[0] == req[0]
    if req[1] > 0:
        return got[:2] == req[:2]
    return got == req


def _handle_preprocessing(pre: NopPreprocessor) -> None:
    context, book = parse_input(sys.stdin)
    if not _caret_matches(BUILT_AGAINST_VERSION, context.mdbook_version):
        print(
            f"Warning: The {pre.name} plugin was built against version "
            f"{BUILT_AGAINST_VERSION} of mdbook, but we're being called from "
            f"version {context.mdbook_version}",
            file=sys.stderr,
        )
    processed = pre.run(context, book)
    json.dump(processed.to_dict(), sys.stdout, separators=(",", ":"))
    sys.stdout.flush()


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nop-preprocessor",
        description="A mdbook preprocessor which does precisely nothing",
    )
    commands = parser.add_subparsers(dest="command")
    supports = commands.add_parser(
        "supports", help="Check whether a renderer is supported by this preprocessor"
    )
    supports.add_argument("renderer")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the preprocessor; the return value is the exit status."""
    args = _make_parser().parse_args(argv)
    preprocessor = NopPreprocessor()

    if args.command == "supports":
        return 0 if preprocessor.supports_renderer(args.renderer) else 1

    try:
        _handle_preprocessing(preprocessor)
    except (ValueError, BookError, RuntimeError, OSError) as err:
        print(err, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())