"""A renderer that counts the words in each chapter of a book.

It reads a render context as JSON from standard input, prints each
chapter's word count and writes the counts to ``wordcounts.txt`` in the
destination directory.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pagebind.book import Book, BookError, Chapter


@dataclass
class WordcountConfig:
    """Settings from the ``output.wordcount`` table."""

    ignores: list[str] = field(default_factory=list)
    deny_odds: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> WordcountConfig:
        """Read the settings, falling back to the defaults if they are absent or invalid."""
        output = config.get("output")
        table = output.get("wordcount") if isinstance(output, Mapping) else None
        if not isinstance(table, Mapping):
            return cls()
        ignores = table.get("ignores", [])
        deny_odds = table.get("deny-odds", False)
        if (
            not isinstance(ignores, list)
            or not all(isinstance(name, str) for name in ignores)
            or not isinstance(deny_odds, bool)
        ):
            return cls()
        return cls(ignores=list(ignores), deny_odds=deny_odds)


@dataclass
class RenderContext:
    """What a renderer is told about the book it renders."""

    root: Path
    book: Book
    destination: Path
    config: dict[str, Any] = field(default_factory=dict)
    version: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RenderContext:
        """Build a render context from its JSON form."""
        if not isinstance(data, Mapping):
            raise ValueError("the render context must be an object")
        try:
            config = data["config"]
            if not isinstance(config, Mapping):
                raise ValueError("the render context's config must be an object")
            return cls(
                root=Path(data["root"]),
                book=Book.from_dict(data["book"]),
                destination=Path(data["destination"]),
                config=dict(config),
                version=str(data.get("version", "")),
            )
        except KeyError as err:
            raise ValueError(f"the render context is missing the field {err}") from err


def count_words(chapter: Chapter) -> int:
    """The number of whitespace-separated words in a chapter's content."""
    return len(chapter.content.split())


def main(argv: list[str] | None = None) -> int:
    """Count the words of every chapter; the return value is the exit status."""
    argparse.ArgumentParser(
        prog="mdbook-wordcount",
        description="Count the words in each chapter of a book",
    ).parse_args(argv)

    try:
        ctx = RenderContext.from_dict(json.load(sys.stdin))
    except (ValueError, BookError) as err:
        print(err, file=sys.stderr)
        return 1
    cfg = WordcountConfig.from_config(ctx.config)

    try:
        ctx.destination.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

    with open(ctx.destination / "wordcounts.txt", "w", encoding="utf-8") as out:
        for item in ctx.book:
            if not isinstance(item, Chapter) or item.name in cfg.ignores:
                continue
            num_words = count_words(item)
            print(f"{item.name}: {num_words}")
            out.write(f"{item.name}: {num_words}\n")

            if cfg.deny_odds and num_words % 2 == 1:
                print(f"{item.name} has an odd number of words!", file=sys.stderr)
                return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())