"""Data types describing a parsed ``SUMMARY.md`` file."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TypeAlias


@dataclass
class SectionNumber:
    """A chapter's section number such as ``1.2.3.``."""

    parts: list[int] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.parts:
            return "0"
        return "".join(f"{part}." for part in self.parts)

    def __iter__(self) -> Iterator[int]:
        return iter(self.parts)

    def __len__(self) -> int:
        return len(self.parts)

    def __getitem__(self, index: int) -> int:
        return self.parts[index]


@dataclass
class Link:
    """An entry such as ``[Some section](./path/to/file.md)``, possibly with nested entries.

    A ``location`` of ``None`` marks a draft chapter with no source file.
    """

    name: str = ""
    location: str | None = ""
    number: SectionNumber | None = None
    nested_items: list[SummaryItem] = field(default_factory=list)


@dataclass(frozen=True)
class Separator:
    """A horizontal rule (``---``) between items."""


@dataclass(frozen=True)
class PartTitle:
    """The title of a part of the numbered chapters."""

    title: str


SummaryItem: TypeAlias = Link | Separator | PartTitle


@dataclass
class Summary:
    """The parsed ``SUMMARY.md``, describing how a book is laid out."""

    title: str | None = None
    prefix_chapters: list[SummaryItem] = field(default_factory=list)
    numbered_chapters: list[SummaryItem] = field(default_factory=list)
    suffix_chapters: list[SummaryItem] = field(default_factory=list)

    def all_items(self) -> Iterator[SummaryItem]:
        """Yield the top-level items: prefix, then numbered, then suffix."""
        yield from self.prefix_chapters
        yield from self.numbered_chapters
        yield from self.suffix_chapters