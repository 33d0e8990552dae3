"""The in-memory representation of a book and loading it from disk."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeAlias

from pagebind.summary import Link, PartTitle, SectionNumber, Separator, Summary, SummaryItem
from pagebind.summary_parser import SummaryParseError, parse_summary

log = logging.getLogger(__name__)

_UTF8_BOM = "\ufeff"


class BookError(Exception):
    """Raised when a book cannot be loaded, created or decoded."""


@dataclass
class Chapter:
    """A chapter, usually backed by one file on disk, possibly with sub-chapters.

    ``path`` and ``source_path`` are relative to the directory holding
    ``SUMMARY.md``; a chapter without a ``path`` is a draft.
    """

    name: str = ""
    content: str = ""
    number: SectionNumber | None = None
    sub_items: list[BookItem] = field(default_factory=list)
    path: Path | None = None
    source_path: Path | None = None
    parent_names: list[str] = field(default_factory=list)

    @classmethod
    def new_draft(cls, name: str, parent_names: list[str]) -> Chapter:
        """Create a chapter that has no source file and therefore no content."""
        return cls(name=name, parent_names=list(parent_names))

    def is_draft_chapter(self) -> bool:
        """Whether the chapter has no source file."""
        return self.path is None

    def __str__(self) -> str:
        if self.number is not None:
            return f"{self.number} {self.name}"
        return self.name


BookItem: TypeAlias = Chapter | Separator | PartTitle


def _walk(items: list[BookItem]) -> Iterator[BookItem]:
    for item in items:
        yield item
        if isinstance(item, Chapter):
            yield from _walk(item.sub_items)


def _visit_post_order(items: list[BookItem], func: Callable[[BookItem], Any]) -> None:
    for item in items:
        if isinstance(item, Chapter):
            _visit_post_order(item.sub_items, func)
        func(item)


def _optional_path(value: Any) -> Path | None:
    return None if value is None else Path(value)


def _item_to_dict(item: BookItem) -> Any:
    match item:
        case Chapter():
            return {
                "Chapter": {
                    "name": item.name,
                    "content": item.content,
                    "number": None if item.number is None else list(item.number.parts),
                    "sub_items": [_item_to_dict(sub) for sub in item.sub_items],
                    "path": None if item.path is None else str(item.path),
                    "source_path": None if item.source_path is None else str(item.source_path),
                    "parent_names": list(item.parent_names),
                }
            }
        case Separator():
            return "Separator"
        case PartTitle():
            return {"PartTitle": item.title}
    raise BookError(f"not a book item: {item!r}")


def _item_from_dict(data: Any) -> BookItem:
    if data == "Separator":
        return Separator()
    if isinstance(data, dict) and len(data) == 1:
        (variant, body), = data.items()
        if variant == "PartTitle" and isinstance(body, str):
            return PartTitle(body)
        if variant == "Chapter" and isinstance(body, dict):
            try:
                number = body.get("number")
                return Chapter(
                    name=body["name"],
                    content=body["content"],
                    number=None if number is None else SectionNumber(list(number)),
                    sub_items=[_item_from_dict(sub) for sub in body.get("sub_items", [])],
                    path=_optional_path(body.get("path")),
                    source_path=_optional_path(body.get("source_path")),
                    parent_names=list(body.get("parent_names", [])),
                )
            except KeyError as err:
                raise BookError(f"chapter is missing the field {err}") from err
    raise BookError(f"unknown book item: {data!r}")


@dataclass
class Book:
    """A tree of book items.

    Iterating yields every item depth first; :meth:`for_each_mut` applies a
    function to every item, children before their parent.
    """

    sections: list[BookItem] = field(default_factory=list)

    def __iter__(self) -> Iterator[BookItem]:
        return _walk(self.sections)

    def for_each_mut(self, func: Callable[[BookItem], Any]) -> None:
        """Call ``func`` on every item, visiting sub-items before their chapter."""
        _visit_post_order(self.sections, func)

    def push_item(self, item: BookItem) -> Book:
        """Append an item and return the book."""
        self.sections.append(item)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the book as JSON-ready data."""
        return {
            "sections": [_item_to_dict(item) for item in self.sections],
            "__non_exhaustive": None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Book:
        """Build a book from data produced by :meth:`to_dict`."""
        if not isinstance(data, dict) or not isinstance(data.get("sections"), list):
            raise BookError("a book needs a list of sections")
        return cls(sections=[_item_from_dict(item) for item in data["sections"]])


def _bracket_escape(text: str) -> str:
    return text.replace("[", "\\[").replace("]", "\\]")


def load_book(src_dir: str | Path, create_missing: bool = True) -> Book:
    """Load a book from its source directory, guided by its ``SUMMARY.md``."""
    src_dir = Path(src_dir)
    summary_md = src_dir / "SUMMARY.md"
    try:
        with open(summary_md, encoding="utf-8", newline="") as handle:
            summary_text = handle.read()
    except (OSError, UnicodeDecodeError) as err:
        raise BookError(
            f"Couldn't open SUMMARY.md in {str(src_dir)!r} directory: {err}"
        ) from err

    try:
        summary = parse_summary(summary_text)
    except SummaryParseError as err:
        raise BookError(f"Summary parsing failed for file={str(summary_md)!r}: {err}") from err

    if create_missing:
        try:
            create_missing_chapters(src_dir, summary)
        except BookError as err:
            raise BookError(f"Unable to create missing chapters: {err}") from err

    return load_book_from_disk(summary, src_dir)


def create_missing_chapters(src_dir: str | Path, summary: Summary) -> None:
    """Create a stub file for every linked chapter whose file does not exist."""
    src_dir = Path(src_dir)
    pending: list[SummaryItem] = list(summary.all_items())

    while pending:
        item = pending.pop()
        if not isinstance(item, Link):
            continue
        if item.location is not None:
            filename = src_dir / item.location
            if not filename.exists():
                log.debug("Creating missing file %s", filename)
                try:
                    filename.parent.mkdir(parents=True, exist_ok=True)
                    with open(filename, "w", encoding="utf-8", newline="") as handle:
                        handle.write(f"# {_bracket_escape(item.name)}\n")
                except OSError as err:
                    raise BookError(
                        f"Unable to create missing file: {filename}: {err}"
                    ) from err
        pending.extend(item.nested_items)


def load_book_from_disk(summary: Summary, src_dir: str | Path) -> Book:
    """Load every chapter the summary lists, relative to ``src_dir``."""
    log.debug("Loading the book from disk")
    return Book(
        sections=[load_summary_item(item, src_dir, []) for item in summary.all_items()]
    )


def load_summary_item(
    item: SummaryItem, src_dir: str | Path, parent_names: list[str]
) -> BookItem:
    """Turn one summary item into a book item, reading chapter files as needed."""
    match item:
        case Separator():
            return Separator()
        case PartTitle():
            return PartTitle(item.title)
        case Link():
            return load_chapter(item, src_dir, parent_names)
    raise BookError(f"not a summary item: {item!r}")


def _read_chapter(link: Link, location: Path) -> str:
    try:
        handle = open(location, "rb")
    except OSError as err:
        raise BookError(f"Chapter file not found, {link.location}: {err}") from err
    with handle:
        try:
            content = handle.read().decode("utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise BookError(f'Unable to read "{link.name}" ({location}): {err}') from err
    return content.removeprefix(_UTF8_BOM)


def load_chapter(link: Link, src_dir: str | Path, parent_names: list[str]) -> Chapter:
    """Load the chapter a link points at, together with its nested items."""
    src_dir = Path(src_dir)

    if link.location is not None:
        log.debug("Loading %s (%s)", link.name, link.location)
        link_location = Path(link.location)
        location = link_location if link_location.is_absolute() else src_dir / link_location
        content = _read_chapter(link, location)
        try:
            relative = location.relative_to(src_dir)
        except ValueError as err:
            raise BookError(
                f"Chapters are always inside a book: {location} is outside {src_dir}"
            ) from err
        chapter = Chapter(
            name=link.name,
            content=content,
            path=relative,
            source_path=relative,
            parent_names=list(parent_names),
        )
    else:
        chapter = Chapter.new_draft(link.name, parent_names)

    if link.number is not None:
        chapter.number = SectionNumber(list(link.number.parts))

    sub_parents = [*parent_names, link.name]
    chapter.sub_items = [
        load_summary_item(nested, src_dir, sub_parents) for nested in link.nested_items
    ]
    return chapter