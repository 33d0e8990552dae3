"""Parse the text of a ``SUMMARY.md`` file into a :class:`~pagebind.summary.Summary`.

The parser reads a flat stream of Markdown events (start and end of block
and inline elements, text, rules, raw HTML) and descends through the
grammar::

    summary           ::= title prefix_chapters numbered_chapters suffix_chapters
    title             ::= "# " TEXT | EPSILON
    prefix_chapters   ::= item*
    suffix_chapters   ::= item*
    numbered_chapters ::= part+
    part              ::= title dotted_item+
    dotted_item       ::= INDENT* DOT_POINT item
    item              ::= link | separator
    separator         ::= "---"
    link              ::= "[" TEXT "]" "(" TEXT ")"
    DOT_POINT         ::= "-" | "*"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from markdown_it import MarkdownIt
from markdown_it.token import Token

from pagebind.summary import (
    Link,
    PartTitle,
    SectionNumber,
    Separator,
    Summary,
    SummaryItem,
)

log = logging.getLogger(__name__)


class SummaryParseError(ValueError):
    """Raised when a ``SUMMARY.md`` file does not follow the expected layout."""


@dataclass(frozen=True)
class Event:
    """One Markdown event.

    ``kind`` is one of ``start``, ``end``, ``text``, ``code``, ``softbreak``,
    ``hardbreak``, ``html``, ``rule`` or ``other``.  ``tag`` names the element
    opened or closed by ``start``/``end`` events (``paragraph``, ``heading``,
    ``list``, ``item``, ``link``, ...), ``level`` is a heading's level and
    ``href`` a link's destination.  ``offset`` is the position in the source
    text and takes no part in comparisons.
    """

    kind: str
    tag: str | None = None
    level: int | None = None
    text: str = ""
    href: str = ""
    offset: int = field(default=0, compare=False)


_TAG_NAMES = {
    "bullet_list": "list",
    "ordered_list": "list",
    "list_item": "item",
    "em": "emphasis",
    "s": "strikethrough",
}


def _tag_of(token: Token) -> tuple[str, int | None]:
    base = token.type.removesuffix("_open").removesuffix("_close")
    tag = _TAG_NAMES.get(base, base)
    level = int(token.tag[1:]) if tag == "heading" else None
    return tag, level


def _inline_events(token: Token, offset: int) -> Iterator[Event]:
    match token.type:
        case "text" | "text_special":
            yield Event("text", text=token.content, offset=offset)
        case "code_inline":
            yield Event("code", text=token.content, offset=offset)
        case "softbreak":
            yield Event("softbreak", offset=offset)
        case "hardbreak":
            yield Event("hardbreak", offset=offset)
        case "html_inline":
            yield Event("html", text=token.content, offset=offset)
        case "link_open":
            href = str(token.attrGet("href") or "")
            yield Event("start", "link", href=href, offset=offset)
        case "image":
            src = str(token.attrGet("src") or "")
            yield Event("start", "image", href=src, offset=offset)
            for child in token.children or []:
                yield from _inline_events(child, offset)
            yield Event("end", "image", offset=offset)
        case _:
            if token.nesting == 1:
                tag, level = _tag_of(token)
                yield Event("start", tag, level, offset=offset)
            elif token.nesting == -1:
                tag, level = _tag_of(token)
                yield Event("end", tag, level, offset=offset)
            else:
                yield Event("other", text=token.content, offset=offset)


def _block_events(token: Token, offset: int) -> Iterator[Event]:
    match token.type:
        case "hr":
            yield Event("rule", offset=offset)
        case "html_block":
            yield Event("html", text=token.content, offset=offset)
        case "fence" | "code_block":
            yield Event("start", "codeblock", offset=offset)
            yield Event("text", text=token.content, offset=offset)
            yield Event("end", "codeblock", offset=offset)
        case _:
            if token.nesting == 1:
                tag, level = _tag_of(token)
                yield Event("start", tag, level, offset=offset)
            elif token.nesting == -1:
                tag, level = _tag_of(token)
                yield Event("end", tag, level, offset=offset)
            else:
                yield Event("other", text=token.content, offset=offset)


def markdown_events(text: str) -> list[Event]:
    """Turn Markdown text into a flat list of events.

    Paragraphs inside tight list items are not reported, and link
    destinations are kept as written.
    """
    md = MarkdownIt("commonmark")
    md.normalizeLink = lambda url: url
    tokens = md.parse(text)

    line_starts = [0]
    for line in text.split("\n"):
        line_starts.append(line_starts[-1] + len(line) + 1)

    events: list[Event] = []
    offset = 0
    for token in tokens:
        if token.map:
            offset = min(line_starts[token.map[0]], len(text))
        if token.hidden:
            continue
        if token.type == "inline":
            for child in token.children or []:
                events.extend(_inline_events(child, offset))
        else:
            events.extend(_block_events(token, offset))
    return events


def stringify_events(events: Iterable[Event]) -> str:
    """Strip the styling from a run of events, keeping only the plain text."""
    pieces = []
    for event in events:
        if event.kind in ("text", "code"):
            pieces.append(event.text)
        elif event.kind == "softbreak":
            pieces.append(" ")
    return "".join(pieces)


def _is_start(event: Event | None, tag: str, level: int | None = None) -> bool:
    return (
        event is not None
        and event.kind == "start"
        and event.tag == tag
        and (level is None or event.level == level)
    )


def _is_end(event: Event | None, tag: str, level: int | None = None) -> bool:
    return (
        event is not None
        and event.kind == "end"
        and event.tag == tag
        and (level is None or event.level == level)
    )


@contextmanager
def _context(message: str) -> Iterator[None]:
    try:
        yield
    except SummaryParseError as err:
        raise SummaryParseError(f"{message}: {err}") from err


def _update_section_numbers(items: list[SummaryItem], level: int, by: int) -> None:
    for item in items:
        if isinstance(item, Link):
            if item.number is not None:
                item.number.parts[level] += by
            _update_section_numbers(item.nested_items, level, by)


def _last_link(items: list[SummaryItem]) -> Link:
    for item in reversed(items):
        if isinstance(item, Link):
            return item
    raise SummaryParseError(
        "Unable to get last link because the list of SummaryItems doesn't contain any Links"
    )


class SummaryParser:
    """A recursive-descent parser over the events of a ``SUMMARY.md``."""

    def __init__(self, text: str) -> None:
        self._src = text
        self._stream: Iterator[Event] = iter(markdown_events(text))
        self._offset = 0
        self._pushed_back: Event | None = None
        # Section numbers continue across all parts of the numbered chapters.
        self._root_items = 0
        self._root_number = SectionNumber()

    def parse(self) -> Summary:
        """Parse the whole text."""
        title = self.parse_title()
        with _context("There was an error parsing the prefix chapters"):
            prefix = self.parse_affix(True)
        with _context("There was an error parsing the numbered chapters"):
            numbered = self.parse_parts()
        with _context("There was an error parsing the suffix chapters"):
            suffix = self.parse_affix(False)
        return Summary(
            title=title,
            prefix_chapters=prefix,
            numbered_chapters=numbered,
            suffix_chapters=suffix,
        )

    def current_location(self) -> tuple[int, int]:
        """Return the line and column of the most recently read event."""
        previous = self._src[: self._offset]
        line = previous.count("\n") + 1
        start_of_line = max(previous.rfind("\n"), 0)
        column = len(self._src[start_of_line : self._offset])
        return line, column

    def next_event(self) -> Event | None:
        """Return the next event, or ``None`` at the end of the text."""
        if self._pushed_back is not None:
            event, self._pushed_back = self._pushed_back, None
            return event
        event = next(self._stream, None)
        if event is not None:
            self._offset = event.offset
        return event

    def _back(self, event: Event) -> None:
        if self._pushed_back is not None:
            raise RuntimeError("only one event can be pushed back")
        self._pushed_back = event

    def _collect_until_end(self, tag: str, level: int | None = None) -> list[Event]:
        events = []
        for event in self._stream:
            if _is_end(event, tag, level):
                return events
            events.append(event)
        log.debug("Reached end of stream without finding the end of %s", tag)
        return events

    def _error(self, message: str) -> SummaryParseError:
        line, column = self.current_location()
        return SummaryParseError(
            f"failed to parse SUMMARY.md line {line}, column {column}: {message}"
        )

    def parse_title(self) -> str | None:
        """Read a leading level-one heading, skipping HTML such as comments."""
        while (event := self.next_event()) is not None:
            if _is_start(event, "heading", 1):
                return stringify_events(self._collect_until_end("heading", 1))
            if event.kind == "html":
                continue
            self._back(event)
            return None
        return None

    def parse_affix(self, is_prefix: bool) -> list[SummaryItem]:
        """Parse the unnumbered chapters before (prefix) or after (suffix) the numbered ones."""
        items: list[SummaryItem] = []
        while (event := self.next_event()) is not None:
            if _is_start(event, "list") or _is_start(event, "heading", 1):
                if not is_prefix:
                    raise self._error("Suffix chapters cannot be followed by a list")
                self._back(event)
                break
            if _is_start(event, "link"):
                items.append(self.parse_link(event.href))
            elif event.kind == "rule":
                items.append(Separator())
        return items

    def parse_parts(self) -> list[SummaryItem]:
        """Parse the numbered chapters, split into parts by level-one headings."""
        parts: list[SummaryItem] = []
        self._root_items = 0
        self._root_number = SectionNumber()

        while (event := self.next_event()) is not None:
            if _is_start(event, "paragraph"):
                # The suffix chapters begin here.
                self._back(event)
                break
            if _is_start(event, "heading", 1):
                title: str | None = stringify_events(self._collect_until_end("heading", 1))
            else:
                self._back(event)
                title = None

            with _context("There was an error parsing the numbered chapters"):
                chapters = self.parse_numbered()

            if title is not None:
                parts.append(PartTitle(title))
            parts.extend(chapters)
        return parts

    def parse_link(self, href: str) -> Link:
        """Finish a link whose start event has just been read."""
        href = href.replace("%20", " ")
        name = stringify_events(self._collect_until_end("link"))
        return Link(name=name, location=href or None, number=None)

    def parse_numbered(self) -> list[SummaryItem]:
        """Parse one part's numbered chapters."""
        items: list[SummaryItem] = []
        # An opening paragraph is only accepted as the very first event.
        first = True

        while (event := self.next_event()) is not None:
            if _is_start(event, "paragraph"):
                if not first:
                    self._back(event)
                    break
            elif _is_start(event, "heading", 1):
                # A new part begins here.
                self._back(event)
                break
            elif _is_start(event, "list"):
                self._back(event)
                bunch = self._parse_nested_numbered(self._root_number)
                # Lists resumed after a rule or comment are numbered from 1 again.
                _update_section_numbers(bunch, 0, self._root_items)
                self._root_items += len(bunch)
                items.extend(bunch)
            elif event.kind == "start":
                log.debug("Skipping contents of %s", event.tag)
                while (inner := self.next_event()) is not None:
                    if _is_end(inner, event.tag or "", event.level):
                        break
            elif event.kind == "rule":
                items.append(Separator())
            first = False
        return items

    def _parse_nested_numbered(self, parent: SectionNumber) -> list[SummaryItem]:
        items: list[SummaryItem] = []
        while (event := self.next_event()) is not None:
            if _is_start(event, "item"):
                items.append(self._parse_nested_item(parent, len(items)))
            elif _is_start(event, "list"):
                if not items:
                    continue
                last = _last_link(items)
                if last.number is None:
                    raise RuntimeError("all numbered chapters have numbers")
                last.nested_items = self._parse_nested_numbered(last.number)
            elif _is_end(event, "list"):
                break
        return items

    def _parse_nested_item(self, parent: SectionNumber, existing: int) -> Link:
        while True:
            event = self.next_event()
            if _is_start(event, "paragraph"):
                continue
            if event is not None and _is_start(event, "link"):
                link = self.parse_link(event.href)
                link.number = SectionNumber([*parent.parts, existing + 1])
                log.debug("Found chapter: %s %s (%s)", link.number, link.name,
                          link.location or "[draft]")
                return link
            log.warning("Expected a start of a link, actually got %r", event)
            raise self._error(
                "The link items for nested chapters must only contain a hyperlink"
            )


def parse_summary(text: str) -> Summary:
    """Parse the text of a ``SUMMARY.md`` file."""
    return SummaryParser(text).parse()