# pagebind

pagebind turns a directory of Markdown files into an in-memory book. A
`SUMMARY.md` outline says which chapters exist and in what order; pagebind
parses it, loads every chapter from disk, and works out from a book's
configuration which preprocessors and renderers it asks for and in what
order.

## Installing

```
pip install pagebind
```

To run the test suite as well:

```
pip install "pagebind[test]"
pytest
```

## The outline

A `SUMMARY.md` looks like this:

```markdown
# Summary

[Introduction](intro.md)

# Part One

- [First chapter](chapter_1.md)
    - [A section](chapter_1/section.md)
- [Draft chapter]()

---

[Appendix](appendix.md)
```

- A leading `# ` heading is the title. HTML (such as comments) before it is skipped.
- Plain links before the first list or part heading are prefix chapters; they
  are not numbered.
- List items are numbered chapters. Nesting gives section numbers such as
  `1.1.`, and numbering carries on across separators (`---`), comments and
  part titles.
- A further `# ` heading starts a new titled part, kept as a `PartTitle`.
- Plain links after the lists are suffix chapters. A list after the suffix
  chapters is an error.
- A link with an empty target is a draft chapter with no file behind it.
- `%20` in a link target is read as a space.
- A list item that holds anything but a link is an error.

## Parsing

```python
from pagebind.summary_parser import parse_summary

with open("src/SUMMARY.md", encoding="utf-8") as fh:
    summary = parse_summary(fh.read())

print(summary.title)
for item in summary.all_items():      # prefix, numbered, then suffix items
    print(item)
```

`pagebind.summary` holds the data types: `Summary`, `Link`, `Separator`,
`PartTitle` and `SectionNumber` (whose string form is `"1.2."`, or `"0"` when
empty). Layout errors raise `pagebind.summary_parser.SummaryParseError`, whose
message gives the line and column in `SUMMARY.md`.

`SummaryParser` exposes the individual steps (`parse_title`, `parse_affix`,
`parse_parts`, `parse_numbered`, `parse_link`), and `markdown_events` /
`stringify_events` turn Markdown into the flat event list the parser reads and
back into plain text.

## Loading a book

```python
from pagebind.book import load_book, Chapter

book = load_book("src", create_missing=True)
for item in book:                     # depth-first over all items
    if isinstance(item, Chapter):
        print(item)                   # e.g. "1.2. A section"
```

`load_book` reads `SUMMARY.md` from the source directory. With
`create_missing=True` (the default) it first writes a stub `# Title` file for
every linked chapter that does not yet exist. Chapter paths are stored
relative to the source directory, a UTF-8 byte-order mark at the start of a
chapter is dropped, and each chapter records the names of the chapters above
it in `parent_names`. Any failure to read, parse or create files raises
`pagebind.book.BookError`.

`load_book_from_disk(summary, src_dir)` loads from an already parsed
`Summary`. `Book.for_each_mut(func)` calls `func` on every item, children
before their parent, so chapters can be edited in place. `Book.push_item`
appends an item. `Book.to_dict()` and `Book.from_dict()` convert to and from
the JSON shape preprocessors exchange.

## Pipelines

The configuration is a plain `dict`, as `tomllib` gives it for a `book.toml`.

`pagebind.preprocessors.determine_preprocessors(config)` reads the
`[preprocessor.*]` tables and returns `PreprocessorSpec` entries in run
order, honouring each table's `before` and `after` lists (names that are not
configured are ignored with a warning); ties are sorted by name. The built-in
`links` and `index` preprocessors are included unless
`build.use-default-preprocessors` is false. A cycle, or a `before`/`after`
that is not a list of strings, raises `PipelineError`. A custom preprocessor
runs the `command` from its table, or `mdbook-<name>` when none is given.

`pagebind.renderers.determine_renderers(config)` does the same for
`[output.*]`: `html` and `markdown` are built in, anything else becomes a
command, and with no output table the HTML renderer is used.
`preprocessor_should_run` decides whether a preprocessor applies to a given
renderer, `build_dir_for` gives a renderer's output directory (the
`build.build-dir`, default `book`, with a sub-directory per renderer when
there are several), and `source_dir` gives the `book.src` directory
(default `src`).

## Commands

`pagebind-nop` is a preprocessor that leaves the book untouched. Given a
`[context, book]` JSON array on standard input it writes the book back to
standard output as JSON:

```
pagebind-nop < input.json > output.json
pagebind-nop supports html; echo $?
```

`supports` exits with 0 for every renderer except `not-supported`, and 1 for
that one. A `blow-up` key in the `[preprocessor.nop-preprocessor]` table
makes a run fail with exit status 1. If the context's version is not
compatible with 0.4.21 a warning is printed on standard error.

`pagebind-wordcount` is a renderer. It reads a render context as JSON on
standard input, prints the number of words in each chapter, and writes the
same lines to `wordcounts.txt` in the destination directory:

```
pagebind-wordcount < render-context.json
```

Its `[output.wordcount]` table accepts `ignores`, a list of chapter names to
skip, and `deny-odds`, which makes it stop with exit status 1 at the first
chapter with an odd word count.

## What pagebind does not do

pagebind plans a build but does not carry one out. It has no HTML or Markdown
renderer of its own: `determine_renderers` and `determine_preprocessors` only
name what should run, and pagebind does not start the external commands they
list, does not apply the built-in `links` and `index` preprocessors, and
writes no output site. It does not read `book.toml` itself, and it has no
commands to create, build, clean, test, serve or watch a book.