import io
import json
from pathlib import Path

import pytest

from pagebind.book import Book, Chapter
from pagebind.summary import Separator
from pagebind.wordcount import RenderContext, WordcountConfig, count_words, main


def _context(destination, chapters, wordcount=None):
    book = Book(sections=[*chapters, Separator()])
    config = {"book": {"title": "TITLE"}}
    if wordcount is not None:
        config["output"] = {"wordcount": wordcount}
    return json.dumps(
        {
            "version": "0.4.21",
            "root": str(destination.parent),
            "book": book.to_dict(),
            "config": config,
            "destination": str(destination),
        }
    )


@pytest.mark.parametrize(
    "words", [[], ["alpha"], ["alpha", "beta"], ["a", "b", "c", "d", "e"]]
)
def test_count_words_matches_word_list(words):
    chapter = Chapter(name="x", content="  \n".join(words) + "\t")
    assert count_words(chapter) == len(words)


def test_config_defaults_when_missing():
    assert WordcountConfig.from_config({}) == WordcountConfig(ignores=[], deny_odds=False)


def test_config_reads_kebab_case_keys():
    cfg = WordcountConfig.from_config(
        {"output": {"wordcount": {"ignores": ["Intro"], "deny-odds": True}}}
    )
    assert cfg == WordcountConfig(ignores=["Intro"], deny_odds=True)


def test_config_falls_back_to_default_on_bad_types():
    cfg = WordcountConfig.from_config({"output": {"wordcount": {"deny-odds": "yes"}}})
    assert cfg == WordcountConfig()


def test_render_context_from_dict(tmp_path):
    chapter = Chapter(name="One", content="a b", path=Path("one.md"), source_path=Path("one.md"))
    data = json.loads(_context(tmp_path / "out", [chapter]))
    ctx = RenderContext.from_dict(data)
    assert ctx.destination == tmp_path / "out"
    assert ctx.book.sections == [chapter, Separator()]
    assert ctx.version == "0.4.21"


def test_render_context_requires_book(tmp_path):
    with pytest.raises(ValueError, match="book"):
        RenderContext.from_dict({"root": ".", "config": {}, "destination": str(tmp_path)})


def test_main_writes_counts(monkeypatch, capsys, tmp_path):
    first_words = ["one", "two", "three"]
    second_words = ["alpha", "beta"]
    chapters = [
        Chapter(name="First", content=" ".join(first_words)),
        Chapter(name="Second", content=" ".join(second_words)),
    ]
    destination = tmp_path / "out"
    monkeypatch.setattr("sys.stdin", io.StringIO(_context(destination, chapters)))

    assert main([]) == 0
    expected = [f"First: {len(first_words)}", f"Second: {len(second_words)}"]
    assert (destination / "wordcounts.txt").read_text(encoding="utf-8").splitlines() == expected
    assert capsys.readouterr().out.splitlines() == expected


def test_main_skips_ignored_chapters(monkeypatch, tmp_path):
    chapters = [
        Chapter(name="Keep", content="a b"),
        Chapter(name="Skip", content="c d"),
    ]
    destination = tmp_path / "out"
    monkeypatch.setattr(
        "sys.stdin", io.StringIO(_context(destination, chapters, {"ignores": ["Skip"]}))
    )
    assert main([]) == 0
    lines = (destination / "wordcounts.txt").read_text(encoding="utf-8").splitlines()
    assert [line.split(":")[0] for line in lines] == ["Keep"]


def test_main_denies_odd_counts(monkeypatch, capsys, tmp_path):
    chapters = [Chapter(name="Odd", content="just one")]
    chapters[0].content = "single"
    destination = tmp_path / "out"
    monkeypatch.setattr(
        "sys.stdin", io.StringIO(_context(destination, chapters, {"deny-odds": True}))
    )
    assert main([]) == 1
    assert "Odd has an odd number of words!" in capsys.readouterr().err


def test_main_rejects_bad_input(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("[]"))
    assert main([]) == 1
    assert "render context" in capsys.readouterr().err