"""Tests for prompt text preparation."""

from grindflow.utils.text import (
    TRUNCATION_MARKER,
    build_short_text,
    keyword_focused_slice,
    normalize_for_prompt,
    unescape_literal_controls,
)


class TestNormalizeForPrompt:

    def test_collapses_whitespace_and_drops_empty_lines(self):
        raw = "  Chapter   1  \r\n\r\n\n  Intro  to   systems \n   \n"

        assert normalize_for_prompt(raw) == "Chapter 1\nIntro to systems"

    def test_short_lines_kept_at_most_twice(self):
        raw = "\n".join(["Page 1", "Body text one", "page 1", "Body text two", "PAGE 1", "Body text three"])

        result = normalize_for_prompt(raw)

        assert result.lower().count("page 1") == 2
        assert "Body text three" in result

    def test_long_lines_are_never_deduplicated(self):
        line = "This sentence is long enough that it is not treated as a running header."
        raw = "\n".join([line] * 4)

        assert normalize_for_prompt(raw).count(line) == 4

    def test_idempotent(self):
        raw = "Header\n\n\nHeader\nHeader\n  Some   body   text  \n\tMore\t\ttext\nHeader"

        once = normalize_for_prompt(raw)

        assert normalize_for_prompt(once) == once

    def test_empty_input(self):
        assert normalize_for_prompt("") == ""
        assert normalize_for_prompt("   \n\n  ") == ""


class TestBuildShortText:

    def test_unchanged_when_within_budget(self):
        assert build_short_text("short text", 100) == "short text"

    def test_truncates_with_marker(self):
        text = "x" * 50

        result = build_short_text(text, 20)

        assert result == "x" * 20 + TRUNCATION_MARKER
        assert len(result) == 20 + len(TRUNCATION_MARKER)

    def test_empty_input(self):
        assert build_short_text("", 10) == ""


class TestKeywordFocusedSlice:

    def test_returns_only_matching_lines(self):
        lines = [f"Paging detail {i}" for i in range(6)] + ["Unrelated line about networking"]

        result = keyword_focused_slice("\n".join(lines), "paging, segmentation", 100)

        assert result is not None
        assert "networking" not in result
        assert result.count("\n") == 5

    def test_none_below_five_matches(self):
        text = "\n".join(["Paging one", "Paging two", "Other", "Other again"])

        assert keyword_focused_slice(text, "paging", 100) is None

    def test_none_without_keywords(self):
        assert keyword_focused_slice("anything", None, 100) is None
        assert keyword_focused_slice("anything", " , ", 100) is None

    def test_respects_line_cap(self):
        text = "\n".join(f"cache line {i}" for i in range(20))

        result = keyword_focused_slice(text, "CACHE", 8)

        assert len(result.split("\n")) == 8


def test_unescape_literal_controls():
    assert unescape_literal_controls("A\\nB\\tC") == "A\nB\tC"
    assert unescape_literal_controls("") == ""
