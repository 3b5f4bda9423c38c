"""Tests for truncation, line-packing split, and markdown conversion."""

import random
import re
from html.parser import HTMLParser

import pytest

from formatter import (
    TRUNCATION_MARKERS,
    MessageFormatter,
    cut_html,
    markdown_to_telegram_html,
    split_message,
    truncate_message,
)
from models.message import Chunk


def _report(lines: int = 200, width: int = 44) -> str:
    """Build a report of ``lines`` lines, each ``width`` chars plus newline."""
    return "".join(f"{i:03d} " + "x" * (width - 4) + "\n" for i in range(lines))


def _bold_report(lines: int = 200) -> str:
    return "\n".join(f"{i}. **Trend number {i} & more** why it matters" for i in range(lines))


class _TagBalance(HTMLParser):
    """Collects tags left open or closed out of order."""

    def __init__(self):
        super().__init__(convert_charrefs=False)
        self.stack: list[str] = []
        self.mismatched: list[str] = []

    def handle_starttag(self, tag, attrs):
        self.stack.append(tag)

    def handle_endtag(self, tag):
        if self.stack and self.stack[-1] == tag:
            self.stack.pop()
        else:
            self.mismatched.append(tag)


def assert_valid_html(text: str) -> None:
    parser = _TagBalance()
    parser.feed(text)
    parser.close()
    assert parser.stack == [], f"unclosed tags: {parser.stack}"
    assert parser.mismatched == [], f"unmatched end tags: {parser.mismatched}"
    # Every & starts a complete entity and every < a complete tag
    assert not re.search(r"&(?!(?:amp|lt|gt|quot|#\d+);)", text)
    assert not re.search(r"<[^>]*$", text)


class TestTruncateMessage:
    def test_short_text_is_only_stripped(self):
        assert truncate_message("  hello \n", 4096) == "hello"

    def test_long_text_is_cut_with_marker(self):
        marker = TRUNCATION_MARKERS["en"]
        result = truncate_message("a" * 5000, 4096, marker)
        assert len(result) <= 4096
        assert result.endswith(marker)
        assert result == "a" * (4096 - len(marker)) + marker

    def test_exact_limit_is_untouched(self):
        assert truncate_message("b" * 4096, 4096) == "b" * 4096

    def test_marker_must_fit(self):
        with pytest.raises(ValueError):
            truncate_message("text", limit=5, marker="\n\n... [truncated]")


class TestSplitMessage:
    def test_empty_input_gives_no_chunks(self):
        assert split_message("", 4096) == []

    def test_short_text_is_single_chunk(self):
        chunks = split_message("line one\nline two", 4096)
        assert chunks == [Chunk(text="line one\nline two", index=1, total=1)]

    def test_report_of_9000_chars_over_200_lines(self):
        text = _report()
        assert len(text) == 9000
        assert text.count("\n") == 200

        chunks = split_message(text, 4096)

        assert len(chunks) >= 3
        assert all(len(chunk.text) <= 4096 for chunk in chunks)
        assert "".join(chunk.text for chunk in chunks) == text
        assert [chunk.index for chunk in chunks] == list(range(1, len(chunks) + 1))
        assert {chunk.total for chunk in chunks} == {len(chunks)}

    def test_chunks_end_on_line_boundaries(self):
        chunks = split_message(_report(), 4096)
        assert all(chunk.text.endswith("\n") for chunk in chunks)

    def test_oversized_line_is_hard_split(self):
        text = "ab\n" + "c" * 9 + "\n" + "d\n"
        chunks = split_message(text, 4)
        assert [chunk.text for chunk in chunks] == ["ab\n", "cccc", "cccc", "c\nd\n"]
        assert "".join(chunk.text for chunk in chunks) == text

    def test_single_line_without_newline(self):
        chunks = split_message("z" * 10, 4)
        assert [chunk.text for chunk in chunks] == ["zzzz", "zzzz", "zz"]

    @pytest.mark.parametrize("limit", [1, 7, 50, 333, 4096])
    def test_size_bound_and_reconstruction(self, limit: int):
        rng = random.Random(limit)
        for _ in range(20):
            lines = [
                "".join(rng.choice("abc дж🔥 ") for _ in range(rng.randint(0, limit * 2)))
                for _ in range(rng.randint(0, 30))
            ]
            text = "\n".join(lines)
            chunks = split_message(text, limit)
            assert all(0 < len(chunk.text) <= limit for chunk in chunks)
            assert "".join(chunk.text for chunk in chunks) == text

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            split_message("text", 0)


class TestCutHtml:
    def test_plain_text_is_cut_at_budget(self):
        assert cut_html("abcdef", 4) == ("abcd", "ef")

    def test_cut_backs_off_before_an_entity(self):
        assert cut_html("ab &amp; cd", 5) == ("ab ", "&amp; cd")

    def test_cut_backs_off_before_a_tag(self):
        text = 'x <a href="https://e.com">link</a>'
        assert cut_html(text, 10) == ("x ", '<a href="https://e.com">link</a>')

    def test_open_tags_are_closed_and_reopened(self):
        head, tail = cut_html("<b>bold text</b> tail", 12)
        assert head == "<b>bold </b>"
        assert tail == "<b>text</b> tail"
        assert_valid_html(head)

    def test_tag_longer_than_budget_still_makes_progress(self):
        text = '<a href="https://example.com/a/very/long/path">x</a>'
        head, tail = cut_html(text, 10)
        assert len(head) == 10
        assert head + tail == text


class TestChunkRender:
    def test_single_chunk_has_no_header(self):
        assert Chunk(text="hi", index=1, total=1).render() == "hi"

    def test_split_chunk_has_position_header(self):
        assert Chunk(text="hi", index=2, total=3).render() == "<b>[2/3]</b>\nhi"


class TestMarkdownToTelegramHtml:
    def test_inline_formatting(self):
        source = "**Bold** and *it* with `a<b>` & [link](https://x.com/a_b)"
        assert markdown_to_telegram_html(source) == (
            '<b>Bold</b> and <i>it</i> with <code>a&lt;b&gt;</code> &amp; '
            '<a href="https://x.com/a_b">link</a>'
        )

    def test_heading_becomes_bold_line(self):
        assert markdown_to_telegram_html("## Top trends\nbody") == "<b>Top trends</b>\nbody"

    def test_bullets_and_identifiers_are_left_alone(self):
        source = "* item one\n- snake_case_name"
        assert markdown_to_telegram_html(source) == source

    def test_underscore_italic(self):
        assert markdown_to_telegram_html("an _important_ note") == "an <i>important</i> note"

    def test_code_contents_are_not_formatted(self):
        assert markdown_to_telegram_html("`**raw**`") == "<code>**raw**</code>"


class TestMessageFormatter:
    def test_truncate_mode_russian_marker(self):
        formatter = MessageFormatter(mode="truncate", language="ru", convert_markdown=False)
        chunks = formatter.format("я" * 5000)
        assert len(chunks) == 1
        assert chunks[0].total == 1
        rendered = chunks[0].render()
        assert len(rendered) <= 4096
        assert rendered.endswith("\n\n... [обрезано]")

    def test_split_mode_fits_in_one_message(self):
        formatter = MessageFormatter(mode="split", language="en", convert_markdown=False)
        chunks = formatter.format("  short digest  \n")
        assert [chunk.render() for chunk in chunks] == ["short digest"]

    def test_split_mode_leaves_room_for_header(self):
        text = _report().strip()
        formatter = MessageFormatter(mode="split", language="en", convert_markdown=False)
        chunks = formatter.format(text)
        assert len(chunks) >= 3
        assert all(len(chunk.render()) <= 4096 for chunk in chunks)
        assert "".join(chunk.text for chunk in chunks) == text

    def test_converts_markdown_by_default(self):
        chunks = MessageFormatter(language="en").format("**Top** <5>")
        assert chunks[0].text == "<b>Top</b> &lt;5&gt;"

    def test_blank_text_gives_no_chunks(self):
        assert MessageFormatter().format(" \n\t ") == []

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            MessageFormatter(mode="stream")

    def test_from_config(self, config):
        config.message_mode = "truncate"
        formatter = MessageFormatter.from_config(config)
        assert formatter.mode == "truncate"
        assert formatter.marker == TRUNCATION_MARKERS["en"]
        assert MessageFormatter.from_config(config, mode="split").mode == "split"

    def test_truncate_never_breaks_markup(self):
        formatter = MessageFormatter(mode="truncate", language="en")
        chunks = formatter.format(_bold_report())
        assert len(chunks) == 1
        text = chunks[0].render()
        assert len(text) <= 4096
        assert text.endswith(TRUNCATION_MARKERS["en"])
        assert_valid_html(text)

    def test_hard_split_of_formatted_line_keeps_every_chunk_valid(self):
        digest = "**" + "word & " * 1000 + "end**\nlast line"
        chunks = MessageFormatter(mode="split", language="en").format(digest)
        assert len(chunks) >= 2
        for chunk in chunks:
            rendered = chunk.render()
            assert len(rendered) <= 4096
            assert_valid_html(rendered)

    def test_truncate_limit_must_exceed_marker(self):
        marker = TRUNCATION_MARKERS["en"]
        with pytest.raises(ValueError):
            MessageFormatter(mode="truncate", language="en", limit=len(marker))
        assert MessageFormatter(mode="truncate", language="en", limit=len(marker) + 1).limit == len(marker) + 1
