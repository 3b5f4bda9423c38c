"""Message formatting for the Telegram channel.

The summarizer returns markdown; the channel accepts at most 4096
characters of HTML per message. This module bridges the two.

Modes:
    truncate: One message. Text longer than the limit is cut and ends
              with a language-specific truncation marker.
    split:    Greedy line packing into as many chunks as needed. Every
              line keeps its newline, so joining the chunk texts gives
              back the input, apart from tags closed and reopened around
              a cut inside a line. A line longer than the limit is cut at
              the last position outside any tag or entity.

Markdown conversion only produces tags that open and close on the same
line, so line-based splitting never separates a tag pair. Where a cut has
to fall inside a line, tags still open at the cut are closed before it
and reopened after it, so every chunk is valid HTML on its own.
"""

import html
import re

from config import MESSAGE_MODES, TELEGRAM_MESSAGE_LIMIT
from models.message import PART_HEADER_RESERVE, Chunk

TRUNCATION_MARKERS = {
    "ru": "\n\n... [обрезано]",
    "en": "\n\n... [truncated]",
}

# Lines with their trailing newline; the last line may have none
_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")

_HEADING_RE = re.compile(r"^#{1,6}[ \t]+(.+?)[ \t#]*$", re.MULTILINE)
_CODE_RE = re.compile(r"`([^`\n]+)`")
_LINK_RE = re.compile(r"\[([^\]\n]+)\]\(([^)\s\"]+)\)")
_BOLD_RE = re.compile(r"\*\*([^*\n]+?)\*\*|__([^_\n]+?)__")
_ITALIC_STAR_RE = re.compile(r"(?<![*\w])\*(?![\s*])([^*\n]+?)\*(?!\*)")
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<![_\w])_(?![\s_])([^_\n]+?)_(?![_\w])")
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")

# Tags, entities, plain-text runs, and stray markup characters
_HTML_TOKEN_RE = re.compile(
    r"(?P<tag><(?P<close>/?)(?P<name>[a-zA-Z][\w-]*)[^<>]*>)"
    r"|(?P<entity>&#?\w+;)"
    r"|(?P<text>[^<&]+)"
    r"|[<&]"
)


def _closing(open_tags: list[tuple[str, str]]) -> str:
    return "".join(f"</{name}>" for name, _ in reversed(open_tags))


def cut_html(text: str, budget: int) -> tuple[str, str]:
    """Cut HTML into a head of at most ``budget`` chars and the remaining tail.

    The cut never lands inside a tag or an entity. Tags open at the cut are
    closed at the end of the head and reopened at the start of the tail.
    Falls back to a plain character cut when no markup-safe cut makes
    progress (a single tag longer than the budget).
    """
    head: list[str] = []
    open_tags: list[tuple[str, str]] = []
    size = 0
    cut = 0
    for match in _HTML_TOKEN_RE.finditer(text):
        token = match.group(0)
        after = open_tags
        if match.group("name"):
            name = match.group("name").lower()
            if not match.group("close"):
                after = open_tags + [(name, token)]
            elif open_tags and open_tags[-1][0] == name:
                after = open_tags[:-1]
        room = budget - size - len(_closing(after))
        if len(token) > room:
            if match.group("text") and room > 0:
                head.append(token[:room])
                cut = match.start() + room
            break
        head.append(token)
        size += len(token)
        open_tags = after
        cut = match.end()

    reopen = "".join(tag for _, tag in open_tags)
    if cut <= len(reopen):
        return text[:budget], text[budget:]
    return "".join(head) + _closing(open_tags), reopen + text[cut:]


def truncate_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT, marker: str = TRUNCATION_MARKERS["ru"]) -> str:
    """Trim whitespace and cut to the limit, appending ``marker`` if cut.

    The result is never longer than ``limit`` and the cut never breaks a
    tag or an entity.
    """
    if len(marker) >= limit:
        raise ValueError(f"Truncation marker ({len(marker)} chars) does not fit limit {limit}")
    text = text.strip()
    if len(text) <= limit:
        return text
    head, _ = cut_html(text, limit - len(marker))
    return head + marker


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[Chunk]:
    """Split text into ordered chunks of at most ``limit`` characters.

    Lines are packed greedily. When the next line does not fit, the current
    chunk is closed and the line starts a new one. Oversized lines are cut
    at ``limit`` (without breaking markup) and their remainder carries on
    in the accumulator.

    Returns:
        Chunks numbered from 1; empty list for empty input
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    parts: list[str] = []
    current = ""
    for line in _LINE_RE.findall(text):
        if len(current) + len(line) <= limit:
            current += line
            continue
        if current:
            parts.append(current)
        while len(line) > limit:
            head, line = cut_html(line, limit)
            parts.append(head)
        current = line
    if current:
        parts.append(current)

    total = len(parts)
    return [Chunk(text=part, index=i, total=total) for i, part in enumerate(parts, start=1)]


def markdown_to_telegram_html(text: str) -> str:
    """Convert the digest's markdown subset into Telegram HTML.

    Escapes ``& < >`` first, then maps headings, bold, italic, inline code
    and links. Code spans and links are set aside while emphasis is
    converted so their contents are left alone.
    """
    stash: list[str] = []

    def _keep(fragment: str) -> str:
        stash.append(fragment)
        return f"\x00{len(stash) - 1}\x00"

    out = html.escape(text, quote=False)
    out = _CODE_RE.sub(lambda m: _keep(f"<code>{m.group(1)}</code>"), out)
    out = _LINK_RE.sub(lambda m: _keep(f'<a href="{m.group(2)}">{m.group(1)}</a>'), out)
    out = _HEADING_RE.sub(r"<b>\1</b>", out)
    out = _BOLD_RE.sub(lambda m: f"<b>{m.group(1) or m.group(2)}</b>", out)
    out = _ITALIC_STAR_RE.sub(r"<i>\1</i>", out)
    out = _ITALIC_UNDERSCORE_RE.sub(r"<i>\1</i>", out)
    return _PLACEHOLDER_RE.sub(lambda m: stash[int(m.group(1))], out)


class MessageFormatter:
    """Turns a generated digest into channel-ready chunks.

    Example:
        >>> formatter = MessageFormatter(mode="split", language="ru")
        >>> chunks = formatter.format(result.text)
        >>> [chunk.render() for chunk in chunks]
    """

    def __init__(
        self,
        mode: str = "split",
        language: str = "ru",
        limit: int = TELEGRAM_MESSAGE_LIMIT,
        convert_markdown: bool = True,
    ):
        if mode not in MESSAGE_MODES:
            raise ValueError(f"Unknown message mode '{mode}'")
        if mode == "split" and limit <= PART_HEADER_RESERVE:
            raise ValueError(f"limit must exceed {PART_HEADER_RESERVE} in split mode")
        self.mode = mode
        self.language = language
        self.limit = limit
        self.convert_markdown = convert_markdown
        self.marker = TRUNCATION_MARKERS.get(language, TRUNCATION_MARKERS["en"])
        if mode == "truncate" and limit <= len(self.marker):
            raise ValueError(f"limit must exceed {len(self.marker)} in truncate mode")

    @classmethod
    def from_config(cls, config, mode: str | None = None) -> "MessageFormatter":
        return cls(
            mode=mode or config.message_mode,
            language=config.language,
            limit=config.message_limit,
            convert_markdown=config.convert_markdown,
        )

    def prepare(self, text: str) -> str:
        """Strip and optionally convert the digest to HTML."""
        text = text.strip()
        if self.convert_markdown:
            text = markdown_to_telegram_html(text)
        return text

    def format(self, text: str) -> list[Chunk]:
        """Format a digest into chunks according to the configured mode."""
        body = self.prepare(text)
        if not body:
            return []
        if self.mode == "truncate":
            return [Chunk(text=truncate_message(body, self.limit, self.marker), index=1, total=1)]
        if len(body) <= self.limit:
            return [Chunk(text=body, index=1, total=1)]
        # Leave room for the [i/n] header that render() prepends
        return split_message(body, self.limit - PART_HEADER_RESERVE)
