"""Render conversations as deterministic Markdown transcripts."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..models import Conversation, RenderedDocument, Turn

DEFAULT_FILENAME_STEM = "chatgpt_conversation"
MARKDOWN_EXTENSION = ".md"
MAX_FILENAME_STEM = 120

RE_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
RE_TURN_MARKER = re.compile(r"^<!-- Turn (\d+)/(\d+) · (.+) -->$")
COMMENT_OPEN = "<!--"
COMMENT_CLOSE = "-->"
RE_ILLEGAL_FILENAME = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
WINDOWS_RESERVED_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{index}" for index in range(1, 10)}
    | {f"LPT{index}" for index in range(1, 10)}
)


class _FenceTracker:
    """Follow fenced code block state line by line."""

    def __init__(self) -> None:
        self.open_fence: Optional[str] = None

    def feed(self, line: str) -> None:
        match = RE_FENCE.match(line)
        if not match:
            return
        fence, rest = match.group(1), match.group(2)
        if self.open_fence is None:
            if fence.startswith("`") and "`" in rest:
                return
            self.open_fence = fence
        elif (
            fence[0] == self.open_fence[0]
            and len(fence) >= len(self.open_fence)
            and not rest.strip()
        ):
            self.open_fence = None


def close_open_fence(text: str) -> str:
    """Append a closing fence when ``text`` ends inside a code block."""

    tracker = _FenceTracker()
    for line in text.split("\n"):
        tracker.feed(line)
    if tracker.open_fence is None:
        return text
    return f"{text}\n{tracker.open_fence}"


def _escape_comment_opener(line: str, column: int) -> str:
    return f"{line[:column]}&lt;!--{line[column + len(COMMENT_OPEN):]}"


def neutralize_markup(text: str) -> str:
    """Disarm content that would break the transcript structure.

    Outside fenced code, lines shaped like turn markers are escaped and an
    HTML comment left open at the end of ``text`` has its opener escaped.
    """

    lines = text.split("\n")
    tracker = _FenceTracker()
    open_comment: Optional[tuple[int, int]] = None
    for index, line in enumerate(lines):
        if tracker.open_fence is None:
            if RE_TURN_MARKER.match(line):
                lines[index] = "\\" + line
                continue
            position = 0
            while True:
                if open_comment is None:
                    start = line.find(COMMENT_OPEN, position)
                    if start == -1:
                        break
                    open_comment = (index, start)
                    position = start + len(COMMENT_OPEN)
                else:
                    end = line.find(COMMENT_CLOSE, position)
                    if end == -1:
                        break
                    open_comment = None
                    position = end + len(COMMENT_CLOSE)
        tracker.feed(line)

    if open_comment is not None:
        row, column = open_comment
        lines[row] = _escape_comment_opener(lines[row], column)
    return "\n".join(lines)


def _normalize_content(content: str) -> str:
    normalized = content.replace("\r\n", "\n").replace("\r", "\n")
    return close_open_fence(neutralize_markup(normalized.rstrip("\n")))


def _single_line(value: str) -> str:
    return " ".join(value.split())


def _marker_role(turn: Turn) -> str:
    return _single_line(turn.role_name).replace("--", "-") or "other"


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc_value = value.astimezone(timezone.utc)
    return utc_value.strftime("%Y-%m-%d %H:%M:%S UTC")


def _render_turn(turn: Turn, index: int, total: int) -> str:
    lines: List[str] = [
        f"<!-- Turn {index}/{total} · {_marker_role(turn)} -->",
        f"### {_single_line(turn.label)}",
    ]
    if turn.timestamp is not None:
        lines.append(f"_{_format_timestamp(turn.timestamp)}_")
    lines.append("")
    lines.append(_normalize_content(turn.content))
    return "\n".join(lines)


def _sanitize_stem(value: str) -> str:
    stem = _single_line(RE_ILLEGAL_FILENAME.sub(" ", value))
    stem = stem[:MAX_FILENAME_STEM].strip(" .")
    if stem.split(".")[0].upper() in WINDOWS_RESERVED_NAMES:
        stem = f"_{stem}"
    return stem


def suggest_filename(title: Optional[str], share_id: str) -> str:
    """Return a filesystem-safe ``.md`` filename for a conversation."""

    for candidate in (title, share_id):
        stem = _sanitize_stem(candidate or "")
        if stem:
            return stem + MARKDOWN_EXTENSION
    return DEFAULT_FILENAME_STEM + MARKDOWN_EXTENSION


def render_text(conversation: Conversation) -> str:
    """Return the Markdown transcript for ``conversation``."""

    source = _single_line(conversation.source_url)
    header: List[str] = [f"**Source**: {source}", ""]
    if conversation.title:
        header.extend([f"# {_single_line(conversation.title)}", ""])

    total = len(conversation.turns)
    blocks = [
        _render_turn(turn, index, total)
        for index, turn in enumerate(conversation.turns, start=1)
    ]
    return "\n".join(header) + "\n" + "\n\n".join(blocks) + "\n"


def render(conversation: Conversation) -> RenderedDocument:
    """Render ``conversation`` into Markdown plus a suggested filename."""

    return RenderedDocument(
        text=render_text(conversation),
        filename=suggest_filename(
            conversation.title, conversation.share_id
        ),
    )


def read_role_sequence(text: str) -> List[str]:
    """Recover the ordered role names from a rendered transcript.

    Markers inside fenced code and markers whose index does not continue the
    sequence are ignored, so quoted transcripts in message content do not
    leak into the result.
    """

    roles: List[str] = []
    tracker = _FenceTracker()
    for line in _lines(text):
        if tracker.open_fence is None:
            match = RE_TURN_MARKER.match(line)
            if match and int(match.group(1)) == len(roles) + 1:
                roles.append(match.group(3))
                continue
        tracker.feed(line)
    return roles


def _lines(text: str) -> Iterable[str]:
    return text.replace("\r\n", "\n").split("\n")


__all__ = [
    "DEFAULT_FILENAME_STEM",
    "close_open_fence",
    "neutralize_markup",
    "read_role_sequence",
    "render",
    "render_text",
    "suggest_filename",
]
