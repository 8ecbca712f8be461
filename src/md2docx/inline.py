"""Inline Markdown segmentation.

Splits one line of block text into styled runs.  Recognised constructs, tried
in this order at every position: ``**bold**``, ``*italic*``, ```code```` and
``[text](href)``.  Matches never overlap and never nest; everything else is
plain text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class SegmentKind(Enum):
    PLAIN = "plain"
    BOLD = "bold"
    ITALIC = "italic"
    CODE = "code"
    LINK = "link"


@dataclass(frozen=True)
class InlineSegment:
    kind: SegmentKind
    text: str
    href: Optional[str] = None


_Match = Optional[tuple[InlineSegment, int]]


# ---------------------------------------------------------------------------
# Construct matchers: each returns (segment, end index) or None
# ---------------------------------------------------------------------------

def _match_bold(text: str, pos: int) -> _Match:
    if not text.startswith("**", pos):
        return None
    close = text.find("*", pos + 2)
    if close <= pos + 2 or not text.startswith("**", close):
        return None
    return InlineSegment(SegmentKind.BOLD, text[pos + 2:close]), close + 2


def _match_italic(text: str, pos: int) -> _Match:
    if text[pos] != "*":
        return None
    close = text.find("*", pos + 1)
    if close <= pos + 1:
        return None
    return InlineSegment(SegmentKind.ITALIC, text[pos + 1:close]), close + 1


def _match_code(text: str, pos: int) -> _Match:
    if text[pos] != "`":
        return None
    close = text.find("`", pos + 1)
    if close <= pos + 1:
        return None
    return InlineSegment(SegmentKind.CODE, text[pos + 1:close]), close + 1


def _match_link(text: str, pos: int) -> _Match:
    if text[pos] != "[":
        return None
    label_end = text.find("]", pos + 1)
    if label_end <= pos + 1 or not text.startswith("(", label_end + 1):
        return None
    href_end = text.find(")", label_end + 2)
    if href_end <= label_end + 2:
        return None
    segment = InlineSegment(
        SegmentKind.LINK,
        text[pos + 1:label_end],
        href=text[label_end + 2:href_end],
    )
    return segment, href_end + 1


_MATCHERS: tuple[Callable[[str, int], _Match], ...] = (
    _match_bold,
    _match_italic,
    _match_code,
    _match_link,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_inline(text: str) -> list[InlineSegment]:
    """Return the styled segments of *text*.

    Always returns at least one segment; empty input yields a single empty
    plain segment.
    """
    if not text:
        return [InlineSegment(SegmentKind.PLAIN, "")]

    segments: list[InlineSegment] = []
    plain_start = 0
    pos = 0
    while pos < len(text):
        found = _match_at(text, pos)
        if found is None:
            pos += 1
            continue
        segment, end = found
        if pos > plain_start:
            segments.append(InlineSegment(SegmentKind.PLAIN, text[plain_start:pos]))
        segments.append(segment)
        pos = plain_start = end

    if plain_start < len(text):
        segments.append(InlineSegment(SegmentKind.PLAIN, text[plain_start:]))
    return segments


def _match_at(text: str, pos: int) -> _Match:
    for matcher in _MATCHERS:
        found = matcher(text, pos)
        if found is not None:
            return found
    return None
