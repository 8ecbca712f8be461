"""Line-oriented Markdown block parser.

Produces the flat block sequence consumed by
:class:`~md2docx.assembler.DocumentAssembler`.  This is deliberately not a
CommonMark engine: it recognises the handful of constructs the DOCX output
supports and degrades everything else to paragraph text.

Construct checks run in a fixed order at each line (heading, rule, fence,
blockquote, list, table, image, paragraph); a later construct is only tried
when every earlier one failed.

A line holding image syntax anywhere becomes an image block (text around
it is dropped), but only a line starting with ``![`` ends a running
paragraph.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union


# ---------------------------------------------------------------------------
# Block definitions
# ---------------------------------------------------------------------------

class BlockKind(Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE = "code"
    DIAGRAM = "diagram"
    LIST = "list"
    TABLE = "table"
    BLOCKQUOTE = "blockquote"
    RULE = "rule"
    IMAGE = "image"


class Dialect(Enum):
    MERMAID = "mermaid"
    PLANTUML = "plantuml"


@dataclass(frozen=True)
class HeadingBlock:
    kind: ClassVar[BlockKind] = BlockKind.HEADING
    level: int
    text: str


@dataclass(frozen=True)
class ParagraphBlock:
    kind: ClassVar[BlockKind] = BlockKind.PARAGRAPH
    text: str


@dataclass(frozen=True)
class CodeBlock:
    kind: ClassVar[BlockKind] = BlockKind.CODE
    text: str
    language: str = ""


@dataclass(frozen=True)
class DiagramBlock:
    kind: ClassVar[BlockKind] = BlockKind.DIAGRAM
    dialect: Dialect
    source: str


@dataclass(frozen=True)
class ListBlock:
    kind: ClassVar[BlockKind] = BlockKind.LIST
    items: tuple[str, ...]
    ordered: bool = False


@dataclass(frozen=True)
class TableBlock:
    """A pipe table; ``rows[0]`` is the header row."""

    kind: ClassVar[BlockKind] = BlockKind.TABLE
    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class BlockquoteBlock:
    kind: ClassVar[BlockKind] = BlockKind.BLOCKQUOTE
    text: str


@dataclass(frozen=True)
class RuleBlock:
    kind: ClassVar[BlockKind] = BlockKind.RULE


@dataclass(frozen=True)
class ImageBlock:
    kind: ClassVar[BlockKind] = BlockKind.IMAGE
    alt_text: str
    target: str


Block = Union[
    HeadingBlock,
    ParagraphBlock,
    CodeBlock,
    DiagramBlock,
    ListBlock,
    TableBlock,
    BlockquoteBlock,
    RuleBlock,
    ImageBlock,
]


# ---------------------------------------------------------------------------
# Line patterns
# ---------------------------------------------------------------------------

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_RULE_RE = re.compile(r"^(-{3,}|\*{3,}|_{3,})$")
_UNORDERED_RE = re.compile(r"^[-*+]\s")
_ORDERED_RE = re.compile(r"^\d+\.\s")
_TABLE_SEPARATOR_RE = re.compile(
    r"^\s*\|?\s*:?-{3,}:?(?:\s*\|\s*:?-{3,}:?)*\s*\|?\s*$"
)
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_PLANTUML_PAIR_RE = re.compile(r"@startuml[\s\S]*@enduml")

FENCE = "```"
MAX_PARAGRAPH_LINES = 1000


def split_table_row(line: str) -> tuple[str, ...]:
    """Split a pipe-table row into trimmed cells, ignoring outer pipes."""
    normalized = line.strip()
    if normalized.startswith("|"):
        normalized = normalized[1:]
    if normalized.endswith("|"):
        normalized = normalized[:-1]
    return tuple(cell.strip() for cell in normalized.split("|"))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class MarkdownParser:
    """Parse Markdown text into a list of :data:`Block` values."""

    def parse(self, markdown_text: str) -> list[Block]:
        """Return the blocks of *markdown_text* in source order."""
        lines = markdown_text.replace("\r\n", "\n").split("\n")
        blocks: list[Block] = []
        i = 0
        while i < len(lines):
            block, i = self._parse_block(lines, i)
            if block is not None:
                blocks.append(block)
        return blocks

    # -- dispatch -----------------------------------------------------------

    def _parse_block(self, lines: list[str], i: int) -> tuple[Optional[Block], int]:
        line = lines[i]

        heading = _HEADING_RE.match(line)
        if heading:
            return HeadingBlock(level=len(heading.group(1)), text=heading.group(2).strip()), i + 1

        if self._is_rule(line):
            return RuleBlock(), i + 1

        if self._is_fence(line):
            return self._parse_fence(lines, i)

        if self._is_blockquote(line):
            return self._parse_blockquote(lines, i)

        if _UNORDERED_RE.match(line):
            return self._parse_list(lines, i, _UNORDERED_RE, ordered=False)

        if _ORDERED_RE.match(line):
            return self._parse_list(lines, i, _ORDERED_RE, ordered=True)

        if self._starts_table(lines, i):
            return self._parse_table(lines, i)

        image = _IMAGE_RE.search(line)
        if image:
            return ImageBlock(alt_text=image.group(1), target=image.group(2)), i + 1

        if line.strip():
            return self._parse_paragraph(lines, i)

        return None, i + 1

    # -- predicates ---------------------------------------------------------

    @staticmethod
    def _is_rule(line: str) -> bool:
        return bool(_RULE_RE.match(line.strip()))

    @staticmethod
    def _is_fence(line: str) -> bool:
        return line.startswith(FENCE)

    @staticmethod
    def _is_blockquote(line: str) -> bool:
        return line.startswith(">")

    @staticmethod
    def _starts_table(lines: list[str], i: int) -> bool:
        return (
            "|" in lines[i]
            and i + 1 < len(lines)
            and bool(_TABLE_SEPARATOR_RE.match(lines[i + 1].strip()))
        )

    def _starts_block(self, lines: list[str], i: int) -> bool:
        """True if line *i* ends a running paragraph."""
        line = lines[i]
        return (
            bool(_HEADING_RE.match(line))
            or self._is_rule(line)
            or self._is_fence(line)
            or self._is_blockquote(line)
            or bool(_UNORDERED_RE.match(line))
            or bool(_ORDERED_RE.match(line))
            or self._starts_table(lines, i)
            or line.startswith("![")
        )

    # -- construct parsers --------------------------------------------------

    def _parse_fence(self, lines: list[str], i: int) -> tuple[Block, int]:
        language = lines[i][len(FENCE):].strip().lower()
        body: list[str] = []
        i += 1
        while i < len(lines) and not self._is_fence(lines[i]):
            body.append(lines[i])
            i += 1
        # Skip the closing fence; an unterminated fence runs to end of input.
        i += 1
        content = "\n".join(body)

        if language == Dialect.MERMAID.value:
            return DiagramBlock(dialect=Dialect.MERMAID, source=content), i
        if language in ("plantuml", "uml") or _PLANTUML_PAIR_RE.search(content):
            return DiagramBlock(dialect=Dialect.PLANTUML, source=content), i
        return CodeBlock(text=content, language=language), i

    def _parse_blockquote(self, lines: list[str], i: int) -> tuple[Block, int]:
        quoted: list[str] = []
        while i < len(lines) and self._is_blockquote(lines[i]):
            text = lines[i][1:]
            if text[:1] in (" ", "\t"):
                text = text[1:]
            quoted.append(text)
            i += 1
        return BlockquoteBlock(text="\n".join(quoted)), i

    def _parse_list(
        self, lines: list[str], i: int, bullet: re.Pattern[str], *, ordered: bool
    ) -> tuple[Block, int]:
        items: list[str] = []
        while i < len(lines):
            match = bullet.match(lines[i])
            if not match:
                break
            items.append(lines[i][match.end():])
            i += 1
        return ListBlock(items=tuple(items), ordered=ordered), i

    def _parse_table(self, lines: list[str], i: int) -> tuple[Block, int]:
        rows = [split_table_row(lines[i])]
        i += 2  # header + separator
        while i < len(lines) and "|" in lines[i]:
            rows.append(split_table_row(lines[i]))
            i += 1
        return TableBlock(rows=tuple(rows)), i

    def _parse_paragraph(self, lines: list[str], i: int) -> tuple[Block, int]:
        collected = [lines[i]]
        i += 1
        while (
            i < len(lines)
            and lines[i].strip()
            and not self._starts_block(lines, i)
            and len(collected) < MAX_PARAGRAPH_LINES
        ):
            collected.append(lines[i])
            i += 1
        return ParagraphBlock(text=" ".join(collected)), i


def parse_blocks(markdown_text: str) -> list[Block]:
    """Parse *markdown_text* with a fresh :class:`MarkdownParser`."""
    return MarkdownParser().parse(markdown_text)
