"""Document elements produced by the assembler and consumed by the renderer.

Elements are format-neutral: paragraphs name a semantic style (resolved by
:class:`~md2docx.style_manager.StyleManager`) and carry only the structural
attributes the Markdown construct implies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class TextRun:
    text: str
    bold: bool = False
    italic: bool = False
    monospace: bool = False
    href: Optional[str] = None


@dataclass(frozen=True)
class StyledParagraph:
    runs: tuple[TextRun, ...]
    style: str = "body"
    heading_level: int = 0
    indent_level: int = 0
    left_border: bool = False
    bottom_border: bool = False
    shaded: bool = False

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class TableElement:
    """A grid of cells; each cell is a tuple of runs and ``rows[0]`` is the header."""

    rows: tuple[tuple[tuple[TextRun, ...], ...], ...]
    header_shaded: bool = True


@dataclass(frozen=True)
class ImageElement:
    data: bytes
    width: int
    height: int
    alt_text: str = ""
    title: str = ""
    target: str = ""


@dataclass(frozen=True)
class HiddenTextParagraph:
    """A paragraph invisible in the document, carrying a diagram marker."""

    text: str


DocumentElement = Union[StyledParagraph, TableElement, ImageElement, HiddenTextParagraph]
