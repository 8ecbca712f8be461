"""Turn parsed Markdown blocks into document elements.

Diagram blocks are rasterised through :class:`~md2docx.diagram.DiagramRenderer`
and followed by a hidden marker paragraph so the source survives in the
generated document.  Any diagram or image that cannot be produced degrades to
text; one bad element never aborts the document.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Sequence, assert_never

from md2docx.config import Settings, get_logger, load_settings
from md2docx.diagram import DiagramRenderer, SessionLike
from md2docx.elements import (
    DocumentElement,
    HiddenTextParagraph,
    ImageElement,
    StyledParagraph,
    TableElement,
    TextRun,
)
from md2docx.inline import SegmentKind, parse_inline
from md2docx.marker import encode_marker
from md2docx.media import probe_image_size, scale_to_max_width
from md2docx.parser import (
    Block,
    BlockquoteBlock,
    CodeBlock,
    DiagramBlock,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    ParagraphBlock,
    RuleBlock,
    TableBlock,
)

logger = get_logger(__name__)

DIAGRAM_TITLE = "MDX Diagram"
UNORDERED_BULLET = "• "


def inline_runs(text: str) -> tuple[TextRun, ...]:
    """Convert inline Markdown to runs (always at least one)."""
    runs: list[TextRun] = []
    for segment in parse_inline(text):
        if segment.kind is SegmentKind.BOLD:
            runs.append(TextRun(segment.text, bold=True))
        elif segment.kind is SegmentKind.ITALIC:
            runs.append(TextRun(segment.text, italic=True))
        elif segment.kind is SegmentKind.CODE:
            runs.append(TextRun(segment.text, monospace=True))
        elif segment.kind is SegmentKind.LINK:
            runs.append(TextRun(segment.text, href=segment.href))
        else:
            runs.append(TextRun(segment.text))
    return tuple(runs)


def code_paragraph(text: str) -> StyledParagraph:
    """A literal fixed-width paragraph with a shaded background."""
    return StyledParagraph(
        runs=(TextRun(text, monospace=True),),
        style="code_block",
        shaded=True,
    )


class DocumentAssembler:
    """Assemble :data:`~md2docx.parser.Block` sequences into elements.

    Usage::

        assembler = DocumentAssembler()
        elements = await assembler.assemble(blocks, base_dir="docs/")
    """

    def __init__(
        self,
        renderer: Optional[DiagramRenderer] = None,
        settings: Optional[Settings] = None,
        *,
        render_diagrams: bool = True,
    ) -> None:
        self.settings = settings or load_settings()
        self.renderer = renderer or DiagramRenderer(self.settings)
        self.render_diagrams = render_diagrams

    # -- public API ---------------------------------------------------------

    async def assemble(
        self, blocks: Sequence[Block], base_dir: str | Path
    ) -> list[DocumentElement]:
        """Return the document elements for *blocks*, in source order."""
        base_dir = Path(base_dir)
        has_diagrams = any(isinstance(block, DiagramBlock) for block in blocks)

        elements: list[DocumentElement] = []
        async with self._diagram_session(has_diagrams) as session:
            for block in blocks:
                logger.debug("Assembling %s block", block.kind.value)
                elements.extend(await self._assemble_block(block, base_dir, session))
        return elements

    @asynccontextmanager
    async def _diagram_session(self, needed: bool) -> AsyncIterator[Optional[SessionLike]]:
        if not (needed and self.render_diagrams):
            yield None
            return
        async with self.renderer.session() as session:
            if session is None:
                logger.warning("No browser session; diagrams will be kept as text")
            yield session

    # -- dispatch -----------------------------------------------------------

    async def _assemble_block(
        self, block: Block, base_dir: Path, session: Optional[SessionLike]
    ) -> list[DocumentElement]:
        if isinstance(block, HeadingBlock):
            return [StyledParagraph(
                runs=inline_runs(block.text),
                style=f"heading_{block.level}",
                heading_level=block.level,
            )]
        if isinstance(block, ParagraphBlock):
            return [StyledParagraph(runs=inline_runs(block.text))]
        if isinstance(block, BlockquoteBlock):
            return [StyledParagraph(
                runs=inline_runs(block.text),
                style="blockquote",
                indent_level=1,
                left_border=True,
            )]
        if isinstance(block, CodeBlock):
            return [code_paragraph(block.text)]
        if isinstance(block, DiagramBlock):
            return await self._assemble_diagram(block, session)
        if isinstance(block, ListBlock):
            return self._assemble_list(block)
        if isinstance(block, TableBlock):
            return self._assemble_table(block)
        if isinstance(block, RuleBlock):
            return [StyledParagraph(
                runs=(TextRun(""),),
                style="horizontal_rule",
                bottom_border=True,
            )]
        if isinstance(block, ImageBlock):
            return [await self._assemble_image(block, base_dir)]
        assert_never(block)

    # -- per-kind builders --------------------------------------------------

    async def _assemble_diagram(
        self, block: DiagramBlock, session: Optional[SessionLike]
    ) -> list[DocumentElement]:
        if session is not None and block.source:
            try:
                image = await self.renderer.render(block.dialect, block.source, session)
            except Exception:
                logger.warning("%s diagram render failed", block.dialect.value, exc_info=True)
                image = None
            if image is not None:
                marker = encode_marker(block.dialect.value, block.source)
                size = scale_to_max_width(image.width, image.height, self.settings.max_image_width)
                return [
                    ImageElement(
                        data=image.data,
                        width=size.width,
                        height=size.height,
                        alt_text=marker,
                        title=DIAGRAM_TITLE,
                    ),
                    HiddenTextParagraph(text=marker),
                ]
        return [code_paragraph(block.source)]

    def _assemble_list(self, block: ListBlock) -> list[DocumentElement]:
        elements: list[DocumentElement] = []
        for number, item in enumerate(block.items, start=1):
            bullet = f"{number}. " if block.ordered else UNORDERED_BULLET
            elements.append(StyledParagraph(
                runs=(TextRun(bullet),) + inline_runs(item),
                style="list_item",
                indent_level=1,
            ))
        return elements

    def _assemble_table(self, block: TableBlock) -> list[DocumentElement]:
        if not block.rows:
            return []
        rows = tuple(
            tuple(inline_runs(cell) for cell in row)
            for row in block.rows
        )
        return [TableElement(rows=rows, header_shaded=True)]

    async def _assemble_image(self, block: ImageBlock, base_dir: Path) -> DocumentElement:
        target = Path(block.target)
        path = target if target.is_absolute() else base_dir / target
        try:
            data = await asyncio.to_thread(path.read_bytes)
            size = probe_image_size(data)
        except (OSError, ValueError) as exc:
            logger.warning("Image %s not embedded: %s", block.target, exc)
            return StyledParagraph(
                runs=(TextRun(f"[Image: {block.alt_text or block.target}]", italic=True),)
            )
        if size is None:
            width, height = self.settings.default_image_size
        else:
            width, height = size.width, size.height
        scaled = scale_to_max_width(width, height, self.settings.max_image_width)
        return ImageElement(
            data=data,
            width=scaled.width,
            height=scaled.height,
            alt_text=block.alt_text,
            target=block.target,
        )
