"""High-level Markdown <-> DOCX conversion orchestrator.

Ties together the block parser, document assembler, style manager and DOCX
renderer for the forward direction, and mammoth plus
:class:`~md2docx.reverse.ReverseAssembler` for the reverse direction.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from md2docx.assembler import DocumentAssembler
from md2docx.config import Settings, get_logger, load_settings
from md2docx.diagram import DiagramRenderer
from md2docx.parser import MarkdownParser
from md2docx.renderer import DocxRenderer
from md2docx.reverse import docx_to_markdown
from md2docx.style_manager import StyleManager

logger = get_logger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")
DOCX_SUFFIX = ".docx"


class Converter:
    """Convert Markdown content to DOCX and back.

    Usage::

        converter = Converter(style_preset="default")
        converter.convert_file("input.md", "output.docx")

        # or from string
        docx_bytes = converter.convert_text("# Hello")

        # and back
        markdown = converter.docx_file_to_markdown("output.docx")
    """

    STYLE_PRESETS = StyleManager.PRESETS

    def __init__(
        self,
        style_preset: str = "default",
        *,
        settings: Optional[Settings] = None,
        diagram_renderer: Optional[DiagramRenderer] = None,
        render_diagrams: bool = True,
    ) -> None:
        self.settings = settings or load_settings()
        self.style_manager = StyleManager(style_preset)
        self.parser = MarkdownParser()
        self.assembler = DocumentAssembler(
            diagram_renderer or DiagramRenderer(self.settings),
            self.settings,
            render_diagrams=render_diagrams,
        )
        self.renderer = DocxRenderer(self.style_manager)

    # -- Markdown -> DOCX ---------------------------------------------------

    async def convert_text_async(
        self, markdown_text: str, base_dir: str | Path = "."
    ) -> bytes:
        """Convert Markdown text to DOCX bytes.

        Args:
            markdown_text: Markdown source string.
            base_dir: Directory relative image paths are resolved against.

        Returns:
            DOCX file content as bytes.
        """
        blocks = self.parser.parse(markdown_text)
        logger.debug("Parsed %d blocks", len(blocks))
        elements = await self.assembler.assemble(blocks, base_dir)
        return self.renderer.render(elements)

    def convert_text(self, markdown_text: str, base_dir: str | Path = ".") -> bytes:
        """Synchronous wrapper around :meth:`convert_text_async`."""
        return asyncio.run(self.convert_text_async(markdown_text, base_dir))

    def convert_file(
        self,
        input_path: str | Path,
        output_path: str | Path,
        *,
        encoding: str = "utf-8",
    ) -> None:
        """Read a Markdown file and write the DOCX output.

        Relative image paths resolve against the input file's directory.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)

        md_text = input_path.read_text(encoding=encoding)
        docx_bytes = self.convert_text(md_text, base_dir=input_path.parent)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(docx_bytes)
        logger.info("Wrote %s (%d bytes)", output_path, len(docx_bytes))

    # -- DOCX -> Markdown ---------------------------------------------------

    def docx_file_to_markdown(
        self,
        input_path: str | Path,
        output_path: Optional[str | Path] = None,
        *,
        encoding: str = "utf-8",
    ) -> str:
        """Convert a DOCX file to Markdown, optionally writing it to *output_path*."""
        markdown = docx_to_markdown(Path(input_path))
        if output_path is not None:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(markdown + "\n", encoding=encoding)
            logger.info("Wrote %s", output_path)
        return markdown


def default_output_path(input_path: str | Path) -> Path:
    """Return the sibling path with the opposite format's suffix."""
    input_path = Path(input_path)
    if input_path.suffix.lower() == DOCX_SUFFIX:
        return input_path.with_suffix(".md")
    return input_path.with_suffix(DOCX_SUFFIX)
