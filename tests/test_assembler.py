"""Tests for block-to-element assembly."""

from __future__ import annotations

from typing import Optional

import pytest

from conftest import FakePage, SessionFactory, make_png
from md2docx.assembler import (
    DIAGRAM_TITLE,
    DocumentAssembler,
    code_paragraph,
    inline_runs,
)
from md2docx.config import Settings
from md2docx.diagram import DiagramImage, DiagramRenderer
from md2docx.elements import (
    HiddenTextParagraph,
    ImageElement,
    StyledParagraph,
    TableElement,
    TextRun,
)
from md2docx.marker import decode_marker
from md2docx.parser import (
    BlockquoteBlock,
    CodeBlock,
    DiagramBlock,
    Dialect,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    ParagraphBlock,
    RuleBlock,
    TableBlock,
)


class StubRenderer(DiagramRenderer):
    """Renderer whose sessions and renders are scripted per test."""

    def __init__(self, settings: Settings, results: list[Optional[object]]) -> None:
        self.factory = SessionFactory(lambda: FakePage([None]))
        super().__init__(settings, session_factory=self.factory)
        self.results = list(results)
        self.calls: list[tuple[Dialect, str, object]] = []

    async def render(self, dialect, source, session=None):
        self.calls.append((dialect, source, session))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _image(width: int = 116, height: int = 66) -> DiagramImage:
    return DiagramImage(data=make_png(width, height), width=width, height=height)


class TestInlineRuns:

    def test_styles(self):
        runs = inline_runs("a **b** *c* `d` [e](http://f)")
        assert runs == (
            TextRun("a "),
            TextRun("b", bold=True),
            TextRun(" "),
            TextRun("c", italic=True),
            TextRun(" "),
            TextRun("d", monospace=True),
            TextRun(" "),
            TextRun("e", href="http://f"),
        )

    def test_empty(self):
        assert inline_runs("") == (TextRun(""),)


@pytest.mark.asyncio
class TestTextBlocks:

    @pytest.fixture
    def assembler(self, settings):
        return DocumentAssembler(settings=settings, render_diagrams=False)

    async def test_heading(self, assembler, tmp_path):
        [element] = await assembler.assemble([HeadingBlock(level=2, text="Title")], tmp_path)
        assert element.style == "heading_2"
        assert element.heading_level == 2
        assert element.text == "Title"

    async def test_paragraph(self, assembler, tmp_path):
        [element] = await assembler.assemble([ParagraphBlock(text="hi **there**")], tmp_path)
        assert element.style == "body"
        assert element.runs[1] == TextRun("there", bold=True)

    async def test_blockquote(self, assembler, tmp_path):
        [element] = await assembler.assemble([BlockquoteBlock(text="quoted")], tmp_path)
        assert element.style == "blockquote"
        assert element.left_border
        assert element.indent_level == 1

    async def test_code(self, assembler, tmp_path):
        [element] = await assembler.assemble([CodeBlock(text="x = 1", language="py")], tmp_path)
        assert element == code_paragraph("x = 1")
        assert element.shaded
        assert element.runs[0].monospace

    async def test_lists(self, assembler, tmp_path):
        blocks = [
            ListBlock(items=("a", "b"), ordered=False),
            ListBlock(items=("one", "two"), ordered=True),
        ]
        elements = await assembler.assemble(blocks, tmp_path)
        assert [e.text for e in elements] == ["• a", "• b", "1. one", "2. two"]
        assert all(e.indent_level == 1 for e in elements)

    async def test_table(self, assembler, tmp_path):
        block = TableBlock(rows=(("Name", "Score"), ("**Alice**", "10")))
        [element] = await assembler.assemble([block], tmp_path)
        assert isinstance(element, TableElement)
        assert element.header_shaded
        assert element.rows[0] == ((TextRun("Name"),), (TextRun("Score"),))
        assert element.rows[1][0] == (TextRun("Alice", bold=True),)

    async def test_rule(self, assembler, tmp_path):
        [element] = await assembler.assemble([RuleBlock()], tmp_path)
        assert element.bottom_border
        assert element.text == ""


@pytest.mark.asyncio
class TestImages:

    @pytest.fixture
    def assembler(self, settings):
        return DocumentAssembler(settings=settings, render_diagrams=False)

    async def test_relative_png(self, assembler, tmp_path):
        (tmp_path / "img").mkdir()
        (tmp_path / "img" / "chart.png").write_bytes(make_png(320, 180))
        [element] = await assembler.assemble(
            [ImageBlock(alt_text="Chart", target="img/chart.png")], tmp_path
        )
        assert isinstance(element, ImageElement)
        assert (element.width, element.height) == (320, 180)
        assert element.alt_text == "Chart"

    async def test_wide_image_scaled(self, assembler, tmp_path):
        (tmp_path / "wide.png").write_bytes(make_png(1200, 300))
        [element] = await assembler.assemble([ImageBlock("", "wide.png")], tmp_path)
        assert (element.width, element.height) == (600, 150)

    async def test_unknown_format_default_size(self, assembler, tmp_path):
        (tmp_path / "pic.gif").write_bytes(b"GIF89a" + b"\x00" * 64)
        [element] = await assembler.assemble([ImageBlock("", "pic.gif")], tmp_path)
        assert isinstance(element, ImageElement)
        assert (element.width, element.height) == (400, 300)

    async def test_missing_file_placeholder(self, assembler, tmp_path):
        elements = await assembler.assemble(
            [ImageBlock("Logo", "nope.png"), ImageBlock("", "gone.png")], tmp_path
        )
        assert [e.text for e in elements] == ["[Image: Logo]", "[Image: gone.png]"]
        assert elements[0].runs[0].italic


@pytest.mark.asyncio
class TestDiagrams:

    async def test_rendered_diagram_carries_marker(self, settings, tmp_path):
        renderer = StubRenderer(settings, [_image()])
        assembler = DocumentAssembler(renderer, settings)
        block = DiagramBlock(Dialect.MERMAID, "graph TD; A-->B;")

        image, hidden = await assembler.assemble([block], tmp_path)

        assert isinstance(image, ImageElement)
        assert image.title == DIAGRAM_TITLE
        assert (image.width, image.height) == (116, 66)
        decoded = decode_marker(image.alt_text)
        assert (decoded.dialect, decoded.source) == ("mermaid", "graph TD; A-->B;")
        assert hidden == HiddenTextParagraph(text=image.alt_text)

    async def test_failed_render_falls_back_to_code(self, settings, tmp_path):
        renderer = StubRenderer(settings, [None])
        assembler = DocumentAssembler(renderer, settings)
        elements = await assembler.assemble(
            [DiagramBlock(Dialect.PLANTUML, "A -> B")], tmp_path
        )
        assert elements == [code_paragraph("A -> B")]

    async def test_exception_is_contained(self, settings, tmp_path):
        renderer = StubRenderer(settings, [RuntimeError("boom"), _image()])
        assembler = DocumentAssembler(renderer, settings)
        blocks = [
            DiagramBlock(Dialect.MERMAID, "graph TD;"),
            DiagramBlock(Dialect.MERMAID, "graph LR;"),
        ]
        elements = await assembler.assemble(blocks, tmp_path)
        assert elements[0] == code_paragraph("graph TD;")
        assert isinstance(elements[1], ImageElement)
        assert isinstance(elements[2], HiddenTextParagraph)

    async def test_one_session_shared_and_closed_once(self, settings, tmp_path):
        renderer = StubRenderer(settings, [_image(), None, _image()])
        assembler = DocumentAssembler(renderer, settings)
        blocks = [
            DiagramBlock(Dialect.MERMAID, "graph TD;"),
            ParagraphBlock("between"),
            DiagramBlock(Dialect.PLANTUML, "A -> B"),
            DiagramBlock(Dialect.MERMAID, "graph LR;"),
        ]
        elements = await assembler.assemble(blocks, tmp_path)

        assert len(renderer.factory.sessions) == 1
        session = renderer.factory.sessions[0]
        assert session.close_calls == 1
        assert all(call[2] is session for call in renderer.calls)
        assert sum(isinstance(e, ImageElement) for e in elements) == 2
        assert elements[3] == code_paragraph("A -> B")

    async def test_no_session_without_diagrams(self, settings, tmp_path):
        renderer = StubRenderer(settings, [])
        assembler = DocumentAssembler(renderer, settings)
        await assembler.assemble([ParagraphBlock("text")], tmp_path)
        assert renderer.factory.sessions == []

    async def test_session_closed_on_error(self, settings, tmp_path):
        renderer = StubRenderer(settings, [_image()])
        assembler = DocumentAssembler(renderer, settings)

        class Unknown:
            kind = None

        with pytest.raises(Exception):
            await assembler.assemble(
                [DiagramBlock(Dialect.MERMAID, "graph TD;"), Unknown()], tmp_path
            )
        assert renderer.factory.sessions[0].close_calls == 1

    async def test_no_browser_all_diagrams_text(self, settings, tmp_path):
        renderer = StubRenderer(settings, [])
        renderer.factory.available = False
        assembler = DocumentAssembler(renderer, settings)
        blocks = [
            DiagramBlock(Dialect.MERMAID, "graph TD;"),
            DiagramBlock(Dialect.PLANTUML, "A -> B"),
        ]
        elements = await assembler.assemble(blocks, tmp_path)
        assert elements == [code_paragraph("graph TD;"), code_paragraph("A -> B")]
        assert renderer.calls == []

    async def test_render_disabled(self, settings, tmp_path):
        renderer = StubRenderer(settings, [])
        assembler = DocumentAssembler(renderer, settings, render_diagrams=False)
        elements = await assembler.assemble(
            [DiagramBlock(Dialect.MERMAID, "graph TD;")], tmp_path
        )
        assert elements == [code_paragraph("graph TD;")]
        assert renderer.factory.sessions == []

    async def test_timeout_keeps_rest_of_document(self, tmp_path, hanging_factory):
        settings = Settings(render_timeout=0.05, render_deadline=0.2)
        renderer = DiagramRenderer(settings, session_factory=hanging_factory)
        assembler = DocumentAssembler(renderer, settings)
        blocks = [
            HeadingBlock(1, "Doc"),
            DiagramBlock(Dialect.MERMAID, "graph TD; A-->B;"),
            ParagraphBlock("after"),
        ]
        elements = await assembler.assemble(blocks, tmp_path)

        assert [e.text for e in elements] == ["Doc", "graph TD; A-->B;", "after"]
        assert elements[1] == code_paragraph("graph TD; A-->B;")
        assert hanging_factory.sessions[0].close_calls == 1
