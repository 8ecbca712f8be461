"""DOCX serializer for document elements.

Converts the element list produced by
:class:`~md2docx.assembler.DocumentAssembler` into a ``.docx`` package with
python-docx.  Paragraph styles are chosen so that a later DOCX -> HTML pass
(see :mod:`md2docx.reverse`) can recognise headings, quotes and code.
"""

from __future__ import annotations

import io
from typing import Optional, Sequence

from docx import Document
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import (
    InvalidImageStreamError,
    UnexpectedEndOfFileError,
    UnrecognizedImageError,
)
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Emu, Pt, RGBColor

from md2docx.config import get_logger
from md2docx.elements import (
    DocumentElement,
    HiddenTextParagraph,
    ImageElement,
    StyledParagraph,
    TableElement,
    TextRun,
)
from md2docx.style_manager import FontSpec, ParaSpec, StyleManager

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# OOXML constants
# ---------------------------------------------------------------------------

EMU_PER_PIXEL = 9525  # at 96 dpi

CODE_STYLE_NAME = "Code Block"
QUOTE_STYLE_NAME = "Quote"
LIST_STYLE_NAME = "List Paragraph"
TABLE_STYLE_NAME = "Table Grid"

BORDER_COLOR = "cccccc"
LINK_COLOR = "0066cc"

_ALIGN_MAP = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}

_STYLE_NAME_MAP = {
    "code_block": CODE_STYLE_NAME,
    "blockquote": QUOTE_STYLE_NAME,
    "list_item": LIST_STYLE_NAME,
}

# Children of w:pPr that must follow w:pBdr / w:shd (ECMA-376 sequence).
_PPR_AFTER_SHD = (
    "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap",
    "w:overflowPunct", "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN",
    "w:bidi", "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr",
    "w:pPrChange",
)
_PPR_AFTER_BDR = ("w:shd",) + _PPR_AFTER_SHD

_TCPR_AFTER_SHD = (
    "w:noWrap", "w:tcMar", "w:textDirection", "w:tcFitText", "w:vAlign",
    "w:hideMark",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _shading(fill: str) -> OxmlElement:
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), fill)
    return shd


def _border_edge(edge: str, size: int) -> OxmlElement:
    el = OxmlElement(f"w:{edge}")
    el.set(qn("w:val"), "single")
    el.set(qn("w:sz"), str(size))
    el.set(qn("w:space"), "4")
    el.set(qn("w:color"), BORDER_COLOR)
    return el


def _set_paragraph_border(paragraph, edge: str, size: int) -> None:
    pPr = paragraph._p.get_or_add_pPr()
    pBdr = pPr.find(qn("w:pBdr"))
    if pBdr is None:
        pBdr = OxmlElement("w:pBdr")
        pPr.insert_element_before(pBdr, *_PPR_AFTER_BDR)
    pBdr.append(_border_edge(edge, size))


def _set_paragraph_shading(paragraph, fill: str) -> None:
    pPr = paragraph._p.get_or_add_pPr()
    pPr.insert_element_before(_shading(fill), *_PPR_AFTER_SHD)


def _apply_font(run, font: FontSpec, text_run: Optional[TextRun] = None) -> None:
    run.font.name = font.name
    run.font.size = Pt(font.size_pt)
    # None inherits from the paragraph style.
    run.bold = True if font.bold or (text_run and text_run.bold) else None
    run.italic = True if font.italic or (text_run and text_run.italic) else None
    if font.color:
        run.font.color.rgb = RGBColor.from_string(font.color.upper())


def _apply_para(paragraph, para: ParaSpec, *, indented: bool) -> None:
    fmt = paragraph.paragraph_format
    fmt.alignment = _ALIGN_MAP.get(para.align, WD_ALIGN_PARAGRAPH.LEFT)
    fmt.space_before = Pt(para.space_before_pt)
    fmt.space_after = Pt(para.space_after_pt)
    fmt.line_spacing = para.line_spacing
    if indented and para.left_indent_pt:
        fmt.left_indent = Pt(para.left_indent_pt)


# ---------------------------------------------------------------------------
# DocxRenderer
# ---------------------------------------------------------------------------

class DocxRenderer:
    """Render a sequence of :data:`~md2docx.elements.DocumentElement` to DOCX bytes."""

    def __init__(self, style_manager: Optional[StyleManager] = None) -> None:
        self.style: StyleManager = style_manager or StyleManager()

    # ======================================================================
    # Public API
    # ======================================================================

    def render(self, elements: Sequence[DocumentElement]) -> bytes:
        """Return a complete ``.docx`` file as *bytes*."""
        doc = Document()
        self._prepare_styles(doc)

        for element in elements:
            self._render_element(doc, element)

        buf = io.BytesIO()
        doc.save(buf)
        return buf.getvalue()

    def render_to_file(self, elements: Sequence[DocumentElement], path: str) -> None:
        """Render and write to *path*."""
        data = self.render(elements)
        with open(path, "wb") as fh:
            fh.write(data)

    # ======================================================================
    # Document setup
    # ======================================================================

    def _prepare_styles(self, doc) -> None:
        body = self.style.get_body_font()
        normal = doc.styles["Normal"]
        normal.font.name = body.name
        normal.font.size = Pt(body.size_pt)
        for name in (CODE_STYLE_NAME, QUOTE_STYLE_NAME, LIST_STYLE_NAME):
            self._ensure_paragraph_style(doc, name)

    @staticmethod
    def _ensure_paragraph_style(doc, name: str) -> None:
        try:
            doc.styles[name]
        except KeyError:
            style = doc.styles.add_style(name, WD_STYLE_TYPE.PARAGRAPH)
            style.base_style = doc.styles["Normal"]

    # ======================================================================
    # Element dispatch
    # ======================================================================

    def _render_element(self, doc, element: DocumentElement) -> None:
        if isinstance(element, StyledParagraph):
            self._render_paragraph(doc, element)
        elif isinstance(element, TableElement):
            self._render_table(doc, element)
        elif isinstance(element, ImageElement):
            self._render_image(doc, element)
        elif isinstance(element, HiddenTextParagraph):
            self._render_hidden(doc, element)
        else:
            raise TypeError(f"Unsupported document element: {element!r}")

    def _render_paragraph(self, doc, element: StyledParagraph) -> None:
        if element.heading_level:
            style_def = self.style.get_style_for_heading(element.heading_level)
            paragraph = doc.add_paragraph(style=f"Heading {max(1, min(6, element.heading_level))}")
        else:
            style_def = self.style.get_style(element.style)
            paragraph = doc.add_paragraph(style=_STYLE_NAME_MAP.get(element.style))

        font = style_def.font
        if element.heading_level:
            # Heading styles are already bold; run-level bold marks emphasis only.
            font = font.derive(bold=False)

        _apply_para(paragraph, style_def.para, indented=element.indent_level > 0)
        self._add_runs(paragraph, element.runs, font)

        if element.shaded:
            _set_paragraph_shading(paragraph, style_def.font.background or "f5f5f5")
        if element.left_border:
            _set_paragraph_border(paragraph, "left", 24)
        if element.bottom_border:
            _set_paragraph_border(paragraph, "bottom", 6)

    def _render_table(self, doc, element: TableElement) -> None:
        if not element.rows:
            return
        num_cols = max(len(row) for row in element.rows) or 1
        table = doc.add_table(rows=len(element.rows), cols=num_cols)
        table.style = doc.styles[TABLE_STYLE_NAME]
        self._set_full_width(table)

        header = self.style.get_style("table_header")
        body = self.style.get_style("table_body")
        for row_idx, row in enumerate(element.rows):
            cell_style = header if row_idx == 0 else body
            for col_idx, runs in enumerate(row):
                cell = table.cell(row_idx, col_idx)
                paragraph = cell.paragraphs[0]
                _apply_para(paragraph, cell_style.para, indented=False)
                self._add_runs(paragraph, runs, cell_style.font)
                if row_idx == 0 and element.header_shaded:
                    tcPr = cell._tc.get_or_add_tcPr()
                    tcPr.insert_element_before(
                        _shading(header.font.background or "f5f5f5"), *_TCPR_AFTER_SHD
                    )

    @staticmethod
    def _set_full_width(table) -> None:
        tblPr = table._tbl.tblPr
        tblW = tblPr.find(qn("w:tblW"))
        if tblW is None:
            tblW = OxmlElement("w:tblW")
            tblPr.append(tblW)
        tblW.set(qn("w:type"), "pct")
        tblW.set(qn("w:w"), "5000")

    def _render_image(self, doc, element: ImageElement) -> None:
        style_def = self.style.get_style("image")
        paragraph = doc.add_paragraph()
        _apply_para(paragraph, style_def.para, indented=False)
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = paragraph.add_run()
        try:
            shape = run.add_picture(
                io.BytesIO(element.data),
                width=Emu(element.width * EMU_PER_PIXEL),
                height=Emu(element.height * EMU_PER_PIXEL),
            )
        except (UnrecognizedImageError, UnexpectedEndOfFileError, InvalidImageStreamError) as exc:
            logger.warning("Image not embedded, writing a placeholder: %s", exc)
            label = element.title or element.alt_text or element.target or "image"
            placeholder = paragraph.add_run(f"[Image: {label}]")
            placeholder.italic = True
            return

        doc_pr = shape._inline.docPr
        if element.alt_text:
            doc_pr.set("descr", element.alt_text)
        if element.title:
            doc_pr.set("title", element.title)

    def _render_hidden(self, doc, element: HiddenTextParagraph) -> None:
        paragraph = doc.add_paragraph()
        run = paragraph.add_run(element.text)
        run.font.hidden = True
        run.font.size = Pt(1)
        run.font.color.rgb = RGBColor(0xFF, 0xFF, 0xFF)

    # ======================================================================
    # Runs
    # ======================================================================

    def _add_runs(self, paragraph, runs: Sequence[TextRun], base_font: FontSpec) -> None:
        code_font = self.style.get_style("inline_code").font
        for text_run in runs:
            if not text_run.text:
                continue
            font = base_font
            if text_run.monospace and base_font.name != self.style.get_code_font().name:
                font = code_font.derive(size_pt=base_font.size_pt)
            if text_run.href:
                self._add_hyperlink(paragraph, text_run, font)
                continue
            run = paragraph.add_run(text_run.text)
            _apply_font(run, font, text_run)

    def _add_hyperlink(self, paragraph, text_run: TextRun, font: FontSpec) -> None:
        r_id = paragraph.part.relate_to(text_run.href, RT.HYPERLINK, is_external=True)
        hyperlink = OxmlElement("w:hyperlink")
        hyperlink.set(qn("r:id"), r_id)

        new_run = OxmlElement("w:r")
        rPr = OxmlElement("w:rPr")
        fonts = OxmlElement("w:rFonts")
        fonts.set(qn("w:ascii"), font.name)
        fonts.set(qn("w:hAnsi"), font.name)
        rPr.append(fonts)
        if font.bold or text_run.bold:
            rPr.append(OxmlElement("w:b"))
        if font.italic or text_run.italic:
            rPr.append(OxmlElement("w:i"))
        color = OxmlElement("w:color")
        color.set(qn("w:val"), self.style.get_style("link").font.color or LINK_COLOR)
        rPr.append(color)
        size = OxmlElement("w:sz")
        size.set(qn("w:val"), str(int(font.size_pt * 2)))
        rPr.append(size)
        underline = OxmlElement("w:u")
        underline.set(qn("w:val"), "single")
        rPr.append(underline)
        new_run.append(rPr)

        text = OxmlElement("w:t")
        text.text = text_run.text
        text.set(qn("xml:space"), "preserve")
        new_run.append(text)

        hyperlink.append(new_run)
        paragraph._p.append(hyperlink)
