"""DOCX -> Markdown conversion.

``mammoth`` turns the document body into HTML; :class:`ReverseAssembler`
then rewrites that HTML into Markdown.  Diagram markers (see
:mod:`md2docx.marker`) are pulled out *before* any tag or entity
processing and restored as fenced diagram blocks, so the rendered images
round-trip back to their original source.
"""

from __future__ import annotations

import html
import re
import zipfile
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

import mammoth

from md2docx.config import get_logger
from md2docx.errors import ConversionError
from md2docx.marker import MARKER_PATTERN, decode_marker

logger = get_logger(__name__)

# Paragraph styles written by md2docx.renderer, mapped back to block HTML.
STYLE_MAP = """
p[style-name='Code Block'] => pre:separator('\\n')
p[style-name='Quote'] => blockquote > p:fresh
"""

# Placeholders use private-use code points so no later pass can touch them.
_TOKEN_OPEN = "\ue000"
_TOKEN_CLOSE = "\ue001"
_TOKEN_RE = re.compile(f"{_TOKEN_OPEN}(\\d+){_TOKEN_CLOSE}")

_IMG_MARKER_RE = re.compile(
    r"<img[^>]*\balt=['\"](" + MARKER_PATTERN.pattern + r")['\"][^>]*>",
    re.IGNORECASE,
)
_REPEATED_MARKER_RE = re.compile(
    f"({_TOKEN_OPEN}(\\d+){_TOKEN_CLOSE})((?:\\s|<[^>]*>)*)({MARKER_PATTERN.pattern})"
)

_FLAGS = re.IGNORECASE | re.DOTALL

_PRE_RE = re.compile(r"<pre[^>]*>(.*?)</pre>", _FLAGS)
_HEADING_RE = re.compile(r"<h([1-6])[^>]*>(.*?)</h\1>", _FLAGS)
_BLOCKQUOTE_RE = re.compile(r"<blockquote[^>]*>(.*?)</blockquote>", _FLAGS)
_ORDERED_RE = re.compile(r"<ol[^>]*>(.*?)</ol>", _FLAGS)
_ITEM_RE = re.compile(r"<li[^>]*>(.*?)</li>", _FLAGS)
_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_PARAGRAPH_BREAK_RE = re.compile(r"</p>\s*<p[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")

_INLINE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"<strong[^>]*>(.*?)</strong>", _FLAGS), r"**\1**"),
    (re.compile(r"<b(?:\s[^>]*)?>(.*?)</b>", _FLAGS), r"**\1**"),
    (re.compile(r"<em[^>]*>(.*?)</em>", _FLAGS), r"*\1*"),
    (re.compile(r"<i(?:\s[^>]*)?>(.*?)</i>", _FLAGS), r"*\1*"),
    (re.compile(r"<code[^>]*>(.*?)</code>", _FLAGS), r"`\1`"),
    (re.compile(r"<a[^>]*href=\"([^\"]*)\"[^>]*>(.*?)</a>", _FLAGS), r"[\2](\1)"),
    (re.compile(r"<img[^>]*src=\"([^\"]*)\"[^>]*alt=\"([^\"]*)\"[^>]*/?>", re.IGNORECASE), r"![\2](\1)"),
    (re.compile(r"<img[^>]*alt=\"([^\"]*)\"[^>]*src=\"([^\"]*)\"[^>]*/?>", re.IGNORECASE), r"![\1](\2)"),
    (re.compile(r"<img[^>]*src=\"([^\"]*)\"[^>]*/?>", re.IGNORECASE), r"![](\1)"),
)

_BLOCK_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"</?ul[^>]*>", re.IGNORECASE), "\n"),
    (_ITEM_RE, r"- \1\n"),
    (re.compile(r"<p[^>]*>(.*?)</p>", _FLAGS), r"\1\n\n"),
)

_EXCESS_BLANK_LINES_RE = re.compile(r"\n{3,}")
_BULLET_GLYPH_RE = re.compile(r"^• ", re.MULTILINE)


def _fence(language: str, body: str) -> str:
    return f"\n\n```{language}\n{body}\n```\n\n"


class ReverseAssembler:
    """Rewrite document HTML (as produced by mammoth) into Markdown."""

    def to_markdown(self, document_html: str) -> str:
        """Return Markdown for *document_html*; never raises on odd input."""
        blocks: list[str] = []
        markers: list[Optional[str]] = []

        def store(block: str, marker: Optional[str] = None) -> str:
            blocks.append(block)
            markers.append(marker)
            return f"{_TOKEN_OPEN}{len(blocks) - 1}{_TOKEN_CLOSE}"

        md = self._extract_diagrams(document_html, store, markers)
        md = _PRE_RE.sub(lambda m: store(_fence("", self._pre_text(m.group(1)))), md)

        md = _HEADING_RE.sub(lambda m: f"{'#' * int(m.group(1))} {m.group(2)}\n\n", md)
        md = _BLOCKQUOTE_RE.sub(lambda m: self._blockquote(m.group(1)), md)
        for pattern, replacement in _INLINE_RULES:
            md = pattern.sub(replacement, md)
        md = _ORDERED_RE.sub(lambda m: self._ordered_list(m.group(1)), md)
        for pattern, replacement in _BLOCK_RULES:
            md = pattern.sub(replacement, md)
        md = _BREAK_RE.sub("\n", md)

        md = _TAG_RE.sub("", md)
        md = html.unescape(md).replace("\xa0", " ")
        md = _BULLET_GLYPH_RE.sub("- ", md)
        md = _EXCESS_BLANK_LINES_RE.sub("\n\n", md).strip()

        md = _TOKEN_RE.sub(lambda m: blocks[int(m.group(1))], md)
        return _EXCESS_BLANK_LINES_RE.sub("\n\n", md).strip()

    # -- diagrams -----------------------------------------------------------

    def _extract_diagrams(
        self,
        document_html: str,
        store: Callable[..., str],
        markers: list[Optional[str]],
    ) -> str:
        def replace_marker(marker: str, original: str) -> str:
            block = self._diagram_block(marker)
            return store(block, marker) if block else original

        md = _IMG_MARKER_RE.sub(
            lambda m: replace_marker(html.unescape(m.group(1)), m.group(0)), document_html
        )

        # The hidden paragraph right after a diagram image repeats its marker.
        def drop_repeat(m: re.Match[str]) -> str:
            if markers[int(m.group(2))] == m.group(4):
                return m.group(1) + m.group(3)
            return m.group(0)

        md = _REPEATED_MARKER_RE.sub(drop_repeat, md)
        return MARKER_PATTERN.sub(lambda m: replace_marker(m.group(0), m.group(0)), md)

    @staticmethod
    def _diagram_block(marker: str) -> str:
        decoded = decode_marker(marker)
        if decoded is None:
            return ""
        dialect = decoded.dialect.strip() or "mermaid"
        return _fence(dialect, decoded.source.rstrip())

    # -- block helpers ------------------------------------------------------

    @staticmethod
    def _pre_text(inner: str) -> str:
        text = _BREAK_RE.sub("\n", inner)
        text = _PARAGRAPH_BREAK_RE.sub("\n", text)
        return html.unescape(_TAG_RE.sub("", text)).rstrip("\n")

    @staticmethod
    def _blockquote(inner: str) -> str:
        text = _PARAGRAPH_BREAK_RE.sub("\n", inner.strip())
        text = _BREAK_RE.sub("\n", text)
        text = re.sub(r"</?p[^>]*>", "", text, flags=re.IGNORECASE)
        lines = [f"> {line}".rstrip() for line in text.strip().split("\n")]
        return "\n".join(lines) + "\n\n"

    @staticmethod
    def _ordered_list(inner: str) -> str:
        items = _ITEM_RE.findall(inner)
        lines = [f"{number}. {item}" for number, item in enumerate(items, start=1)]
        return "\n" + "\n".join(lines) + "\n\n"


def html_to_markdown(document_html: str) -> str:
    """Convert *document_html* to Markdown with a fresh :class:`ReverseAssembler`."""
    return ReverseAssembler().to_markdown(document_html)


def _convert_stream(stream: BinaryIO) -> str:
    try:
        result = mammoth.convert_to_html(stream, style_map=STYLE_MAP)
    except (zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise ConversionError(f"Cannot read DOCX document: {exc}") from exc
    for message in result.messages:
        logger.debug("mammoth: %s", message)
    return result.value


def docx_to_html(source: Union[str, Path, BinaryIO]) -> str:
    """Return the body HTML of a ``.docx`` file path or binary stream."""
    if isinstance(source, (str, Path)):
        with open(source, "rb") as fh:
            return _convert_stream(fh)
    return _convert_stream(source)


def docx_to_markdown(source: Union[str, Path, BinaryIO]) -> str:
    """Convert a ``.docx`` file path or binary stream to Markdown."""
    return html_to_markdown(docx_to_html(source))
