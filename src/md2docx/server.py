"""FastAPI web service for Markdown <-> DOCX conversion.

Endpoints::

    GET  /                  Web UI (single-page HTML).
    POST /convert           Upload a .md file and receive .docx back.
    POST /convert/text      Send raw Markdown text, receive .docx bytes.
    POST /export/markdown   Upload a .docx file and receive Markdown back.
    GET  /health            Health check.
    GET  /styles            List available style presets.

Run::

    uvicorn md2docx.server:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import io
from pathlib import Path
from urllib.parse import quote

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from md2docx import __version__
from md2docx.config import get_logger
from md2docx.converter import DOCX_SUFFIX, Converter
from md2docx.errors import ConversionError
from md2docx.reverse import docx_to_markdown
from md2docx.style_manager import StyleManager

logger = get_logger(__name__)

app = FastAPI(
    title="md2docx",
    description="Markdown to DOCX conversion service with round-trippable diagrams",
    version=__version__,
)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _content_disposition(filename: str) -> str:
    """Build Content-Disposition header, RFC 5987 for non-ASCII names."""
    try:
        filename.encode("ascii")
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        encoded = quote(filename)
        return f"attachment; filename*=UTF-8''{encoded}"


def _converter(style: str, render_diagrams: bool) -> Converter:
    if style not in StyleManager.PRESETS:
        raise HTTPException(status_code=400, detail=f"Unknown style preset: {style}")
    return Converter(style_preset=style, render_diagrams=render_diagrams)


_INDEX_HTML = """<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>md2docx</title></head>
<body>
<h1>md2docx</h1>
<form action="/convert" method="post" enctype="multipart/form-data">
  <p><input type="file" name="file" accept=".md,.markdown"></p>
  <p><select name="style">{options}</select></p>
  <p><button type="submit">Convert to DOCX</button></p>
</form>
<form action="/export/markdown" method="post" enctype="multipart/form-data">
  <p><input type="file" name="file" accept=".docx"></p>
  <p><button type="submit">Convert to Markdown</button></p>
</form>
</body></html>
"""


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the web UI."""
    options = "".join(f'<option value="{p}">{p}</option>' for p in StyleManager.PRESETS)
    return HTMLResponse(content=_INDEX_HTML.format(options=options))


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


@app.get("/styles")
async def list_styles() -> dict[str, list[str]]:
    """List available style presets."""
    return {"presets": StyleManager.PRESETS}


@app.post("/convert")
async def convert_file(
    file: UploadFile = File(...),
    style: str = Form("default"),
    encoding: str = Form("utf-8"),
    diagrams: bool = Form(True),
) -> Response:
    """Upload a Markdown file and receive DOCX back.

    - **file**: Markdown file (.md)
    - **style**: Style preset name (default, academic, minimal)
    - **encoding**: Source file encoding
    - **diagrams**: Render Mermaid/PlantUML blocks as images
    """
    raw = await file.read()
    try:
        md_text = raw.decode(encoding)
    except (UnicodeDecodeError, LookupError) as exc:
        raise HTTPException(status_code=422, detail=f"Cannot decode upload: {exc}") from exc

    converter = _converter(style, diagrams)
    docx_bytes = await converter.convert_text_async(md_text)

    filename = (file.filename or "document.md").rsplit(".", 1)[0] + DOCX_SUFFIX

    return Response(
        content=docx_bytes,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": _content_disposition(filename)},
    )


@app.post("/convert/text")
async def convert_text(
    markdown: str = Form(...),
    style: str = Form("default"),
    diagrams: bool = Form(True),
) -> Response:
    """Send raw Markdown text and receive DOCX bytes.

    - **markdown**: Markdown source text
    - **style**: Style preset name
    """
    converter = _converter(style, diagrams)
    docx_bytes = await converter.convert_text_async(markdown)

    return Response(
        content=docx_bytes,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="document.docx"'},
    )


@app.post("/export/markdown")
async def export_markdown(file: UploadFile = File(...)) -> PlainTextResponse:
    """Upload a DOCX file and receive Markdown with diagram sources restored."""
    filename = file.filename or "document.docx"
    if Path(filename).suffix.lower() != DOCX_SUFFIX:
        raise HTTPException(status_code=400, detail="Expected a .docx upload")

    raw = await file.read()
    try:
        markdown = docx_to_markdown(io.BytesIO(raw))
    except ConversionError as exc:
        logger.warning("Rejected upload %s: %s", filename, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return PlainTextResponse(
        content=markdown,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": _content_disposition(Path(filename).stem + ".md")},
    )
