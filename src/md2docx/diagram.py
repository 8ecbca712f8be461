"""Diagram rasterisation through a headless Chromium.

Mermaid sources are rendered client-side by the Mermaid script; PlantUML
sources are rendered by a PlantUML server and loaded as an ``<img>``.  In
both cases the page is screenshotted, clipped to the diagram's bounding
box plus padding.

A :class:`BrowserSession` is expensive to start, so callers converting a
whole document open one with :meth:`DiagramRenderer.session` and pass it to
every :meth:`DiagramRenderer.render` call.  A fresh page is used per diagram.
"""

from __future__ import annotations

import asyncio
import html
import math
import re
import zlib
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from md2docx.config import Settings, get_logger, load_settings
from md2docx.parser import Dialect

logger = get_logger(__name__)

PLANTUML_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"

_PLANTUML_PAIR_RE = re.compile(r"@startuml[\s\S]*@enduml")

_CHROMIUM_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-gpu"]

_PLANTUML_LOADED_JS = """() => {
  const img = document.querySelector('#diagram');
  return Boolean(img && img.complete && img.naturalWidth > 0);
}"""

_PAGE_STYLE = """  <style>
    body { margin: 0; padding: 16px; background: white; }
    #diagram { display: inline-block; }
  </style>"""


@dataclass(frozen=True)
class DiagramImage:
    """PNG bytes of a rendered diagram and its size in device pixels."""

    data: bytes
    width: int
    height: int


@dataclass(frozen=True)
class DiagramPage:
    html: str
    selector: str


class PageLike(Protocol):
    async def set_viewport_size(self, viewport_size: dict[str, int]) -> None: ...
    async def set_content(self, html: str, **kwargs: Any) -> None: ...
    async def wait_for_selector(self, selector: str, **kwargs: Any) -> Any: ...
    async def wait_for_function(self, expression: str, **kwargs: Any) -> Any: ...
    async def query_selector(self, selector: str) -> Any: ...
    async def screenshot(self, **kwargs: Any) -> bytes: ...
    async def close(self) -> None: ...


class SessionLike(Protocol):
    async def new_page(self) -> PageLike: ...
    async def close(self) -> None: ...


SessionFactory = Callable[[Settings], Awaitable[SessionLike]]


# ---------------------------------------------------------------------------
# PlantUML server encoding
# ---------------------------------------------------------------------------

def _encode_6bit(value: int) -> str:
    return PLANTUML_ALPHABET[value & 0x3F]


def encode_plantuml(source: str) -> str:
    """Encode *source* for a PlantUML server URL path.

    The text is DEFLATE-compressed at level 9 and every 3 bytes (zero padded)
    become 4 characters of the PlantUML alphabet.
    """
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    data = compressor.compress(source.encode("utf-8")) + compressor.flush()

    chars: list[str] = []
    for i in range(0, len(data), 3):
        b1 = data[i]
        b2 = data[i + 1] if i + 1 < len(data) else 0
        b3 = data[i + 2] if i + 2 < len(data) else 0
        chars.append(_encode_6bit(b1 >> 2))
        chars.append(_encode_6bit(((b1 & 0x3) << 4) | (b2 >> 4)))
        chars.append(_encode_6bit(((b2 & 0xF) << 2) | (b3 >> 6)))
        chars.append(_encode_6bit(b3))
    return "".join(chars)


def plantuml_url(source: str, server: str) -> str:
    """Return the SVG URL for *source* on *server*."""
    if not _PLANTUML_PAIR_RE.search(source):
        source = f"@startuml\n{source}\n@enduml"
    return f"{server.rstrip('/')}/svg/{encode_plantuml(source.strip())}"


# ---------------------------------------------------------------------------
# Page construction
# ---------------------------------------------------------------------------

def _mermaid_script_tag(settings: Settings) -> str:
    if settings.mermaid_script_path:
        try:
            script = Path(settings.mermaid_script_path).read_text(encoding="utf-8")
        except OSError as exc:
            logger.debug("Local Mermaid bundle unreadable, using CDN: %s", exc)
        else:
            return f"<script>{script}</script>"
    return f'<script src="{html.escape(settings.mermaid_script_url)}"></script>'


def build_diagram_page(dialect: Dialect, source: str, settings: Settings) -> DiagramPage:
    """Return a self-contained HTML page showing one diagram."""
    if dialect is Dialect.MERMAID:
        page = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  {_mermaid_script_tag(settings)}
  <script>
    mermaid.initialize({{ startOnLoad: true, theme: 'default', securityLevel: 'loose' }});
  </script>
{_PAGE_STYLE}
</head>
<body>
  <div id="diagram" class="mermaid">{html.escape(source)}</div>
</body>
</html>"""
        return DiagramPage(html=page, selector="#diagram svg")

    url = plantuml_url(source, settings.plantuml_server)
    page = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
{_PAGE_STYLE}
</head>
<body>
  <img id="diagram" src="{html.escape(url)}" alt="PlantUML Diagram" />
</body>
</html>"""
    return DiagramPage(html=page, selector="#diagram")


def clip_region(box: dict[str, float], padding: int) -> dict[str, float]:
    """Expand *box* by *padding*, clamped to the page origin and 1x1 minimum."""
    return {
        "x": max(0.0, box["x"] - padding),
        "y": max(0.0, box["y"] - padding),
        "width": max(1.0, box["width"] + padding * 2),
        "height": max(1.0, box["height"] + padding * 2),
    }


# ---------------------------------------------------------------------------
# Browser session
# ---------------------------------------------------------------------------

class BrowserSession:
    """A running Chromium instance driven by Playwright."""

    def __init__(self, playwright: Any, browser: Any) -> None:
        self._playwright = playwright
        self._browser = browser
        self._closed = False

    @classmethod
    async def launch(cls, settings: Settings) -> BrowserSession:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=True,
                executable_path=settings.chromium_executable,
                args=_CHROMIUM_ARGS,
            )
        except BaseException:
            await playwright.stop()
            raise
        return cls(playwright, browser)

    @property
    def closed(self) -> bool:
        return self._closed

    async def new_page(self) -> Any:
        return await self._browser.new_page()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class DiagramRenderer:
    """Render diagram sources to tightly cropped PNG images."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._session_factory: SessionFactory = session_factory or BrowserSession.launch

    # -- sessions -----------------------------------------------------------

    async def open_session(self) -> Optional[SessionLike]:
        """Start a browser session, or return ``None`` if none is available."""
        try:
            return await self._session_factory(self.settings)
        except (PlaywrightError, OSError) as exc:
            logger.warning("Headless browser unavailable: %s", exc)
            return None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Optional[SessionLike]]:
        """Scope a shared session; it is closed exactly once on exit."""
        shared = await self.open_session()
        try:
            yield shared
        finally:
            if shared is not None:
                await shared.close()

    # -- rendering ----------------------------------------------------------

    async def render(
        self,
        dialect: Dialect,
        source: str,
        session: Optional[SessionLike] = None,
    ) -> Optional[DiagramImage]:
        """Render one diagram, returning ``None`` on timeout or without a browser.

        A *session* passed in is left open; otherwise a private one is
        started and closed around this call.
        """
        if session is not None:
            return await self._render_bounded(session, dialect, source)
        async with self.session() as own:
            if own is None:
                return None
            return await self._render_bounded(own, dialect, source)

    async def _render_bounded(
        self, session: SessionLike, dialect: Dialect, source: str
    ) -> Optional[DiagramImage]:
        try:
            return await asyncio.wait_for(
                self._render_on_page(session, dialect, source),
                timeout=self.settings.render_deadline,
            )
        except (asyncio.TimeoutError, PlaywrightError) as exc:
            logger.warning("%s diagram did not render: %s", dialect.value, str(exc) or "timed out")
            return None

    async def _render_on_page(
        self, session: SessionLike, dialect: Dialect, source: str
    ) -> Optional[DiagramImage]:
        page_spec = build_diagram_page(dialect, source, self.settings)
        padding = self.settings.diagram_padding
        base_width = self.settings.viewport_width
        base_height = self.settings.viewport_height

        page = await session.new_page()
        try:
            await page.set_viewport_size({"width": base_width, "height": base_height})
            box = await self._load_and_measure(page, page_spec, dialect)
            if box is not None and (
                box["width"] + padding * 2 > base_width
                or box["height"] + padding * 2 > base_height
            ):
                logger.debug("Diagram exceeds viewport, re-rendering at %sx%s", box["width"], box["height"])
                await page.set_viewport_size({
                    "width": math.ceil(box["width"] + padding * 2),
                    "height": math.ceil(box["height"] + padding * 2),
                })
                box = await self._load_and_measure(page, page_spec, dialect)

            if box is None:
                return None

            clip = clip_region(box, padding)
            data = await page.screenshot(type="png", clip=clip)
            return DiagramImage(
                data=bytes(data),
                width=round(clip["width"]),
                height=round(clip["height"]),
            )
        finally:
            await page.close()

    async def _load_and_measure(
        self, page: PageLike, page_spec: DiagramPage, dialect: Dialect
    ) -> Optional[dict[str, float]]:
        timeout_ms = self.settings.render_timeout * 1000
        await page.set_content(page_spec.html, wait_until="networkidle")
        await page.wait_for_selector(page_spec.selector, timeout=timeout_ms)
        if dialect is Dialect.PLANTUML:
            await page.wait_for_function(_PLANTUML_LOADED_JS, timeout=timeout_ms)
        element = await page.query_selector(page_spec.selector)
        if element is None:
            return None
        return await element.bounding_box()


async def check_browser_available(settings: Optional[Settings] = None) -> bool:
    """Return True if a headless browser can be started."""
    renderer = DiagramRenderer(settings)
    async with renderer.session() as session:
        return session is not None
