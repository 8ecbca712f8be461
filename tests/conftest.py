"""Shared fixtures: tiny real images and an in-memory browser stand-in."""

from __future__ import annotations

import asyncio
import struct
import zlib
from typing import Any, Optional

import pytest

from md2docx.config import Settings
from md2docx.diagram import DiagramRenderer


def _chunk(kind: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)


def make_png(width: int, height: int) -> bytes:
    """Return a valid white RGB PNG of the given size."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    row = b"\x00" + b"\xff" * (width * 3)
    idat = zlib.compress(row * height)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _chunk(b"IHDR", ihdr)
        + _chunk(b"IDAT", idat)
        + _chunk(b"IEND", b"")
    )


def make_jpeg_header(width: int, height: int) -> bytes:
    """Return JPEG header bytes: SOI, APP0, DHT, then SOF0 with the size."""
    app0 = b"\xff\xe0" + struct.pack(">H", 16) + b"JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    dht = b"\xff\xc4" + struct.pack(">H", 5) + b"\x00\x00\x00"
    sof0 = (
        b"\xff\xc0"
        + struct.pack(">H", 17)
        + b"\x08"
        + struct.pack(">HH", height, width)
        + b"\x03\x01\x22\x00\x02\x11\x01\x03\x11\x01"
    )
    return b"\xff\xd8" + app0 + dht + sof0 + b"\xff\xd9"


class FakeElement:
    def __init__(self, box: Optional[dict[str, float]]) -> None:
        self.box = box

    async def bounding_box(self) -> Optional[dict[str, float]]:
        return self.box


class FakePage:
    """Records calls the renderer makes; boxes are returned in order."""

    def __init__(
        self,
        boxes: list[Optional[dict[str, float]]],
        *,
        hang: bool = False,
        png: Optional[bytes] = None,
    ) -> None:
        self.boxes = list(boxes)
        self.hang = hang
        self.png = png if png is not None else make_png(10, 10)
        self.viewports: list[dict[str, int]] = []
        self.contents: list[str] = []
        self.selectors: list[str] = []
        self.function_waits: list[str] = []
        self.screenshot_kwargs: dict[str, Any] = {}
        self.closed = False

    async def set_viewport_size(self, viewport_size: dict[str, int]) -> None:
        self.viewports.append(viewport_size)

    async def set_content(self, html: str, **kwargs: Any) -> None:
        self.contents.append(html)

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> None:
        if self.hang:
            await asyncio.Event().wait()
        self.selectors.append(selector)

    async def wait_for_function(self, expression: str, **kwargs: Any) -> None:
        self.function_waits.append(expression)

    async def query_selector(self, selector: str) -> FakeElement:
        box = self.boxes.pop(0) if len(self.boxes) > 1 else self.boxes[0]
        return FakeElement(box)

    async def screenshot(self, **kwargs: Any) -> bytes:
        self.screenshot_kwargs = kwargs
        return self.png

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, make_page) -> None:
        self._make_page = make_page
        self.pages: list[FakePage] = []
        self.close_calls = 0

    async def new_page(self) -> FakePage:
        page = self._make_page()
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.close_calls += 1


class SessionFactory:
    """Session factory that remembers every session it opened."""

    def __init__(self, make_page, *, available: bool = True) -> None:
        self._make_page = make_page
        self.available = available
        self.sessions: list[FakeSession] = []

    async def __call__(self, settings: Settings) -> FakeSession:
        if not self.available:
            raise OSError("chromium not installed")
        session = FakeSession(self._make_page)
        self.sessions.append(session)
        return session


DIAGRAM_BOX = {"x": 16.0, "y": 16.0, "width": 100.0, "height": 50.0}


@pytest.fixture
def settings() -> Settings:
    return Settings(render_timeout=0.1, render_deadline=0.5)


@pytest.fixture
def working_factory() -> SessionFactory:
    return SessionFactory(lambda: FakePage([DIAGRAM_BOX], png=make_png(116, 66)))


@pytest.fixture
def hanging_factory() -> SessionFactory:
    return SessionFactory(lambda: FakePage([DIAGRAM_BOX], hang=True))


@pytest.fixture
def working_renderer(settings: Settings, working_factory: SessionFactory) -> DiagramRenderer:
    return DiagramRenderer(settings, session_factory=working_factory)
