"""Runtime configuration and logging for md2docx.

Settings are read from ``MD2DOCX_*`` environment variables and an optional
``.env`` file.  :func:`load_settings` is cached; tests rebuild it with
``load_settings.cache_clear()`` after changing the environment.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LOGGER_NAMESPACE = "md2docx"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class Settings(BaseSettings):
    """Typed configuration for the conversion pipeline.

    Attributes
    ----------
    log_level : LogLevelName
        Level for every ``md2docx.*`` logger.
    max_image_width : int
        Widest image (in pixels) placed in a document; larger images shrink.
    viewport_width, viewport_height : int
        Initial browser viewport used when rendering diagrams.
    diagram_padding : int
        Pixels kept around a diagram's bounding box in the screenshot.
    render_timeout : float
        Seconds allowed for each wait step while a diagram renders.
    render_deadline : float
        Hard upper bound in seconds for rendering one diagram.
    """

    log_level: LogLevelName = "INFO"
    max_image_width: int = Field(default=600, gt=0)
    viewport_width: int = Field(default=1600, gt=0)
    viewport_height: int = Field(default=1200, gt=0)
    diagram_padding: int = Field(default=8, ge=0)
    render_timeout: float = Field(default=10.0, gt=0)
    render_deadline: float = Field(default=30.0, gt=0)
    plantuml_server: str = "https://www.plantuml.com/plantuml"
    mermaid_script_url: str = "https://cdn.jsdelivr.net/npm/mermaid/dist/mermaid.min.js"
    mermaid_script_path: Optional[str] = None
    chromium_executable: Optional[str] = None
    default_image_size: tuple[int, int] = (400, 300)

    model_config = SettingsConfigDict(
        env_prefix="MD2DOCX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def log_level_numeric(self) -> int:
        """Return the numeric logging level for ``self.log_level``."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a :class:`Settings` instance."""
    return Settings()


def get_logger(name: str = LOGGER_NAMESPACE) -> logging.Logger:
    """Return a logger under the ``md2docx`` namespace.

    Only the namespace root gets a handler; module loggers propagate to it.
    """
    if name != LOGGER_NAMESPACE and not name.startswith(LOGGER_NAMESPACE + "."):
        name = f"{LOGGER_NAMESPACE}.{name}"
    root = logging.getLogger(LOGGER_NAMESPACE)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(load_settings().log_level_numeric())
        root.propagate = False
    return logging.getLogger(name)


def set_log_level(level: int | str) -> None:
    """Override the level of the ``md2docx`` logger tree."""
    get_logger().setLevel(level)
