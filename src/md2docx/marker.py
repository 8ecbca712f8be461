"""Round-trip markers for diagram source.

A marker is ``MDX_DIAGRAM:<base64 of UTF-8 JSON {"type", "code"}>``.  It is
stored as the alt text of a rendered diagram and as a hidden paragraph next
to it, so the Markdown source can be restored from the generated document.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Optional

MARKER_PREFIX = "MDX_DIAGRAM"

# Matches markers embedded in arbitrary extracted text.
MARKER_PATTERN = re.compile(re.escape(MARKER_PREFIX) + r":[A-Za-z0-9+/=]+")


@dataclass(frozen=True)
class DecodedMarker:
    dialect: str
    source: str


def encode_marker(dialect: str, source: str) -> str:
    """Return the marker string for a diagram of *dialect* with *source*."""
    payload = json.dumps({"type": dialect, "code": source}, ensure_ascii=False)
    encoded = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return f"{MARKER_PREFIX}:{encoded}"


def decode_marker(value: str) -> Optional[DecodedMarker]:
    """Decode *value*, returning ``None`` for anything that is not a marker."""
    if not isinstance(value, str) or not value.startswith(MARKER_PREFIX + ":"):
        return None
    payload = value[len(MARKER_PREFIX) + 1:]
    try:
        raw = base64.b64decode(payload, validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None
    dialect = data.get("type")
    source = data.get("code")
    if not isinstance(dialect, str) or not isinstance(source, str):
        return None
    return DecodedMarker(dialect=dialect, source=source)
