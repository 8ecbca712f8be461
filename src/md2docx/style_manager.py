"""DOCX style presets.

Maps semantic style names (heading_1, body, code_block, ...) to concrete
font and paragraph specifications used by the renderer.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class FontSpec:
    """Font specification for a text run."""

    name: str = "Times New Roman"
    size_pt: float = 11.0
    bold: bool = False
    italic: bool = False
    color: str = ""
    background: str = ""

    def derive(self, **overrides) -> FontSpec:
        """Return a copy with selected fields overridden."""
        clone = deepcopy(self)
        for k, v in overrides.items():
            if hasattr(clone, k):
                setattr(clone, k, v)
        return clone


@dataclass
class ParaSpec:
    """Paragraph layout specification."""

    align: str = "left"  # left, center, right, justify
    left_indent_pt: float = 0.0
    space_before_pt: float = 0.0
    space_after_pt: float = 6.0
    line_spacing: float = 1.15

    def derive(self, **overrides) -> ParaSpec:
        clone = deepcopy(self)
        for k, v in overrides.items():
            if hasattr(clone, k):
                setattr(clone, k, v)
        return clone


@dataclass
class StyleDef:
    """Complete style definition combining font and paragraph specs."""

    name: str
    font: FontSpec
    para: ParaSpec


# ---------------------------------------------------------------------------
# Preset definitions
# ---------------------------------------------------------------------------

def _build_default_styles() -> dict[str, StyleDef]:
    """Build the **default** preset styles."""

    body_font = FontSpec(name="Times New Roman", size_pt=11.0)
    body_para = ParaSpec(align="left", line_spacing=1.15, space_after_pt=6.0)

    # Heading sizes: H1=20, H2=16, H3=14, H4=12, H5=11, H6=11
    heading_sizes = {1: 20.0, 2: 16.0, 3: 14.0, 4: 12.0, 5: 11.0, 6: 11.0}
    heading_space_before = {1: 18.0, 2: 14.0, 3: 12.0, 4: 10.0, 5: 8.0, 6: 6.0}

    styles: dict[str, StyleDef] = {}

    for level in range(1, 7):
        styles[f"heading_{level}"] = StyleDef(
            name=f"heading_{level}",
            font=body_font.derive(size_pt=heading_sizes[level], bold=True),
            para=body_para.derive(space_before_pt=heading_space_before[level]),
        )

    styles["body"] = StyleDef(name="body", font=body_font, para=body_para)

    styles["code_block"] = StyleDef(
        name="code_block",
        font=FontSpec(name="Consolas", size_pt=10.0, background="f5f5f5"),
        para=ParaSpec(align="left", line_spacing=1.0, space_before_pt=4.0, space_after_pt=4.0),
    )

    styles["inline_code"] = StyleDef(
        name="inline_code",
        font=FontSpec(name="Consolas", size_pt=10.0),
        para=body_para,
    )

    styles["link"] = StyleDef(
        name="link",
        font=body_font.derive(color="0066cc"),
        para=body_para,
    )

    styles["blockquote"] = StyleDef(
        name="blockquote",
        font=body_font,
        para=body_para.derive(left_indent_pt=36.0),
    )

    styles["table_header"] = StyleDef(
        name="table_header",
        font=body_font.derive(bold=True, background="f5f5f5"),
        para=body_para.derive(space_after_pt=2.0),
    )

    styles["table_body"] = StyleDef(
        name="table_body",
        font=body_font,
        para=body_para.derive(space_after_pt=2.0),
    )

    styles["list_item"] = StyleDef(
        name="list_item",
        font=body_font,
        para=body_para.derive(left_indent_pt=36.0, space_after_pt=2.0),
    )

    styles["horizontal_rule"] = StyleDef(
        name="horizontal_rule",
        font=body_font.derive(color="cccccc"),
        para=body_para.derive(space_before_pt=6.0, space_after_pt=6.0),
    )

    styles["image"] = StyleDef(
        name="image",
        font=body_font,
        para=body_para.derive(align="center"),
    )

    return styles


def _build_academic_styles() -> dict[str, StyleDef]:
    """Build the **academic** preset -- serif, wider spacing, justified body."""

    base = _build_default_styles()

    body_font = FontSpec(name="Georgia", size_pt=12.0)
    body_para = ParaSpec(align="justify", line_spacing=1.5, space_after_pt=8.0)

    heading_sizes = {1: 22.0, 2: 18.0, 3: 15.0, 4: 13.0, 5: 12.0, 6: 12.0}

    for level in range(1, 7):
        base[f"heading_{level}"] = StyleDef(
            name=f"heading_{level}",
            font=body_font.derive(size_pt=heading_sizes[level], bold=True),
            para=body_para.derive(align="left", space_before_pt=16.0),
        )

    base["body"] = StyleDef(name="body", font=body_font, para=body_para)
    base["code_block"] = StyleDef(
        name="code_block",
        font=FontSpec(name="Courier New", size_pt=10.0, background="f5f5f5"),
        para=ParaSpec(align="left", line_spacing=1.0, space_before_pt=6.0, space_after_pt=6.0),
    )
    base["inline_code"] = StyleDef(
        name="inline_code",
        font=FontSpec(name="Courier New", size_pt=10.0),
        para=body_para,
    )
    base["blockquote"] = StyleDef(
        name="blockquote",
        font=body_font.derive(italic=True),
        para=body_para.derive(left_indent_pt=42.0),
    )
    base["list_item"] = StyleDef(
        name="list_item",
        font=body_font,
        para=body_para.derive(align="left", left_indent_pt=42.0, space_after_pt=3.0),
    )
    base["table_header"] = StyleDef(
        name="table_header",
        font=body_font.derive(bold=True, size_pt=11.0, background="f5f5f5"),
        para=body_para.derive(align="left", space_after_pt=2.0),
    )
    base["table_body"] = StyleDef(
        name="table_body",
        font=body_font.derive(size_pt=11.0),
        para=body_para.derive(align="left", space_after_pt=2.0),
    )
    base["link"] = StyleDef(name="link", font=body_font.derive(color="0066cc"), para=body_para)

    return base


def _build_minimal_styles() -> dict[str, StyleDef]:
    """Build the **minimal** preset -- sans-serif, tight spacing."""

    base = _build_default_styles()

    body_font = FontSpec(name="Arial", size_pt=10.0)
    body_para = ParaSpec(align="left", line_spacing=1.0, space_after_pt=3.0)

    heading_sizes = {1: 16.0, 2: 14.0, 3: 12.0, 4: 11.0, 5: 10.5, 6: 10.0}

    for level in range(1, 7):
        base[f"heading_{level}"] = StyleDef(
            name=f"heading_{level}",
            font=body_font.derive(size_pt=heading_sizes[level], bold=True),
            para=body_para.derive(space_before_pt=8.0),
        )

    base["body"] = StyleDef(name="body", font=body_font, para=body_para)
    base["code_block"] = StyleDef(
        name="code_block",
        font=FontSpec(name="Menlo", size_pt=9.0, background="fafafa"),
        para=ParaSpec(align="left", line_spacing=1.0, space_before_pt=3.0, space_after_pt=3.0),
    )
    base["inline_code"] = StyleDef(
        name="inline_code",
        font=FontSpec(name="Menlo", size_pt=9.0),
        para=body_para,
    )
    base["blockquote"] = StyleDef(
        name="blockquote",
        font=body_font.derive(color="666666"),
        para=body_para.derive(left_indent_pt=24.0),
    )
    base["list_item"] = StyleDef(
        name="list_item",
        font=body_font,
        para=body_para.derive(left_indent_pt=24.0, space_after_pt=1.0),
    )
    base["table_header"] = StyleDef(
        name="table_header",
        font=body_font.derive(bold=True, size_pt=9.0, background="fafafa"),
        para=body_para.derive(space_after_pt=1.0),
    )
    base["table_body"] = StyleDef(
        name="table_body",
        font=body_font.derive(size_pt=9.0),
        para=body_para.derive(space_after_pt=1.0),
    )
    base["link"] = StyleDef(name="link", font=body_font.derive(color="0066cc"), para=body_para)

    return base


# ---------------------------------------------------------------------------
# Preset registry
# ---------------------------------------------------------------------------

_PRESET_BUILDERS = {
    "default": _build_default_styles,
    "academic": _build_academic_styles,
    "minimal": _build_minimal_styles,
}


# ---------------------------------------------------------------------------
# StyleManager
# ---------------------------------------------------------------------------

class StyleManager:
    """Manages document style presets and provides style definitions.

    Usage::

        sm = StyleManager("academic")
        heading_style = sm.get_style("heading_1")
        body_font = sm.get_body_font()
    """

    PRESETS = list(_PRESET_BUILDERS.keys())

    def __init__(self, preset: str = "default") -> None:
        if preset not in _PRESET_BUILDERS:
            raise ValueError(
                f"Unknown preset {preset!r}. Choose from: {', '.join(_PRESET_BUILDERS)}"
            )
        self.preset = preset
        self._styles: dict[str, StyleDef] = _PRESET_BUILDERS[preset]()

    def get_style(self, name: str) -> StyleDef:
        """Get style by semantic name.

        Supported names: heading_1..heading_6, body, code_block,
        inline_code, link, blockquote, table_header, table_body,
        list_item, horizontal_rule, image.

        Falls back to ``body`` for unknown names.
        """
        return self._styles.get(name, self._styles["body"])

    def get_style_for_heading(self, level: int) -> StyleDef:
        """Return the :class:`StyleDef` for heading level *1--6*."""
        level = max(1, min(6, level))
        return self.get_style(f"heading_{level}")

    def get_body_font(self) -> FontSpec:
        return self.get_style("body").font

    def get_code_font(self) -> FontSpec:
        return self.get_style("code_block").font

    def list_style_names(self) -> list[str]:
        """Return all available style names in this preset."""
        return sorted(self._styles.keys())
