"""
Color resolution for diagram styles.

Resolves DrawingML color references (srgb, scheme, system, preset, hsl) to
``RRGGBB`` hex strings and applies the ECMA-376 color transforms. Preset
color names are looked up through Pillow's ImageColor table; HSL arithmetic
uses colorsys.
"""

import colorsys
import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from PIL import ImageColor

from .models import Color, ColorList, ColorTransforms

# ECMA-376 percentages are expressed in 1/1000 of a percent
PERCENT_SCALE = 100000.0
# ECMA-376 angles are expressed in 1/60000 of a degree
ANGLE_SCALE = 60000.0

DEFAULT_SCHEME_COLORS: Dict[str, str] = {
    "accent1": "4472C4",
    "accent2": "ED7D31",
    "accent3": "A5A5A5",
    "accent4": "FFC000",
    "accent5": "5B9BD5",
    "accent6": "70AD47",
    "dk1": "000000",
    "dk2": "44546A",
    "lt1": "FFFFFF",
    "lt2": "E7E6E6",
    "tx1": "000000",
    "tx2": "44546A",
    "bg1": "FFFFFF",
    "bg2": "E7E6E6",
    "hlink": "0563C1",
    "folHlink": "954F72",
}

# Default clrMap: text/background aliases onto the dark/light slots
DEFAULT_COLOR_MAP: Dict[str, str] = {
    "tx1": "dk1",
    "tx2": "dk2",
    "bg1": "lt1",
    "bg2": "lt2",
}

SYSTEM_COLORS: Dict[str, str] = {
    "windowText": "000000",
    "window": "FFFFFF",
    "windowFrame": "646464",
    "menu": "F0F0F0",
    "menuText": "000000",
    "menuBar": "F0F0F0",
    "menuHighlight": "3399FF",
    "btnFace": "F0F0F0",
    "btnText": "000000",
    "btnShadow": "A0A0A0",
    "btnHighlight": "FFFFFF",
    "3dDkShadow": "696969",
    "3dLight": "E3E3E3",
    "highlight": "3399FF",
    "highlightText": "FFFFFF",
    "grayText": "6D6D6D",
    "captionText": "000000",
    "activeCaption": "99B4D1",
    "inactiveCaption": "BFCDDB",
    "inactiveCaptionText": "434E54",
    "activeBorder": "B4B4B4",
    "inactiveBorder": "F4F7FC",
    "appWorkspace": "ABABAB",
    "background": "000000",
    "scrollBar": "C8C8C8",
    "infoText": "000000",
    "infoBk": "FFFFE1",
    "hotLight": "0066CC",
    "gradientActiveCaption": "B9D1EA",
    "gradientInactiveCaption": "D7E4F2",
}

_PRESET_PREFIXES = {"dk": "dark", "lt": "light", "med": "medium"}
_PRESET_PREFIX_RE = re.compile(r"^(dk|lt|med)(?=[A-Z])")
_HEX_RE = re.compile(r"^[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class ColorContext:
    """
    Theme information for color resolution.

    Attributes:
        color_scheme: Scheme slot name -> ``RRGGBB`` (no ``#``).
        color_map: Alias slot -> scheme slot (e.g. tx1 -> dk1).
    """

    color_scheme: Mapping[str, str] = field(default_factory=dict)
    color_map: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_COLOR_MAP))


def normalize_hex(value: Optional[str]) -> Optional[str]:
    """Return ``RRGGBB`` for a ``#RRGGBB`` / ``RRGGBB`` string, else None."""
    if not value:
        return None
    text = value.strip().lstrip("#")
    if not _HEX_RE.match(text):
        return None
    return text.upper()


def build_color_context(theme_colors: Optional[Mapping[str, str]] = None) -> ColorContext:
    scheme = {}
    for name, value in (theme_colors or {}).items():
        normalized = normalize_hex(value)
        if normalized is not None:
            scheme[name] = normalized
    return ColorContext(color_scheme=scheme)


# =============================================================================
# Conversion helpers
# =============================================================================


def _hex_to_rgb(hex_color: str) -> Tuple[float, float, float]:
    text = hex_color.lstrip("#")
    return tuple(int(text[i:i + 2], 16) / 255.0 for i in (0, 2, 4))


def _rgb_to_hex(r: float, g: float, b: float) -> str:
    def channel(value: float) -> int:
        return int(round(min(1.0, max(0.0, value)) * 255))

    return f"{channel(r):02X}{channel(g):02X}{channel(b):02X}"


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def _modify_hls(hex_color: str, lum_mod=1.0, lum_off=0.0, sat_mod=1.0) -> str:
    h, l, s = colorsys.rgb_to_hls(*_hex_to_rgb(hex_color))
    l = _clamp01(l * lum_mod + lum_off)
    s = _clamp01(s * sat_mod)
    return _rgb_to_hex(*colorsys.hls_to_rgb(h, l, s))


def apply_tint(hex_color: str, tint: float) -> str:
    """Mix toward white; tint 1.0 keeps the color, 0.0 gives white."""
    r, g, b = _hex_to_rgb(hex_color)
    amount = _clamp01(tint)
    return _rgb_to_hex(*(c + (1 - c) * (1 - amount) for c in (r, g, b)))


def apply_shade(hex_color: str, shade: float) -> str:
    """Mix toward black; shade 1.0 keeps the color, 0.0 gives black."""
    r, g, b = _hex_to_rgb(hex_color)
    amount = _clamp01(shade)
    return _rgb_to_hex(*(c * amount for c in (r, g, b)))


def apply_color_transforms(hex_color: str, transforms: Optional[ColorTransforms]) -> str:
    """
    Apply color transforms to a hex color.

    Transforms run in the order lumMod, lumOff, satMod, tint, shade. Values
    are in ECMA-376 units (100000 == 100%); every intermediate result is
    clamped into range.

    Args:
        hex_color: ``RRGGBB`` or ``#RRGGBB``.
        transforms: Modifiers to apply, or None.

    Returns:
        The transformed color as ``#RRGGBB``.
    """
    result = hex_color.lstrip("#").upper()
    if transforms is None:
        return f"#{result}"

    if transforms.lum_mod is not None:
        result = _modify_hls(result, lum_mod=transforms.lum_mod / PERCENT_SCALE)
    if transforms.lum_off is not None:
        result = _modify_hls(result, lum_off=transforms.lum_off / PERCENT_SCALE)
    if transforms.sat_mod is not None:
        result = _modify_hls(result, sat_mod=transforms.sat_mod / PERCENT_SCALE)
    if transforms.tint is not None:
        result = apply_tint(result, transforms.tint / PERCENT_SCALE)
    if transforms.shade is not None:
        result = apply_shade(result, transforms.shade / PERCENT_SCALE)

    return f"#{result}"


# =============================================================================
# Base color lookup
# =============================================================================


def _scheme_lookup(name: str, context: ColorContext) -> Optional[str]:
    if name in context.color_scheme:
        return context.color_scheme[name]
    mapped = context.color_map.get(name)
    if mapped and mapped in context.color_scheme:
        return context.color_scheme[mapped]
    return DEFAULT_SCHEME_COLORS.get(name)


def preset_color_hex(name: str) -> Optional[str]:
    """
    Look up a DrawingML preset color name.

    DrawingML abbreviates the dark/light/medium prefixes (``dkBlue``,
    ``ltGray``, ``medPurple``); they are expanded before the lookup.
    """
    if not name:
        return None
    expanded = _PRESET_PREFIX_RE.sub(lambda m: _PRESET_PREFIXES[m.group(1)], name)
    try:
        r, g, b = ImageColor.getrgb(expanded.lower())[:3]
    except ValueError:
        return None
    return f"{r:02X}{g:02X}{b:02X}"


def _hsl_hex(value) -> Optional[str]:
    try:
        hue, sat, lum = value
    except (TypeError, ValueError):
        return None
    h = (float(hue) / ANGLE_SCALE % 360) / 360
    s = _clamp01(float(sat) / PERCENT_SCALE)
    l = _clamp01(float(lum) / PERCENT_SCALE)
    return _rgb_to_hex(*colorsys.hls_to_rgb(h, l, s))


def _base_color(color: Color, context: ColorContext) -> Optional[str]:
    spec = color.spec
    if spec.type == "srgb":
        return normalize_hex(spec.value)
    if spec.type == "scheme":
        return _scheme_lookup(spec.value, context)
    if spec.type == "system":
        return normalize_hex(spec.last_color) or SYSTEM_COLORS.get(spec.value)
    if spec.type == "preset":
        return preset_color_hex(spec.value)
    if spec.type == "hsl":
        return _hsl_hex(spec.value)
    return None


def resolve_color(color: Optional[Color], context: ColorContext) -> Optional[str]:
    """
    Resolve a color reference to ``RRGGBB`` (no ``#``).

    Returns:
        The hex color, or None when the reference cannot be resolved.
    """
    if color is None:
        return None
    base = _base_color(color, context)
    if base is None:
        return None
    if color.transforms is None:
        return base
    return apply_color_transforms(base, color.transforms)[1:]


def resolve_scheme_color(
    name: str,
    theme_colors: Optional[Mapping[str, str]] = None,
    transforms: Optional[ColorTransforms] = None,
) -> Optional[str]:
    """
    Resolve a scheme color name against theme colors.

    Falls back to the built-in Office scheme when the theme lacks the slot.

    Returns:
        ``#RRGGBB``, or None for an unknown slot.
    """
    base = _scheme_lookup(name, build_color_context(theme_colors))
    if base is None:
        return None
    return apply_color_transforms(base, transforms)


# =============================================================================
# Color lists
# =============================================================================


def calculate_color_index(
    node_index: int, total_nodes: int, color_count: int, method: Optional[str] = None
) -> int:
    """
    Pick the palette index for a node.

    Args:
        node_index: Index of the node (0-based).
        total_nodes: Number of nodes sharing the palette.
        color_count: Palette size.
        method: "cycle" (default), "repeat" or "span".

    Returns:
        Index into the palette; 0 for an empty palette.
    """
    if color_count <= 0:
        return 0

    if method == "repeat":
        segment = max(1, -(-total_nodes // color_count))
        return min(node_index // segment, color_count - 1)

    if method == "span":
        if total_nodes <= 1:
            return 0
        ratio = node_index / (total_nodes - 1)
        return min(int(ratio * color_count), color_count - 1)

    return node_index % color_count


def resolve_color_from_list(
    color_list: Optional[ColorList],
    node_index: int,
    total_nodes: int,
    context: ColorContext,
    default: Optional[str],
) -> Optional[str]:
    """Resolve a node's color from a palette as ``#RRGGBB``, else ``default``."""
    if color_list is None or not color_list.colors:
        return default

    colors = list(color_list.colors)
    index = calculate_color_index(node_index, total_nodes, len(colors), color_list.method)
    resolved = resolve_color(colors[index], context)
    return f"#{resolved}" if resolved else default
