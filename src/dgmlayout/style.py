"""
Style resolution for diagram nodes.

Looks up a node's style label in the style and color definitions and
resolves each color channel from the matching palette. Missing labels and
palettes fall back to the default colors.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from .colors import ColorContext, build_color_context, resolve_color_from_list
from .models import (
    ColorStyleLabel,
    DiagramColorsDefinition,
    DiagramStyleDefinition,
    ShapeStyle,
    StyleLabel,
)
from .tree import DiagramTreeNode


@dataclass(frozen=True)
class DefaultColors:
    fill: str = "#4472C4"
    line: str = "#2F528F"
    text: str = "#000000"
    background: str = "#FFFFFF"


@dataclass(frozen=True)
class StyleResolverContext:
    """
    Inputs for style resolution.

    Attributes:
        style_definition: Style-label table, if any.
        color_definition: Color-label table, if any.
        theme_colors: Scheme slot name -> hex color.
        default_colors: Fallback colors.
    """

    style_definition: Optional[DiagramStyleDefinition] = None
    color_definition: Optional[DiagramColorsDefinition] = None
    theme_colors: Mapping[str, str] = field(default_factory=dict)
    default_colors: DefaultColors = field(default_factory=DefaultColors)

    @property
    def color_context(self) -> ColorContext:
        return build_color_context(self.theme_colors)


@dataclass(frozen=True)
class ResolvedDiagramStyle:
    """Resolved colors (``#RRGGBB``) and shape style of one node."""

    fill_color: Optional[str] = None
    line_color: Optional[str] = None
    effect_color: Optional[str] = None
    text_fill_color: Optional[str] = None
    text_line_color: Optional[str] = None
    text_effect_color: Optional[str] = None
    shape_style: Optional[ShapeStyle] = None


def find_style_label(
    name: Optional[str], style_definition: Optional[DiagramStyleDefinition]
) -> Optional[StyleLabel]:
    if not name or style_definition is None:
        return None
    for label in style_definition.style_labels:
        if label.name == name:
            return label
    return None


def find_color_style_label(
    name: Optional[str], color_definition: Optional[DiagramColorsDefinition]
) -> Optional[ColorStyleLabel]:
    if not name or color_definition is None:
        return None
    for label in color_definition.style_labels:
        if label.name == name:
            return label
    return None


def create_default_style_context(
    style_definition: Optional[DiagramStyleDefinition] = None,
    color_definition: Optional[DiagramColorsDefinition] = None,
    theme_colors: Optional[Mapping[str, str]] = None,
) -> StyleResolverContext:
    return StyleResolverContext(
        style_definition=style_definition,
        color_definition=color_definition,
        theme_colors=dict(theme_colors or {}),
        default_colors=DefaultColors(),
    )


def resolve_node_style(
    node: DiagramTreeNode,
    node_index: int,
    total_nodes: int,
    context: StyleResolverContext,
    style_label: Optional[str] = None,
) -> ResolvedDiagramStyle:
    """
    Resolve the style of a diagram node.

    Args:
        node: Tree node to style.
        node_index: Index of the node among the nodes sharing its palette.
        total_nodes: Number of nodes sharing the palette.
        context: Style resolver context.
        style_label: Label to use when the node's property set names none.

    Returns:
        ResolvedDiagramStyle with every channel resolved.
    """
    label = node.style_label or style_label
    style = find_style_label(label, context.style_definition)
    color_label = find_color_style_label(label, context.color_definition)
    color_context = context.color_context
    defaults = context.default_colors

    def channel(attribute: str, default: Optional[str]) -> Optional[str]:
        color_list = getattr(color_label, attribute) if color_label else None
        return resolve_color_from_list(
            color_list, node_index, total_nodes, color_context, default
        )

    return ResolvedDiagramStyle(
        fill_color=channel("fill_colors", defaults.fill),
        line_color=channel("line_colors", defaults.line),
        effect_color=channel("effect_colors", None),
        text_fill_color=channel("text_fill_colors", defaults.text),
        text_line_color=channel("text_line_colors", None),
        text_effect_color=channel("text_effect_colors", None),
        shape_style=style.style if style else None,
    )
