"""
Data models for diagram layout.

This module contains the immutable dataclasses that describe the inputs of the
layout engine. They are produced by an external document parser and consumed
by the tree builder, the layout algorithms, the style resolver and the shape
generator.

Classes:
    DiagramPoint: A content node of the data model.
    DiagramConnection: A directed edge between two points.
    DiagramDataModel: Points plus connections.
    Color, ColorSpec, ColorTransforms: A color reference and its modifiers.
    ColorList: A palette plus the policy used to spread it over nodes.
    DiagramStyleDefinition, DiagramColorsDefinition: Style-label tables.
    DiagramConstraint: A declarative size/position rule.
    LayoutNodeDef and friends: The layout-definition tree.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple, Union

# Numeric attributes arrive from markup as strings; numbers are accepted too.
NumberLike = Union[int, float, str]


# =============================================================================
# Data model
# =============================================================================


@dataclass(frozen=True)
class DiagramPropertySet:
    """
    Presentation properties attached to a point.

    Attributes:
        presentation_style_label: Style label linking the point to entries in
            the style and color definitions (e.g. "node0").
        presentation_name: Name of the layout node that presents the point.
        presentation_id: Identifier of the presented point.
        layout_vars: Free-form layout variables (used by choose/if "var").
    """

    presentation_style_label: Optional[str] = None
    presentation_name: Optional[str] = None
    presentation_id: Optional[str] = None
    layout_vars: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextRun:
    """A run of text. ``type`` is "text", "break" or "field"."""

    text: str = ""
    type: str = "text"


@dataclass(frozen=True)
class TextParagraph:
    runs: Tuple[TextRun, ...] = ()


@dataclass(frozen=True)
class TextBody:
    """
    Minimal text body.

    The engine never formats text; a text body is passed through to the
    generated shape unchanged. Only the plain text is ever read from it.
    """

    paragraphs: Tuple[TextParagraph, ...] = ()
    body_properties: Any = None


@dataclass(frozen=True)
class DiagramPoint:
    """
    An identified content node of the data model.

    Attributes:
        model_id: Unique identifier of the point.
        type: Point type tag (node, doc, asst, parTrans, sibTrans, pres).
        property_set: Optional presentation properties.
        shape_properties: Optional shape properties, passed through untouched.
        text_body: Optional text body, passed through untouched.
    """

    model_id: str
    type: Optional[str] = "node"
    property_set: Optional[DiagramPropertySet] = None
    shape_properties: Any = None
    text_body: Any = None


@dataclass(frozen=True)
class DiagramConnection:
    """
    A directed edge of the data model.

    For ``parOf`` connections the source is the child and the destination is
    the parent. ``source_order`` is the insertion index of the child among its
    parent's children.
    """

    model_id: str
    source_id: Optional[str]
    destination_id: Optional[str]
    type: str = "parOf"
    source_order: Optional[int] = None
    destination_order: Optional[int] = None


@dataclass(frozen=True)
class DiagramDataModel:
    points: Sequence[DiagramPoint] = ()
    connections: Sequence[DiagramConnection] = ()


# =============================================================================
# Colors
# =============================================================================


@dataclass(frozen=True)
class ColorSpec:
    """
    Base color reference.

    Attributes:
        type: One of "srgb", "scheme", "system", "preset", "hsl".
        value: Hex string for srgb, scheme/system/preset name, or a
            (hue, saturation, luminance) tuple in ECMA-376 units for hsl.
        last_color: Last computed color for system colors, if known.
    """

    type: str
    value: Any
    last_color: Optional[str] = None


@dataclass(frozen=True)
class ColorTransforms:
    """
    Color modifiers in ECMA-376 units (100000 == 100%).

    Applied in the fixed order lum_mod, lum_off, sat_mod, tint, shade.
    """

    lum_mod: Optional[int] = None
    lum_off: Optional[int] = None
    sat_mod: Optional[int] = None
    tint: Optional[int] = None
    shade: Optional[int] = None


@dataclass(frozen=True)
class Color:
    spec: ColorSpec
    transforms: Optional[ColorTransforms] = None


@dataclass(frozen=True)
class ColorList:
    """
    A palette for one color channel.

    Attributes:
        colors: Palette entries.
        method: Application method: "cycle" (default), "repeat" or "span".
    """

    colors: Sequence[Color] = ()
    method: Optional[str] = None


@dataclass(frozen=True)
class ColorStyleLabel:
    name: str
    fill_colors: Optional[ColorList] = None
    line_colors: Optional[ColorList] = None
    effect_colors: Optional[ColorList] = None
    text_fill_colors: Optional[ColorList] = None
    text_line_colors: Optional[ColorList] = None
    text_effect_colors: Optional[ColorList] = None


@dataclass(frozen=True)
class DiagramColorsDefinition:
    style_labels: Sequence[ColorStyleLabel] = ()
    unique_id: Optional[str] = None


# =============================================================================
# Styles
# =============================================================================


@dataclass(frozen=True)
class StyleReference:
    """Reference into the theme's style matrix (``idx``) with an optional color."""

    idx: int = 0
    color: Optional[Color] = None


@dataclass(frozen=True)
class ShapeStyle:
    line_ref: Optional[StyleReference] = None
    fill_ref: Optional[StyleReference] = None
    effect_ref: Optional[StyleReference] = None
    font_ref: Optional[StyleReference] = None


@dataclass(frozen=True)
class StyleLabel:
    name: str
    style: Optional[ShapeStyle] = None


@dataclass(frozen=True)
class DiagramStyleDefinition:
    style_labels: Sequence[StyleLabel] = ()
    unique_id: Optional[str] = None


# =============================================================================
# Layout definition
# =============================================================================


@dataclass(frozen=True)
class DiagramConstraint:
    """
    A declarative size or position rule.

    Attributes:
        type: Affected attribute (w, h, l, t, r, b, ctrX, ctrY, lOff, tOff,
            sp, sibSp, diam, connDist, ...).
        value: Explicit value.
        factor: Multiplier applied to the base value (default 1).
        min: Lower clamp.
        max: Upper clamp.
        ref_type: Type of an already-resolved constraint to copy from.
        op: Comparison operator (equ, gte, lte, none).
        for_: Axis the constraint targets (self, ch, des).
        for_name: Name of the layout node the constraint targets.
        ref_for: Axis of the referenced constraint.
        ref_for_name: Layout node name of the referenced constraint.
    """

    type: Optional[str] = None
    value: Optional[NumberLike] = None
    factor: Optional[NumberLike] = None
    min: Optional[NumberLike] = None
    max: Optional[NumberLike] = None
    ref_type: Optional[str] = None
    op: Optional[str] = None
    for_: Optional[str] = None
    for_name: Optional[str] = None
    ref_for: Optional[str] = None
    ref_for_name: Optional[str] = None


@dataclass(frozen=True)
class AlgorithmParam:
    type: str
    value: Any


@dataclass(frozen=True)
class AlgorithmDef:
    """Algorithm declaration of a layout node: a type tag plus parameters."""

    type: Optional[str] = None
    params: Sequence[AlgorithmParam] = ()


@dataclass(frozen=True)
class ShapeDef:
    """Preset shape declared by a layout node ("none" and "conn" draw nothing)."""

    type: Optional[str] = None
    rotation: Optional[float] = None


@dataclass(frozen=True)
class ForEachDef:
    """
    Selection of data nodes.

    Attributes:
        name: Optional name.
        axis: Space-separated axis steps (self, ch, des, par, ...).
        pt_type: Space-separated point-type filters, one per axis step.
        start: 1-based index of the first selected node.
        count: Maximum number of nodes; 0 selects all.
        step: Stride through the selection.
        hide_last_trans: Drop a trailing sibling transition.
        layout_nodes: Layout nodes laid out over the selection.
    """

    name: Optional[str] = None
    axis: str = "self"
    pt_type: str = "all"
    start: int = 1
    count: int = 0
    step: int = 1
    hide_last_trans: bool = True
    layout_nodes: Sequence["LayoutNodeDef"] = ()


@dataclass(frozen=True)
class IfDef:
    """
    A conditional branch of a choose.

    ``func`` is one of cnt, pos, revPos, posEven, posOdd, depth, maxDepth,
    var; ``arg`` names the variable for "var".
    """

    name: Optional[str] = None
    func: str = "cnt"
    arg: Optional[str] = None
    op: str = "equ"
    val: Any = None
    axis: str = "ch"
    pt_type: str = "all"
    layout_nodes: Sequence["LayoutNodeDef"] = ()


@dataclass(frozen=True)
class ElseDef:
    name: Optional[str] = None
    layout_nodes: Sequence["LayoutNodeDef"] = ()


@dataclass(frozen=True)
class ChooseDef:
    name: Optional[str] = None
    if_branches: Sequence[IfDef] = ()
    else_branch: Optional[ElseDef] = None


@dataclass(frozen=True)
class LayoutNodeDef:
    """
    A node of the layout-definition tree.

    Attributes:
        name: Layout node name.
        style_label: Style label applied to shapes of this node.
        algorithm: Algorithm declaration; absent means linear.
        shape: Preset shape declaration; absent means the configured default.
        constraints: Constraints in declaration order.
        for_each: Data-node selections.
        choose: Conditional branches.
        children: Sub-layouts processed as sibling invocations.
    """

    name: Optional[str] = None
    style_label: Optional[str] = None
    algorithm: Optional[AlgorithmDef] = None
    shape: Optional[ShapeDef] = None
    constraints: Sequence[DiagramConstraint] = ()
    for_each: Sequence[ForEachDef] = ()
    choose: Sequence[ChooseDef] = ()
    children: Sequence["LayoutNodeDef"] = ()


@dataclass(frozen=True)
class DiagramLayoutDefinition:
    layout_node: Optional[LayoutNodeDef] = None
    unique_id: Optional[str] = None
    title: Optional[str] = None
