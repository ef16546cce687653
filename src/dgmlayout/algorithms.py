"""
Layout algorithms.

Each algorithm is a pure function ``(nodes, context) -> LayoutResult`` that
places a list of sibling tree nodes inside the context bounds. Algorithms are
selected through the closed AlgorithmType enum; an unknown tag coming from
untrusted input falls back to the linear algorithm with a warning.

Algorithms:
- lin: nodes in a row or column
- sp, tx: a single aligned slot (spacer / text)
- hierChild, hierRoot: node plus its children
- cycle: nodes on a circle
- snake: row/column flow with wrapping
- pyra: stacked levels of growing width
- composite: every node centred in the bounds
- conn: reserved connector geometry
"""

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .context import (
    LayoutBounds,
    LayoutContext,
    LayoutNode,
    LayoutResult,
    create_empty_result,
    flatten_layout_bounds,
    get_constraint,
    get_numeric_param,
    get_param,
    merge_bounds,
)
from .constraints import DEFAULT_CONNECTOR_DISTANCE
from .diagnostics import Diagnostics
from .tree import DiagramTreeNode

LayoutAlgorithmFn = Callable[[Sequence[DiagramTreeNode], LayoutContext], LayoutResult]


class AlgorithmType(str, Enum):
    """Layout algorithm tags (ST_AlgorithmType)."""

    LINEAR = "lin"
    SPACE = "sp"
    HIER_CHILD = "hierChild"
    HIER_ROOT = "hierRoot"
    CYCLE = "cycle"
    SNAKE = "snake"
    PYRAMID = "pyra"
    COMPOSITE = "composite"
    CONNECTOR = "conn"
    TEXT = "tx"


# =============================================================================
# Parameters
# =============================================================================


@dataclass(frozen=True)
class AlignParams:
    """Parameters of the single-slot algorithms (sp, tx)."""

    node_horz_align: str = "ctr"
    node_vert_align: str = "mid"

    @classmethod
    def from_context(cls, context: LayoutContext) -> "AlignParams":
        return cls(
            node_horz_align=get_param(context, "nodeHorzAlign", cls.node_horz_align),
            node_vert_align=get_param(context, "nodeVertAlign", cls.node_vert_align),
        )


@dataclass(frozen=True)
class LinearParams:
    lin_dir: str = "fromL"
    node_horz_align: str = "ctr"
    node_vert_align: str = "mid"

    @classmethod
    def from_context(cls, context: LayoutContext) -> "LinearParams":
        return cls(
            lin_dir=get_param(context, "linDir", cls.lin_dir),
            node_horz_align=get_param(context, "nodeHorzAlign", cls.node_horz_align),
            node_vert_align=get_param(context, "nodeVertAlign", cls.node_vert_align),
        )

    @property
    def is_vertical(self) -> bool:
        return self.lin_dir in ("fromT", "fromB")

    @property
    def is_reverse(self) -> bool:
        return self.lin_dir in ("fromR", "fromB")


@dataclass(frozen=True)
class HierarchyParams:
    lin_dir: str = "fromT"
    ch_dir: str = "horz"
    node_horz_align: str = "l"
    node_vert_align: str = "t"

    @classmethod
    def from_context(cls, context: LayoutContext) -> "HierarchyParams":
        return cls(
            lin_dir=get_param(context, "linDir", cls.lin_dir),
            ch_dir=get_param(context, "chDir", cls.ch_dir),
            node_horz_align=get_param(context, "nodeHorzAlign", cls.node_horz_align),
            node_vert_align=get_param(context, "nodeVertAlign", cls.node_vert_align),
        )

    @property
    def is_vertical(self) -> bool:
        return self.lin_dir in ("fromT", "fromB")

    @property
    def children_horizontal(self) -> bool:
        return self.ch_dir == "horz"


@dataclass(frozen=True)
class CycleParams:
    st_ang: float = 0.0
    span_ang: float = 360.0
    ctr_shp_map: str = "none"
    rot_path: str = "none"

    @classmethod
    def from_context(cls, context: LayoutContext) -> "CycleParams":
        return cls(
            st_ang=get_numeric_param(context, "stAng", cls.st_ang),
            span_ang=get_numeric_param(context, "spanAng", cls.span_ang),
            ctr_shp_map=get_param(context, "ctrShpMap", cls.ctr_shp_map),
            rot_path=get_param(context, "rotPath", cls.rot_path),
        )


@dataclass(frozen=True)
class SnakeParams:
    flow_dir: str = "row"
    gr_dir: str = "tL"
    cont_dir: str = "revDir"

    @classmethod
    def from_context(cls, context: LayoutContext) -> "SnakeParams":
        return cls(
            flow_dir=get_param(context, "flowDir", cls.flow_dir),
            gr_dir=get_param(context, "grDir", cls.gr_dir),
            cont_dir=get_param(context, "contDir", cls.cont_dir),
        )


@dataclass(frozen=True)
class PyramidParams:
    lin_dir: str = "fromT"

    @classmethod
    def from_context(cls, context: LayoutContext) -> "PyramidParams":
        return cls(lin_dir=get_param(context, "linDir", cls.lin_dir))


# =============================================================================
# Helpers
# =============================================================================


def get_node_dimensions(context: LayoutContext) -> Tuple[float, float]:
    """Node width and height from w/h constraints or context defaults."""
    width = get_constraint(context, "w", context.default_node_width)
    height = get_constraint(context, "h", context.default_node_height)
    return width, height


def get_spacing(context: LayoutContext) -> float:
    """Spacing from a sibSp constraint, else an sp constraint, else the default."""
    sibling_spacing = get_constraint(context, "sibSp", None)
    if sibling_spacing is not None:
        return sibling_spacing
    return get_constraint(context, "sp", context.default_spacing)


def align_horizontally(bounds: LayoutBounds, node_width: float, alignment: str) -> float:
    """Left edge of a node aligned l / ctr / r within bounds (ctr by default)."""
    if alignment == "l":
        return bounds.x
    if alignment == "r":
        return bounds.x + bounds.width - node_width
    return bounds.x + (bounds.width - node_width) / 2


def align_vertically(bounds: LayoutBounds, node_height: float, alignment: str) -> float:
    """Top edge of a node aligned t / mid / b within bounds (mid by default)."""
    if alignment == "t":
        return bounds.y
    if alignment == "b":
        return bounds.y + bounds.height - node_height
    return bounds.y + (bounds.height - node_height) / 2


def _run_start(
    origin: float, extent: float, total: float, alignment: str, center: str, far: str
) -> float:
    """Start of a run of ``total`` length; anything but center/far hugs the origin."""
    if alignment == center:
        return origin + (extent - total) / 2
    if alignment == far:
        return origin + extent - total
    return origin


def _result(nodes: List[LayoutNode]) -> LayoutResult:
    if not nodes:
        return create_empty_result()
    return LayoutResult(
        nodes=tuple(nodes), bounds=merge_bounds(*flatten_layout_bounds(nodes))
    )


def _place_single(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    if not nodes:
        return create_empty_result()

    params = AlignParams.from_context(context)
    width, height = get_node_dimensions(context)
    bounds = context.bounds

    node = LayoutNode(
        tree_node=nodes[0],
        x=align_horizontally(bounds, width, params.node_horz_align),
        y=align_vertically(bounds, height, params.node_vert_align),
        width=width,
        height=height,
    )
    return LayoutResult(nodes=(node,), bounds=node.bounds)


# =============================================================================
# Linear layout (lin)
# =============================================================================


def linear_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """
    Arrange nodes in a horizontal or vertical line.

    Parameters: linDir (fromL, fromR, fromT, fromB), nodeHorzAlign
    (l, ctr, r), nodeVertAlign (t, mid, b). Reversed directions reverse the
    node order; the whole run is aligned within the bounds along the primary
    axis and every node is aligned against the full bounds on the cross axis.
    """
    if not nodes:
        return create_empty_result()

    params = LinearParams.from_context(context)
    bounds = context.bounds
    width, height = get_node_dimensions(context)
    spacing = get_spacing(context)

    ordered = list(reversed(nodes)) if params.is_reverse else list(nodes)
    count = len(ordered)

    if params.is_vertical:
        total = count * height + (count - 1) * spacing
        current = _run_start(
            bounds.y, bounds.height, total, params.node_vert_align, "mid", "b"
        )
    else:
        total = count * width + (count - 1) * spacing
        current = _run_start(
            bounds.x, bounds.width, total, params.node_horz_align, "ctr", "r"
        )

    placed: List[LayoutNode] = []
    for node in ordered:
        if params.is_vertical:
            x = align_horizontally(bounds, width, params.node_horz_align)
            y = current
            current += height + spacing
        else:
            x = current
            y = align_vertically(bounds, height, params.node_vert_align)
            current += width + spacing
        placed.append(
            LayoutNode(tree_node=node, x=x, y=y, width=width, height=height)
        )

    return _result(placed)


# =============================================================================
# Space (sp) and text (tx) layouts
# =============================================================================


def space_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """Place the first node as an aligned spacer slot."""
    return _place_single(nodes, context)


def text_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """Place the first node as an aligned text slot."""
    return _place_single(nodes, context)


# =============================================================================
# Hierarchy layouts (hierChild, hierRoot)
# =============================================================================


def _layout_child_row(
    children: Sequence[DiagramTreeNode],
    bounds: LayoutBounds,
    horizontal: bool,
    width: float,
    height: float,
    spacing: float,
) -> Tuple[LayoutNode, ...]:
    # Grandchildren go one step further along the cross direction. Rows are
    # positioned top-down, then nodes are assembled bottom-up.
    positions: List[Tuple[Optional[int], DiagramTreeNode, float, float]] = []
    rows: List[Tuple[Optional[int], Sequence[DiagramTreeNode], LayoutBounds]] = [
        (None, children, bounds)
    ]

    while rows:
        owner, row, row_bounds = rows.pop()
        current = row_bounds.x if horizontal else row_bounds.y

        for child in row:
            x = current if horizontal else row_bounds.x
            y = row_bounds.y if horizontal else current
            positions.append((owner, child, x, y))

            if child.children:
                if horizontal:
                    sub_bounds = LayoutBounds(
                        x,
                        y + height + spacing,
                        row_bounds.width,
                        row_bounds.height - height - spacing,
                    )
                else:
                    sub_bounds = LayoutBounds(
                        x + width + spacing,
                        y,
                        row_bounds.width - width - spacing,
                        row_bounds.height,
                    )
                rows.append((len(positions) - 1, child.children, sub_bounds))
            current += (width if horizontal else height) + spacing

    # A row's positions always come after its owner's position.
    built: Dict[Optional[int], List[LayoutNode]] = {}
    for index in range(len(positions) - 1, -1, -1):
        owner, child, x, y = positions[index]
        node = LayoutNode(
            tree_node=child,
            x=x,
            y=y,
            width=width,
            height=height,
            children=tuple(reversed(built.pop(index, []))),
        )
        built.setdefault(owner, []).append(node)

    return tuple(reversed(built.get(None, [])))


def hier_child_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """
    Arrange nodes with their children in a hierarchy.

    Parameters: linDir (fromT default), chDir (horz default), nodeHorzAlign
    (l default), nodeVertAlign (t default).

    Each node is placed along the primary axis and its children are laid out
    in the remaining bounds (offset by the node size plus spacing). With a
    vertical primary axis a parent is centred on the summed height of its
    children; the advance per node is max(own size, child extent) + spacing.
    """
    if not nodes:
        return create_empty_result()

    params = HierarchyParams.from_context(context)
    bounds = context.bounds
    width, height = get_node_dimensions(context)
    spacing = get_spacing(context)
    vertical = params.is_vertical

    placed: List[LayoutNode] = []
    current = bounds.y if vertical else bounds.x

    for node in nodes:
        if vertical:
            child_bounds = LayoutBounds(
                x=bounds.x + width + spacing,
                y=current,
                width=bounds.width - width - spacing,
                height=bounds.height - height - spacing,
            )
        else:
            child_bounds = LayoutBounds(
                x=current,
                y=bounds.y + height + spacing,
                width=bounds.width - width - spacing,
                height=bounds.height - height - spacing,
            )

        children: Tuple[LayoutNode, ...] = ()
        if node.children:
            children = _layout_child_row(
                node.children,
                child_bounds,
                params.children_horizontal,
                width,
                height,
                spacing,
            )

        if vertical:
            child_extent = (
                sum(child.height + spacing for child in children) - spacing
                if children
                else 0.0
            )
            x = align_horizontally(bounds, width, params.node_horz_align)
            y = current + (child_extent - height) / 2 if children else current
            current += max(height + spacing, child_extent + spacing)
        else:
            child_extent = (
                sum(child.width + spacing for child in children) - spacing
                if children
                else 0.0
            )
            x = current + (child_extent - width) / 2 if children else current
            y = align_vertically(bounds, height, params.node_vert_align)
            current += max(width + spacing, child_extent + spacing)

        placed.append(
            LayoutNode(
                tree_node=node, x=x, y=y, width=width, height=height, children=children
            )
        )

    return _result(placed)


def hier_root_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """Root container of a hierarchy; delegates to hierChild."""
    return hier_child_layout(nodes, context)


# =============================================================================
# Cycle layout (cycle)
# =============================================================================


def cycle_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """
    Arrange nodes on a circle.

    Parameters: stAng, spanAng (degrees), ctrShpMap (none, fNode), rotPath
    (none, alongPath). The radius is diam/2 - max(w, h)/2 with diam taken from
    a "diam" constraint or the smaller side of the bounds; angles start at
    12 o'clock.
    """
    if not nodes:
        return create_empty_result()

    params = CycleParams.from_context(context)
    bounds = context.bounds
    width, height = get_node_dimensions(context)

    center_x = bounds.center_x
    center_y = bounds.center_y
    diameter = get_constraint(context, "diam", min(bounds.width, bounds.height))
    radius = diameter / 2 - max(width, height) / 2

    placed: List[LayoutNode] = []
    ring = list(nodes)

    if params.ctr_shp_map == "fNode":
        placed.append(
            LayoutNode(
                tree_node=ring.pop(0),
                x=center_x - width / 2,
                y=center_y - height / 2,
                width=width,
                height=height,
            )
        )

    if not ring:
        return _result(placed)

    angle_step = math.radians(params.span_ang / len(ring))
    angle = math.radians(params.st_ang - 90)

    for node in ring:
        rotation = None
        if params.rot_path == "alongPath":
            rotation = math.degrees(angle + math.pi / 2)
        placed.append(
            LayoutNode(
                tree_node=node,
                x=center_x + radius * math.cos(angle) - width / 2,
                y=center_y + radius * math.sin(angle) - height / 2,
                width=width,
                height=height,
                rotation=rotation,
            )
        )
        angle += angle_step

    return _result(placed)


# =============================================================================
# Snake layout (snake)
# =============================================================================


def snake_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """
    Arrange nodes in rows (or columns) that wrap at the bounds.

    Parameters: flowDir (row, col), grDir (tL, tR, bL, bR), contDir
    (revDir zig-zags, sameDir keeps every row in the same direction).
    """
    if not nodes:
        return create_empty_result()

    params = SnakeParams.from_context(context)
    bounds = context.bounds
    width, height = get_node_dimensions(context)
    spacing = get_spacing(context)

    row_flow = params.flow_dir != "col"
    extent, cell = (
        (bounds.width, width + spacing) if row_flow else (bounds.height, height + spacing)
    )
    per_row = math.floor((extent + spacing) / cell) if cell > 0 else len(nodes)
    per_row = max(1, per_row)

    from_right = params.gr_dir in ("tR", "bR")
    from_bottom = params.gr_dir in ("bL", "bR")

    placed: List[LayoutNode] = []
    row = 0
    col = 0
    reverse_row = from_right

    for node in nodes:
        slot = max(0, per_row - 1 - col) if reverse_row else col

        if row_flow:
            x = bounds.x + slot * (width + spacing)
            if from_bottom:
                y = bounds.y + bounds.height - (row + 1) * (height + spacing) + spacing
            else:
                y = bounds.y + row * (height + spacing)
        else:
            if from_right:
                x = bounds.x + bounds.width - (row + 1) * (width + spacing) + spacing
            else:
                x = bounds.x + row * (width + spacing)
            y = bounds.y + slot * (height + spacing)

        placed.append(LayoutNode(tree_node=node, x=x, y=y, width=width, height=height))

        col += 1
        if col >= per_row:
            col = 0
            row += 1
            if params.cont_dir == "revDir":
                reverse_row = not reverse_row

    return _result(placed)


# =============================================================================
# Pyramid layout (pyra)
# =============================================================================


def pyramid_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """
    Stack nodes as pyramid levels.

    With linDir=fromT the top level is narrowest (the "w" width) and the
    bottom level spans the bounds; fromB inverts this. Levels are centred.
    """
    if not nodes:
        return create_empty_result()

    params = PyramidParams.from_context(context)
    bounds = context.bounds
    base_width, height = get_node_dimensions(context)
    spacing = get_spacing(context)
    from_top = params.lin_dir == "fromT"

    count = len(nodes)
    width_step = (bounds.width - base_width) / (count - 1) if count > 1 else 0.0

    placed: List[LayoutNode] = []
    for i in range(count):
        level = i if from_top else count - 1 - i
        level_width = base_width + width_step * level
        placed.append(
            LayoutNode(
                tree_node=nodes[level],
                x=bounds.center_x - level_width / 2,
                y=bounds.y + i * (height + spacing),
                width=level_width,
                height=height,
            )
        )

    return _result(placed)


# =============================================================================
# Composite layout (composite)
# =============================================================================


def composite_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """
    Centre every node in the bounds.

    Sub-layouts of a composite are not composed here; the shape generator
    processes them as sibling algorithm invocations.
    """
    if not nodes:
        return create_empty_result()

    bounds = context.bounds
    width, height = get_node_dimensions(context)
    x = bounds.x + (bounds.width - width) / 2
    y = bounds.y + (bounds.height - height) / 2

    return _result(
        [LayoutNode(tree_node=node, x=x, y=y, width=width, height=height) for node in nodes]
    )


# =============================================================================
# Connector layout (conn)
# =============================================================================


def connector_layout(
    nodes: Sequence[DiagramTreeNode], context: LayoutContext
) -> LayoutResult:
    """
    Reserve geometry for connectors.

    Every node is placed at the bounds origin with width from a "connDist"
    constraint (default 20) and the node height. Routing between the
    connected shapes is not computed.
    """
    if not nodes:
        return create_empty_result()

    bounds = context.bounds
    conn_width = get_constraint(context, "connDist", DEFAULT_CONNECTOR_DISTANCE)
    _, height = get_node_dimensions(context)

    return _result(
        [
            LayoutNode(
                tree_node=node,
                x=bounds.x,
                y=bounds.y,
                width=conn_width,
                height=height,
                is_connector=True,
            )
            for node in nodes
        ]
    )


# =============================================================================
# Registry
# =============================================================================

ALGORITHMS: Mapping[AlgorithmType, LayoutAlgorithmFn] = MappingProxyType(
    {
        AlgorithmType.LINEAR: linear_layout,
        AlgorithmType.SPACE: space_layout,
        AlgorithmType.HIER_CHILD: hier_child_layout,
        AlgorithmType.HIER_ROOT: hier_root_layout,
        AlgorithmType.CYCLE: cycle_layout,
        AlgorithmType.SNAKE: snake_layout,
        AlgorithmType.PYRAMID: pyramid_layout,
        AlgorithmType.COMPOSITE: composite_layout,
        AlgorithmType.CONNECTOR: connector_layout,
        AlgorithmType.TEXT: text_layout,
    }
)


def resolve_algorithm_type(
    tag: Union[AlgorithmType, str, None], diagnostics: Optional[Diagnostics] = None
) -> AlgorithmType:
    """
    Resolve an algorithm tag.

    Args:
        tag: Enum member, raw tag or None.
        diagnostics: Optional collector for the unknown-tag warning.

    Returns:
        The matching AlgorithmType; LINEAR for a missing or unknown tag.
    """
    if isinstance(tag, AlgorithmType):
        return tag
    if not tag:
        return AlgorithmType.LINEAR
    try:
        return AlgorithmType(tag)
    except ValueError:
        if diagnostics is not None:
            diagnostics.warn(
                "unknown-algorithm",
                f"Unknown layout algorithm: {tag}, using linear",
                source="algorithms",
            )
        return AlgorithmType.LINEAR


def get_layout_algorithm(
    tag: Union[AlgorithmType, str, None], diagnostics: Optional[Diagnostics] = None
) -> LayoutAlgorithmFn:
    """Return the algorithm function for a tag (linear for unknown tags)."""
    return ALGORITHMS[resolve_algorithm_type(tag, diagnostics)]
