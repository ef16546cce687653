"""
Layout context and shared layout types.

This module holds the value types every layout algorithm consumes and
produces: rectangle bounds, positioned layout nodes, algorithm results and the
read-only context an algorithm runs in, plus the lookup helpers for algorithm
parameters and constraint values.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .models import DiagramConstraint
from .tree import DiagramTreeNode

DEFAULT_SPACING = 10.0
DEFAULT_NODE_WIDTH = 100.0
DEFAULT_NODE_HEIGHT = 60.0


def to_number(value: Any, default: Optional[float] = None) -> Optional[float]:
    """
    Convert a numeric attribute to float.

    Numbers pass through, numeric strings are parsed, anything else (None,
    booleans, garbage, NaN) yields ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number):
        return default
    return number


@dataclass(frozen=True)
class LayoutBounds:
    """Axis-aligned rectangle. Zero-sized rectangles are allowed."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


ZERO_BOUNDS = LayoutBounds()


@dataclass(frozen=True)
class LayoutNode:
    """
    A tree node after geometric placement.

    Attributes:
        tree_node: The placed tree node.
        x: Left edge.
        y: Top edge.
        width: Width.
        height: Height.
        rotation: Rotation in degrees, if any.
        children: Placed children (hierarchical algorithms only).
        is_connector: True for connector placeholders.
    """

    tree_node: DiagramTreeNode
    x: float
    y: float
    width: float
    height: float
    rotation: Optional[float] = None
    children: Tuple["LayoutNode", ...] = ()
    is_connector: bool = False

    @property
    def bounds(self) -> LayoutBounds:
        return LayoutBounds(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class LayoutResult:
    """Result of a layout algorithm."""

    nodes: Tuple[LayoutNode, ...] = ()
    bounds: LayoutBounds = ZERO_BOUNDS


@dataclass(frozen=True)
class LayoutContext:
    """
    Read-only context of one algorithm invocation.

    Attributes:
        bounds: Available space.
        params: Algorithm parameters by name.
        constraints: Constraints declared by the layout node.
        default_spacing: Spacing when no sp/sibSp constraint is declared.
        default_node_width: Width when no w constraint is declared.
        default_node_height: Height when no h constraint is declared.
    """

    bounds: LayoutBounds
    params: Mapping[str, Any] = field(default_factory=dict)
    constraints: Tuple[DiagramConstraint, ...] = ()
    default_spacing: float = DEFAULT_SPACING
    default_node_width: float = DEFAULT_NODE_WIDTH
    default_node_height: float = DEFAULT_NODE_HEIGHT


def _normalize_params(params: Any) -> Dict[str, Any]:
    if not params:
        return {}
    if isinstance(params, Mapping):
        return dict(params)
    return {param.type: param.value for param in params}


def create_default_context(
    bounds: LayoutBounds,
    params: Any = None,
    constraints: Optional[Sequence[DiagramConstraint]] = None,
    *,
    default_spacing: float = DEFAULT_SPACING,
    default_node_width: float = DEFAULT_NODE_WIDTH,
    default_node_height: float = DEFAULT_NODE_HEIGHT,
) -> LayoutContext:
    """
    Create a layout context.

    Args:
        bounds: Available space.
        params: Mapping of parameter name to value, or a sequence of
            AlgorithmParam records.
        constraints: Constraints declared by the layout node.
        default_spacing: Engine-wide default spacing.
        default_node_width: Engine-wide default node width.
        default_node_height: Engine-wide default node height.

    Returns:
        A LayoutContext.
    """
    return LayoutContext(
        bounds=bounds,
        params=_normalize_params(params),
        constraints=tuple(constraints or ()),
        default_spacing=default_spacing,
        default_node_width=default_node_width,
        default_node_height=default_node_height,
    )


def get_param(context: LayoutContext, name: str, default: Any) -> Any:
    value = context.params.get(name)
    return default if value is None else value


def get_numeric_param(context: LayoutContext, name: str, default: float) -> float:
    return to_number(context.params.get(name), default)


def get_constraint(
    context: LayoutContext,
    constraint_type: Union[str, Sequence[str]],
    default: Optional[float],
) -> Optional[float]:
    """
    Look up a constraint value declared on the context.

    The last constraint of a matching type with a usable explicit value wins;
    its factor and min/max clamps are applied.

    Args:
        context: Layout context.
        constraint_type: A type name or several alternative names.
        default: Value when no matching constraint is declared.

    Returns:
        The constraint value or the default.
    """
    types = (constraint_type,) if isinstance(constraint_type, str) else tuple(constraint_type)
    found = default
    for constraint in context.constraints:
        if constraint.type not in types:
            continue
        value = to_number(constraint.value)
        if value is None:
            continue
        value *= to_number(constraint.factor, 1.0)
        low = to_number(constraint.min)
        high = to_number(constraint.max)
        if low is not None:
            value = max(value, low)
        if high is not None:
            value = min(value, high)
        found = value
    return found


def merge_bounds(*bounds: LayoutBounds) -> LayoutBounds:
    """Return the bounding box of all given rectangles (zero bounds if none)."""
    if not bounds:
        return ZERO_BOUNDS
    min_x = min(b.x for b in bounds)
    min_y = min(b.y for b in bounds)
    max_x = max(b.x + b.width for b in bounds)
    max_y = max(b.y + b.height for b in bounds)
    return LayoutBounds(min_x, min_y, max_x - min_x, max_y - min_y)


def flatten_layout_bounds(nodes: Sequence[LayoutNode]) -> list:
    """Bounds of the given nodes and all of their descendants."""
    result = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        result.append(node.bounds)
        stack.extend(reversed(node.children))
    return result


def create_empty_result() -> LayoutResult:
    return LayoutResult(nodes=(), bounds=ZERO_BOUNDS)
