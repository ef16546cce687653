"""
Constraint resolution.

Constraints are declarative rules that set or adjust the size and position of
laid-out nodes. A constraint is resolved to a number in three steps:

1. Base value: the explicit ``value``, else the already-resolved value of the
   referenced constraint type, else a value derived from the bounds.
2. ``factor`` multiplies the base.
3. ``min`` / ``max`` clamp the result.

Constraints are applied in declaration order and each resolved value is
recorded so that later constraints of the same call can reference it.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .context import LayoutBounds, LayoutNode, to_number
from .models import DiagramConstraint

logger = logging.getLogger(__name__)

DEFAULT_SPACING = 10.0
DEFAULT_CONNECTOR_DISTANCE = 20.0

SPACING_TYPES = ("sp", "sibSp", "secSibSp", "begPad", "endPad")


@dataclass(frozen=True)
class ConstraintContext:
    """
    Inputs available while resolving constraints.

    Attributes:
        bounds: Bounds used to derive position and size bases.
        resolved_constraints: Values of constraint types resolved so far.
    """

    bounds: LayoutBounds
    resolved_constraints: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedConstraint:
    type: str
    value: float
    is_reference: bool = False


_BOUNDS_BASES: Dict[str, Callable[[LayoutBounds], float]] = {
    "l": lambda b: b.x,
    "t": lambda b: b.y,
    "r": lambda b: b.x + b.width,
    "b": lambda b: b.y + b.height,
    "ctrX": lambda b: b.center_x,
    "ctrY": lambda b: b.center_y,
    "w": lambda b: b.width,
    "h": lambda b: b.height,
    "diam": lambda b: min(b.width, b.height),
    "connDist": lambda b: DEFAULT_CONNECTOR_DISTANCE,
}


def _derived_base(constraint_type: str, bounds: LayoutBounds) -> Optional[float]:
    if constraint_type in _BOUNDS_BASES:
        return _BOUNDS_BASES[constraint_type](bounds)
    if constraint_type in SPACING_TYPES:
        return DEFAULT_SPACING
    if constraint_type.endswith("Off"):
        return 0.0
    return None


def resolve_constraint(
    constraint: DiagramConstraint, context: ConstraintContext
) -> Optional[ResolvedConstraint]:
    """
    Resolve a constraint to a numeric value.

    Args:
        constraint: The constraint to resolve.
        context: Bounds plus previously resolved values.

    Returns:
        ResolvedConstraint, or None when the constraint has no type or no
        base value can be determined.
    """
    if not constraint.type:
        return None

    is_reference = False
    base = to_number(constraint.value)

    if base is None and constraint.ref_type:
        referenced = context.resolved_constraints.get(constraint.ref_type)
        if referenced is not None:
            base = referenced
            is_reference = True

    if base is None:
        base = _derived_base(constraint.type, context.bounds)
    if base is None:
        return None

    value = base * to_number(constraint.factor, 1.0)

    low = to_number(constraint.min)
    high = to_number(constraint.max)
    if low is not None:
        value = max(value, low)
    if high is not None:
        value = min(value, high)

    return ResolvedConstraint(type=constraint.type, value=value, is_reference=is_reference)


def _apply_value(node: LayoutNode, constraint_type: str, value: float) -> LayoutNode:
    if constraint_type == "w":
        return replace(node, width=value)
    if constraint_type == "h":
        return replace(node, height=value)
    if constraint_type == "l":
        return replace(node, x=value)
    if constraint_type == "t":
        return replace(node, y=value)
    if constraint_type == "r":
        return replace(node, x=value - node.width)
    if constraint_type == "b":
        return replace(node, y=value - node.height)
    if constraint_type == "ctrX":
        return replace(node, x=value - node.width / 2)
    if constraint_type == "ctrY":
        return replace(node, y=value - node.height / 2)
    if constraint_type in ("lOff", "rOff", "ctrXOff"):
        return replace(node, x=node.x + value)
    if constraint_type in ("tOff", "bOff", "ctrYOff"):
        return replace(node, y=node.y + value)
    if constraint_type == "wOff":
        return replace(node, width=node.width + value)
    if constraint_type == "hOff":
        return replace(node, height=node.height + value)
    # spacing, diameter and unknown types do not change node geometry
    return node


def apply_constraints(
    node: LayoutNode,
    constraints: Sequence[DiagramConstraint],
    context: ConstraintContext,
) -> LayoutNode:
    """
    Apply constraints to a single layout node, in order.

    Args:
        node: The node to adjust.
        constraints: Constraints in declaration order.
        context: Resolution context; its resolved_constraints are copied,
            never modified.

    Returns:
        A new LayoutNode with adjusted geometry and all other fields kept.
    """
    resolved: Dict[str, float] = dict(context.resolved_constraints)
    local = replace(context, resolved_constraints=resolved)
    result = node

    for constraint in constraints:
        resolved_constraint = resolve_constraint(constraint, local)
        if resolved_constraint is None:
            continue
        resolved[resolved_constraint.type] = resolved_constraint.value
        result = _apply_value(result, resolved_constraint.type, resolved_constraint.value)

    return result


def apply_constraints_to_layout(
    nodes: Sequence[LayoutNode],
    constraints: Sequence[DiagramConstraint],
    bounds: LayoutBounds,
    seed_constraints: Optional[Mapping[str, float]] = None,
) -> List[LayoutNode]:
    """
    Apply the same constraints to every node independently.

    Args:
        nodes: Laid-out nodes.
        constraints: Constraints in declaration order.
        bounds: Bounds used for derived bases.
        seed_constraints: Optional values visible to references.

    Returns:
        The adjusted nodes in input order.
    """
    if not constraints:
        return list(nodes)

    context = ConstraintContext(
        bounds=bounds,
        resolved_constraints=dict(seed_constraints or {}),
    )
    logger.debug("Applying %d constraints to %d nodes", len(constraints), len(nodes))
    return [apply_constraints(node, constraints, context) for node in nodes]


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equ": lambda a, b: a == b,
    "neq": lambda a, b: a != b,
    "gt": lambda a, b: a > b,
    "lt": lambda a, b: a < b,
    "gte": lambda a, b: a >= b,
    "lte": lambda a, b: a <= b,
}


def evaluate_constraint_operator(value: Any, op: Optional[str], comparand: Any) -> bool:
    """
    Compare ``value`` with ``comparand``.

    ``none`` or a missing operator is always true; an unknown operator is
    false.
    """
    if op is None or op == "none":
        return True
    compare = _OPERATORS.get(op)
    if compare is None:
        return False
    try:
        return bool(compare(value, comparand))
    except TypeError:
        return False


def _lookup(
    constraints: Sequence[DiagramConstraint],
    types: Sequence[str],
    context: ConstraintContext,
    default: Optional[float],
) -> Optional[float]:
    found = default
    for constraint in constraints:
        if constraint.type not in types:
            continue
        resolved = resolve_constraint(constraint, context)
        if resolved is not None:
            found = resolved.value
    return found


def get_spacing_constraint(
    constraints: Sequence[DiagramConstraint], context: ConstraintContext, default: float
) -> float:
    """Value of the last sibSp constraint, else the last sp one, else ``default``."""
    spacing = _lookup(constraints, ("sibSp",), context, None)
    if spacing is None:
        spacing = _lookup(constraints, ("sp",), context, default)
    return spacing


def get_width_constraint(
    constraints: Sequence[DiagramConstraint], context: ConstraintContext, default: float
) -> float:
    return _lookup(constraints, ("w",), context, default)


def get_height_constraint(
    constraints: Sequence[DiagramConstraint], context: ConstraintContext, default: float
) -> float:
    return _lookup(constraints, ("h",), context, default)
