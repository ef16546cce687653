"""
forEach selection and choose/if evaluation.

A forEach walks one or more axis steps from the current data node, filtering
each step by point type, then applies the start/count/step window. A choose
picks the first ``if`` branch whose function result satisfies its operator,
else the ``else`` branch.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .constraints import evaluate_constraint_operator
from .context import to_number
from .models import ChooseDef, ElseDef, ForEachDef, IfDef
from .tree import DiagramTreeNode, iter_tree


@dataclass(frozen=True)
class ForEachContext:
    """
    Data-tree view used while selecting nodes.

    Attributes:
        current_node: Node the axes are evaluated from.
        roots: Roots of the data tree.
        node_map: Tree nodes by id.
        parent_map: Parent tree node by child id (roots are absent).
        variables: Layout variables visible to ``var`` conditions.
    """

    current_node: DiagramTreeNode
    roots: Tuple[DiagramTreeNode, ...] = ()
    node_map: Dict[str, DiagramTreeNode] = field(default_factory=dict)
    parent_map: Dict[str, DiagramTreeNode] = field(default_factory=dict)
    variables: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ForEachResult:
    selected_nodes: Tuple[DiagramTreeNode, ...] = ()


@dataclass(frozen=True)
class ChooseResult:
    """
    Outcome of a choose.

    Attributes:
        branch: The selected IfDef or ElseDef, or None when nothing matched.
        branch_index: Index of the matching if branch; -1 for else or none.
        is_else: True when the else branch was taken.
    """

    branch: Optional[Union[IfDef, ElseDef]] = None
    branch_index: int = -1
    is_else: bool = False


def create_for_each_context(
    current_node: DiagramTreeNode,
    roots: Sequence[DiagramTreeNode],
    variables: Optional[Dict[str, Any]] = None,
) -> ForEachContext:
    """Create a ForEachContext, deriving the node and parent maps from roots."""
    node_map: Dict[str, DiagramTreeNode] = {}
    parent_map: Dict[str, DiagramTreeNode] = {}
    for node in iter_tree(roots):
        node_map[node.id] = node
        for child in node.children:
            parent_map[child.id] = node

    return ForEachContext(
        current_node=current_node,
        roots=tuple(roots),
        node_map=node_map,
        parent_map=parent_map,
        variables=dict(variables or {}),
    )


# =============================================================================
# Axes
# =============================================================================


def _descendants(node: DiagramTreeNode) -> List[DiagramTreeNode]:
    return list(iter_tree(node.children))


def _ancestors(node: DiagramTreeNode, context: ForEachContext) -> List[DiagramTreeNode]:
    result = []
    parent = context.parent_map.get(node.id)
    while parent is not None:
        result.append(parent)
        parent = context.parent_map.get(parent.id)
    return result


def _siblings(node: DiagramTreeNode, context: ForEachContext) -> Tuple[DiagramTreeNode, ...]:
    parent = context.parent_map.get(node.id)
    return parent.children if parent is not None else context.roots


def _sibling_position(node: DiagramTreeNode, siblings: Sequence[DiagramTreeNode]) -> int:
    for i, sibling in enumerate(siblings):
        if sibling.id == node.id:
            return i
    return -1


def _following_siblings(node, context):
    siblings = _siblings(node, context)
    index = _sibling_position(node, siblings)
    return list(siblings[index + 1:]) if index >= 0 else []


def _preceding_siblings(node, context):
    siblings = _siblings(node, context)
    index = _sibling_position(node, siblings)
    return list(siblings[:index]) if index > 0 else []


def _root_of(node, context):
    ancestors = _ancestors(node, context)
    return [ancestors[-1]] if ancestors else [node]


_AXES: Dict[str, Callable[[DiagramTreeNode, ForEachContext], List[DiagramTreeNode]]] = {
    "self": lambda node, ctx: [node],
    "ch": lambda node, ctx: list(node.children),
    "des": lambda node, ctx: _descendants(node),
    "desOrSelf": lambda node, ctx: [node] + _descendants(node),
    "par": lambda node, ctx: _ancestors(node, ctx)[:1],
    "ancst": _ancestors,
    "ancstOrSelf": lambda node, ctx: [node] + _ancestors(node, ctx),
    "root": _root_of,
    "followSib": _following_siblings,
    "precedSib": _preceding_siblings,
    "none": lambda node, ctx: [],
}


def matches_point_type(node: DiagramTreeNode, pt_type: str) -> bool:
    """Check a node against a single point-type filter."""
    if pt_type in ("all", ""):
        return True
    if pt_type == "nonAsst":
        return node.type != "asst"
    if pt_type == "nonNorm":
        return node.type != "node"
    return node.type == pt_type


def select_nodes(
    start_nodes: Sequence[DiagramTreeNode],
    axis: str,
    pt_type: str,
    context: ForEachContext,
) -> List[DiagramTreeNode]:
    """
    Walk the axis steps from ``start_nodes``.

    ``axis`` and ``pt_type`` are space-separated lists paired by position;
    a step without its own point type uses "all". Unknown axes select
    nothing. The result is de-duplicated and keeps first-seen order.
    """
    axes = axis.split() or ["self"]
    pt_types = pt_type.split()

    current = list(start_nodes)
    for i, step in enumerate(axes):
        step_type = pt_types[i] if i < len(pt_types) else "all"
        walk = _AXES.get(step)
        if walk is None:
            return []
        selected: List[DiagramTreeNode] = []
        seen = set()
        for node in current:
            for found in walk(node, context):
                if found.id in seen or not matches_point_type(found, step_type):
                    continue
                seen.add(found.id)
                selected.append(found)
        current = selected
    return current


def process_for_each(for_each: ForEachDef, context: ForEachContext) -> ForEachResult:
    """
    Select the data nodes of a forEach.

    Args:
        for_each: The forEach definition.
        context: Selection context.

    Returns:
        ForEachResult with the selected nodes in order.
    """
    selected = select_nodes([context.current_node], for_each.axis, for_each.pt_type, context)

    start = max(1, int(to_number(for_each.start, 1)))
    step = max(1, int(to_number(for_each.step, 1)))
    count = max(0, int(to_number(for_each.count, 0)))

    selected = selected[start - 1::step]
    if count:
        selected = selected[:count]
    if for_each.hide_last_trans and selected and selected[-1].type == "sibTrans":
        selected = selected[:-1]

    return ForEachResult(selected_nodes=tuple(selected))


# =============================================================================
# choose / if
# =============================================================================


def _max_depth_below(node: DiagramTreeNode) -> int:
    deepest = node.depth
    for descendant in iter_tree(node.children):
        deepest = max(deepest, descendant.depth)
    return deepest - node.depth


def _position(node: DiagramTreeNode, context: ForEachContext) -> Tuple[int, int]:
    siblings = _siblings(node, context)
    index = _sibling_position(node, siblings)
    if index < 0:
        return node.sibling_index + 1, node.sibling_count
    return index + 1, len(siblings)


def evaluate_function(if_def: IfDef, context: ForEachContext) -> Any:
    """Compute the value an ``if`` compares."""
    node = context.current_node
    func = if_def.func

    if func == "cnt":
        return len(select_nodes([node], if_def.axis, if_def.pt_type, context))
    if func == "pos":
        return _position(node, context)[0]
    if func == "revPos":
        pos, total = _position(node, context)
        return total - pos + 1
    if func == "posEven":
        return 1 if _position(node, context)[0] % 2 == 0 else 0
    if func == "posOdd":
        return 1 if _position(node, context)[0] % 2 == 1 else 0
    if func == "depth":
        return node.depth
    if func == "maxDepth":
        return _max_depth_below(node)
    if func == "var":
        if if_def.arg in context.variables:
            return context.variables[if_def.arg]
        if node.property_set is not None:
            return node.property_set.layout_vars.get(if_def.arg)
        return None
    return None


def evaluate_if(if_def: IfDef, context: ForEachContext) -> bool:
    """
    Evaluate an ``if`` condition.

    Numbers (and numeric strings) compare numerically; anything else only
    supports equality operators, compared as strings.
    """
    actual = evaluate_function(if_def, context)
    if if_def.op in (None, "none"):
        return True

    left = to_number(actual)
    right = to_number(if_def.val)
    if left is not None and right is not None:
        return evaluate_constraint_operator(left, if_def.op, right)

    if if_def.op in ("equ", "neq"):
        left_text = "" if actual is None else str(actual)
        right_text = "" if if_def.val is None else str(if_def.val)
        if isinstance(actual, bool):
            left_text = "true" if actual else "false"
        return evaluate_constraint_operator(left_text, if_def.op, right_text)
    return False


def process_choose(choose: ChooseDef, context: ForEachContext) -> ChooseResult:
    """Pick the first matching if branch, else the else branch, else nothing."""
    for i, if_def in enumerate(choose.if_branches):
        if evaluate_if(if_def, context):
            return ChooseResult(branch=if_def, branch_index=i, is_else=False)
    if choose.else_branch is not None:
        return ChooseResult(branch=choose.else_branch, branch_index=-1, is_else=True)
    return ChooseResult()
