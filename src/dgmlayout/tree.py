"""
Tree builder for diagram data models.

Resolves the point/connection graph of a data model into a rooted forest.

Uses networkx for:
- Graph representation of the parOf relation
- Cycle detection before the depth-first walk

Only ``parOf`` connections take part: the source is the child of the
destination. Other connection types (presOf, presParOf, ...) are ignored.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

import networkx as nx

from .diagnostics import Diagnostics
from .models import DiagramDataModel, DiagramPoint, DiagramPropertySet, TextBody

logger = logging.getLogger(__name__)

POINT_TYPES = ("node", "doc", "asst", "parTrans", "sibTrans", "pres")
CONTENT_TYPES = frozenset({"node", "doc", "asst"})


class DiagramStructureError(Exception):
    """Raised when the parOf relation cannot be resolved into a tree."""

    pass


class CyclicGraphError(DiagramStructureError):
    """Raised when the parOf relation contains a cycle."""

    def __init__(self, cycle: List[Tuple[str, str]]):
        self.cycle = cycle
        path = " -> ".join([cycle[0][0]] + [target for _, target in cycle])
        super().__init__(f"Cyclic parOf relation: {path}")


class TreeLimitError(DiagramStructureError):
    """Raised when the tree exceeds a configured depth or node ceiling."""

    pass


@dataclass(frozen=True)
class DiagramTreeNode:
    """
    A point after parent/child resolution.

    Attributes:
        id: Model id of the point.
        type: Point type (node, doc, asst, parTrans, sibTrans, pres).
        property_set: Presentation properties of the point.
        shape_properties: Shape properties, passed through.
        text_body: Text body, passed through.
        children: Child nodes in source order.
        depth: Depth in the tree (0 = root).
        sibling_index: Index among siblings (0-based).
        sibling_count: Number of siblings including self.
    """

    id: str
    type: str = "node"
    property_set: Optional[DiagramPropertySet] = None
    shape_properties: Any = None
    text_body: Any = None
    children: Tuple["DiagramTreeNode", ...] = ()
    depth: int = 0
    sibling_index: int = 0
    sibling_count: int = 1

    @property
    def style_label(self) -> Optional[str]:
        if self.property_set is None:
            return None
        return self.property_set.presentation_style_label


@dataclass(frozen=True)
class TreeBuildResult:
    """Result of building the tree."""

    roots: Tuple[DiagramTreeNode, ...] = ()
    node_count: int = 0
    max_depth: int = 0
    node_map: Dict[str, DiagramTreeNode] = field(default_factory=dict)


def parse_point_type(value: Optional[str]) -> str:
    """Map a raw point type to a known type; anything unknown is "node"."""
    if value in POINT_TYPES:
        return value
    return "node"


def order_children(entries: Sequence[Tuple[str, Optional[int]]]) -> List[str]:
    """
    Order child ids by replaying their source_order insertion indices.

    Each entry is inserted into an index-addressed arena at its declared
    order; a missing order appends, an out-of-range order clamps to the end.

    Args:
        entries: (child_id, source_order) pairs in connection arrival order.

    Returns:
        Child ids in resolved order.
    """
    arena: List[str] = []
    for child_id, order in entries:
        if order is None:
            index = len(arena)
        else:
            index = max(0, min(int(order), len(arena)))
        arena.insert(index, child_id)
    return arena


def build_parent_graph(
    data_model: DiagramDataModel, diagnostics: Optional[Diagnostics] = None
) -> nx.DiGraph:
    """
    Build the parent -> child graph of the parOf relation.

    Every point becomes a graph node carrying its DiagramPoint under "point".
    Each parent node also carries the ordered "entries" of its children.
    Connections naming a missing point are skipped.

    Args:
        data_model: Data model with points and connections.
        diagnostics: Optional collector for skipped connections.

    Returns:
        A networkx DiGraph.
    """
    graph = nx.DiGraph()
    for point in data_model.points:
        graph.add_node(point.model_id, point=point, entries=[])

    for conn in data_model.connections:
        if conn.type != "parOf" or not conn.source_id or not conn.destination_id:
            continue
        if conn.source_id not in graph or conn.destination_id not in graph:
            if diagnostics is not None:
                diagnostics.info(
                    "dangling-connection",
                    f"Connection {conn.model_id} references a missing point "
                    f"({conn.source_id} -> {conn.destination_id})",
                    source="tree",
                )
            continue
        graph.nodes[conn.destination_id]["entries"].append(
            (conn.source_id, conn.source_order)
        )
        graph.add_edge(conn.destination_id, conn.source_id)

    return graph


@dataclass(frozen=True)
class _Placement:
    point_id: str
    depth: int
    sibling_index: int
    sibling_count: int
    child_ids: Tuple[str, ...]


def _place_points(
    graph: nx.DiGraph,
    root_ids: Sequence[str],
    max_depth: Optional[int],
    max_nodes: Optional[int],
) -> List[_Placement]:
    """
    Walk the parOf graph depth-first from the roots with an explicit stack.

    Returns:
        One placement per reached point, in pre-order.

    Raises:
        DiagramStructureError: If a point is reached more than once.
        TreeLimitError: If a ceiling is exceeded.
    """
    placements: List[_Placement] = []
    visited: Set[str] = set()
    stack = [
        (root_id, 0, i, len(root_ids)) for i, root_id in reversed(list(enumerate(root_ids)))
    ]

    while stack:
        point_id, depth, sibling_index, sibling_count = stack.pop()

        if point_id in visited:
            raise DiagramStructureError(
                f"Point '{point_id}' is reached more than once in the parOf relation"
            )
        visited.add(point_id)

        if max_depth is not None and depth > max_depth:
            raise TreeLimitError(f"Tree depth exceeds the limit of {max_depth}")
        if max_nodes is not None and len(visited) > max_nodes:
            raise TreeLimitError(f"Tree size exceeds the limit of {max_nodes} nodes")

        ordered = order_children(graph.nodes[point_id]["entries"])
        placements.append(
            _Placement(point_id, depth, sibling_index, sibling_count, tuple(ordered))
        )
        stack.extend(
            (child_id, depth + 1, i, len(ordered))
            for i, child_id in reversed(list(enumerate(ordered)))
        )

    return placements


def build_tree(
    data_model: DiagramDataModel,
    *,
    diagnostics: Optional[Diagnostics] = None,
    max_depth: Optional[int] = None,
    max_nodes: Optional[int] = None,
) -> TreeBuildResult:
    """
    Build a tree structure from a diagram data model.

    A point is a root iff no parOf connection names it as source. Roots are
    ordered with doc points first, ties keeping arrival order.

    Args:
        data_model: Data model with points and connections.
        diagnostics: Optional collector for non-fatal findings.
        max_depth: Optional ceiling on tree depth.
        max_nodes: Optional ceiling on the number of tree nodes.

    Returns:
        TreeBuildResult with roots and metadata.

    Raises:
        CyclicGraphError: If the parOf relation contains a cycle.
        DiagramStructureError: If a point is reached twice.
        TreeLimitError: If a ceiling is exceeded.
    """
    graph = build_parent_graph(data_model, diagnostics)

    try:
        cycle = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        cycle = None
    if cycle:
        raise CyclicGraphError([(source, target) for source, target in cycle])

    child_ids: Set[str] = {
        conn.source_id
        for conn in data_model.connections
        if conn.type == "parOf" and conn.source_id and conn.destination_id
    }

    root_ids = [p.model_id for p in data_model.points if p.model_id not in child_ids]
    # sorted() is stable, so ties keep arrival order
    root_ids = sorted(
        root_ids,
        key=lambda pid: 0 if graph.nodes[pid]["point"].type == "doc" else 1,
    )

    placements = _place_points(graph, root_ids, max_depth, max_nodes)

    # Children follow their parent in pre-order, so walking it backwards
    # builds every child before the parent that holds it.
    node_map: Dict[str, DiagramTreeNode] = {}
    for placement in reversed(placements):
        point: DiagramPoint = graph.nodes[placement.point_id]["point"]
        node_map[placement.point_id] = DiagramTreeNode(
            id=placement.point_id,
            type=parse_point_type(point.type),
            property_set=point.property_set,
            shape_properties=point.shape_properties,
            text_body=point.text_body,
            children=tuple(node_map[child_id] for child_id in placement.child_ids),
            depth=placement.depth,
            sibling_index=placement.sibling_index,
            sibling_count=placement.sibling_count,
        )

    roots = tuple(node_map[root_id] for root_id in root_ids)
    deepest = max((placement.depth for placement in placements), default=0)

    orphaned = len(graph) - len(node_map)
    if orphaned and diagnostics is not None:
        diagnostics.info(
            "unreachable-points",
            f"{orphaned} point(s) hang below a missing parent and were skipped",
            source="tree",
        )

    logger.debug(
        "Built diagram tree: %d roots, %d nodes, max depth %d",
        len(roots),
        len(node_map),
        deepest,
    )

    return TreeBuildResult(
        roots=roots,
        node_count=len(node_map),
        max_depth=deepest,
        node_map=node_map,
    )


# =============================================================================
# Tree traversal utilities
# =============================================================================


def traverse_tree(
    roots: Sequence[DiagramTreeNode],
    callback: Callable[[DiagramTreeNode, Optional[DiagramTreeNode]], None],
) -> None:
    """Call ``callback(node, parent)`` for every node, depth-first."""
    stack: List[Tuple[DiagramTreeNode, Optional[DiagramTreeNode]]] = [
        (root, None) for root in reversed(roots)
    ]
    while stack:
        node, parent = stack.pop()
        callback(node, parent)
        stack.extend((child, node) for child in reversed(node.children))


def iter_tree(roots: Sequence[DiagramTreeNode]) -> Iterator[DiagramTreeNode]:
    """Yield every node depth-first, parents before children."""
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def count_nodes(
    roots: Sequence[DiagramTreeNode], predicate: Callable[[DiagramTreeNode], bool]
) -> int:
    return sum(1 for node in iter_tree(roots) if predicate(node))


def filter_nodes_by_type(
    roots: Sequence[DiagramTreeNode], point_type: str
) -> List[DiagramTreeNode]:
    return [node for node in iter_tree(roots) if node.type == point_type]


def get_content_nodes(roots: Sequence[DiagramTreeNode]) -> List[DiagramTreeNode]:
    """Get all content nodes (excluding transitions and presentation nodes)."""
    return [node for node in iter_tree(roots) if node.type in CONTENT_TYPES]


def get_node_text(node: DiagramTreeNode) -> str:
    """
    Get the plain text of a node's text body.

    Text runs contribute their text, breaks contribute a newline and fields
    are skipped. A plain string body is returned as is.
    """
    return text_of(node.text_body)


def text_of(text_body: Any) -> str:
    if text_body is None:
        return ""
    if isinstance(text_body, str):
        return text_body
    if not isinstance(text_body, TextBody):
        return ""

    parts = []
    for paragraph in text_body.paragraphs:
        for run in paragraph.runs:
            if run.type == "text":
                parts.append(run.text)
            elif run.type == "break":
                parts.append("\n")
    return "".join(parts)
