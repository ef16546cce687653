"""
Main diagram shape generator module.

Combines tree building, layout algorithms, constraints and style resolution
to produce positioned, styled shapes from a diagram data model.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Set, Tuple

from .algorithms import ALGORITHMS, AlgorithmType, resolve_algorithm_type
from .constraints import apply_constraints_to_layout
from .context import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    DEFAULT_SPACING,
    LayoutBounds,
    LayoutNode,
    create_default_context,
    merge_bounds,
)
from .diagnostics import Diagnostics
from .iteration import (
    ForEachContext,
    create_for_each_context,
    process_choose,
    process_for_each,
)
from .models import (
    DiagramColorsDefinition,
    DiagramDataModel,
    DiagramLayoutDefinition,
    DiagramStyleDefinition,
    ForEachDef,
    LayoutNodeDef,
)
from .style import (
    ResolvedDiagramStyle,
    StyleResolverContext,
    create_default_style_context,
    resolve_node_style,
)
from .tree import (
    DiagramTreeNode,
    TreeBuildResult,
    build_tree,
    get_content_nodes,
    get_node_text,
)

logger = logging.getLogger(__name__)

# Shape types that do not name a drawable preset
NON_PRESET_SHAPES = ("none", "conn")


@dataclass(frozen=True)
class ShapeGenerationConfig:
    """
    Configuration for shape generation.

    Attributes:
        bounds: Available bounds for the diagram.
        theme_colors: Scheme slot name -> hex color.
        default_shape_type: Preset used when the layout names none.
        default_node_width: Node width without a w constraint.
        default_node_height: Node height without an h constraint.
        default_spacing: Spacing without an sp/sibSp constraint.
        default_line_width: Line width of shapes with a line color.
        max_depth: Optional ceiling on data tree depth.
        max_nodes: Optional ceiling on data tree size.
        debug: Record pipeline stage snapshots in the diagnostics.
    """

    bounds: LayoutBounds
    theme_colors: Optional[Mapping[str, str]] = None
    default_shape_type: str = "rect"
    default_node_width: float = DEFAULT_NODE_WIDTH
    default_node_height: float = DEFAULT_NODE_HEIGHT
    default_spacing: float = DEFAULT_SPACING
    default_line_width: float = 1.0
    max_depth: Optional[int] = None
    max_nodes: Optional[int] = None
    debug: bool = False

    def __post_init__(self):
        for name in (
            "default_node_width",
            "default_node_height",
            "default_spacing",
            "default_line_width",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@dataclass(frozen=True)
class GeneratedShape:
    """
    A positioned, styled shape.

    Attributes:
        id: Shape id ("shape-<node id>", suffixed on collision).
        shape_type: Preset shape type.
        x, y, width, height: Geometry.
        rotation: Rotation in degrees, if any.
        fill_color: Fill as "#RRGGBB".
        line_color: Line as "#RRGGBB".
        line_width: Line width when a line color is set.
        text: Plain text of the source node.
        text_body: Text body of the source node, passed through.
        text_color: Text fill as "#RRGGBB".
        children: Nested shapes (always empty; output is flat).
        source_node_id: Id of the source tree node.
        style_label: Style label the shape was styled with.
        is_connector: True for connector placeholders.
    """

    id: str
    shape_type: str
    x: float
    y: float
    width: float
    height: float
    rotation: Optional[float] = None
    fill_color: Optional[str] = None
    line_color: Optional[str] = None
    line_width: Optional[float] = None
    text: Optional[str] = None
    text_body: object = None
    text_color: Optional[str] = None
    children: Tuple["GeneratedShape", ...] = ()
    source_node_id: str = ""
    style_label: Optional[str] = None
    is_connector: bool = False

    @property
    def bounds(self) -> LayoutBounds:
        return LayoutBounds(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class ShapeGenerationResult:
    """Result of shape generation."""

    shapes: Tuple[GeneratedShape, ...]
    bounds: LayoutBounds
    tree_result: TreeBuildResult
    diagnostics: Diagnostics


@dataclass
class _GenerationRun:
    """Mutable state of a single generation call."""

    roots: Tuple[DiagramTreeNode, ...]
    style_context: StyleResolverContext
    diagnostics: Diagnostics
    shapes: List[GeneratedShape] = field(default_factory=list)
    emitted: Set[str] = field(default_factory=set)
    used_ids: Set[str] = field(default_factory=set)

    def allocate_id(self, node_id: str) -> str:
        base = f"shape-{node_id}"
        candidate = base
        suffix = 1
        while candidate in self.used_ids:
            suffix += 1
            candidate = f"{base}-{suffix}"
        self.used_ids.add(candidate)
        return candidate


class DiagramShapeGenerator:
    """
    Generate shapes from diagram data models.

    Example:
        >>> generator = DiagramShapeGenerator(
        ...     ShapeGenerationConfig(bounds=LayoutBounds(0, 0, 800, 600))
        ... )
        >>> result = generator.generate(data_model, layout_definition)
        >>> for shape in result.shapes:
        ...     print(shape.id, shape.x, shape.y)
    """

    def __init__(self, config: ShapeGenerationConfig):
        """
        Initialize the shape generator.

        Args:
            config: Bounds, defaults and limits shared by every call.
        """
        self.config = config

    def generate(
        self,
        data_model: DiagramDataModel,
        layout_definition: Optional[DiagramLayoutDefinition] = None,
        style_definition: Optional[DiagramStyleDefinition] = None,
        color_definition: Optional[DiagramColorsDefinition] = None,
    ) -> ShapeGenerationResult:
        """
        Generate shapes for a data model.

        Args:
            data_model: Points and connections.
            layout_definition: Layout-definition tree; without one every
                content node is laid out linearly.
            style_definition: Style-label table.
            color_definition: Color-label table.

        Returns:
            ShapeGenerationResult with the flat shape list, the total bounds,
            the tree build result and the diagnostics of this call.

        Raises:
            DiagramStructureError: If the data model is not a forest.
        """
        config = self.config
        diagnostics = Diagnostics(record_stages=config.debug)

        tree_result = build_tree(
            data_model,
            diagnostics=diagnostics,
            max_depth=config.max_depth,
            max_nodes=config.max_nodes,
        )
        diagnostics.add_stage(
            "tree",
            roots=[root.id for root in tree_result.roots],
            node_count=tree_result.node_count,
            max_depth=tree_result.max_depth,
        )

        if not tree_result.roots:
            return ShapeGenerationResult(
                shapes=(),
                bounds=config.bounds,
                tree_result=tree_result,
                diagnostics=diagnostics,
            )

        run = _GenerationRun(
            roots=tree_result.roots,
            style_context=create_default_style_context(
                style_definition, color_definition, config.theme_colors
            ),
            diagnostics=diagnostics,
        )

        layout_node = layout_definition.layout_node if layout_definition else None
        if layout_node is not None:
            self._process_layout_node(run, layout_node, list(tree_result.roots))
        else:
            self._generate_default_layout(run)

        shapes = tuple(run.shapes)
        bounds = self._calculate_total_bounds(shapes)

        diagnostics.add_stage(
            "shapes",
            count=len(shapes),
            ids=[shape.id for shape in shapes],
            bounds=bounds,
        )
        logger.debug(
            "Generated %d shapes from %d tree nodes", len(shapes), tree_result.node_count
        )

        return ShapeGenerationResult(
            shapes=shapes,
            bounds=bounds,
            tree_result=tree_result,
            diagnostics=diagnostics,
        )

    # -------------------------------------------------------------------------
    # Layout processing
    # -------------------------------------------------------------------------

    def _process_layout_node(
        self,
        run: _GenerationRun,
        layout_def: LayoutNodeDef,
        data_nodes: Sequence[DiagramTreeNode],
    ) -> None:
        """Lay out one layout-node definition and its sub-layouts."""
        if not data_nodes:
            return

        config = self.config
        algorithm_def = layout_def.algorithm
        algorithm_type = resolve_algorithm_type(
            algorithm_def.type if algorithm_def else None, run.diagnostics
        )
        algorithm = ALGORITHMS[algorithm_type]

        context = create_default_context(
            config.bounds,
            algorithm_def.params if algorithm_def else None,
            layout_def.constraints,
            default_spacing=config.default_spacing,
            default_node_width=config.default_node_width,
            default_node_height=config.default_node_height,
        )
        for_each_context = create_for_each_context(data_nodes[0], run.roots)

        selected, nested = self._select_nodes(layout_def, data_nodes, for_each_context)

        for choose in layout_def.choose:
            choice = process_choose(choose, for_each_context)
            if choice.branch is None:
                taken = "no branch"
            elif choice.is_else:
                taken = "else branch"
            else:
                taken = f"if branch {choice.branch_index}"
            run.diagnostics.info(
                "choose-evaluated",
                f"Choose '{choose.name or ''}' on '{data_nodes[0].id}' took {taken}",
                source="generator",
            )

        pending = [node for node in selected if node.id not in run.emitted]
        result = algorithm(pending, context)

        nodes: Sequence[LayoutNode] = result.nodes
        if layout_def.constraints:
            nodes = apply_constraints_to_layout(
                result.nodes, layout_def.constraints, config.bounds
            )

        run.diagnostics.add_stage(
            f"layout:{layout_def.name or algorithm_type.value}",
            algorithm=algorithm_type.value,
            nodes=[node.tree_node.id for node in nodes],
            bounds=result.bounds,
        )

        self._collect_shapes(run, nodes, layout_def)

        for for_each, selection in nested:
            for child_def in for_each.layout_nodes:
                self._process_layout_node(run, child_def, selection)

        for child_def in layout_def.children:
            self._process_layout_node(run, child_def, data_nodes)

    def _select_nodes(
        self,
        layout_def: LayoutNodeDef,
        data_nodes: Sequence[DiagramTreeNode],
        for_each_context: ForEachContext,
    ) -> Tuple[List[DiagramTreeNode], List[Tuple[ForEachDef, List[DiagramTreeNode]]]]:
        """
        Apply the forEach selections of a layout node.

        Returns:
            Tuple of (union of all selections in first-seen order, list of
            (forEach, selection) pairs whose nested layout nodes still need
            processing).
        """
        if not layout_def.for_each:
            return list(data_nodes), []

        selected: List[DiagramTreeNode] = []
        seen: Set[str] = set()
        nested = []
        for for_each in layout_def.for_each:
            selection = list(process_for_each(for_each, for_each_context).selected_nodes)
            for node in selection:
                if node.id not in seen:
                    seen.add(node.id)
                    selected.append(node)
            if for_each.layout_nodes:
                nested.append((for_each, selection))
        return selected, nested

    def _generate_default_layout(self, run: _GenerationRun) -> None:
        """Lay out every content node linearly when no layout is given."""
        config = self.config
        context = create_default_context(
            config.bounds,
            default_spacing=config.default_spacing,
            default_node_width=config.default_node_width,
            default_node_height=config.default_node_height,
        )
        content_nodes = get_content_nodes(run.roots)
        result = ALGORITHMS[AlgorithmType.LINEAR](content_nodes, context)

        run.diagnostics.add_stage(
            "layout:default",
            algorithm=AlgorithmType.LINEAR.value,
            nodes=[node.tree_node.id for node in result.nodes],
            bounds=result.bounds,
        )
        self._collect_shapes(run, result.nodes, None)

    # -------------------------------------------------------------------------
    # Shape creation
    # -------------------------------------------------------------------------

    def _collect_shapes(
        self,
        run: _GenerationRun,
        layout_nodes: Sequence[LayoutNode],
        layout_def: Optional[LayoutNodeDef],
    ) -> None:
        # Children of hierarchical layouts are flattened after their parent.
        # Palette positions count only the siblings that are still to be emitted.
        stack: List[Tuple[LayoutNode, int, int, Optional[LayoutNodeDef]]] = []

        def push_group(group: Sequence[LayoutNode], group_def: Optional[LayoutNodeDef]):
            pending = [node for node in group if node.tree_node.id not in run.emitted]
            stack.extend(
                (node, index, len(pending), group_def)
                for index, node in reversed(list(enumerate(pending)))
            )

        push_group(layout_nodes, layout_def)
        while stack:
            layout_node, index, total, group_def = stack.pop()
            tree_node = layout_node.tree_node
            if tree_node.id in run.emitted:
                continue

            label = tree_node.style_label or (group_def.style_label if group_def else None)
            style = resolve_node_style(
                tree_node, index, total, run.style_context, style_label=label
            )
            run.shapes.append(self._create_shape(run, layout_node, group_def, style, label))
            run.emitted.add(tree_node.id)

            if layout_node.children:
                push_group(layout_node.children, None)

    def _create_shape(
        self,
        run: _GenerationRun,
        layout_node: LayoutNode,
        layout_def: Optional[LayoutNodeDef],
        style: ResolvedDiagramStyle,
        style_label: Optional[str],
    ) -> GeneratedShape:
        config = self.config
        tree_node = layout_node.tree_node
        shape_def = layout_def.shape if layout_def else None

        shape_type = config.default_shape_type
        if shape_def and shape_def.type and shape_def.type not in NON_PRESET_SHAPES:
            shape_type = shape_def.type

        rotation = layout_node.rotation
        if rotation is None and shape_def is not None:
            rotation = shape_def.rotation

        return GeneratedShape(
            id=run.allocate_id(tree_node.id),
            shape_type=shape_type,
            x=layout_node.x,
            y=layout_node.y,
            width=layout_node.width,
            height=layout_node.height,
            rotation=rotation,
            fill_color=style.fill_color,
            line_color=style.line_color,
            line_width=config.default_line_width if style.line_color else None,
            text=get_node_text(tree_node) or None,
            text_body=tree_node.text_body,
            text_color=style.text_fill_color,
            source_node_id=tree_node.id,
            style_label=style_label,
            is_connector=layout_node.is_connector,
        )

    def _calculate_total_bounds(self, shapes: Sequence[GeneratedShape]) -> LayoutBounds:
        if not shapes:
            return self.config.bounds
        return merge_bounds(*(shape.bounds for shape in shapes))


def generate_diagram_shapes(
    data_model: DiagramDataModel,
    layout_definition: Optional[DiagramLayoutDefinition] = None,
    style_definition: Optional[DiagramStyleDefinition] = None,
    color_definition: Optional[DiagramColorsDefinition] = None,
    *,
    config: ShapeGenerationConfig,
) -> ShapeGenerationResult:
    """
    Generate shapes from a diagram data model.

    Convenience wrapper around DiagramShapeGenerator.

    Args:
        data_model: Points and connections.
        layout_definition: Layout-definition tree, if any.
        style_definition: Style-label table, if any.
        color_definition: Color-label table, if any.
        config: Generation configuration.

    Returns:
        ShapeGenerationResult.
    """
    return DiagramShapeGenerator(config).generate(
        data_model, layout_definition, style_definition, color_definition
    )


def flatten_shapes(shapes: Sequence[GeneratedShape]) -> List[GeneratedShape]:
    """Return every shape, including nested children, depth-first."""
    result: List[GeneratedShape] = []
    stack = list(reversed(shapes))
    while stack:
        shape = stack.pop()
        result.append(shape)
        stack.extend(reversed(shape.children))
    return result
