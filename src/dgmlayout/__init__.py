"""
dgmlayout - Diagram layout engine

Turns a diagram data model (points and parOf connections) plus optional
layout, style and color definitions into positioned, styled shapes.

Example:
    >>> from dgmlayout import (
    ...     DiagramConnection, DiagramDataModel, DiagramPoint,
    ...     LayoutBounds, ShapeGenerationConfig, generate_diagram_shapes,
    ... )
    >>> model = DiagramDataModel(
    ...     points=[DiagramPoint("root", type="doc"), DiagramPoint("a")],
    ...     connections=[DiagramConnection("c1", "a", "root")],
    ... )
    >>> config = ShapeGenerationConfig(bounds=LayoutBounds(0, 0, 800, 600))
    >>> result = generate_diagram_shapes(model, config=config)
    >>> [shape.id for shape in result.shapes]
    ['shape-root', 'shape-a']

Debug Mode Example:
    >>> config = ShapeGenerationConfig(bounds=LayoutBounds(0, 0, 800, 600), debug=True)
    >>> result = generate_diagram_shapes(model, config=config)
    >>> print(result.diagnostics.summary())
"""

from .algorithms import (
    ALGORITHMS,
    AlgorithmType,
    get_layout_algorithm,
    resolve_algorithm_type,
)
from .colors import (
    apply_color_transforms,
    calculate_color_index,
    resolve_color,
    resolve_color_from_list,
    resolve_scheme_color,
)
from .constraints import (
    ConstraintContext,
    ResolvedConstraint,
    apply_constraints,
    apply_constraints_to_layout,
    evaluate_constraint_operator,
    resolve_constraint,
)
from .context import (
    LayoutBounds,
    LayoutContext,
    LayoutNode,
    LayoutResult,
    create_default_context,
    merge_bounds,
)
from .diagnostics import Diagnostic, Diagnostics, PipelineStage
from .generator import (
    DiagramShapeGenerator,
    GeneratedShape,
    ShapeGenerationConfig,
    ShapeGenerationResult,
    flatten_shapes,
    generate_diagram_shapes,
)
from .iteration import (
    ChooseResult,
    ForEachContext,
    ForEachResult,
    create_for_each_context,
    process_choose,
    process_for_each,
)
from .models import (
    AlgorithmDef,
    AlgorithmParam,
    ChooseDef,
    Color,
    ColorList,
    ColorSpec,
    ColorStyleLabel,
    ColorTransforms,
    DiagramColorsDefinition,
    DiagramConnection,
    DiagramConstraint,
    DiagramDataModel,
    DiagramLayoutDefinition,
    DiagramPoint,
    DiagramPropertySet,
    DiagramStyleDefinition,
    ElseDef,
    ForEachDef,
    IfDef,
    LayoutNodeDef,
    ShapeDef,
    ShapeStyle,
    StyleLabel,
    StyleReference,
    TextBody,
    TextParagraph,
    TextRun,
)
from .style import (
    ResolvedDiagramStyle,
    StyleResolverContext,
    create_default_style_context,
    resolve_node_style,
)
from .tree import (
    CyclicGraphError,
    DiagramStructureError,
    DiagramTreeNode,
    TreeBuildResult,
    TreeLimitError,
    build_tree,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "generate_diagram_shapes",
    "DiagramShapeGenerator",
    "ShapeGenerationConfig",
    "ShapeGenerationResult",
    "GeneratedShape",
    "flatten_shapes",
    # Data model
    "DiagramDataModel",
    "DiagramPoint",
    "DiagramConnection",
    "DiagramPropertySet",
    "TextBody",
    "TextParagraph",
    "TextRun",
    # Definitions
    "DiagramLayoutDefinition",
    "LayoutNodeDef",
    "AlgorithmDef",
    "AlgorithmParam",
    "ShapeDef",
    "DiagramConstraint",
    "ForEachDef",
    "ChooseDef",
    "IfDef",
    "ElseDef",
    "DiagramStyleDefinition",
    "StyleLabel",
    "ShapeStyle",
    "StyleReference",
    "DiagramColorsDefinition",
    "ColorStyleLabel",
    "ColorList",
    "Color",
    "ColorSpec",
    "ColorTransforms",
    # Tree
    "build_tree",
    "DiagramTreeNode",
    "TreeBuildResult",
    "DiagramStructureError",
    "CyclicGraphError",
    "TreeLimitError",
    # Layout
    "AlgorithmType",
    "ALGORITHMS",
    "get_layout_algorithm",
    "resolve_algorithm_type",
    "LayoutBounds",
    "LayoutContext",
    "LayoutNode",
    "LayoutResult",
    "create_default_context",
    "merge_bounds",
    # Constraints
    "ConstraintContext",
    "ResolvedConstraint",
    "resolve_constraint",
    "apply_constraints",
    "apply_constraints_to_layout",
    "evaluate_constraint_operator",
    # Iteration
    "ForEachContext",
    "ForEachResult",
    "ChooseResult",
    "create_for_each_context",
    "process_for_each",
    "process_choose",
    # Style
    "StyleResolverContext",
    "ResolvedDiagramStyle",
    "create_default_style_context",
    "resolve_node_style",
    "resolve_color",
    "resolve_color_from_list",
    "resolve_scheme_color",
    "apply_color_transforms",
    "calculate_color_index",
    # Diagnostics
    "Diagnostics",
    "Diagnostic",
    "PipelineStage",
]
