"""Unit tests for the layout algorithms module."""

import math

import pytest

from dgmlayout.algorithms import (
    ALGORITHMS,
    AlgorithmType,
    align_horizontally,
    align_vertically,
    composite_layout,
    connector_layout,
    cycle_layout,
    get_layout_algorithm,
    hier_child_layout,
    hier_root_layout,
    linear_layout,
    pyramid_layout,
    resolve_algorithm_type,
    snake_layout,
    space_layout,
    text_layout,
)
from dgmlayout.context import LayoutBounds, create_default_context
from dgmlayout.diagnostics import Diagnostics
from dgmlayout.models import DiagramConstraint
from dgmlayout.tree import DiagramTreeNode

BOUNDS = LayoutBounds(0, 0, 500, 400)


def ctx(params=None, constraints=None, bounds=BOUNDS):
    return create_default_context(bounds, params, constraints)


def positions(result):
    return [(node.tree_node.id, node.x, node.y) for node in result.nodes]


def centre_angle(node, bounds):
    cx = node.x + node.width / 2
    cy = node.y + node.height / 2
    return math.degrees(math.atan2(cy - bounds.center_y, cx - bounds.center_x))


class TestAlignHelpers:
    """Tests for align_horizontally and align_vertically."""

    def test_horizontal(self):
        assert align_horizontally(BOUNDS, 100, "l") == 0
        assert align_horizontally(BOUNDS, 100, "ctr") == 200
        assert align_horizontally(BOUNDS, 100, "r") == 400
        assert align_horizontally(BOUNDS, 100, "other") == 200

    def test_vertical(self):
        assert align_vertically(BOUNDS, 60, "t") == 0
        assert align_vertically(BOUNDS, 60, "mid") == 170
        assert align_vertically(BOUNDS, 60, "b") == 340


class TestLinearLayout:
    """Tests for linear_layout."""

    def test_from_left_centred(self, make_nodes):
        """Test the default row is centred in the bounds."""
        result = linear_layout(make_nodes(3), ctx())
        assert positions(result) == [("n0", 90, 170), ("n1", 200, 170), ("n2", 310, 170)]
        assert result.bounds == LayoutBounds(90, 170, 320, 60)

    def test_from_right_reverses(self, make_nodes):
        result = linear_layout(make_nodes(3), ctx({"linDir": "fromR"}))
        assert positions(result) == [("n2", 90, 170), ("n1", 200, 170), ("n0", 310, 170)]

    def test_from_top_column(self, make_nodes):
        result = linear_layout(make_nodes(3), ctx({"linDir": "fromT"}))
        assert positions(result) == [("n0", 200, 100), ("n1", 200, 170), ("n2", 200, 240)]

    def test_from_bottom_reverses(self, make_nodes):
        result = linear_layout(make_nodes(2), ctx({"linDir": "fromB"}))
        assert [node.tree_node.id for node in result.nodes] == ["n1", "n0"]

    def test_left_and_right_alignment(self, make_nodes):
        left = linear_layout(make_nodes(3), ctx({"nodeHorzAlign": "l"}))
        right = linear_layout(make_nodes(3), ctx({"nodeHorzAlign": "r"}))
        assert left.nodes[0].x == 0
        assert right.nodes[0].x == 180

    def test_vertical_cross_axis_alignment(self, make_nodes):
        result = linear_layout(
            make_nodes(2), ctx({"linDir": "fromT", "nodeHorzAlign": "r", "nodeVertAlign": "t"})
        )
        assert positions(result) == [("n0", 400, 0), ("n1", 400, 70)]

    def test_size_and_spacing_constraints(self, make_nodes):
        constraints = [
            DiagramConstraint(type="w", value="50"),
            DiagramConstraint(type="h", value="40"),
            DiagramConstraint(type="sp", value="0"),
        ]
        result = linear_layout(make_nodes(2), ctx({"nodeHorzAlign": "l"}, constraints))
        assert [(node.x, node.width, node.height) for node in result.nodes] == [
            (0, 50, 40),
            (50, 50, 40),
        ]

    @pytest.mark.parametrize(
        "constraints",
        [
            [DiagramConstraint(type="sibSp", value="5"), DiagramConstraint(type="sp", value="30")],
            [DiagramConstraint(type="sp", value="30"), DiagramConstraint(type="sibSp", value="5")],
        ],
    )
    def test_sibling_spacing_beats_spacing(self, make_nodes, constraints):
        """Test sibSp wins over sp whatever the declaration order."""
        result = linear_layout(make_nodes(2), ctx({"nodeHorzAlign": "l"}, constraints))
        assert [node.x for node in result.nodes] == [0, 105]

    def test_spacing_without_sibling_spacing(self, make_nodes):
        constraints = [DiagramConstraint(type="sp", value="30")]
        result = linear_layout(make_nodes(2), ctx({"nodeHorzAlign": "l"}, constraints))
        assert [node.x for node in result.nodes] == [0, 130]

    def test_idempotent(self, make_nodes):
        """Test running the layout twice gives identical results."""
        nodes = make_nodes(4)
        context = ctx({"linDir": "fromT"})
        assert linear_layout(nodes, context) == linear_layout(nodes, context)

    def test_empty(self):
        result = linear_layout([], ctx())
        assert result.nodes == ()
        assert result.bounds == LayoutBounds()

    def test_single_node(self, make_nodes):
        result = linear_layout(make_nodes(1), ctx())
        assert positions(result) == [("n0", 200, 170)]


class TestSingleSlotLayouts:
    """Tests for space_layout and text_layout."""

    @pytest.mark.parametrize("algorithm", [space_layout, text_layout])
    def test_first_node_only(self, algorithm, make_nodes):
        result = algorithm(make_nodes(3), ctx())
        assert positions(result) == [("n0", 200, 170)]
        assert result.bounds == LayoutBounds(200, 170, 100, 60)

    def test_alignment(self, make_nodes):
        result = text_layout(make_nodes(1), ctx({"nodeHorzAlign": "l", "nodeVertAlign": "b"}))
        assert positions(result) == [("n0", 0, 340)]

    def test_empty(self):
        assert space_layout([], ctx()).nodes == ()


class TestHierarchyLayout:
    """Tests for hier_child_layout and hier_root_layout."""

    def make_tree(self):
        c1 = DiagramTreeNode(id="c1", depth=1)
        c2 = DiagramTreeNode(id="c2", depth=1)
        parent = DiagramTreeNode(id="p", children=(c1, c2))
        leaf = DiagramTreeNode(id="q")
        return [parent, leaf]

    def test_parent_centred_on_children(self):
        """Test a parent is centred on the extent of its children."""
        result = hier_child_layout(self.make_tree(), ctx())
        parent, leaf = result.nodes
        assert (parent.x, parent.y) == (0, 35)
        assert [(c.tree_node.id, c.x, c.y) for c in parent.children] == [
            ("c1", 110, 0),
            ("c2", 220, 0),
        ]
        assert (leaf.x, leaf.y) == (0, 140)
        assert leaf.children == ()

    def test_bounds_include_children(self):
        result = hier_child_layout(self.make_tree(), ctx())
        assert result.bounds == LayoutBounds(0, 0, 320, 200)

    def test_vertical_children(self):
        result = hier_child_layout(self.make_tree(), ctx({"chDir": "vert"}))
        parent = result.nodes[0]
        assert [(c.x, c.y) for c in parent.children] == [(110, 0), (110, 70)]

    def test_grandchildren_follow_parent(self):
        grandchild = DiagramTreeNode(id="g", depth=2)
        child = DiagramTreeNode(id="c", depth=1, children=(grandchild,))
        root = DiagramTreeNode(id="r", children=(child,))
        result = hier_child_layout([root], ctx())
        placed_child = result.nodes[0].children[0]
        assert (placed_child.x, placed_child.y) == (110, 0)
        assert [(g.tree_node.id, g.x, g.y) for g in placed_child.children] == [("g", 110, 70)]

    def test_horizontal_primary_axis(self):
        """Test fromL advances along x and centres parents over children."""
        result = hier_child_layout(self.make_tree(), ctx({"linDir": "fromL"}))
        parent, leaf = result.nodes
        assert parent.y == 0
        assert [(c.x, c.y) for c in parent.children] == [(0, 70), (110, 70)]
        assert parent.x == 55
        assert leaf.x == 220

    def test_root_delegates(self):
        nodes = self.make_tree()
        assert hier_root_layout(nodes, ctx()) == hier_child_layout(nodes, ctx())

    def test_empty(self):
        assert hier_child_layout([], ctx()).nodes == ()


class TestCycleLayout:
    """Tests for cycle_layout."""

    SQUARE = LayoutBounds(0, 0, 400, 400)

    def test_positions_on_circle(self, make_nodes):
        result = cycle_layout(make_nodes(4), ctx(bounds=self.SQUARE))
        first, second = result.nodes[0], result.nodes[1]
        assert (first.x, first.y) == pytest.approx((150, 20))
        assert (second.x, second.y) == pytest.approx((300, 170))

    @pytest.mark.parametrize("count", [3, 4, 5, 8])
    def test_angular_step(self, count, make_nodes):
        """Test consecutive nodes are 360/n degrees apart."""
        result = cycle_layout(make_nodes(count), ctx(bounds=self.SQUARE))
        angles = [centre_angle(node, self.SQUARE) for node in result.nodes]
        for previous, current in zip(angles, angles[1:]):
            delta = (current - previous) % 360
            assert delta == pytest.approx(360 / count)

    def test_start_angle(self, make_nodes):
        result = cycle_layout(make_nodes(2), ctx({"stAng": "90"}, bounds=self.SQUARE))
        assert centre_angle(result.nodes[0], self.SQUARE) == pytest.approx(0)

    def test_centre_first_node(self, make_nodes):
        result = cycle_layout(make_nodes(4), ctx({"ctrShpMap": "fNode"}, bounds=self.SQUARE))
        centre = result.nodes[0]
        assert (centre.x, centre.y) == (150, 170)
        assert len(result.nodes) == 4
        angles = [centre_angle(node, self.SQUARE) for node in result.nodes[1:]]
        assert (angles[1] - angles[0]) % 360 == pytest.approx(120)

    def test_rotation_along_path(self, make_nodes):
        result = cycle_layout(make_nodes(4), ctx({"rotPath": "alongPath"}, bounds=self.SQUARE))
        rotations = [node.rotation for node in result.nodes]
        assert rotations == pytest.approx([0, 90, 180, 270])

    def test_no_rotation_by_default(self, make_nodes):
        result = cycle_layout(make_nodes(3), ctx(bounds=self.SQUARE))
        assert all(node.rotation is None for node in result.nodes)

    def test_diameter_constraint(self, make_nodes):
        result = cycle_layout(
            make_nodes(4),
            ctx(constraints=[DiagramConstraint(type="diam", value="200")], bounds=self.SQUARE),
        )
        first = result.nodes[0]
        assert first.y + first.height / 2 == pytest.approx(200 - 50)

    def test_empty(self):
        assert cycle_layout([], ctx()).nodes == ()


class TestSnakeLayout:
    """Tests for snake_layout."""

    NARROW = LayoutBounds(0, 0, 350, 400)

    def test_wraps_and_reverses(self, make_nodes):
        result = snake_layout(make_nodes(5), ctx(bounds=self.NARROW))
        assert positions(result) == [
            ("n0", 0, 0),
            ("n1", 110, 0),
            ("n2", 220, 0),
            ("n3", 220, 70),
            ("n4", 110, 70),
        ]

    def test_same_direction(self, make_nodes):
        result = snake_layout(make_nodes(4), ctx({"contDir": "sameDir"}, bounds=self.NARROW))
        assert positions(result)[3] == ("n3", 0, 70)

    def test_start_top_right(self, make_nodes):
        result = snake_layout(make_nodes(2), ctx({"grDir": "tR"}, bounds=self.NARROW))
        assert positions(result) == [("n0", 220, 0), ("n1", 110, 0)]

    def test_start_bottom_left(self, make_nodes):
        result = snake_layout(make_nodes(1), ctx({"grDir": "bL"}, bounds=self.NARROW))
        assert positions(result) == [("n0", 0, 340)]

    def test_column_flow(self, make_nodes):
        result = snake_layout(
            make_nodes(3), ctx({"flowDir": "col"}, bounds=LayoutBounds(0, 0, 500, 150))
        )
        assert positions(result) == [("n0", 0, 0), ("n1", 0, 70), ("n2", 110, 70)]

    def test_zero_size_cells(self, make_nodes):
        """Test zero-sized cells put every node in the first row."""
        constraints = [DiagramConstraint(type="w", value="0"), DiagramConstraint(type="sp", value="0")]
        result = snake_layout(make_nodes(3), ctx(constraints=constraints))
        assert [node.y for node in result.nodes] == [0, 0, 0]

    def test_at_least_one_per_row(self, make_nodes):
        result = snake_layout(make_nodes(2), ctx(bounds=LayoutBounds(0, 0, 50, 400)))
        assert [(node.x, node.y) for node in result.nodes] == [(0, 0), (0, 70)]


class TestPyramidLayout:
    """Tests for pyramid_layout."""

    def test_from_top(self, make_nodes):
        result = pyramid_layout(make_nodes(3), ctx())
        assert [(n.tree_node.id, n.x, n.y, n.width) for n in result.nodes] == [
            ("n0", 200, 0, 100),
            ("n1", 100, 70, 300),
            ("n2", 0, 140, 500),
        ]

    def test_from_bottom(self, make_nodes):
        result = pyramid_layout(make_nodes(3), ctx({"linDir": "fromB"}))
        assert [(n.tree_node.id, n.y, n.width) for n in result.nodes] == [
            ("n2", 0, 500),
            ("n1", 70, 300),
            ("n0", 140, 100),
        ]

    def test_single_level(self, make_nodes):
        result = pyramid_layout(make_nodes(1), ctx())
        assert (result.nodes[0].x, result.nodes[0].width) == (200, 100)


class TestCompositeAndConnector:
    """Tests for composite_layout and connector_layout."""

    def test_composite_centres_everything(self, make_nodes):
        result = composite_layout(make_nodes(3), ctx())
        assert {(node.x, node.y) for node in result.nodes} == {(200, 170)}

    def test_connector_geometry(self, make_nodes):
        result = connector_layout(make_nodes(2), ctx())
        for node in result.nodes:
            assert (node.x, node.y, node.width, node.height) == (0, 0, 20, 60)
            assert node.is_connector

    def test_connector_distance_constraint(self, make_nodes):
        result = connector_layout(
            make_nodes(1), ctx(constraints=[DiagramConstraint(type="connDist", value="35")])
        )
        assert result.nodes[0].width == 35


class TestAlgorithmRegistry:
    """Tests for algorithm lookup."""

    def test_every_type_registered(self):
        assert set(ALGORITHMS) == set(AlgorithmType)

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            ALGORITHMS[AlgorithmType.LINEAR] = None

    def test_resolve_known_tags(self):
        assert resolve_algorithm_type("cycle") is AlgorithmType.CYCLE
        assert resolve_algorithm_type("hierRoot") is AlgorithmType.HIER_ROOT
        assert resolve_algorithm_type(AlgorithmType.SNAKE) is AlgorithmType.SNAKE

    def test_missing_tag_is_linear(self):
        diagnostics = Diagnostics()
        assert resolve_algorithm_type(None, diagnostics) is AlgorithmType.LINEAR
        assert resolve_algorithm_type("", diagnostics) is AlgorithmType.LINEAR
        assert diagnostics.entries == []

    def test_unknown_tag_warns(self):
        diagnostics = Diagnostics()
        assert resolve_algorithm_type("bogus", diagnostics) is AlgorithmType.LINEAR
        assert [d.code for d in diagnostics.warnings] == ["unknown-algorithm"]
        assert "bogus" in diagnostics.warnings[0].message

    def test_get_layout_algorithm(self):
        assert get_layout_algorithm("pyra") is pyramid_layout
        assert get_layout_algorithm("tx") is text_layout
        assert get_layout_algorithm("nope") is linear_layout
