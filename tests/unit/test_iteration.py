"""Unit tests for forEach selection and choose/if evaluation."""

import pytest

from dgmlayout.iteration import (
    create_for_each_context,
    evaluate_function,
    evaluate_if,
    matches_point_type,
    process_choose,
    process_for_each,
)
from dgmlayout.models import (
    ChooseDef,
    DiagramConnection,
    DiagramDataModel,
    DiagramPoint,
    DiagramPropertySet,
    ElseDef,
    ForEachDef,
    IfDef,
)
from dgmlayout.tree import DiagramTreeNode, build_tree


@pytest.fixture
def tree():
    """d -> [a, t1, b, t2]; a -> [a1, x]."""
    model = DiagramDataModel(
        points=[
            DiagramPoint("d", type="doc"),
            DiagramPoint(
                "a", property_set=DiagramPropertySet(layout_vars={"bulletEnabled": True})
            ),
            DiagramPoint("t1", type="sibTrans"),
            DiagramPoint("b"),
            DiagramPoint("t2", type="sibTrans"),
            DiagramPoint("a1"),
            DiagramPoint("x", type="asst"),
        ],
        connections=[
            DiagramConnection("c1", "a", "d"),
            DiagramConnection("c2", "t1", "d"),
            DiagramConnection("c3", "b", "d"),
            DiagramConnection("c4", "t2", "d"),
            DiagramConnection("c5", "a1", "a"),
            DiagramConnection("c6", "x", "a"),
        ],
    )
    return build_tree(model)


def select(tree, node_id, **kwargs):
    context = create_for_each_context(tree.node_map[node_id], tree.roots)
    result = process_for_each(ForEachDef(**kwargs), context)
    return [node.id for node in result.selected_nodes]


class TestForEachAxes:
    """Tests for forEach axis steps."""

    def test_children_hide_last_transition(self, tree):
        assert select(tree, "d", axis="ch") == ["a", "t1", "b"]

    def test_children_keep_last_transition(self, tree):
        assert select(tree, "d", axis="ch", hide_last_trans=False) == ["a", "t1", "b", "t2"]

    def test_default_is_self(self, tree):
        assert select(tree, "a") == ["a"]

    def test_descendants(self, tree):
        assert select(tree, "d", axis="des") == ["a", "a1", "x", "t1", "b"]

    def test_descendants_or_self(self, tree):
        assert select(tree, "a", axis="desOrSelf") == ["a", "a1", "x"]

    def test_multi_step(self, tree):
        assert select(tree, "d", axis="ch ch") == ["a1", "x"]

    def test_parent_and_ancestors(self, tree):
        assert select(tree, "a", axis="par") == ["d"]
        assert select(tree, "a1", axis="ancst") == ["a", "d"]
        assert select(tree, "a1", axis="ancstOrSelf") == ["a1", "a", "d"]

    def test_root(self, tree):
        assert select(tree, "a1", axis="root") == ["d"]
        assert select(tree, "d", axis="root") == ["d"]

    def test_siblings(self, tree):
        assert select(tree, "a", axis="followSib", hide_last_trans=False) == ["t1", "b", "t2"]
        assert select(tree, "b", axis="precedSib", hide_last_trans=False) == ["a", "t1"]
        assert select(tree, "b", axis="precedSib") == ["a"]

    def test_none_and_unknown(self, tree):
        assert select(tree, "d", axis="none") == []
        assert select(tree, "d", axis="sideways") == []


class TestForEachFilters:
    """Tests for point-type filters and the selection window."""

    def test_node_filter(self, tree):
        assert select(tree, "d", axis="ch", pt_type="node") == ["a", "b"]

    def test_non_assistant(self, tree):
        assert select(tree, "a", axis="ch", pt_type="nonAsst") == ["a1"]

    def test_non_normal(self, tree):
        assert select(tree, "d", axis="ch", pt_type="nonNorm", hide_last_trans=False) == [
            "t1",
            "t2",
        ]

    def test_filter_per_step(self, tree):
        assert select(tree, "d", axis="ch ch", pt_type="node asst") == ["x"]

    def test_start_is_one_based(self, tree):
        assert select(tree, "d", axis="ch", pt_type="node", start=2) == ["b"]

    def test_count(self, tree):
        assert select(tree, "d", axis="ch", pt_type="node", count=1) == ["a"]

    def test_step(self, tree):
        assert select(tree, "d", axis="ch", step=2, hide_last_trans=False) == ["a", "b"]

    def test_matches_point_type(self):
        node = DiagramTreeNode(id="n", type="asst")
        assert matches_point_type(node, "all")
        assert matches_point_type(node, "asst")
        assert matches_point_type(node, "nonNorm")
        assert not matches_point_type(node, "nonAsst")


class TestEvaluateIf:
    """Tests for if-condition functions."""

    def ctx(self, tree, node_id, variables=None):
        return create_for_each_context(tree.node_map[node_id], tree.roots, variables)

    def test_count(self, tree):
        context = self.ctx(tree, "d")
        assert evaluate_if(IfDef(func="cnt", axis="ch", pt_type="node", val="2"), context)
        assert evaluate_if(IfDef(func="cnt", axis="ch", op="gte", val=3), context)
        assert not evaluate_if(IfDef(func="cnt", axis="ch", op="lt", val=1), context)

    def test_positions(self, tree):
        context = self.ctx(tree, "b")
        assert evaluate_function(IfDef(func="pos"), context) == 3
        assert evaluate_function(IfDef(func="revPos"), context) == 2
        assert evaluate_function(IfDef(func="posOdd"), context) == 1
        assert evaluate_function(IfDef(func="posEven"), context) == 0

    def test_depths(self, tree):
        assert evaluate_function(IfDef(func="depth"), self.ctx(tree, "a1")) == 2
        assert evaluate_function(IfDef(func="maxDepth"), self.ctx(tree, "d")) == 2
        assert evaluate_function(IfDef(func="maxDepth"), self.ctx(tree, "a1")) == 0

    def test_variables(self, tree):
        context = self.ctx(tree, "d", {"dir": "norm"})
        assert evaluate_if(IfDef(func="var", arg="dir", val="norm"), context)
        assert not evaluate_if(IfDef(func="var", arg="dir", op="neq", val="norm"), context)

    def test_layout_vars_fallback(self, tree):
        context = self.ctx(tree, "a")
        assert evaluate_if(IfDef(func="var", arg="bulletEnabled", val="true"), context)

    def test_strings_only_support_equality(self, tree):
        context = self.ctx(tree, "d", {"dir": "norm"})
        assert not evaluate_if(IfDef(func="var", arg="dir", op="gt", val="abc"), context)

    def test_none_operator(self, tree):
        assert evaluate_if(IfDef(func="depth", op="none", val="99"), self.ctx(tree, "d"))


class TestProcessChoose:
    """Tests for process_choose."""

    def test_first_matching_if(self, tree):
        choose = ChooseDef(
            if_branches=[
                IfDef(name="never", func="depth", val="5"),
                IfDef(name="root", func="depth", val="0"),
                IfDef(name="also", func="depth", op="gte", val="0"),
            ],
            else_branch=ElseDef(name="fallback"),
        )
        result = process_choose(choose, create_for_each_context(tree.roots[0], tree.roots))
        assert result.branch.name == "root"
        assert result.branch_index == 1
        assert result.is_else is False

    def test_else_branch(self, tree):
        choose = ChooseDef(
            if_branches=[IfDef(func="depth", val="5")], else_branch=ElseDef(name="fallback")
        )
        result = process_choose(choose, create_for_each_context(tree.roots[0], tree.roots))
        assert result.branch.name == "fallback"
        assert result.branch_index == -1
        assert result.is_else is True

    def test_no_branch(self, tree):
        choose = ChooseDef(if_branches=[IfDef(func="depth", val="5")])
        result = process_choose(choose, create_for_each_context(tree.roots[0], tree.roots))
        assert result.branch is None
        assert result.is_else is False
