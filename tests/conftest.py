"""Pytest configuration and shared fixtures for dgmlayout tests."""

import pytest

from dgmlayout import (
    DiagramConnection,
    DiagramDataModel,
    DiagramPoint,
    DiagramTreeNode,
    LayoutBounds,
    ShapeGenerationConfig,
    TextBody,
    TextParagraph,
    TextRun,
)


def text_body(text):
    """Build a single-paragraph text body."""
    return TextBody(paragraphs=(TextParagraph(runs=(TextRun(text=text),)),))


def par_of(model_id, child, parent, order=None):
    """Build a parOf connection (child is the source)."""
    return DiagramConnection(
        model_id=model_id,
        source_id=child,
        destination_id=parent,
        type="parOf",
        source_order=order,
    )


@pytest.fixture
def bounds():
    """Default diagram bounds."""
    return LayoutBounds(0, 0, 800, 600)


@pytest.fixture
def config(bounds):
    """Default ShapeGenerationConfig."""
    return ShapeGenerationConfig(bounds=bounds)


@pytest.fixture
def doc_model():
    """A document point with three ordered children."""
    return DiagramDataModel(
        points=[
            DiagramPoint("doc", type="doc"),
            DiagramPoint("a", text_body=text_body("Alpha")),
            DiagramPoint("b", text_body=text_body("Beta")),
            DiagramPoint("c", text_body=text_body("Gamma")),
        ],
        connections=[
            par_of("c1", "a", "doc", 0),
            par_of("c2", "b", "doc", 1),
            par_of("c3", "c", "doc", 2),
        ],
    )


@pytest.fixture
def nested_model():
    """A document whose first child has two children of its own."""
    return DiagramDataModel(
        points=[
            DiagramPoint("doc", type="doc"),
            DiagramPoint("a"),
            DiagramPoint("a1"),
            DiagramPoint("a2"),
            DiagramPoint("b"),
        ],
        connections=[
            par_of("c1", "a", "doc", 0),
            par_of("c2", "b", "doc", 1),
            par_of("c3", "a1", "a", 0),
            par_of("c4", "a2", "a", 1),
        ],
    )


@pytest.fixture
def make_nodes():
    """Factory for flat lists of tree nodes named n0, n1, ..."""

    def factory(count):
        return [
            DiagramTreeNode(id=f"n{i}", sibling_index=i, sibling_count=count)
            for i in range(count)
        ]

    return factory
