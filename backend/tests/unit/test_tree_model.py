import pytest

from backend.src.models.tree import TreeEdge, TreeLevel, TreeNode
from backend.src.services.errors import TreeNodeNotFoundError
from backend.src.services.tree_model import TreeModel


def _node(node_id: str, level: int, parent_id: str | None = None) -> TreeNode:
    return TreeNode(id=node_id, label=node_id.upper(), level=level, parent_id=parent_id)


@pytest.fixture
def model() -> TreeModel:
    """root -> (a -> a1), b"""
    levels = [
        TreeLevel(name="Subject", nodes=[_node("root", 0)]),
        TreeLevel(name="Chapter", nodes=[_node("a", 1, "root"), _node("b", 1, "root")]),
        TreeLevel(name="Section", nodes=[_node("a1", 2, "a")]),
    ]
    edges = [
        TreeEdge(id="root-a", source="root", target="a"),
        TreeEdge(id="root-b", source="root", target="b"),
        TreeEdge(id="a-a1", source="a", target="a1", label="covers"),
    ]
    tree = TreeModel(levels, edges)
    tree.recompute_has_children()
    return tree


def test_find_node_returns_node(model: TreeModel) -> None:
    assert model.find_node("a1").label == "A1"


def test_find_node_missing_raises_not_found(model: TreeModel) -> None:
    with pytest.raises(TreeNodeNotFoundError) as exc_info:
        model.find_node("ghost")

    assert exc_info.value.node_id == "ghost"
    assert isinstance(exc_info.value, LookupError)


def test_children_of_keeps_level_order(model: TreeModel) -> None:
    assert [n.id for n in model.children_of("root")] == ["a", "b"]
    assert model.children_of("b") == []


def test_children_of_missing_node_raises(model: TreeModel) -> None:
    with pytest.raises(TreeNodeNotFoundError):
        model.children_of("ghost")


def test_ancestors_of_runs_root_to_parent(model: TreeModel) -> None:
    assert [n.id for n in model.ancestors_of("a1")] == ["root", "a"]
    assert model.ancestors_of("root") == []


def test_descendants_of_is_breadth_first(model: TreeModel) -> None:
    assert [n.id for n in model.descendants_of("root")] == ["a", "b", "a1"]
    assert model.descendants_of("a1") == []


def test_recompute_has_children(model: TreeModel) -> None:
    assert model.find_node("root").has_children is True
    assert model.find_node("a").has_children is True
    assert model.find_node("b").has_children is False
    assert model.find_node("a1").has_children is False


def test_edge_lookups(model: TreeModel) -> None:
    assert model.edge_into("a1").id == "a-a1"
    assert model.edge_into("root") is None
    assert model.find_edge("a-a1").label == "covers"
    assert model.find_edge("missing") is None


def test_roots_and_counts(model: TreeModel) -> None:
    assert [n.id for n in model.roots()] == ["root"]
    assert model.node_count == 4
    assert [n.id for n in model.iter_nodes()] == ["root", "a", "b", "a1"]
    assert "a" in model
    assert "ghost" not in model


def test_copy_is_independent(model: TreeModel) -> None:
    clone = model.copy()
    clone.find_node("a").label = "Changed"
    clone.levels[0].name = "Renamed"
    clone.find_edge("a-a1").label = "other"

    assert model.find_node("a").label == "A"
    assert model.levels[0].name == "Subject"
    assert model.find_edge("a-a1").label == "covers"


def test_copy_carries_child_index(model: TreeModel) -> None:
    clone = model.copy()

    assert [n.id for n in clone.children_of("root")] == ["a", "b"]
    assert clone.find_node("a") is not model.find_node("a")

    clone._remove_subtree("a")

    assert [n.id for n in clone.children_of("root")] == ["b"]
    assert [n.id for n in model.children_of("root")] == ["a", "b"]
    assert [n.id for n in model.descendants_of("a")] == ["a1"]


def test_with_root_creates_single_root() -> None:
    tree = TreeModel.with_root(label="Main")

    assert tree.node_count == 1
    root = tree.find_node("root")
    assert root.label == "Main"
    assert root.level == 0
    assert root.parent_id is None
    assert tree.levels[0].name == "Level 1"
    assert tree.edges == []
