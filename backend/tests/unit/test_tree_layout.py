import logging

import pytest

from backend.src.models.tree import TreeEdge, TreeLevel, TreeNode
from backend.src.services.tree_layout import (
    LayoutSettings,
    compute_layout,
    fan_angles,
    fan_radius,
    node_diameter,
)
from backend.src.services.tree_model import TreeModel


def _tree(pairs):
    """Build a model from ``[(node_id, parent_id), ...]`` listed level by level."""
    levels = []
    edges = []
    depth = {}
    for node_id, parent_id in pairs:
        level = 0 if parent_id is None else depth[parent_id] + 1
        depth[node_id] = level
        while len(levels) <= level:
            levels.append(TreeLevel(name=f"Level {len(levels) + 1}"))
        levels[level].nodes.append(
            TreeNode(id=node_id, label=node_id, level=level, parent_id=parent_id)
        )
        if parent_id is not None:
            edges.append(TreeEdge(id=f"{parent_id}-{node_id}", source=parent_id, target=node_id))
    model = TreeModel(levels, edges)
    model.recompute_has_children()
    return model


def test_node_diameter_spans_size_scale() -> None:
    assert node_diameter(1) == pytest.approx(30.0)
    assert node_diameter(100) == pytest.approx(120.0)
    assert node_diameter(50) == pytest.approx(74.545, abs=1e-3)


def test_fan_angles_window_grows_and_caps() -> None:
    assert fan_angles(1) == [0.0]
    assert fan_angles(2) == pytest.approx([-10.0, 10.0])
    assert fan_angles(3) == pytest.approx([-12.5, 0.0, 12.5])
    wide = fan_angles(10)
    assert wide[0] == pytest.approx(-20.0)
    assert wide[-1] == pytest.approx(20.0)


def test_fan_radius_grows_with_sibling_count() -> None:
    assert fan_radius(2) == pytest.approx(440.0)
    assert fan_radius(3) == pytest.approx(550.0)


def test_single_root_is_centered() -> None:
    positions = compute_layout(TreeModel.with_root())

    assert positions["root"].x == pytest.approx(400.0)
    assert positions["root"].y == pytest.approx(80.0)


def test_multiple_roots_spread_around_center() -> None:
    positions = compute_layout(_tree([("r1", None), ("r2", None)]))

    assert positions["r1"].x == pytest.approx(330.0)
    assert positions["r2"].x == pytest.approx(470.0)


def test_single_child_sits_below_parent() -> None:
    positions = compute_layout(_tree([("root", None), ("a", "root"), ("b", "a")]))

    assert positions["a"].x == pytest.approx(400.0)
    assert positions["b"].x == pytest.approx(400.0)
    assert positions["a"].y == pytest.approx(200.0)
    assert positions["b"].y == pytest.approx(320.0)


def test_two_children_fan_symmetrically() -> None:
    positions = compute_layout(_tree([("root", None), ("a", "root"), ("b", "root")]))

    assert positions["a"].x == pytest.approx(323.595, abs=0.01)
    assert positions["b"].x == pytest.approx(476.405, abs=0.01)
    assert positions["a"].y == positions["b"].y == pytest.approx(200.0)


def test_three_children_keep_middle_under_parent() -> None:
    positions = compute_layout(
        _tree([("root", None), ("a", "root"), ("b", "root"), ("c", "root")])
    )

    assert [positions[n].x for n in "abc"] == pytest.approx([280.96, 400.0, 519.04], abs=0.01)


def test_cousins_are_pushed_apart() -> None:
    model = _tree(
        [
            ("root", None),
            ("a", "root"),
            ("b", "root"),
            ("a1", "a"),
            ("a2", "a"),
            ("b1", "b"),
            ("b2", "b"),
        ]
    )

    positions = compute_layout(model)

    xs = {n: positions[n].x for n in ("a1", "a2", "b1", "b2")}
    assert xs["a1"] == pytest.approx(247.19, abs=0.01)
    assert xs["a2"] == pytest.approx(400.0, abs=0.01)
    assert xs["b1"] == pytest.approx(147.88, abs=0.01)
    assert xs["b2"] == pytest.approx(552.81, abs=0.01)
    min_gap = node_diameter(50) + 20
    values = sorted(xs.values())
    for left, right in zip(values, values[1:]):
        assert right - left >= min_gap - 1e-6


def test_positions_clamped_to_canvas() -> None:
    settings = LayoutSettings(canvas_width=200, base_radius=1000)

    positions = compute_layout(_tree([("root", None), ("a", "root"), ("b", "root")]), settings)

    assert positions["root"].x == pytest.approx(100.0)
    assert positions["a"].x == pytest.approx(0.0)
    assert positions["b"].x == pytest.approx(200.0)


def test_layout_is_deterministic() -> None:
    pairs = [("root", None)] + [(f"c{i}", "root") for i in range(6)] + [("g", "c2")]

    first = compute_layout(_tree(pairs))
    second = compute_layout(_tree(pairs))

    assert first == second
    assert len(first) == 8


def test_orphan_nodes_are_skipped(caplog) -> None:
    levels = [
        TreeLevel(name="Level 1", nodes=[TreeNode(id="root", label="Root", level=0)]),
        TreeLevel(
            name="Level 2",
            nodes=[
                TreeNode(id="a", label="A", level=1, parent_id="root"),
                TreeNode(id="lost", label="Lost", level=1, parent_id="ghost"),
            ],
        ),
        TreeLevel(
            name="Level 3",
            nodes=[TreeNode(id="lost_child", label="Lost child", level=2, parent_id="lost")],
        ),
    ]
    model = TreeModel(levels, [TreeEdge(id="root-a", source="root", target="a")])

    with caplog.at_level(logging.WARNING):
        positions = compute_layout(model)

    assert set(positions) == {"root", "a"}
    assert "ghost" in caplog.text


def test_empty_model_has_no_positions() -> None:
    assert compute_layout(TreeModel()) == {}
