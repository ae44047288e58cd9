"""Deterministic level-by-level layout for tree diagrams.

Roots sit on a row centred on the canvas. Every following level is one
vertical step lower. A single child hangs straight below its parent; several
children fan out inside a narrow angular window, and a child whose candidate
x lands too close to a node already placed on the same row is pushed further
out by growing the radius, a bounded number of times.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..models.tree import MAX_NODE_SIZE, MIN_NODE_SIZE, Position, TreeNode
from .tree_model import TreeModel

logger = logging.getLogger(__name__)


class LayoutSettings(BaseModel):
    """Geometry constants for the layout pass."""

    model_config = ConfigDict(frozen=True)

    canvas_width: float = Field(default=800.0, gt=0)
    y0: float = Field(default=80.0, description="Vertical offset of the root row")
    delta_y: float = Field(default=120.0, gt=0, description="Vertical step per level")
    root_spacing: float = Field(default=140.0, ge=0)
    base_fan_angle: float = Field(default=20.0, description="Window for two siblings (degrees)")
    fan_angle_step: float = Field(default=5.0, description="Window growth per extra sibling")
    max_fan_angle: float = Field(default=40.0, description="Cap on the sibling window")
    base_radius: float = Field(default=440.0, gt=0)
    radius_growth_per_child: float = Field(default=0.25, ge=0)
    collision_radius_growth: float = Field(default=1.2, gt=1)
    max_attempts: int = Field(default=10, ge=1)
    min_node_diameter: float = Field(default=30.0, gt=0)
    max_node_diameter: float = Field(default=120.0, gt=0)
    node_gap: float = Field(default=20.0, ge=0)


DEFAULT_LAYOUT_SETTINGS = LayoutSettings()

Placed = Tuple[float, float]  # (x, diameter)


def node_diameter(size: int, settings: LayoutSettings = DEFAULT_LAYOUT_SETTINGS) -> float:
    """Map the 1..100 size scale onto a rendered diameter in pixels."""
    span = settings.max_node_diameter - settings.min_node_diameter
    steps = MAX_NODE_SIZE - MIN_NODE_SIZE
    return settings.min_node_diameter + (size - MIN_NODE_SIZE) * span / steps


def fan_angles(count: int, settings: LayoutSettings = DEFAULT_LAYOUT_SETTINGS) -> List[float]:
    """Sibling angles in degrees, measured from straight down."""
    if count <= 1:
        return [0.0] * count
    window = min(
        settings.max_fan_angle,
        settings.base_fan_angle + settings.fan_angle_step * (count - 2),
    )
    step = window / (count - 1)
    return [-window / 2 + step * index for index in range(count)]


def fan_radius(count: int, settings: LayoutSettings = DEFAULT_LAYOUT_SETTINGS) -> float:
    return settings.base_radius * (1 + settings.radius_growth_per_child * max(0, count - 2))


def _clamp(x: float, settings: LayoutSettings) -> float:
    return min(max(x, 0.0), settings.canvas_width)


def _collides(x: float, diameter: float, placed: List[Placed], gap: float) -> bool:
    for other_x, other_diameter in placed:
        if abs(x - other_x) < (diameter + other_diameter) / 2 + gap:
            return True
    return False


def _place_fanned_child(
    parent_x: float,
    angle: float,
    radius: float,
    diameter: float,
    placed: List[Placed],
    settings: LayoutSettings,
) -> float:
    offset = math.sin(math.radians(angle))
    for _ in range(settings.max_attempts):
        x = _clamp(parent_x + radius * offset, settings)
        if not _collides(x, diameter, placed, settings.node_gap):
            return x
        radius *= settings.collision_radius_growth
    logger.debug(f"Collision retries exhausted at x={x:.1f}; accepting clamped position")
    return x


def _group_by_parent(nodes: List[TreeNode]) -> Dict[Optional[str], List[TreeNode]]:
    groups: Dict[Optional[str], List[TreeNode]] = {}
    for node in nodes:
        groups.setdefault(node.parent_id, []).append(node)
    return groups


def compute_layout(
    model: TreeModel,
    settings: LayoutSettings | None = None,
) -> Dict[str, Position]:
    """Compute canvas positions for every reachable node of ``model``.

    Pure: identical shape and sizes always give identical positions. Nodes
    whose parent is missing from the previous level are left out.
    """
    settings = settings or DEFAULT_LAYOUT_SETTINGS
    positions: Dict[str, Position] = {}
    if not model.levels:
        return positions

    roots = [node for node in model.levels[0].nodes if node.parent_id is None]
    start_x = settings.canvas_width / 2 - (len(roots) - 1) * settings.root_spacing / 2
    for index, root in enumerate(roots):
        x = _clamp(start_x + index * settings.root_spacing, settings)
        positions[root.id] = Position(x=x, y=settings.y0)
    previous = {root.id for root in roots}

    for level_index in range(1, len(model.levels)):
        y = settings.y0 + level_index * settings.delta_y
        placed: List[Placed] = []
        current = set()

        for parent_id, siblings in _group_by_parent(model.levels[level_index].nodes).items():
            if parent_id not in previous:
                logger.warning(
                    f"Skipping {len(siblings)} node(s) on level {level_index}: "
                    f"parent {parent_id!r} is not laid out on the level above"
                )
                continue
            parent_x = positions[parent_id].x

            if len(siblings) == 1:
                child = siblings[0]
                x = _clamp(parent_x, settings)
                placed.append((x, node_diameter(child.size, settings)))
                positions[child.id] = Position(x=x, y=y)
                current.add(child.id)
                continue

            radius = fan_radius(len(siblings), settings)
            for child, angle in zip(siblings, fan_angles(len(siblings), settings)):
                diameter = node_diameter(child.size, settings)
                x = _place_fanned_child(parent_x, angle, radius, diameter, placed, settings)
                placed.append((x, diameter))
                positions[child.id] = Position(x=x, y=y)
                current.add(child.id)

        previous = current

    return positions


__all__ = [
    "LayoutSettings",
    "DEFAULT_LAYOUT_SETTINGS",
    "compute_layout",
    "node_diameter",
    "fan_angles",
    "fan_radius",
]
