"""Conversion between ``TreeModel`` and the persisted JSON shapes.

Three stored shapes are accepted and normalised immediately:

- ``hierarchical``: ``{hierarchyLevels, edges}`` (what every save writes)
- ``legacy``: flat ``{nodes: [{id, label, x, y}], edges}`` wrapped into level 0
- ``nested``: ``{id, label, children: [...]}`` from the diagram editor
"""

from __future__ import annotations

import json
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from ..models.tree import (
    DEFAULT_NODE_COLOR,
    DEFAULT_NODE_SIZE,
    DEFAULT_ROOT_COLOR,
    DEFAULT_ROOT_SIZE,
    HierarchicalTree,
    LegacyTree,
    NestedTreeNode,
    TreeEdge,
    TreeLevel,
    TreeNode,
    TreeValidationResult,
    default_level_name,
)
from .errors import TreeFormatError
from .tree_model import TreeModel

logger = logging.getLogger(__name__)

DEFAULT_MAX_NODES = 100


class TreeShape(str, Enum):
    """Tag of a stored tree payload."""

    HIERARCHICAL = "hierarchical"
    LEGACY = "legacy"
    NESTED = "nested"


def parse_payload(payload: Any) -> Dict[str, Any]:
    """Return ``payload`` as a dict, parsing JSON text when needed."""
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise TreeFormatError("Tree data is not valid JSON", {"error": str(exc)})
    if not isinstance(payload, dict):
        raise TreeFormatError(
            "Tree data must be a JSON object",
            {"type": type(payload).__name__},
        )
    return payload


def detect_shape(data: Dict[str, Any]) -> TreeShape:
    if "hierarchyLevels" in data or "hierarchy_levels" in data:
        return TreeShape.HIERARCHICAL
    if "nodes" in data:
        return TreeShape.LEGACY
    if "id" in data and "label" in data:
        return TreeShape.NESTED
    raise TreeFormatError(
        "Unrecognized tree format: expected hierarchyLevels, nodes/edges or id/label",
        {"keys": sorted(str(key) for key in data.keys())},
    )


def _enforce_ceiling(count: int, max_nodes: Optional[int]) -> None:
    if max_nodes is not None and count > max_nodes:
        raise TreeFormatError(
            f"Tree has {count} nodes; the maximum is {max_nodes}",
            {"node_count": count, "max_nodes": max_nodes},
        )


def _validation_error(shape: TreeShape, exc: ValidationError) -> TreeFormatError:
    return TreeFormatError(
        f"Invalid {shape.value} tree data",
        {"errors": exc.errors(include_url=False, include_context=False)},
    )


def _normalize_edges(levels: List[TreeLevel], edges: List[TreeEdge]) -> List[TreeEdge]:
    """Drop dangling or duplicate edges and add missing parent -> child edges."""
    nodes = {node.id: node for level in levels for node in level.nodes}
    kept: List[TreeEdge] = []
    edge_ids: Set[str] = set()
    parent_edges: Set[str] = set()

    for edge in edges:
        if edge.id in edge_ids:
            logger.warning(f"Dropping edge with duplicate id {edge.id}")
            continue
        if edge.source not in nodes or edge.target not in nodes:
            logger.warning(f"Dropping dangling edge {edge.id} ({edge.source} -> {edge.target})")
            continue
        target = nodes[edge.target]
        if target.parent_id is not None:
            if edge.source != target.parent_id or edge.target in parent_edges:
                logger.warning(f"Dropping edge {edge.id}: {edge.target} already has its parent edge")
                continue
            parent_edges.add(edge.target)
        edge_ids.add(edge.id)
        kept.append(edge)

    for node in nodes.values():
        if node.parent_id is None or node.id in parent_edges or node.parent_id not in nodes:
            continue
        edge_id = f"{node.parent_id}-{node.id}"
        while edge_id in edge_ids:
            edge_id = f"{edge_id}-1"
        logger.warning(f"Adding missing edge {edge_id} for node {node.id}")
        kept.append(TreeEdge(id=edge_id, source=node.parent_id, target=node.id))
        edge_ids.add(edge_id)
    return kept


def _decode_hierarchical(data: Dict[str, Any], max_nodes: Optional[int]) -> TreeModel:
    try:
        tree = HierarchicalTree.model_validate(data)
    except ValidationError as exc:
        raise _validation_error(TreeShape.HIERARCHICAL, exc)
    _enforce_ceiling(sum(len(level.nodes) for level in tree.hierarchy_levels), max_nodes)

    level_of: Dict[str, int] = {}
    for index, level in enumerate(tree.hierarchy_levels):
        for node in level.nodes:
            if node.id in level_of:
                raise TreeFormatError(f"Duplicate node id {node.id}", {"node_id": node.id})
            level_of[node.id] = index

    for index, level in enumerate(tree.hierarchy_levels):
        if not level.name:
            level.name = default_level_name(index)
        for node in level.nodes:
            if node.level != index:
                raise TreeFormatError(
                    f"Node {node.id} declares level {node.level} but is stored on level {index}",
                    {"node_id": node.id, "level": node.level, "index": index},
                )
            if index == 0 and node.parent_id is not None:
                raise TreeFormatError(
                    f"Node {node.id} on level 0 must not have a parent",
                    {"node_id": node.id},
                )
            if index > 0 and node.parent_id is None:
                raise TreeFormatError(
                    f"Node {node.id} on level {index} has no parent",
                    {"node_id": node.id},
                )
            if index == 0:
                continue
            if node.parent_id not in level_of:
                # Kept as an orphan; the layout pass leaves it out.
                logger.warning(f"Node {node.id} references missing parent {node.parent_id}")
            elif level_of[node.parent_id] != index - 1:
                raise TreeFormatError(
                    f"Parent {node.parent_id} of {node.id} is not on the level above",
                    {"node_id": node.id, "parent_id": node.parent_id},
                )

    edges = _normalize_edges(tree.hierarchy_levels, tree.edges)
    model = TreeModel(tree.hierarchy_levels, edges)
    model.recompute_has_children()
    return model


def _decode_legacy(data: Dict[str, Any], max_nodes: Optional[int]) -> TreeModel:
    try:
        tree = LegacyTree.model_validate(data)
    except ValidationError as exc:
        raise _validation_error(TreeShape.LEGACY, exc)
    _enforce_ceiling(len(tree.nodes), max_nodes)

    nodes: List[TreeNode] = []
    seen: Set[str] = set()
    for legacy in tree.nodes:
        if legacy.id in seen:
            raise TreeFormatError(f"Duplicate node id {legacy.id}", {"node_id": legacy.id})
        seen.add(legacy.id)
        nodes.append(
            TreeNode(
                id=legacy.id,
                label=legacy.label,
                level=0,
                parent_id=None,
                color=DEFAULT_NODE_COLOR,
                size=DEFAULT_NODE_SIZE,
            )
        )

    edges: List[TreeEdge] = []
    for legacy_edge in tree.edges:
        if legacy_edge.source == legacy_edge.target:
            logger.warning(f"Dropping self-loop edge {legacy_edge.id}")
            continue
        edges.append(
            TreeEdge(id=legacy_edge.id, source=legacy_edge.source, target=legacy_edge.target)
        )

    levels = [TreeLevel(name=default_level_name(0), nodes=nodes)]
    logger.info(f"Wrapped legacy tree with {len(nodes)} node(s) into a single level")
    return TreeModel(levels, _normalize_edges(levels, edges))


def _decode_nested(data: Dict[str, Any], max_nodes: Optional[int]) -> TreeModel:
    try:
        root = NestedTreeNode.model_validate(data)
    except ValidationError as exc:
        raise _validation_error(TreeShape.NESTED, exc)
    _enforce_ceiling(root.count_nodes(), max_nodes)

    levels: List[TreeLevel] = []
    edges: List[TreeEdge] = []
    seen: Set[str] = set()
    queue = deque([(root, None, 0)])
    while queue:
        item, parent_id, depth = queue.popleft()
        if item.id in seen:
            raise TreeFormatError(f"Duplicate node id {item.id}", {"node_id": item.id})
        seen.add(item.id)
        is_root = parent_id is None
        try:
            node = TreeNode(
                id=item.id,
                label=item.label,
                level=depth,
                parent_id=parent_id,
                has_children=bool(item.children),
                color=item.color or (DEFAULT_ROOT_COLOR if is_root else DEFAULT_NODE_COLOR),
                size=item.size or (DEFAULT_ROOT_SIZE if is_root else DEFAULT_NODE_SIZE),
            )
        except ValidationError as exc:
            raise _validation_error(TreeShape.NESTED, exc)
        while len(levels) <= depth:
            levels.append(TreeLevel(name=default_level_name(len(levels))))
        levels[depth].nodes.append(node)
        if parent_id is not None:
            edges.append(TreeEdge(id=f"{parent_id}-{item.id}", source=parent_id, target=item.id))
        for child in item.children:
            queue.append((child, item.id, depth + 1))

    return TreeModel(levels, edges)


_DECODERS: Dict[TreeShape, Callable[[Dict[str, Any], Optional[int]], TreeModel]] = {
    TreeShape.HIERARCHICAL: _decode_hierarchical,
    TreeShape.LEGACY: _decode_legacy,
    TreeShape.NESTED: _decode_nested,
}


def decode(payload: Any, max_nodes: Optional[int] = None) -> TreeModel:
    """Decode any accepted stored shape into a ``TreeModel``.

    Raises:
        TreeFormatError: payload is not an object, matches no shape, violates
            the hierarchy invariants, or holds more than ``max_nodes`` nodes.
    """
    data = parse_payload(payload)
    shape = detect_shape(data)
    return _DECODERS[shape](data, max_nodes)


def encode(model: TreeModel) -> Dict[str, Any]:
    """Encode ``model`` in the hierarchical shape plus a flattened ``nodes`` view."""
    return {
        "hierarchyLevels": [level.model_dump(by_alias=True) for level in model.levels],
        "edges": [edge.model_dump(by_alias=True) for edge in model.edges],
        "nodes": [node.model_dump(by_alias=True) for node in model.iter_nodes()],
    }


def _count_nested(data: Dict[str, Any]) -> int:
    count = 0
    stack = [data]
    while stack:
        current = stack.pop()
        count += 1
        children = current.get("children") or []
        if isinstance(children, list):
            stack.extend(child for child in children if isinstance(child, dict))
    return count


def validate_tree(tree_data: Any, max_nodes: int = DEFAULT_MAX_NODES) -> TreeValidationResult:
    """Boundary check for nested tree payloads: ``{valid, nodeCount, error?}``."""
    try:
        data = parse_payload(tree_data)
    except TreeFormatError as exc:
        return TreeValidationResult(valid=False, error=exc.message)

    if "id" not in data or "label" not in data:
        return TreeValidationResult(valid=False, error="Tree data requires top-level id and label")

    node_count = _count_nested(data)
    if node_count > max_nodes:
        return TreeValidationResult(
            valid=False,
            node_count=node_count,
            error=f"Tree has {node_count} nodes; the maximum is {max_nodes}",
        )
    return TreeValidationResult(valid=True, node_count=node_count)


__all__ = [
    "TreeShape",
    "DEFAULT_MAX_NODES",
    "parse_payload",
    "detect_shape",
    "decode",
    "encode",
    "validate_tree",
]
