"""In-memory hierarchy of levels, nodes and parent -> child edges.

The model is the single source of truth for a tree diagram. Positions are
never stored here; see ``tree_layout``. Queries are read-only; the
underscore-prefixed primitives at the bottom keep the child index in sync
and are only called by ``TreeEditor`` on a private working copy.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..models.tree import (
    DEFAULT_ROOT_COLOR,
    DEFAULT_ROOT_ID,
    DEFAULT_ROOT_LABEL,
    DEFAULT_ROOT_SIZE,
    TreeEdge,
    TreeLevel,
    TreeNode,
    default_level_name,
)
from .errors import TreeNodeNotFoundError

logger = logging.getLogger(__name__)


class TreeModel:
    """Ordered levels of nodes plus the edge set connecting them."""

    def __init__(
        self,
        levels: Iterable[TreeLevel] | None = None,
        edges: Iterable[TreeEdge] | None = None,
    ):
        self._levels: List[TreeLevel] = list(levels or [])
        self._edges: List[TreeEdge] = list(edges or [])
        self._nodes: Dict[str, TreeNode] = {}
        self._children: Dict[str, List[str]] = {}
        self._reindex()

    @classmethod
    def with_root(
        cls,
        root_id: str = DEFAULT_ROOT_ID,
        label: str = DEFAULT_ROOT_LABEL,
        level_name: Optional[str] = None,
    ) -> "TreeModel":
        """Create the tree a page starts with: a single root node."""
        root = TreeNode(
            id=root_id,
            label=label,
            level=0,
            parent_id=None,
            color=DEFAULT_ROOT_COLOR,
            size=DEFAULT_ROOT_SIZE,
        )
        level = TreeLevel(name=level_name or default_level_name(0), nodes=[root])
        return cls([level], [])

    def _reindex(self) -> None:
        self._nodes = {}
        self._children = {}
        for level in self._levels:
            for node in level.nodes:
                self._nodes[node.id] = node
                if node.parent_id is not None:
                    self._children.setdefault(node.parent_id, []).append(node.id)

    # ========================================
    # Queries
    # ========================================

    @property
    def levels(self) -> List[TreeLevel]:
        return self._levels

    @property
    def edges(self) -> List[TreeEdge]:
        return self._edges

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Yield every node, level by level, in level order."""
        for level in self._levels:
            yield from level.nodes

    def roots(self) -> List[TreeNode]:
        if not self._levels:
            return []
        return [node for node in self._levels[0].nodes if node.parent_id is None]

    def get_node(self, node_id: str) -> Optional[TreeNode]:
        return self._nodes.get(node_id)

    def find_node(self, node_id: str) -> TreeNode:
        """Return the node with ``node_id`` or raise ``TreeNodeNotFoundError``."""
        node = self._nodes.get(node_id)
        if node is None:
            raise TreeNodeNotFoundError(node_id)
        return node

    def children_of(self, node_id: str) -> List[TreeNode]:
        """Nodes on the next level whose parent is ``node_id``, in level order."""
        node = self.find_node(node_id)
        return [
            self._nodes[child_id]
            for child_id in self._children.get(node_id, [])
            if self._nodes[child_id].level == node.level + 1
        ]

    def has_children(self, node_id: str) -> bool:
        return bool(self._children.get(node_id))

    def ancestors_of(self, node_id: str) -> List[TreeNode]:
        """Ancestors ordered root first, ending with the direct parent."""
        node = self.find_node(node_id)
        chain: List[TreeNode] = []
        seen = {node.id}
        parent_id = node.parent_id
        while parent_id is not None and parent_id not in seen:
            parent = self._nodes.get(parent_id)
            if parent is None:
                logger.warning(f"Ancestor chain of {node_id} breaks at missing node {parent_id}")
                break
            chain.append(parent)
            seen.add(parent_id)
            parent_id = parent.parent_id
        chain.reverse()
        return chain

    def descendants_of(self, node_id: str) -> List[TreeNode]:
        """All transitive descendants of ``node_id`` (breadth first, excluding itself)."""
        self.find_node(node_id)
        found: List[TreeNode] = []
        seen = {node_id}
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for child_id in self._children.get(current, []):
                if child_id in seen:
                    continue
                seen.add(child_id)
                found.append(self._nodes[child_id])
                queue.append(child_id)
        return found

    def find_edge(self, edge_id: str) -> Optional[TreeEdge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def edge_into(self, node_id: str) -> Optional[TreeEdge]:
        """The parent -> child edge whose target is ``node_id``."""
        node = self._nodes.get(node_id)
        if node is None or node.parent_id is None:
            return None
        for edge in self._edges:
            if edge.target == node_id and edge.source == node.parent_id:
                return edge
        return None

    def copy(self) -> "TreeModel":
        """Deep copy; edits never touch the snapshot they started from.

        The children index is carried over rather than rebuilt.
        """
        clone = TreeModel.__new__(TreeModel)
        clone._levels = [level.model_copy(deep=True) for level in self._levels]
        clone._edges = [edge.model_copy(deep=True) for edge in self._edges]
        clone._nodes = {node.id: node for level in clone._levels for node in level.nodes}
        clone._children = {parent: list(ids) for parent, ids in self._children.items()}
        return clone

    def recompute_has_children(self) -> None:
        """Full rescan of ``has_children``; used after decoding stored data."""
        for node in self._nodes.values():
            node.has_children = bool(self._children.get(node.id))

    # ========================================
    # Mutation primitives (TreeEditor only)
    # ========================================

    def _ensure_level(self, index: int) -> TreeLevel:
        while len(self._levels) <= index:
            self._levels.append(TreeLevel(name=default_level_name(len(self._levels))))
        return self._levels[index]

    def _append_child(self, node: TreeNode, edge: TreeEdge) -> None:
        self._ensure_level(node.level).nodes.append(node)
        self._nodes[node.id] = node
        self._children.setdefault(node.parent_id, []).append(node.id)
        self._nodes[node.parent_id].has_children = True
        self._edges.append(edge)

    def _remove_subtree(self, node_id: str) -> Tuple[List[str], List[str]]:
        """Remove a node, its descendants and every edge touching them.

        Returns the removed node ids and removed edge ids.
        """
        node = self.find_node(node_id)
        removed = [node_id] + [n.id for n in self.descendants_of(node_id)]
        removed_set = set(removed)

        for level in self._levels:
            level.nodes = [n for n in level.nodes if n.id not in removed_set]

        removed_edges = [
            e.id for e in self._edges if e.source in removed_set or e.target in removed_set
        ]
        self._edges = [
            e for e in self._edges if e.source not in removed_set and e.target not in removed_set
        ]

        for removed_id in removed:
            self._nodes.pop(removed_id, None)
            self._children.pop(removed_id, None)

        parent_id = node.parent_id
        if parent_id is not None and parent_id in self._children:
            siblings = [c for c in self._children[parent_id] if c not in removed_set]
            if siblings:
                self._children[parent_id] = siblings
            else:
                del self._children[parent_id]
            parent = self._nodes.get(parent_id)
            if parent is not None:
                parent.has_children = bool(siblings)

        self._trim_trailing_levels()
        return removed, removed_edges

    def _trim_trailing_levels(self) -> None:
        while len(self._levels) > 1 and not self._levels[-1].nodes:
            self._levels.pop()


__all__ = ["TreeModel"]
