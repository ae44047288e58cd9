"""Editing sessions for tree diagrams.

``TreeEditor`` owns one ``TreeModel`` for one open page. Every structural
edit runs on a private copy and replaces the model reference only when it
completes, so callers never observe a half-applied change. A stale id never
raises: the edit becomes a no-op and a warning is logged.

``LegacyTreeEditor`` covers the older flat node/edge diagrams whose positions
are stored explicitly.
"""

from __future__ import annotations

import functools
import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from ..models.tree import (
    DEFAULT_NODE_COLOR,
    DEFAULT_NODE_SIZE,
    LegacyEdge,
    LegacyNode,
    LegacyTree,
    Position,
    TreeEdge,
    TreeNode,
    clamp_size,
    default_level_name,
    is_hex_color,
)
from .tree_codec import decode, encode
from .tree_layout import LayoutSettings, compute_layout
from .tree_model import TreeModel

logger = logging.getLogger(__name__)

DEFAULT_NODE_LABEL = "New Node"

TreeListener = Callable[[TreeModel], None]
IdFactory = Callable[[str], str]


def _uuid_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _guarded(default_factory: Callable[[], Any]):
    """Run an edit under the session's mutation lock.

    A call arriving while another edit still holds the lock is dropped and
    returns ``default_factory()``.
    """

    def decorator(method):
        @functools.wraps(method)
        def wrapper(self: "TreeEditor", *args, **kwargs):
            if not self._lock.acquire(blocking=False):
                logger.warning(f"Dropped {method.__name__}: another edit is still in progress")
                return default_factory()
            self.is_mutating = True
            try:
                return method(self, *args, **kwargs)
            finally:
                self.is_mutating = False
                self._lock.release()

        return wrapper

    return decorator


class TreeEditor:
    """Structural and cosmetic edits over a hierarchical tree."""

    def __init__(
        self,
        model: TreeModel | None = None,
        *,
        default_label: str = DEFAULT_NODE_LABEL,
        max_children: Optional[int] = None,
        layout_settings: LayoutSettings | None = None,
        id_factory: IdFactory | None = None,
    ):
        self._model = model if model is not None else TreeModel.with_root()
        self.default_label = default_label
        self.max_children = max_children
        self.layout_settings = layout_settings
        self._new_id = id_factory or _uuid_id
        self._listeners: List[TreeListener] = []
        self._lock = threading.Lock()
        self.is_mutating = False
        self._layout_source: Optional[TreeModel] = None
        self._positions: Dict[str, Position] = {}

    @classmethod
    def from_tree_data(
        cls,
        tree_data: Any,
        max_nodes: Optional[int] = None,
        **kwargs,
    ) -> "TreeEditor":
        """Open an editor on stored tree data; empty data yields a single root."""
        if not tree_data:
            return cls(TreeModel.with_root(), **kwargs)
        model = decode(tree_data, max_nodes=max_nodes)
        if model.node_count == 0:
            model = TreeModel.with_root()
        return cls(model, **kwargs)

    @property
    def model(self) -> TreeModel:
        return self._model

    @property
    def positions(self) -> Dict[str, Position]:
        """Layout of the current model, recomputed when the model changes.

        Returns a fresh dict; the cached layout itself is never handed out.
        """
        if self._layout_source is not self._model:
            self._positions = compute_layout(self._model, self.layout_settings)
            self._layout_source = self._model
        return dict(self._positions)

    def subscribe(self, listener: TreeListener) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, draft: TreeModel) -> None:
        self._model = draft
        for listener in list(self._listeners):
            try:
                listener(draft)
            except Exception:
                # The edit is already committed; a failing listener must not undo it.
                logger.exception(f"Tree listener {listener!r} failed")

    def _unique_id(self, prefix: str, taken: Callable[[str], bool]) -> str:
        candidate = self._new_id(prefix)
        while taken(candidate):
            candidate = self._new_id(prefix)
        return candidate

    # ========================================
    # Structural edits
    # ========================================

    @_guarded(lambda: None)
    def add_child(self, parent_id: str) -> Optional[TreeNode]:
        """Append a new child under ``parent_id`` and connect it with an edge."""
        parent = self._model.get_node(parent_id)
        if parent is None:
            logger.warning(f"add_child: parent {parent_id} not found")
            return None

        siblings = self._model.children_of(parent_id)
        if self.max_children is not None and len(siblings) >= self.max_children:
            logger.warning(
                f"add_child: {parent_id} already has {len(siblings)} children "
                f"(limit {self.max_children})"
            )
            return None

        draft = self._model.copy()
        node_id = self._unique_id("node", lambda value: value in draft)
        edge_id = self._unique_id("edge", lambda value: draft.find_edge(value) is not None)
        child = TreeNode(
            id=node_id,
            label=self.default_label,
            level=parent.level + 1,
            parent_id=parent_id,
            color=DEFAULT_NODE_COLOR,
            size=DEFAULT_NODE_SIZE,
        )
        draft._append_child(child, TreeEdge(id=edge_id, source=parent_id, target=node_id))
        logger.info(f"Added node {node_id} under {parent_id} on level {child.level}")
        self._commit(draft)
        return child

    @_guarded(list)
    def delete_node(self, node_id: str) -> List[str]:
        """Delete ``node_id`` with all descendants; returns the removed ids.

        The last remaining root is never deleted.
        """
        node = self._model.get_node(node_id)
        if node is None:
            logger.warning(f"delete_node: node {node_id} not found")
            return []
        if node.parent_id is None and len(self._model.roots()) <= 1:
            logger.warning(f"delete_node: refusing to delete the only root {node_id}")
            return []

        draft = self._model.copy()
        removed, removed_edges = draft._remove_subtree(node_id)
        logger.info(
            f"Deleted {len(removed)} node(s) and {len(removed_edges)} edge(s) rooted at {node_id}"
        )
        self._commit(draft)
        return removed

    # ========================================
    # Field edits
    # ========================================

    def _edit_node(self, node_id: str, operation: str, apply: Callable[[TreeNode], None]) -> bool:
        if node_id not in self._model:
            logger.warning(f"{operation}: node {node_id} not found")
            return False
        draft = self._model.copy()
        apply(draft.find_node(node_id))
        self._commit(draft)
        return True

    @_guarded(bool)
    def relabel(self, node_id: str, text: str) -> bool:
        label = (text or "").strip()
        if not label:
            logger.warning(f"relabel: ignoring blank label for {node_id}")
            return False
        return self._edit_node(node_id, "relabel", lambda node: setattr(node, "label", label))

    @_guarded(bool)
    def recolor(self, node_id: str, color: str) -> bool:
        if not is_hex_color(color):
            logger.warning(f"recolor: {color!r} is not a hex color")
            return False
        return self._edit_node(node_id, "recolor", lambda node: setattr(node, "color", color))

    @_guarded(bool)
    def resize(self, node_id: str, size: int | float) -> bool:
        try:
            clamped = clamp_size(size)
        except ValueError as exc:
            logger.warning(f"resize: {exc}")
            return False
        return self._edit_node(node_id, "resize", lambda node: setattr(node, "size", clamped))

    @_guarded(bool)
    def relabel_edge(self, edge_id: str, text: str) -> bool:
        if self._model.find_edge(edge_id) is None:
            logger.warning(f"relabel_edge: edge {edge_id} not found")
            return False
        draft = self._model.copy()
        draft.find_edge(edge_id).label = text or ""
        self._commit(draft)
        return True

    # ========================================
    # Level metadata
    # ========================================

    def _edit_level(self, index: int, operation: str, apply: Callable[[Any], None]) -> bool:
        if not 0 <= index < len(self._model.levels):
            logger.warning(f"{operation}: level {index} does not exist")
            return False
        draft = self._model.copy()
        apply(draft.levels[index])
        self._commit(draft)
        return True

    @_guarded(bool)
    def toggle_level_collapse(self, index: int) -> bool:
        return self._edit_level(
            index,
            "toggle_level_collapse",
            lambda level: setattr(level, "collapsed", not level.collapsed),
        )

    @_guarded(bool)
    def rename_level(self, index: int, name: str) -> bool:
        cleaned = (name or "").strip() or default_level_name(index)
        return self._edit_level(index, "rename_level", lambda level: setattr(level, "name", cleaned))

    # ========================================
    # Persistence
    # ========================================

    def encode(self) -> Dict[str, Any]:
        return encode(self._model)

    def save(self, saver: Callable[[Dict[str, Any]], Any]) -> Any:
        """Hand the encoded tree to ``saver``; failures propagate unchanged."""
        payload = self.encode()
        try:
            return saver(payload)
        except Exception as exc:
            logger.error(f"Saving tree failed, keeping in-memory model: {exc}")
            raise


class LegacyTreeEditor:
    """Edits for flat diagrams with explicitly stored node positions."""

    def __init__(self, tree: LegacyTree | None = None, id_factory: IdFactory | None = None):
        self.tree = tree.model_copy(deep=True) if tree is not None else LegacyTree()
        self._new_id = id_factory or _uuid_id

    def _find(self, node_id: str) -> Optional[LegacyNode]:
        for node in self.tree.nodes:
            if node.id == node_id:
                return node
        return None

    def add_node(self, x: float = 50.0, y: float = 50.0, label: str = DEFAULT_NODE_LABEL) -> LegacyNode:
        node_id = self._new_id("node")
        while self._find(node_id) is not None:
            node_id = self._new_id("node")
        node = LegacyNode(id=node_id, label=label, x=max(0.0, x), y=max(0.0, y))
        self.tree = LegacyTree(nodes=[*self.tree.nodes, node], edges=list(self.tree.edges))
        return node

    def delete_node(self, node_id: str) -> bool:
        if self._find(node_id) is None:
            logger.warning(f"delete_node: legacy node {node_id} not found")
            return False
        self.tree = LegacyTree(
            nodes=[n for n in self.tree.nodes if n.id != node_id],
            edges=[e for e in self.tree.edges if node_id not in (e.source, e.target)],
        )
        return True

    def relabel(self, node_id: str, text: str) -> bool:
        label = (text or "").strip()
        node = self._find(node_id)
        if node is None or not label:
            logger.warning(f"relabel: ignoring legacy relabel of {node_id}")
            return False
        self.tree = LegacyTree(
            nodes=[n.model_copy(update={"label": label}) if n.id == node_id else n for n in self.tree.nodes],
            edges=list(self.tree.edges),
        )
        return True

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        if self._find(node_id) is None:
            logger.warning(f"move_node: legacy node {node_id} not found")
            return False
        update = {"x": max(0.0, x), "y": max(0.0, y)}
        self.tree = LegacyTree(
            nodes=[n.model_copy(update=update) if n.id == node_id else n for n in self.tree.nodes],
            edges=list(self.tree.edges),
        )
        return True

    def connect(self, source_id: str, target_id: str) -> Optional[LegacyEdge]:
        """Connect two nodes unless they are already linked in either direction."""
        if source_id == target_id or self._find(source_id) is None or self._find(target_id) is None:
            logger.warning(f"connect: cannot connect {source_id} -> {target_id}")
            return None
        for edge in self.tree.edges:
            if {edge.source, edge.target} == {source_id, target_id}:
                return None
        edge = LegacyEdge(id=f"{source_id}-{target_id}", source=source_id, target=target_id)
        self.tree = LegacyTree(nodes=list(self.tree.nodes), edges=[*self.tree.edges, edge])
        return edge

    def to_tree_model(self) -> TreeModel:
        """Normalise into the hierarchical model; new saves use that shape."""
        return decode(self.tree.model_dump(by_alias=True))


__all__ = ["TreeEditor", "LegacyTreeEditor", "DEFAULT_NODE_LABEL"]
