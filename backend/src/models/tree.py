"""Tree diagram Pydantic models (hierarchical, legacy flat and nested shapes)."""

from __future__ import annotations

import math
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

MIN_NODE_SIZE = 1
MAX_NODE_SIZE = 100

DEFAULT_ROOT_ID = "root"
DEFAULT_ROOT_LABEL = "Root"
DEFAULT_ROOT_COLOR = "#3B82F6"
DEFAULT_ROOT_SIZE = 60
DEFAULT_NODE_COLOR = "#10B981"
DEFAULT_NODE_SIZE = 50


def clamp_size(value: int | float) -> int:
    """Clamp a node size into the supported 1..100 scale.

    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"Node size must be a finite number, got {value!r}")
    return int(max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, round(value))))


def is_hex_color(value: str) -> bool:
    return isinstance(value, str) and HEX_COLOR_PATTERN.match(value) is not None


def default_level_name(index: int) -> str:
    return f"Level {index + 1}"


class _CamelModel(BaseModel):
    """Base for models persisted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TreeNode(_CamelModel):
    """A single node of the hierarchy."""

    id: str = Field(..., min_length=1, description="Unique, immutable node id")
    label: str = Field(default="", description="Display text")
    level: int = Field(..., ge=0, description="Depth; index of the owning level")
    parent_id: Optional[str] = Field(None, description="Parent node id (None for roots)")
    has_children: bool = Field(default=False, description="Derived from the child index")
    color: str = Field(default=DEFAULT_NODE_COLOR, description="Hex fill color")
    size: int = Field(default=DEFAULT_NODE_SIZE, description="Relative size on a 1-100 scale")

    @field_validator("color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        if not is_hex_color(value):
            raise ValueError(f"Invalid hex color: {value!r}")
        return value

    @field_validator("size", mode="before")
    @classmethod
    def _clamp_size(cls, value: int | float) -> int:
        return clamp_size(value)


class TreeLevel(_CamelModel):
    """One depth tier of the hierarchy."""

    name: str = Field(default="")
    collapsed: bool = Field(default=False)
    nodes: List[TreeNode] = Field(default_factory=list)


class TreeEdge(_CamelModel):
    """Directed parent -> child connection."""

    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1, description="Parent node id")
    target: str = Field(..., min_length=1, description="Child node id")
    label: str = Field(default="")


class Position(BaseModel):
    """Computed canvas coordinates for one node. Never persisted."""

    x: float
    y: float


class HierarchicalTree(_CamelModel):
    """Persisted hierarchical shape."""

    hierarchy_levels: List[TreeLevel]
    edges: List[TreeEdge] = Field(default_factory=list)


class LegacyNode(_CamelModel):
    id: str = Field(..., min_length=1)
    label: str = Field(default="")
    x: float = 0.0
    y: float = 0.0


class LegacyEdge(_CamelModel):
    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)


class LegacyTree(_CamelModel):
    """Flat node/edge shape with stored positions (read-only compatibility)."""

    nodes: List[LegacyNode] = Field(default_factory=list)
    edges: List[LegacyEdge] = Field(default_factory=list)


class NestedTreeNode(_CamelModel):
    """Recursive ``{id, label, children}`` shape used by the diagram editor."""

    id: str = Field(..., min_length=1)
    label: str
    color: Optional[str] = None
    size: Optional[int] = None
    children: List["NestedTreeNode"] = Field(default_factory=list)

    def count_nodes(self) -> int:
        return 1 + sum(child.count_nodes() for child in self.children)


class TreeValidationResult(_CamelModel):
    """Outcome of the boundary ``validate_tree`` check."""

    valid: bool
    node_count: int = 0
    error: Optional[str] = None


class TreeLayoutResponse(_CamelModel):
    """Encoded tree plus the positions computed for it."""

    hierarchy_levels: List[TreeLevel]
    edges: List[TreeEdge]
    nodes: List[TreeNode]
    positions: Dict[str, Position]


NestedTreeNode.model_rebuild()

__all__ = [
    "TreeNode",
    "TreeLevel",
    "TreeEdge",
    "Position",
    "HierarchicalTree",
    "LegacyNode",
    "LegacyEdge",
    "LegacyTree",
    "NestedTreeNode",
    "TreeValidationResult",
    "TreeLayoutResponse",
    "clamp_size",
    "is_hex_color",
    "default_level_name",
    "DEFAULT_ROOT_ID",
    "DEFAULT_ROOT_LABEL",
    "DEFAULT_ROOT_COLOR",
    "DEFAULT_ROOT_SIZE",
    "DEFAULT_NODE_COLOR",
    "DEFAULT_NODE_SIZE",
    "MIN_NODE_SIZE",
    "MAX_NODE_SIZE",
]
