"""Pydantic models for data validation and serialization."""

from .page import Page, PageCreate, PageSummary, PageUpdate, Tag, TagCreate
from .tree import (
    HierarchicalTree,
    LegacyEdge,
    LegacyNode,
    LegacyTree,
    NestedTreeNode,
    Position,
    TreeEdge,
    TreeLayoutResponse,
    TreeLevel,
    TreeNode,
    TreeValidationResult,
)

__all__ = [
    "Page",
    "PageCreate",
    "PageUpdate",
    "PageSummary",
    "Tag",
    "TagCreate",
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
]
