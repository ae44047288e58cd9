"""Domain error taxonomy shared by the tree core and the page layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class StudyNotesError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TreeNodeNotFoundError(StudyNotesError, LookupError):
    """Raised when a node id lookup misses."""

    def __init__(self, node_id: str):
        super().__init__(f"Node not found: {node_id}", {"node_id": node_id})
        self.node_id = node_id


class TreeFormatError(StudyNotesError, ValueError):
    """Raised when a tree payload is malformed or oversized."""


class PageNotFoundError(StudyNotesError, LookupError):
    """Raised when a page id does not exist."""


class TagNotFoundError(StudyNotesError, LookupError):
    """Raised when a tag id does not exist."""


class PageValidationError(StudyNotesError, ValueError):
    """Raised when required page or tag fields are missing or invalid."""


class PageServiceError(StudyNotesError):
    """Raised when the persistence layer fails."""


__all__ = [
    "StudyNotesError",
    "TreeNodeNotFoundError",
    "TreeFormatError",
    "PageNotFoundError",
    "TagNotFoundError",
    "PageValidationError",
    "PageServiceError",
]
