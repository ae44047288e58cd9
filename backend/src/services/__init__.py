"""Service layer: tree core plus page/tag persistence."""

from .config import AppConfig, get_config, reload_config
from .database import DatabaseService, init_database
from .errors import (
    PageNotFoundError,
    PageServiceError,
    PageValidationError,
    StudyNotesError,
    TagNotFoundError,
    TreeFormatError,
    TreeNodeNotFoundError,
)
from .page_service import PageService, get_page_service
from .tree_codec import TreeShape, decode, encode, validate_tree
from .tree_editor import LegacyTreeEditor, TreeEditor
from .tree_layout import LayoutSettings, compute_layout
from .tree_model import TreeModel

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DatabaseService",
    "init_database",
    "StudyNotesError",
    "TreeNodeNotFoundError",
    "TreeFormatError",
    "PageNotFoundError",
    "TagNotFoundError",
    "PageValidationError",
    "PageServiceError",
    "PageService",
    "get_page_service",
    "TreeShape",
    "decode",
    "encode",
    "validate_tree",
    "TreeEditor",
    "LegacyTreeEditor",
    "LayoutSettings",
    "compute_layout",
    "TreeModel",
]
