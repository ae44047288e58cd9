"""Page Service - CRUD over pages and tags, plus the tree load/save contract."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models.page import DEFAULT_TAG_COLOR, Page, PageCreate, PageSummary, Tag, TagCreate
from ..models.tree import TreeValidationResult
from .config import AppConfig, get_config
from .database import DatabaseService
from .errors import (
    PageNotFoundError,
    PageServiceError,
    PageValidationError,
    TagNotFoundError,
)
from .tree_codec import decode, encode, validate_tree
from .tree_editor import TreeEditor
from .tree_layout import LayoutSettings

logger = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class PageService:
    """Service for page and tag CRUD operations."""

    def __init__(
        self,
        db_service: DatabaseService | None = None,
        config: AppConfig | None = None,
    ):
        self.config = config or get_config()
        self._db = db_service or DatabaseService(self.config.database_path)

    @property
    def layout_settings(self) -> LayoutSettings:
        return LayoutSettings(canvas_width=self.config.canvas_width)

    # ========================================
    # Tree helpers
    # ========================================

    def normalize_tree_data(self, tree_data: Any) -> Optional[Dict[str, Any]]:
        """Decode any accepted shape and re-encode it hierarchically.

        Raises TreeFormatError for malformed or oversized trees.
        """
        if tree_data is None or tree_data == "" or tree_data == {}:
            return None
        model = decode(tree_data, max_nodes=self.config.max_tree_nodes)
        return encode(model)

    def validate_tree(self, tree_data: Any) -> TreeValidationResult:
        return validate_tree(tree_data, max_nodes=self.config.max_tree_nodes)

    def open_editor(self, page_id: int) -> TreeEditor:
        """Load a page's tree into a fresh editing session."""
        page = self.load_page(page_id)
        return TreeEditor.from_tree_data(
            page.tree_data,
            max_nodes=self.config.max_tree_nodes,
            default_label=self.config.default_node_label,
            max_children=self.config.max_children,
            layout_settings=self.layout_settings,
        )

    # ========================================
    # Pages
    # ========================================

    def _tags_for(self, conn: sqlite3.Connection, page_id: int) -> List[Tag]:
        cursor = conn.execute(
            """
            SELECT t.id, t.name, t.color
            FROM tags t JOIN page_tags pt ON pt.tag_id = t.id
            WHERE pt.page_id = ?
            ORDER BY t.name
            """,
            (page_id,),
        )
        return [Tag(id=row["id"], name=row["name"], color=row["color"]) for row in cursor.fetchall()]

    def _row_to_page(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Page:
        tree_data = json.loads(row["tree_data"]) if row["tree_data"] else None
        return Page(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            tree_data=tree_data or None,
            tags=self._tags_for(conn, row["id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def list_pages(self) -> List[PageSummary]:
        conn = self._db.connect()
        try:
            cursor = conn.execute("SELECT id, title, updated_at FROM pages ORDER BY updated_at DESC, id DESC")
            return [
                PageSummary(
                    id=row["id"],
                    title=row["title"],
                    tags=self._tags_for(conn, row["id"]),
                    updated_at=datetime.fromisoformat(row["updated_at"]),
                )
                for row in cursor.fetchall()
            ]
        except sqlite3.Error as e:
            logger.error(f"Failed to list pages: {e}")
            raise PageServiceError(f"Failed to list pages: {str(e)}")
        finally:
            conn.close()

    def load_page(self, page_id: int) -> Page:
        """Return ``{title, content, tree_data, tags}`` for a page."""
        conn = self._db.connect()
        try:
            cursor = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,))
            row = cursor.fetchone()
            if row is None:
                raise PageNotFoundError(f"Page {page_id} not found", {"page_id": page_id})
            return self._row_to_page(conn, row)
        except sqlite3.Error as e:
            logger.error(f"Failed to load page {page_id}: {e}")
            raise PageServiceError(f"Failed to load page: {str(e)}", {"page_id": page_id})
        finally:
            conn.close()

    def _check_tags(self, conn: sqlite3.Connection, tag_ids: List[int]) -> List[int]:
        unique = list(dict.fromkeys(tag_ids))
        if not unique:
            return unique
        placeholders = ",".join("?" for _ in unique)
        cursor = conn.execute(f"SELECT id FROM tags WHERE id IN ({placeholders})", unique)
        found = {row["id"] for row in cursor.fetchall()}
        missing = [tag_id for tag_id in unique if tag_id not in found]
        if missing:
            raise PageValidationError("Unknown tag ids", {"tag_ids": missing})
        return unique

    def save_page(self, page_id: Optional[int], payload: PageCreate) -> Page:
        """Create (``page_id`` is None) or replace a page.

        Validation happens before anything is written; tree data is always
        stored in the hierarchical shape.
        """
        title = (payload.title or "").strip()
        if not title:
            raise PageValidationError("Page title is required", {"field": "title"})
        tree_data = self.normalize_tree_data(payload.tree_data)
        tree_json = json.dumps(tree_data) if tree_data is not None else None
        now = _utcnow_iso()

        conn = self._db.connect()
        try:
            tag_ids = self._check_tags(conn, payload.tags)
            with conn:
                if page_id is None:
                    cursor = conn.execute(
                        """
                        INSERT INTO pages (title, content, tree_data, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (title, payload.content or "", tree_json, now, now),
                    )
                    page_id = cursor.lastrowid
                else:
                    cursor = conn.execute(
                        "UPDATE pages SET title = ?, content = ?, tree_data = ?, updated_at = ? WHERE id = ?",
                        (title, payload.content or "", tree_json, now, page_id),
                    )
                    if cursor.rowcount == 0:
                        raise PageNotFoundError(f"Page {page_id} not found", {"page_id": page_id})
                    conn.execute("DELETE FROM page_tags WHERE page_id = ?", (page_id,))
                conn.executemany(
                    "INSERT INTO page_tags (page_id, tag_id) VALUES (?, ?)",
                    [(page_id, tag_id) for tag_id in tag_ids],
                )
            logger.info(f"Saved page {page_id} ({len(tag_ids)} tag(s))")
            row = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
            return self._row_to_page(conn, row)
        except sqlite3.Error as e:
            logger.error(f"Failed to save page {page_id}: {e}")
            raise PageServiceError(f"Failed to save page: {str(e)}", {"page_id": page_id})
        finally:
            conn.close()

    def delete_page(self, page_id: int) -> None:
        conn = self._db.connect()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM pages WHERE id = ?", (page_id,))
            if cursor.rowcount == 0:
                raise PageNotFoundError(f"Page {page_id} not found", {"page_id": page_id})
            logger.info(f"Deleted page {page_id}")
        except sqlite3.Error as e:
            logger.error(f"Failed to delete page {page_id}: {e}")
            raise PageServiceError(f"Failed to delete page: {str(e)}", {"page_id": page_id})
        finally:
            conn.close()

    # ========================================
    # Tags
    # ========================================

    def list_tags(self) -> List[Tag]:
        conn = self._db.connect()
        try:
            cursor = conn.execute("SELECT id, name, color FROM tags ORDER BY name")
            return [Tag(id=row["id"], name=row["name"], color=row["color"]) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error(f"Failed to list tags: {e}")
            raise PageServiceError(f"Failed to list tags: {str(e)}")
        finally:
            conn.close()

    def create_tag(self, payload: TagCreate) -> Tag:
        color = payload.color or DEFAULT_TAG_COLOR
        conn = self._db.connect()
        try:
            with conn:
                cursor = conn.execute(
                    "INSERT INTO tags (name, color) VALUES (?, ?)", (payload.name, color)
                )
            logger.info(f"Created tag {payload.name}")
            return Tag(id=cursor.lastrowid, name=payload.name, color=color)
        except sqlite3.IntegrityError:
            raise PageValidationError("Tag name already exists", {"name": payload.name})
        except sqlite3.Error as e:
            logger.error(f"Failed to create tag {payload.name}: {e}")
            raise PageServiceError(f"Failed to create tag: {str(e)}")
        finally:
            conn.close()

    def update_tag(self, tag_id: int, payload: TagCreate) -> Tag:
        color = payload.color or DEFAULT_TAG_COLOR
        conn = self._db.connect()
        try:
            with conn:
                cursor = conn.execute(
                    "UPDATE tags SET name = ?, color = ? WHERE id = ?",
                    (payload.name, color, tag_id),
                )
            if cursor.rowcount == 0:
                raise TagNotFoundError(f"Tag {tag_id} not found", {"tag_id": tag_id})
            return Tag(id=tag_id, name=payload.name, color=color)
        except sqlite3.IntegrityError:
            raise PageValidationError("Tag name already exists", {"name": payload.name})
        except sqlite3.Error as e:
            logger.error(f"Failed to update tag {tag_id}: {e}")
            raise PageServiceError(f"Failed to update tag: {str(e)}", {"tag_id": tag_id})
        finally:
            conn.close()

    def delete_tag(self, tag_id: int) -> Tag:
        conn = self._db.connect()
        try:
            row = conn.execute("SELECT id, name, color FROM tags WHERE id = ?", (tag_id,)).fetchone()
            if row is None:
                raise TagNotFoundError(f"Tag {tag_id} not found", {"tag_id": tag_id})
            with conn:
                conn.execute("DELETE FROM page_tags WHERE tag_id = ?", (tag_id,))
                conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
            logger.info(f"Deleted tag {tag_id}")
            return Tag(id=row["id"], name=row["name"], color=row["color"])
        except sqlite3.Error as e:
            logger.error(f"Failed to delete tag {tag_id}: {e}")
            raise PageServiceError(f"Failed to delete tag: {str(e)}", {"tag_id": tag_id})
        finally:
            conn.close()


# Singleton instance for dependency injection
_page_service: PageService | None = None


def get_page_service() -> PageService:
    """Get or create the page service singleton."""
    global _page_service
    if _page_service is None:
        _page_service = PageService()
    return _page_service


__all__ = ["PageService", "get_page_service"]
