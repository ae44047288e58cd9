"""Page and tag Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .tree import is_hex_color

TAG_NAME_MAX_LENGTH = 20
DEFAULT_TAG_COLOR = "#3B82F6"


class Tag(BaseModel):
    """A label that can be attached to many pages."""

    id: int
    name: str
    color: str = DEFAULT_TAG_COLOR


class TagCreate(BaseModel):
    """Request payload to create or rename a tag."""

    name: str = Field(..., description="Unique tag name")
    color: Optional[str] = Field(None, description="Hex color; defaults to blue")

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Tag name is required")
        if len(cleaned) > TAG_NAME_MAX_LENGTH:
            raise ValueError(
                f"Tag name must be at most {TAG_NAME_MAX_LENGTH} characters"
            )
        return cleaned

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_hex_color(value):
            raise ValueError(f"Invalid hex color: {value!r}")
        return value


class Page(BaseModel):
    """A knowledge-base page with its optional tree diagram."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "Cell biology",
                "content": "# Cell biology\\n\\nNotes...",
                "tree_data": {
                    "hierarchyLevels": [
                        {
                            "name": "Level 1",
                            "collapsed": False,
                            "nodes": [
                                {
                                    "id": "root",
                                    "label": "Cell",
                                    "level": 0,
                                    "parentId": None,
                                    "hasChildren": False,
                                    "color": "#3B82F6",
                                    "size": 60,
                                }
                            ],
                        }
                    ],
                    "edges": [],
                },
                "tags": [{"id": 1, "name": "biology", "color": "#10B981"}],
                "created_at": "2025-01-10T09:00:00+00:00",
                "updated_at": "2025-01-15T14:30:00+00:00",
            }
        }
    )

    id: int
    title: str = Field(..., min_length=1)
    content: str = ""
    tree_data: Optional[Dict[str, Any]] = Field(
        None, description="Encoded tree diagram (hierarchical shape) or null"
    )
    tags: List[Tag] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PageCreate(BaseModel):
    """Request payload to create or replace a page."""

    title: str = Field(..., description="Page title (required)")
    content: str = Field(default="", max_length=1_048_576)
    tree_data: Optional[Any] = Field(
        None, description="Tree diagram in any accepted shape, or a JSON string"
    )
    tags: List[int] = Field(default_factory=list, description="Tag ids")


class PageUpdate(PageCreate):
    """Request payload to update a page."""


class PageSummary(BaseModel):
    """Lightweight representation used for listings."""

    id: int
    title: str
    tags: List[Tag] = Field(default_factory=list)
    updated_at: datetime


__all__ = [
    "Tag",
    "TagCreate",
    "Page",
    "PageCreate",
    "PageUpdate",
    "PageSummary",
    "TAG_NAME_MAX_LENGTH",
    "DEFAULT_TAG_COLOR",
]
