"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "study_notes.db"
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://localhost:5173")


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    database_path: Path = Field(..., description="SQLite file holding pages and tags")
    max_tree_nodes: int = Field(
        default=100,
        ge=1,
        description="Largest tree accepted at the save/validate boundary",
    )
    canvas_width: float = Field(
        default=800.0,
        gt=0,
        description="Width of the layout canvas in pixels",
    )
    default_node_label: str = Field(
        default="New Node",
        min_length=1,
        description="Placeholder label given to newly added children",
    )
    max_children: Optional[int] = Field(
        default=None,
        ge=1,
        description="Optional cap on children per node (unset = unlimited)",
    )
    cors_origins: tuple[str, ...] = Field(default=DEFAULT_CORS_ORIGINS)

    @field_validator("database_path", mode="before")
    @classmethod
    def _normalize_db_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("DATABASE_PATH is required")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("default_node_label", mode="before")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _split_origins(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    max_children = _read_env("MAX_CHILDREN_PER_NODE")

    config = AppConfig(
        database_path=_read_env("DATABASE_PATH", str(DEFAULT_DB_PATH)),
        max_tree_nodes=int(_read_env("MAX_TREE_NODES", "100")),
        canvas_width=float(_read_env("LAYOUT_CANVAS_WIDTH", "800")),
        default_node_label=_read_env("DEFAULT_NODE_LABEL", "New Node"),
        max_children=int(max_children) if max_children else None,
        cors_origins=_split_origins(_read_env("CORS_ORIGINS")),
    )
    # Ensure the data directory exists for downstream services.
    config.database_path.parent.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "get_config", "reload_config", "PROJECT_ROOT", "DEFAULT_DB_PATH"]
