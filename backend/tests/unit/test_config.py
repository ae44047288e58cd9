from pathlib import Path

import pytest

from backend.src.services import config as config_module


@pytest.fixture(autouse=True)
def restore_config_cache():
    """
    Ensure configuration cache is cleared between tests.
    """
    config_module.reload_config()
    yield
    config_module.reload_config()


def test_get_config_reads_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "db" / "notes.db"))
    monkeypatch.setenv("MAX_TREE_NODES", "50")
    monkeypatch.setenv("LAYOUT_CANVAS_WIDTH", "1024")
    monkeypatch.setenv("DEFAULT_NODE_LABEL", "  Topic ")
    monkeypatch.setenv("MAX_CHILDREN_PER_NODE", "4")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")

    cfg = config_module.reload_config()

    assert cfg.database_path == (tmp_path / "db" / "notes.db").resolve()
    assert cfg.database_path.parent.is_dir()
    assert cfg.max_tree_nodes == 50
    assert cfg.canvas_width == 1024.0
    assert cfg.default_node_label == "Topic"
    assert cfg.max_children == 4
    assert cfg.cors_origins == ("http://a.test", "http://b.test")


def test_get_config_defaults(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "notes.db"))
    for key in (
        "MAX_TREE_NODES",
        "LAYOUT_CANVAS_WIDTH",
        "DEFAULT_NODE_LABEL",
        "MAX_CHILDREN_PER_NODE",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(key, raising=False)

    cfg = config_module.reload_config()

    assert cfg.max_tree_nodes == 100
    assert cfg.canvas_width == 800.0
    assert cfg.default_node_label == "New Node"
    assert cfg.max_children is None
    assert cfg.cors_origins == config_module.DEFAULT_CORS_ORIGINS


def test_get_config_is_cached(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "notes.db"))
    first = config_module.reload_config()

    assert config_module.get_config() is first


def test_get_config_rejects_zero_node_ceiling(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "notes.db"))
    monkeypatch.setenv("MAX_TREE_NODES", "0")

    with pytest.raises(ValueError):
        config_module.reload_config()


def test_app_config_requires_database_path() -> None:
    with pytest.raises(ValueError):
        config_module.AppConfig(database_path="")
