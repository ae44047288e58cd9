from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.src.api.main import app
from backend.src.services.config import AppConfig
from backend.src.services.database import DatabaseService
from backend.src.services.page_service import PageService, get_page_service

client = TestClient(app)


@pytest.fixture
def page_service(tmp_path: Path):
    config = AppConfig(database_path=tmp_path / "api.db", max_tree_nodes=5)
    db = DatabaseService(config.database_path)
    db.initialize()
    service = PageService(db_service=db, config=config)
    app.dependency_overrides[get_page_service] = lambda: service
    yield service
    # Clean up overrides
    app.dependency_overrides = {}


def test_health() -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_page_lifecycle(page_service: PageService) -> None:
    response = client.post("/api/pages", json={"title": "Genetics", "content": "DNA"})
    assert response.status_code == 201
    page = response.json()
    assert page["title"] == "Genetics"
    assert page["tree_data"] is None

    response = client.put(
        f"/api/pages/{page['id']}",
        json={"title": "Genetics 101", "content": "RNA"},
    )
    assert response.status_code == 200
    assert response.json()["content"] == "RNA"

    listing = client.get("/api/pages").json()
    assert [p["title"] for p in listing] == ["Genetics 101"]

    response = client.delete(f"/api/pages/{page['id']}")
    assert response.json() == {"status": "deleted", "page_id": page["id"]}
    assert client.get(f"/api/pages/{page['id']}").status_code == 404


def test_missing_page_returns_error_envelope(page_service: PageService) -> None:
    response = client.get("/api/pages/77")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "not_found"
    assert body["message"] == "Page 77 not found"
    assert body["detail"] == {"page_id": 77}


def test_blank_title_is_validation_error(page_service: PageService) -> None:
    response = client.post("/api/pages", json={"title": " "})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_missing_title_is_request_validation_error(page_service: PageService) -> None:
    response = client.post("/api/pages", json={"content": "no title"})

    assert response.status_code == 400
    assert response.json()["detail"]["errors"]


def test_malformed_tree_is_invalid_format(page_service: PageService) -> None:
    response = client.post("/api/pages", json={"title": "Bad", "tree_data": {"foo": 1}})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_format"


def test_page_tree_returns_positions(page_service: PageService) -> None:
    tree = {
        "id": "root",
        "label": "Main",
        "children": [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}],
    }
    page = client.post("/api/pages", json={"title": "Diagram", "tree_data": tree}).json()

    response = client.get(f"/api/pages/{page['id']}/tree")

    assert response.status_code == 200
    body = response.json()
    assert [len(level["nodes"]) for level in body["hierarchyLevels"]] == [1, 2]
    positions = body["positions"]
    assert positions["root"] == {"x": 400.0, "y": 80.0}
    assert positions["a"]["y"] == positions["b"]["y"] == 200.0
    assert positions["a"]["x"] < positions["b"]["x"]


def test_page_tree_without_data_has_single_root(page_service: PageService) -> None:
    page = client.post("/api/pages", json={"title": "Blank"}).json()

    body = client.get(f"/api/pages/{page['id']}/tree").json()

    assert [n["id"] for n in body["nodes"]] == ["root"]
    assert body["edges"] == []


def test_tag_endpoints(page_service: PageService) -> None:
    response = client.post("/api/tags", json={"name": "biology", "color": "#10B981"})
    assert response.status_code == 201
    tag = response.json()

    assert client.post("/api/tags", json={"name": "biology"}).status_code == 400
    assert client.post("/api/tags", json={"name": "x" * 21}).status_code == 400
    assert client.post("/api/tags", json={"name": "bad", "color": "red"}).status_code == 400

    response = client.put(f"/api/tags/{tag['id']}", json={"name": "bio"})
    assert response.json()["name"] == "bio"
    assert [t["name"] for t in client.get("/api/tags").json()] == ["bio"]

    response = client.delete(f"/api/tags/{tag['id']}")
    assert response.json()["deleted_tag"]["name"] == "bio"
    assert client.delete(f"/api/tags/{tag['id']}").status_code == 404


def test_validate_tree_endpoint(page_service: PageService) -> None:
    small = {"id": "r", "label": "R", "children": [{"id": f"c{i}", "label": "c"} for i in range(4)]}
    large = {"id": "r", "label": "R", "children": [{"id": f"c{i}", "label": "c"} for i in range(5)]}

    ok = client.post("/api/trees/validate", json={"tree_data": small}).json()
    too_big = client.post("/api/trees/validate", json={"tree_data": large}).json()

    assert ok == {"valid": True, "nodeCount": 5, "error": None}
    assert too_big["valid"] is False
    assert too_big["nodeCount"] == 6


def test_layout_endpoint_normalises_legacy(page_service: PageService) -> None:
    legacy = {"nodes": [{"id": "a", "label": "A", "x": 10, "y": 10}], "edges": []}

    response = client.post("/api/trees/layout", json={"tree_data": legacy})

    assert response.status_code == 200
    body = response.json()
    assert body["hierarchyLevels"][0]["nodes"][0]["id"] == "a"
    assert body["positions"]["a"] == {"x": 400.0, "y": 80.0}


@pytest.mark.parametrize("size", ["big", None])
def test_layout_endpoint_rejects_non_numeric_size(page_service: PageService, size) -> None:
    tree = {"hierarchyLevels": [{"nodes": [{"id": "root", "level": 0, "size": size}]}]}

    response = client.post("/api/trees/layout", json={"tree_data": tree})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_format"


def test_layout_endpoint_rejects_unknown_shape(page_service: PageService) -> None:
    response = client.post("/api/trees/layout", json={"tree_data": [1, 2]})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_format"
