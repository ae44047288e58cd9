"""HTTP API routes for page operations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...models.page import Page, PageCreate, PageSummary, PageUpdate
from ...models.tree import TreeLayoutResponse
from ...services.page_service import PageService, get_page_service

router = APIRouter()


@router.get("/api/pages", response_model=list[PageSummary])
async def list_pages(service: PageService = Depends(get_page_service)):
    """List all pages, most recently updated first."""
    return service.list_pages()


@router.post("/api/pages", response_model=Page, status_code=status.HTTP_201_CREATED)
async def create_page(create: PageCreate, service: PageService = Depends(get_page_service)):
    """Create a new page."""
    return service.save_page(None, create)


@router.get("/api/pages/{page_id}", response_model=Page)
async def get_page(page_id: int, service: PageService = Depends(get_page_service)):
    """Get a specific page by id."""
    return service.load_page(page_id)


@router.put("/api/pages/{page_id}", response_model=Page)
async def update_page(
    page_id: int,
    update: PageUpdate,
    service: PageService = Depends(get_page_service),
):
    """Replace a page's title, content, tree and tags."""
    return service.save_page(page_id, update)


@router.delete("/api/pages/{page_id}")
async def delete_page(page_id: int, service: PageService = Depends(get_page_service)):
    """Delete a page."""
    service.delete_page(page_id)
    return {"status": "deleted", "page_id": page_id}


@router.get("/api/pages/{page_id}/tree", response_model=TreeLayoutResponse)
async def get_page_tree(page_id: int, service: PageService = Depends(get_page_service)):
    """Decode a page's tree (a single root when it has none) and lay it out."""
    editor = service.open_editor(page_id)
    return TreeLayoutResponse.model_validate({**editor.encode(), "positions": editor.positions})
