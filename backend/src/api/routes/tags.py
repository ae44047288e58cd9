"""HTTP API routes for tag operations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...models.page import Tag, TagCreate
from ...services.page_service import PageService, get_page_service

router = APIRouter()


@router.get("/api/tags", response_model=list[Tag])
async def list_tags(service: PageService = Depends(get_page_service)):
    return service.list_tags()


@router.post("/api/tags", response_model=Tag, status_code=status.HTTP_201_CREATED)
async def create_tag(create: TagCreate, service: PageService = Depends(get_page_service)):
    return service.create_tag(create)


@router.put("/api/tags/{tag_id}", response_model=Tag)
async def update_tag(
    tag_id: int,
    update: TagCreate,
    service: PageService = Depends(get_page_service),
):
    return service.update_tag(tag_id, update)


@router.delete("/api/tags/{tag_id}")
async def delete_tag(tag_id: int, service: PageService = Depends(get_page_service)):
    """Delete a tag and detach it from every page."""
    deleted = service.delete_tag(tag_id)
    return {"status": "deleted", "deleted_tag": deleted.model_dump()}
