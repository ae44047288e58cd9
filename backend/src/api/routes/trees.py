"""HTTP API routes for standalone tree validation and layout."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...models.tree import TreeLayoutResponse, TreeValidationResult
from ...services.page_service import PageService, get_page_service
from ...services.tree_codec import decode, encode
from ...services.tree_layout import compute_layout

logger = logging.getLogger(__name__)

router = APIRouter()


class TreeDataRequest(BaseModel):
    """Body wrapper for a tree payload (object or JSON string)."""

    tree_data: Any = Field(..., description="Tree payload in any accepted shape")


@router.post("/api/trees/validate", response_model=TreeValidationResult)
async def validate_tree(
    request: TreeDataRequest,
    service: PageService = Depends(get_page_service),
):
    """Check a nested ``{id, label, children}`` tree against the node ceiling."""
    result = service.validate_tree(request.tree_data)
    if not result.valid:
        logger.info(f"Rejected tree: {result.error}")
    return result


@router.post("/api/trees/layout", response_model=TreeLayoutResponse)
async def layout_tree(
    request: TreeDataRequest,
    service: PageService = Depends(get_page_service),
):
    """Normalise a tree payload and return it with computed positions."""
    model = decode(request.tree_data, max_nodes=service.config.max_tree_nodes)
    positions = compute_layout(model, service.layout_settings)
    return TreeLayoutResponse.model_validate({**encode(model), "positions": positions})
