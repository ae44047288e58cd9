"""FastAPI application main entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from .middleware import register_error_handlers
from .routes import pages, tags, trees
from ..services.config import get_config
from ..services.database import init_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler to run startup tasks."""
    config = get_config()
    logger.info(f"Running startup: initializing database at {config.database_path}")
    init_database(config.database_path)
    logger.info("Startup complete: database ready")
    yield


app = FastAPI(
    title="Study Notes API",
    description="Personal knowledge base with hierarchical study-note diagrams",
    version="0.1.0",
    lifespan=lifespan,
)

config = get_config()

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(pages.router, tags=["pages"])
app.include_router(tags.router, tags=["tags"])
app.include_router(trees.router, tags=["trees"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


__all__ = ["app"]
