"""
FastAPI application for the dispatch scheduling core.

The document store is opened once in the lifespan and shared by every
request through ``app.state.store``.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from serveeasy.api.middleware import request_id_middleware
from serveeasy.api.router import router
from serveeasy.config import settings
from serveeasy.logging_context import get_request_logger
from serveeasy.store import DocumentStore, InMemoryStore

logger = get_request_logger(__name__)


def build_store() -> DocumentStore:
    """Create the configured store backend."""
    if settings.store.seed_path:
        return InMemoryStore.from_json_file(settings.store.seed_path)
    logger.info("Starting with an empty in-memory store")
    return InMemoryStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup and release it on shutdown."""
    if getattr(app.state, "store", None) is None:
        app.state.store = build_store()
    logger.info("%s ready", settings.app_name)
    yield
    await app.state.store.close()
    logger.info("%s shutting down", settings.app_name)


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="ServeEasy Dispatch",
        description="Technician slot availability and service ticket lifecycle",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store

    app.middleware("http")(request_id_middleware)
    app.include_router(router)

    @app.get("/")
    async def root():
        return {"service": settings.app_name, "status": "running"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
