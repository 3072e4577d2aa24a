"""Main entry point for the Campus Board application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from campus_board.api.v1 import boards_router, messages_router, profiles_router
from campus_board.core.settings import settings
from campus_board.db.session import build_engine, build_sessionmaker, create_tables
from campus_board.store.blob import LocalBlobStore
from campus_board.store.sql import SqlRecordStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Student community: category boards, comments and message requests",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(boards_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(profiles_router, prefix="/api/v1")

# Attachment objects are served from the local blob store root
app.mount(
    "/storage/v1/object/public",
    StaticFiles(directory=settings.storage_root, check_dir=False),
    name="storage",
)


@app.on_event("startup")
async def on_startup() -> None:
    if getattr(app.state, "store", None) is None:
        engine = build_engine()
        await create_tables(engine)
        app.state.engine = engine
        app.state.store = SqlRecordStore(build_sessionmaker(engine))
        logger.info("Record store ready at %s", engine.url.render_as_string(hide_password=True))
    if getattr(app.state, "blobs", None) is None:
        app.state.blobs = LocalBlobStore(settings.storage_root, settings.storage_public_base_url)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        await engine.dispose()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("campus_board.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
