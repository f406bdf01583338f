"""FastAPI application entrypoint for the Movie Library API."""

import logging
import mimetypes
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.routes import health, hls, movies, uploads
from core.config import get_settings
from db.session import create_db_and_tables
from services.progress_hub import ProgressHub

# Configure logging to show INFO level and above
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

# Also configure uvicorn's logger to avoid duplicates
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

# HLS media types are missing from some platforms' mime tables.
mimetypes.add_type("application/vnd.apple.mpegurl", ".m3u8")
mimetypes.add_type("video/mp2t", ".ts")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager for startup/shutdown events."""
    logger.info("Starting Movie Library API...")
    config = get_settings()
    config.ensure_directories()
    await create_db_and_tables()
    logger.info("API startup complete (movies_dir=%s)", config.movies_dir)

    yield

    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_settings()

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="REST API for uploading movies, converting them to HLS and browsing the library",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # One progress registry per application; injected via get_progress_hub.
    app.state.progress_hub = ProgressHub()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(uploads.router, prefix="/upload_movie", tags=["Uploads"])
    app.include_router(hls.router, tags=["HLS"])
    app.include_router(movies.router, tags=["Movies"])

    # Serve HLS folders straight from the movies directory
    app.mount("/hls", StaticFiles(directory=config.movies_dir, check_dir=False), name="hls")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_settings()
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        workers=config.workers if not config.debug else 1,
    )
