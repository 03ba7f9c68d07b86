"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from thumbnailer.api.routes import router
from thumbnailer.config import Settings, get_settings
from thumbnailer.imaging.cache import ThumbnailCache
from thumbnailer.imaging.render_pool import RenderPool
from thumbnailer.imaging.runtime import configure_imaging
from thumbnailer.imaging.service import ThumbnailService

logger = logging.getLogger(__name__)


def build_http_client(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Create the outbound client used to fetch remote images.

    No cookies or auth are attached so fetched images never carry the
    caller's credentials to a third-party origin.
    """
    return httpx.AsyncClient(
        timeout=settings.fetch_timeout,
        follow_redirects=True,
        transport=transport,
        headers={"Accept": "image/jpeg, image/png, image/webp, image/*;q=0.8"},
    )


def init_app_state(app: FastAPI, settings: Settings, client: httpx.AsyncClient) -> None:
    """Attach settings and pipeline collaborators to ``app.state``."""
    configure_imaging(settings.max_image_pixels)

    render_pool = RenderPool(settings)
    app.state.settings = settings
    app.state.http_client = client
    app.state.render_pool = render_pool
    app.state.thumbnail_cache = ThumbnailCache(settings)
    app.state.thumbnail_service = ThumbnailService(
        client=client,
        pool=render_pool,
        default_options=settings.thumbnail_options(),
        max_fetch_bytes=settings.max_file_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting Thumbnailer (max_concurrent=%s, default=%sx%s %s q=%s)",
        settings.max_concurrent,
        settings.max_width,
        settings.max_height,
        settings.format,
        settings.quality,
    )

    client = build_http_client(settings)
    init_app_state(app, settings, client)

    logger.info("Thumbnailer ready")
    yield

    logger.info("Shutting down Thumbnailer")
    await client.aclose()
    app.state.render_pool.shutdown()
    app.state.thumbnail_cache.clear()
    logger.info("Thumbnailer shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Thumbnailer",
        description="Bounded-size thumbnail generation and data URL conversion",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    settings = get_settings()
    uvicorn.run("thumbnailer.main:app", host=settings.host, port=settings.port)
