"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from storybook.core.config import get_settings
from storybook.core.logging import setup_logging
from storybook.services.story import build_story_service

# Setup logging
logger = setup_logging("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize services at startup, clean up at shutdown."""
    settings = get_settings()
    try:
        app.state.story_service = build_story_service(settings)
        logger.info(
            "Services initialized successfully (gemini=%s)",
            "enabled" if settings.gemini_configured else "disabled",
        )
    except Exception as exc:
        logger.error(
            "Service initialization failed, running in degraded mode",
            exc_info=True,
            extra={"service": "main", "error_type": type(exc).__name__},
        )
        # Continue without services; endpoints return 503 until fixed

    yield

    svc = getattr(app.state, "story_service", None)
    if svc is not None:
        svc.repository.immediate.clear()


# Create FastAPI app
app = FastAPI(
    title="Storybook Illustrator",
    description="Character-consistent illustrations for vocabulary stories",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[f"http://localhost:{settings.frontend_port}"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
from storybook.api.stories import characters_router, router as stories_router  # noqa: E402

app.include_router(stories_router)
app.include_router(characters_router)

# Serve generated images at /images
_images_dir = Path(settings.images_dir)
_images_dir.mkdir(parents=True, exist_ok=True)
app.mount(settings.images_url_prefix, StaticFiles(directory=str(_images_dir)), name="images")


@app.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Always returns HTTP 200; check `services` for actual status.
    """
    svc = getattr(request.app.state, "story_service", None)
    cfg = get_settings()

    logger.info("Health check requested")
    return {
        "status": "ok",
        "version": app.version,
        "services": {
            "story_pipeline": "ok" if svc is not None else "unavailable",
            "image_generation": "gemini" if cfg.gemini_configured else "simulated",
        },
    }
