"""
Annotool — Main FastAPI Application

Collaborative video annotation backend for a host video platform
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from annotool.core.config import get_settings
from annotool.core.database import init_db
from annotool.core.errors import register_exception_handlers
from annotool.schemas.schemas import HealthResponse

settings = get_settings()

# ── Logging ──────────────────────────────────────────────────────────────

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level)
    ),
)
logging.basicConfig(level=settings.log_level)

logger = structlog.get_logger()


# ── Lifespan ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    logger.info("Starting Annotool", version=settings.app_version, api_prefix=settings.api_prefix)
    await init_db()
    if settings.enable_clear_database:
        logger.warning("Database clearing endpoint is enabled")
    logger.info("Annotool ready")

    yield

    logger.info("Shutting down Annotool")


# ── App ──────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="Extended annotations for videos: tracks, annotations, scales, categories, questionnaires",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── Routes ───────────────────────────────────────────────────────────────

from annotool.api.routes import admin, categories, questionnaires, scales, tracks, users, videos

app.include_router(users.router, prefix=settings.api_prefix)
app.include_router(videos.router, prefix=settings.api_prefix)
app.include_router(tracks.router, prefix=settings.api_prefix)
app.include_router(scales.router, prefix=settings.api_prefix)
app.include_router(scales.video_router, prefix=settings.api_prefix)
app.include_router(categories.router, prefix=settings.api_prefix)
app.include_router(categories.video_router, prefix=settings.api_prefix)
app.include_router(questionnaires.router, prefix=settings.api_prefix)
app.include_router(questionnaires.video_router, prefix=settings.api_prefix)
app.include_router(admin.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "api_prefix": settings.api_prefix,
        "resources": [
            "users", "videos", "tracks", "annotations", "comments",
            "scales", "scalevalues", "categories", "labels", "questionnaires",
        ],
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="healthy", version=settings.app_version)
