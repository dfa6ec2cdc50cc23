"""FastAPI application factory.

Main entry point for the Learning Platform Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learning.config.app_config import load_app_config
from learning.db.database import init_db
from learning.db.modules_repository import get_all_modules
from learning.web.routes import (
    feedback_router,
    health_router,
    learners_router,
    modules_router,
    personas_router,
    progress_router,
    tutor_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize the database on startup."""
    config = load_app_config()
    init_db(config.db_path)
    modules = get_all_modules()
    logger.info(
        "api_startup",
        db_path=str(config.db_path),
        modules_found=len(modules),
        module_ids=[m.module_id for m in modules],
    )
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Learning Platform API",
        description="Personalised learning platform: modules, tutor, progress and feedback",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(learners_router)
    app.include_router(personas_router)
    app.include_router(modules_router)
    app.include_router(tutor_router)
    app.include_router(progress_router)
    app.include_router(feedback_router)

    return app


# Default app instance for uvicorn
app = create_app()
