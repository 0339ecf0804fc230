"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lifequest.config import get_settings
from lifequest.container import Container, build_container
from lifequest.gamification.router import router as gamification_router
from lifequest.health.router import router as health_router
from lifequest.middleware import setup_middleware
from lifequest.missions.router import router as missions_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build services on startup unless a container was injected."""
    built: Container | None = None
    if getattr(app.state, "container", None) is None:
        built = await build_container(get_settings())
        app.state.container = built

    yield

    if built is not None:
        await built.close()
        app.state.container = None


def create_app(container: Container | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LifeQuest Mission API",
        description="Mission lifecycle and reward engine for the QIC Life gamified insurance app",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.container = container

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(missions_router)
    app.include_router(gamification_router)

    return app


app = create_app()
