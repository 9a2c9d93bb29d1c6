"""FastAPI application serving the ruleset registry."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from verdict import __version__
from verdict.core.config import get_settings
from verdict.registry import get_registry
from verdict.registry import router as rulesets_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(
        "inspector_starting",
        app_name=settings.app_name,
        rulesets=len(get_registry().list()),
        trace_limit=settings.trace_limit,
    )

    yield

    logger.info("inspector_stopping")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Inspect registered rulesets, their graphs and recent run traces",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # The inspector UI is served from a separate dev origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(rulesets_router)  # /rulesets

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": __version__,
            "endpoints": {
                "rulesets": "/rulesets - Registered rulesets",
                "graph": "/rulesets/{id}/graph - Rule structure as nodes and edges",
                "mermaid": "/rulesets/{id}/mermaid - Mermaid flowchart source",
                "traces": "/rulesets/{id}/traces - Recent run traces",
            },
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=get_settings().ui_host, port=get_settings().ui_port)
