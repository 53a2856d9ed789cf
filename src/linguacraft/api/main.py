"""
FastAPI application entry point.

Wires the flow registry into HTTP: one POST endpoint per flow under /api,
plus health checks. All model work happens in linguacraft.pipeline.flows.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers import flows, health
from linguacraft import __version__
from linguacraft.models.manager import ModelManager
from linguacraft.pipeline.flows import FlowRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_MB = 10


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(f"LinguaCraft API ready with flows: {', '.join(app.state.flow_registry.names())}")
    yield
    logger.info("Shutting down LinguaCraft API")
    app.state.model_manager.cleanup()


def create_app(model_manager: Optional[ModelManager] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    The ModelManager and FlowRegistry are built once here and shared by every
    request. Pass a ModelManager to use a different config (useful in tests).
    """
    load_dotenv()
    model_manager = model_manager or ModelManager()

    app = FastAPI(
        title="LinguaCraft API",
        description="Translation, correction, word lookup and speech flows backed by generative models",
        version=__version__,
        lifespan=lifespan
    )
    app.state.model_manager = model_manager
    app.state.flow_registry = FlowRegistry(model_manager)

    server_settings = model_manager.server_settings
    max_body_bytes = int(float(server_settings.get("max_body_mb", DEFAULT_MAX_BODY_MB)) * 1024 * 1024)
    app.state.max_body_bytes = max_body_bytes

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_settings.get("cors_origins", ["*"]),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        # declared length only; chunked bodies are counted by the flow router as they stream in
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_body_bytes:
            return JSONResponse(
                status_code=413,
                content={"error": "Request body too large", "details": f"limit is {max_body_bytes} bytes"},
            )
        return await call_next(request)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(flows.router, prefix="/api", tags=["flows"])

    @app.get("/")
    async def root():
        """Root endpoint with basic API information."""
        return {
            "name": "LinguaCraft API",
            "version": __version__,
            "status": "LinguaCraft backend is running!",
            "flows": app.state.flow_registry.names(),
            "docs": "/docs",
        }

    return app
