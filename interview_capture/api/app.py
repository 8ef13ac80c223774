"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, error handlers,
routers, and the health endpoint. The module-level ``app`` instance
allows ``uvicorn interview_capture.api.app:app --reload``.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from interview_capture.api import websocket
from interview_capture.api.middleware.error_handler import register_error_handlers
from interview_capture.api.routes import session
from interview_capture.core.models import HealthResponse
from interview_capture.services import orchestrator


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    # Release microphones held by sessions left open at shutdown
    await orchestrator.cleanup()


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application."""

    app = FastAPI(
        title="Interview Capture",
        description="Voice-answered interviews: record, transcribe and submit "
        "an applicant's answers.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # -- CORS --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",  # Vite dev frontend
            "http://localhost:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(session.router, prefix="/api/v1")

    # -- WebSocket --
    app.include_router(websocket.router)

    return app


app = create_app()
