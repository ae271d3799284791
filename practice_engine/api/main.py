"""
FastAPI application for the adaptive practice engine.

Provides REST API for:
- Practice sessions (create, resume, submit, abandon, recap)
- Learner progress and skill availability
- Exercise quality feedback
- Raw exercise selection for operators
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from practice_engine import __version__
from practice_engine.db.database import init_db
from practice_engine.exceptions import (
    DuplicateActiveSession,
    InvalidSessionState,
    NoContentAvailable,
    NotFoundError,
    PersistenceFailure,
    SkillLocked,
)
from practice_engine.logging_config import configure_logging
from practice_engine.services import EngineServices, build_services


def _check_database_health(services: EngineServices) -> tuple[str, str | None]:
    """
    Check database connectivity.

    Returns:
        Tuple of (status, error_message). Status is "ok" or "error".
    """
    try:
        with services.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok", None
    except SQLAlchemyError as e:
        return "error", str(e)


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map the engine's error taxonomy to HTTP status codes."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error_response(404, exc)

    @app.exception_handler(DuplicateActiveSession)
    async def duplicate_handler(request: Request, exc: DuplicateActiveSession) -> JSONResponse:
        content = {"error": type(exc).__name__, "detail": str(exc)}
        if exc.session_id:
            content["session_id"] = exc.session_id
        return JSONResponse(status_code=409, content=content)

    @app.exception_handler(InvalidSessionState)
    async def invalid_state_handler(request: Request, exc: InvalidSessionState) -> JSONResponse:
        return _error_response(409, exc)

    @app.exception_handler(SkillLocked)
    async def locked_handler(request: Request, exc: SkillLocked) -> JSONResponse:
        return _error_response(409, exc)

    @app.exception_handler(NoContentAvailable)
    async def no_content_handler(request: Request, exc: NoContentAvailable) -> JSONResponse:
        return _error_response(422, exc)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return _error_response(422, exc)

    @app.exception_handler(PersistenceFailure)
    async def persistence_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
        logger.error(f"Persistence failure on {request.method} {request.url.path}: {exc}")
        return _error_response(503, exc)


def create_app(services: EngineServices | None = None) -> FastAPI:
    """
    Build the application around a set of engine services.

    Without an explicit services object, components are wired from settings.
    """
    services = services or build_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        settings = services.settings
        configure_logging(settings.log_level, settings.log_file)
        logger.info("Starting adaptive practice engine...")
        init_db(services.engine)
        logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

        yield

        logger.info("Shutting down adaptive practice engine...")
        services.close()

    app = FastAPI(
        title="Adaptive Practice Engine",
        description="""
    Session assembly, mastery progression and exercise quality for skill-based practice.

    ## Features

    - **Sessions**: Time-budgeted sessions with rotation-aware, varied exercise selection
    - **Mastery**: Per-skill levels 0-5 driven by recent accuracy, gating the next skill
    - **Quality**: good/bad ratings that prune low-quality exercises from circulation
    - **Generation**: On-demand exercise synthesis when a pool runs dry
    """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # ========================================
    # Health & Status Endpoints
    # ========================================

    @app.get("/", tags=["Health"])
    def root() -> dict[str, str]:
        """Root endpoint returning service info."""
        return {
            "service": "adaptive-practice-engine",
            "version": __version__,
            "status": "ok",
        }

    @app.get("/health", tags=["Health"])
    def health_check() -> dict[str, Any]:
        """Health check with an actual database round trip."""
        db_status, db_error = _check_database_health(services)
        settings = services.settings

        result: dict[str, Any] = {
            "status": "healthy" if db_status == "ok" else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "database": db_status,
                "generator": "configured" if settings.has_generator_configured() else "not_configured",
                "xp_service": "configured" if settings.has_xp_service_configured() else "not_configured",
            },
        }
        if db_error:
            result["errors"] = {"database": db_error}
        return result

    # ========================================
    # Mount routers
    # ========================================

    from practice_engine.api.routers import (
        exercises_router,
        learners_router,
        sessions_router,
        skills_router,
    )

    app.include_router(sessions_router.router, prefix="/sessions", tags=["Sessions"])
    app.include_router(learners_router.router, prefix="/learners", tags=["Learners"])
    app.include_router(exercises_router.router, prefix="/exercises", tags=["Exercises"])
    app.include_router(skills_router.router, prefix="/skills", tags=["Skills"])

    return app


app = create_app()
