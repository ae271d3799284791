"""API routers for the practice engine."""

from practice_engine.api.routers import (
    exercises_router,
    learners_router,
    sessions_router,
    skills_router,
)

__all__ = [
    "sessions_router",
    "learners_router",
    "exercises_router",
    "skills_router",
]
