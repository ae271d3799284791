"""
External collaborators: exercise generator and XP/streak service.

build_generator() / build_xp_service() pick the HTTP client when a URL is
configured and the null implementation otherwise.
"""

from __future__ import annotations

from practice_engine.config import Settings
from practice_engine.integrations.generator_client import (
    ExerciseGenerator,
    GeneratedExercise,
    HttpExerciseGenerator,
    NullExerciseGenerator,
)
from practice_engine.integrations.xp_client import HttpXpService, NullXpService, XpService


def build_generator(settings: Settings) -> ExerciseGenerator:
    if settings.has_generator_configured():
        return HttpExerciseGenerator(settings.generator_url, settings.generator_timeout_seconds)
    return NullExerciseGenerator()


def build_xp_service(settings: Settings) -> XpService:
    if settings.has_xp_service_configured():
        return HttpXpService(settings.xp_service_url, settings.xp_timeout_seconds)
    return NullXpService()


__all__ = [
    "ExerciseGenerator",
    "GeneratedExercise",
    "HttpExerciseGenerator",
    "HttpXpService",
    "NullExerciseGenerator",
    "NullXpService",
    "XpService",
    "build_generator",
    "build_xp_service",
]
