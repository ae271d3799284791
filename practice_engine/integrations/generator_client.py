"""
Exercise generator collaborator.

The engine asks the generator for new exercises when a skill's pool is too
small for the requested session. The generator may fail or return fewer
exercises than requested; callers treat any shortfall as "generation
exhausted", never as an error.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from practice_engine.core.enums import ExerciseType
from practice_engine.exceptions import GenerationUnavailable


class GeneratedExercise(BaseModel):
    """One exercise payload returned by a generator."""

    exercise_type: ExerciseType = Field(alias="type")
    content: dict[str, Any] = Field(default_factory=dict)
    difficulty: int = Field(1, ge=1)

    model_config = ConfigDict(populate_by_name=True)


class ExerciseGenerator(Protocol):
    """Interface for exercise synthesis."""

    def generate_exercises(self, skill_id: str, count: int) -> list[GeneratedExercise]:
        ...


class NullExerciseGenerator:
    """Generator used when no generation service is configured."""

    def generate_exercises(self, skill_id: str, count: int) -> list[GeneratedExercise]:
        logger.debug(f"No generator configured; skipping generation for skill {skill_id}")
        return []


class HttpExerciseGenerator:
    """
    HTTP client for a remote generation service.

    Expects ``POST {base_url}/exercises/generate`` with
    ``{"skill_id": ..., "count": ...}`` and a JSON response of the form
    ``{"exercises": [{"type": ..., "content": {...}, "difficulty": n}, ...]}``.
    Malformed items are dropped individually.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def generate_exercises(self, skill_id: str, count: int) -> list[GeneratedExercise]:
        """
        Request up to ``count`` exercises for a skill.

        Raises:
            GenerationUnavailable: On transport errors or a non-2xx response
        """
        try:
            response = self.client.post(
                "/exercises/generate",
                json={"skill_id": skill_id, "count": count},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GenerationUnavailable(f"Generator request failed: {e}") from e

        items = data.get("exercises", []) if isinstance(data, dict) else []
        generated: list[GeneratedExercise] = []
        for item in items[:count]:
            try:
                generated.append(GeneratedExercise.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping malformed generated exercise for skill {skill_id}: {e}")
        return generated
