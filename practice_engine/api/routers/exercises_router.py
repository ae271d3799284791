"""
Exercise Quality API Router.

Endpoints for explicit quality feedback and exercise statistics.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from practice_engine.api.dependencies import get_services
from practice_engine.core.enums import Verdict
from practice_engine.db.database import session_scope
from practice_engine.db.progress_store import ProgressStore
from practice_engine.services import EngineServices

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class RatingRequest(BaseModel):
    """Request model for rating an exercise."""

    verdict: Verdict = Field(..., description="good or bad")


class RatingResponse(BaseModel):
    exercise_id: str
    previous_score: int
    quality_score: int
    eligibility: str
    flagged: bool


class ExerciseStatsResponse(BaseModel):
    """Response model for exercise quality and usage statistics."""

    exercise_id: str
    skill_id: str
    exercise_type: str
    origin: str
    quality_score: int
    eligibility: str
    times_served: int
    times_answered: int
    times_correct: int
    success_rate: float | None
    total_time_seconds: int


# ========================================
# Quality Endpoints
# ========================================


@router.post(
    "/{exercise_id}/rating",
    response_model=RatingResponse,
    summary="Rate exercise",
)
def rate_exercise(
    exercise_id: str,
    request: RatingRequest,
    services: EngineServices = Depends(get_services),
) -> RatingResponse:
    """
    Apply a good/bad rating.

    A bad rating that drops the score below the flag threshold removes the
    exercise from selection.
    """
    outcome = services.quality_ledger.rate(exercise_id, request.verdict)
    return RatingResponse(
        exercise_id=outcome.exercise_id,
        previous_score=outcome.previous_score,
        quality_score=outcome.quality_score,
        eligibility=outcome.eligibility.value,
        flagged=outcome.flagged,
    )


@router.get(
    "/{exercise_id}",
    response_model=ExerciseStatsResponse,
    summary="Get exercise statistics",
)
def get_exercise_stats(
    exercise_id: str,
    services: EngineServices = Depends(get_services),
) -> ExerciseStatsResponse:
    with session_scope(services.session_factory) as session:
        exercise = ProgressStore(session).get_exercise(exercise_id)
        return ExerciseStatsResponse(
            exercise_id=exercise.id,
            skill_id=exercise.skill_id,
            exercise_type=exercise.exercise_type,
            origin=exercise.origin,
            quality_score=exercise.quality_score,
            eligibility=exercise.eligibility,
            times_served=exercise.times_served,
            times_answered=exercise.times_answered,
            times_correct=exercise.times_correct,
            success_rate=exercise.success_rate,
            total_time_seconds=exercise.total_time_seconds,
        )
