"""
Practice Session API Router.

Endpoints for the session lifecycle:
- Session creation and active-session lookup (resume)
- Step inspection (exercise at a position, theory acknowledgement)
- Answer submission
- Abandonment and recap
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

from practice_engine.api.dependencies import get_services
from practice_engine.core.enums import SessionType
from practice_engine.db.models import Exercise, PracticeSession
from practice_engine.services import EngineServices

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class SessionCreateRequest(BaseModel):
    """Request model for creating a practice session."""

    learner_id: str = Field(..., min_length=1, description="Learner identifier")
    skill_id: str = Field(..., min_length=1, description="Skill identifier")
    session_type: SessionType = Field(
        SessionType.PRACTICE, description="learn (theory-first) or practice (practice-only)"
    )
    target_minutes: float = Field(10, gt=0, le=240, description="Time budget in minutes")


class SessionResponse(BaseModel):
    """Response model for a practice session."""

    session_id: str
    learner_id: str
    skill_id: str
    session_type: str
    status: str
    exercise_ids: list[str]
    total_steps: int
    current_step: int
    theory_shown: bool
    exercises_completed: int
    exercises_correct: int
    reward_points: int
    started_at: datetime | None
    completed_at: datetime | None
    abandoned_at: datetime | None


class ExerciseResponse(BaseModel):
    """Response model for one exercise of a session."""

    exercise_id: str
    skill_id: str
    index: int
    exercise_type: str
    difficulty: int
    origin: str
    content: dict[str, Any]


class AnswerSubmitRequest(BaseModel):
    """Request model for submitting a graded answer."""

    exercise_id: str = Field(..., description="Exercise being answered")
    is_correct: bool = Field(..., description="Correctness as graded by the caller")
    time_spent_seconds: int = Field(0, ge=0, description="Time spent on the exercise")


class AnswerResultResponse(BaseModel):
    """Response model for an answer submission."""

    session_id: str
    current_step: int
    is_complete: bool
    is_correct: bool
    points_awarded: int
    exercises_completed: int
    exercises_correct: int
    reward_points: int
    mastery_level: int


class RecapResponse(BaseModel):
    """Response model for a session recap."""

    session_id: str
    learner_id: str
    skill_id: str
    session_type: str
    exercises_completed: int
    exercises_correct: int
    accuracy: int
    elapsed_seconds: int
    streak_bonus: bool
    reward_points: int
    level_up: bool
    mastery_level: int
    xp_credited: bool


def _session_response(practice_session: PracticeSession) -> SessionResponse:
    return SessionResponse(
        session_id=practice_session.id,
        learner_id=practice_session.learner_id,
        skill_id=practice_session.skill_id,
        session_type=practice_session.session_type,
        status=practice_session.status,
        exercise_ids=list(practice_session.exercise_ids or []),
        total_steps=practice_session.total_steps,
        current_step=practice_session.current_step,
        theory_shown=practice_session.theory_shown,
        exercises_completed=practice_session.exercises_completed,
        exercises_correct=practice_session.exercises_correct,
        reward_points=practice_session.reward_points,
        started_at=practice_session.started_at,
        completed_at=practice_session.completed_at,
        abandoned_at=practice_session.abandoned_at,
    )


def _exercise_response(exercise: Exercise, index: int) -> ExerciseResponse:
    return ExerciseResponse(
        exercise_id=exercise.id,
        skill_id=exercise.skill_id,
        index=index,
        exercise_type=exercise.exercise_type,
        difficulty=exercise.difficulty,
        origin=exercise.origin,
        content=exercise.content or {},
    )


# ========================================
# Session Endpoints
# ========================================


@router.post(
    "",
    response_model=SessionResponse,
    status_code=201,
    summary="Create practice session",
)
def create_session(
    request: SessionCreateRequest,
    services: EngineServices = Depends(get_services),
) -> SessionResponse:
    """
    Create a new practice session.

    Fails with 409 when a session is already in progress for the learner and
    skill (resume it via GET /sessions/active instead), and with 422 when no
    exercise could be assembled.
    """
    logger.info(
        f"Creating {request.session_type.value} session for learner {request.learner_id} "
        f"skill {request.skill_id}"
    )
    practice_session = services.sessions.create_session(
        request.learner_id,
        request.skill_id,
        session_type=request.session_type,
        target_minutes=request.target_minutes,
    )
    return _session_response(practice_session)


@router.get(
    "/active",
    response_model=SessionResponse,
    summary="Get in-progress session",
)
def get_active_session(
    learner_id: str = Query(..., description="Learner identifier"),
    skill_id: str = Query(..., description="Skill identifier"),
    services: EngineServices = Depends(get_services),
) -> SessionResponse:
    """Look up the session a learner should resume for a skill."""
    practice_session = services.sessions.get_active_session(learner_id, skill_id)
    if practice_session is None:
        raise HTTPException(status_code=404, detail="No active session")
    return _session_response(practice_session)


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    summary="Get session",
)
def get_session(
    session_id: str,
    services: EngineServices = Depends(get_services),
) -> SessionResponse:
    return _session_response(services.sessions.get_session(session_id))


@router.get(
    "/{session_id}/exercises/{index}",
    response_model=ExerciseResponse,
    summary="Get exercise at a position",
)
def get_session_exercise(
    session_id: str,
    index: int,
    services: EngineServices = Depends(get_services),
) -> ExerciseResponse:
    try:
        exercise = services.sessions.get_session_exercise(session_id, index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _exercise_response(exercise, index)


@router.post(
    "/{session_id}/theory",
    response_model=SessionResponse,
    summary="Acknowledge theory step",
)
def acknowledge_theory(
    session_id: str,
    services: EngineServices = Depends(get_services),
) -> SessionResponse:
    return _session_response(services.sessions.acknowledge_theory(session_id))


@router.post(
    "/{session_id}/answers",
    response_model=AnswerResultResponse,
    summary="Submit answer",
)
def submit_answer(
    session_id: str,
    request: AnswerSubmitRequest,
    services: EngineServices = Depends(get_services),
) -> AnswerResultResponse:
    """
    Record a graded answer.

    Returns the new step index and whether the session is now complete.
    """
    result = services.sessions.submit_answer(
        session_id,
        request.exercise_id,
        request.is_correct,
        request.time_spent_seconds,
    )
    return AnswerResultResponse(**asdict(result))


@router.post(
    "/{session_id}/abandon",
    response_model=SessionResponse,
    summary="Abandon session",
)
def abandon_session(
    session_id: str,
    services: EngineServices = Depends(get_services),
) -> SessionResponse:
    return _session_response(services.sessions.abandon_session(session_id))


@router.get(
    "/{session_id}/recap",
    response_model=RecapResponse,
    summary="Get session recap",
)
def get_recap(
    session_id: str,
    services: EngineServices = Depends(get_services),
) -> RecapResponse:
    """
    Recap for a completed session.

    The first successful recap credits the session's reward points to the
    XP service; later calls return the same figures without crediting again.
    """
    recap = services.sessions.compute_recap(session_id)
    return RecapResponse(**asdict(recap))
