"""
Learner Progress API Router.

Endpoints for mastery and skill availability:
- Per-skill progress
- Unlock checks and manual grants
- Domain overview (every skill in chain order)
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from practice_engine.api.dependencies import get_services
from practice_engine.services import EngineServices

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class SkillProgressResponse(BaseModel):
    """Response model for a learner's progress on one skill."""

    learner_id: str
    skill_id: str
    mastery_level: int
    attempts_count: int
    correct_count: int
    accuracy: float
    current_streak: int
    best_streak: int
    total_time_seconds: int
    last_attempt_at: datetime | None


class UnlockStatusResponse(BaseModel):
    """Response model for skill availability."""

    learner_id: str
    skill_id: str
    is_unlocked: bool


class UnlockGrantRequest(BaseModel):
    """Request model for a manual unlock."""

    reason: str = Field("manual", min_length=1, description="Why the skill is granted")


class UnlockGrantResponse(BaseModel):
    learner_id: str
    skill_id: str
    reason: str
    granted_at: datetime | None


class SkillStatusResponse(BaseModel):
    """Response model for one skill in a domain overview."""

    skill_id: str
    domain_id: str
    code: str | None
    name: str | None
    order_index: int
    difficulty_level: int
    mastery_level: int
    attempts_count: int
    correct_count: int
    is_unlocked: bool
    is_mastered: bool
    unlock_reason: str | None
    last_attempt_at: datetime | None


# ========================================
# Progress Endpoints
# ========================================


@router.get(
    "/{learner_id}/skills/{skill_id}/progress",
    response_model=SkillProgressResponse,
    summary="Get skill progress",
)
def get_skill_progress(
    learner_id: str,
    skill_id: str,
    services: EngineServices = Depends(get_services),
) -> SkillProgressResponse:
    """Progress for a skill; a learner with no attempts yet is at level 0."""
    progress = services.tracker.get_progress(learner_id, skill_id)
    if progress is None:
        return SkillProgressResponse(
            learner_id=learner_id,
            skill_id=skill_id,
            mastery_level=0,
            attempts_count=0,
            correct_count=0,
            accuracy=0.0,
            current_streak=0,
            best_streak=0,
            total_time_seconds=0,
            last_attempt_at=None,
        )
    return SkillProgressResponse(
        learner_id=learner_id,
        skill_id=skill_id,
        mastery_level=progress.mastery_level,
        attempts_count=progress.attempts_count,
        correct_count=progress.correct_count,
        accuracy=progress.accuracy,
        current_streak=progress.current_streak,
        best_streak=progress.best_streak,
        total_time_seconds=progress.total_time_seconds,
        last_attempt_at=progress.last_attempt_at,
    )


@router.get(
    "/{learner_id}/skills/{skill_id}/unlocked",
    response_model=UnlockStatusResponse,
    summary="Check skill availability",
)
def is_skill_unlocked(
    learner_id: str,
    skill_id: str,
    services: EngineServices = Depends(get_services),
) -> UnlockStatusResponse:
    return UnlockStatusResponse(
        learner_id=learner_id,
        skill_id=skill_id,
        is_unlocked=services.tracker.is_unlocked(learner_id, skill_id),
    )


@router.post(
    "/{learner_id}/skills/{skill_id}/unlock",
    response_model=UnlockGrantResponse,
    summary="Grant skill",
)
def grant_unlock(
    learner_id: str,
    skill_id: str,
    request: UnlockGrantRequest | None = None,
    services: EngineServices = Depends(get_services),
) -> UnlockGrantResponse:
    """Unlock a skill outside the mastery chain. Granting again is harmless."""
    reason = request.reason if request else "manual"
    record = services.tracker.grant_unlock(learner_id, skill_id, reason)
    return UnlockGrantResponse(
        learner_id=record.learner_id,
        skill_id=record.skill_id,
        reason=record.reason,
        granted_at=record.granted_at,
    )


@router.get(
    "/{learner_id}/domains/{domain_id}/skills",
    response_model=list[SkillStatusResponse],
    summary="Domain overview",
)
def list_domain_skills(
    learner_id: str,
    domain_id: str,
    services: EngineServices = Depends(get_services),
) -> list[SkillStatusResponse]:
    statuses = services.tracker.list_domain_skills(learner_id, domain_id)
    return [
        SkillStatusResponse(
            skill_id=s.skill_id,
            domain_id=s.domain_id,
            code=s.code,
            name=s.name,
            order_index=s.order_index,
            difficulty_level=s.difficulty_level,
            mastery_level=s.mastery_level,
            attempts_count=s.attempts_count,
            correct_count=s.correct_count,
            is_unlocked=s.is_unlocked,
            is_mastered=s.is_mastered,
            unlock_reason=s.unlock_reason,
            last_attempt_at=s.last_attempt_at,
        )
        for s in statuses
    ]
