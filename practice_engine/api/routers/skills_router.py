"""
Skill Selection API Router.

Operator endpoint exposing the selection engine directly. A selection is
consumed on return: the exercises count as seen in the learner's rotation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from practice_engine.api.dependencies import get_services
from practice_engine.db.database import session_scope
from practice_engine.db.progress_store import ProgressStore
from practice_engine.services import EngineServices

router = APIRouter()


class SelectionRequest(BaseModel):
    """Request model for a raw exercise selection."""

    learner_id: str = Field(..., min_length=1, description="Learner identifier")
    count: int = Field(..., ge=1, le=100, description="Number of exercises wanted")


class SelectedExercise(BaseModel):
    exercise_id: str
    exercise_type: str
    quality_score: int
    origin: str


class SelectionResponse(BaseModel):
    skill_id: str
    learner_id: str
    rotation: int
    rotation_wrapped: bool
    generated_count: int
    exercises: list[SelectedExercise]


@router.post(
    "/{skill_id}/selection",
    response_model=SelectionResponse,
    summary="Select exercises",
)
def select_exercises(
    skill_id: str,
    request: SelectionRequest,
    services: EngineServices = Depends(get_services),
) -> SelectionResponse:
    with session_scope(services.session_factory) as session:
        result = services.selector.select(
            ProgressStore(session), request.learner_id, skill_id, request.count
        )
        return SelectionResponse(
            skill_id=skill_id,
            learner_id=request.learner_id,
            rotation=result.rotation,
            rotation_wrapped=result.rotation_wrapped,
            generated_count=result.generated_count,
            exercises=[
                SelectedExercise(
                    exercise_id=e.id,
                    exercise_type=e.exercise_type,
                    quality_score=e.quality_score,
                    origin=e.origin,
                )
                for e in result.exercises
            ],
        )
