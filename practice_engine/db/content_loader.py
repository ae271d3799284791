"""
Content seeding from JSON documents.

Document shape::

    {
      "skills": [
        {
          "id": "fractions-1",
          "domain_id": "fractions",
          "name": "Halves and quarters",
          "order_index": 1,
          "difficulty_level": 1,
          "excluded_exercise_types": [],
          "exercises": [
            {"id": "ex-1", "type": "multiple_choice", "difficulty": 1, "content": {...}}
          ]
        }
      ]
    }

Loading is idempotent: skills are upserted by id, exercises with an id that
already exists are left untouched (their quality history is kept).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import sessionmaker

from practice_engine.core.enums import ExerciseOrigin, ExerciseType
from practice_engine.db.database import session_scope
from practice_engine.db.models import Exercise, Skill
from practice_engine.db.progress_store import ProgressStore


class ExerciseDocument(BaseModel):
    id: str | None = None
    exercise_type: ExerciseType = Field(alias="type")
    difficulty: int = Field(1, ge=1)
    content: dict[str, Any] = Field(default_factory=dict)
    quality_score: int | None = Field(None, ge=0, le=100)

    model_config = ConfigDict(populate_by_name=True)


class SkillDocument(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    domain_id: str = Field(..., min_length=1, max_length=64)
    code: str | None = None
    name: str | None = None
    order_index: int
    difficulty_level: int = Field(1, ge=1)
    excluded_exercise_types: list[ExerciseType] = Field(default_factory=list)
    exercises: list[ExerciseDocument] = Field(default_factory=list)


class ContentDocument(BaseModel):
    skills: list[SkillDocument] = Field(default_factory=list)


@dataclass
class LoadSummary:
    skills_created: int = 0
    skills_updated: int = 0
    exercises_created: int = 0
    exercises_skipped: int = 0


def read_content_file(path: Path) -> ContentDocument:
    """Parse and validate a content file (raises pydantic.ValidationError on bad shape)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return ContentDocument.model_validate(data)


def load_content(
    session_factory: sessionmaker,
    document: ContentDocument,
    default_quality_score: int = 50,
) -> LoadSummary:
    """Write a content document in one transaction."""
    summary = LoadSummary()

    with session_scope(session_factory) as session:
        store = ProgressStore(session)
        for skill_doc in document.skills:
            skill = session.get(Skill, skill_doc.id)
            excluded = [t.value for t in skill_doc.excluded_exercise_types]
            if skill is None:
                store.add_skill(
                    Skill(
                        id=skill_doc.id,
                        domain_id=skill_doc.domain_id,
                        code=skill_doc.code,
                        name=skill_doc.name,
                        order_index=skill_doc.order_index,
                        difficulty_level=skill_doc.difficulty_level,
                        excluded_exercise_types=excluded,
                    )
                )
                summary.skills_created += 1
            else:
                skill.domain_id = skill_doc.domain_id
                skill.code = skill_doc.code
                skill.name = skill_doc.name
                skill.order_index = skill_doc.order_index
                skill.difficulty_level = skill_doc.difficulty_level
                skill.excluded_exercise_types = excluded
                summary.skills_updated += 1

            for exercise_doc in skill_doc.exercises:
                if exercise_doc.id and session.get(Exercise, exercise_doc.id) is not None:
                    summary.exercises_skipped += 1
                    continue
                exercise = Exercise(
                    skill_id=skill_doc.id,
                    exercise_type=exercise_doc.exercise_type.value,
                    difficulty=exercise_doc.difficulty,
                    origin=ExerciseOrigin.AUTHORED.value,
                    content=exercise_doc.content,
                    quality_score=(
                        exercise_doc.quality_score
                        if exercise_doc.quality_score is not None
                        else default_quality_score
                    ),
                )
                if exercise_doc.id:
                    exercise.id = exercise_doc.id
                store.add_exercise(exercise)
                summary.exercises_created += 1

    logger.info(
        f"Content loaded: {summary.skills_created} skills created, {summary.skills_updated} updated, "
        f"{summary.exercises_created} exercises created, {summary.exercises_skipped} skipped"
    )
    return summary
