"""
Exercise Selection for Practice Sessions.

Provides rotation-aware exercise selection based on:
- Eligibility (only active exercises, minus excluded types)
- Quality score (best first, as a preference)
- Rotation (no repeats until every eligible exercise has been served)
- Type variety (avoid serving the same exercise type twice in a row)
- Generation fallback (synthesize exercises when the pool is too small)

A selection is consumed the moment it is returned: the rotation state is
updated in the same transaction that read it, so two concurrent session
requests for the same learner and skill cannot be served the same exercise
within one rotation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx
from loguru import logger
from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

from practice_engine.config import Settings, get_settings
from practice_engine.core.enums import Eligibility, ExerciseOrigin
from practice_engine.db.database import session_scope
from practice_engine.db.models import Exercise, Skill
from practice_engine.db.progress_store import ProgressStore
from practice_engine.exceptions import GenerationUnavailable
from practice_engine.integrations.generator_client import (
    ExerciseGenerator,
    GeneratedExercise,
    NullExerciseGenerator,
)
from practice_engine.quality.ledger import QualityLedger


@dataclass
class SelectionResult:
    """Outcome of one selection call."""

    exercises: list[Exercise] = field(default_factory=list)
    rotation: int = 1
    rotation_wrapped: bool = False
    generated_count: int = 0

    @property
    def exercise_ids(self) -> list[str]:
        return [e.id for e in self.exercises]

    def __len__(self) -> int:
        return len(self.exercises)


def order_for_variety(
    candidates: Sequence[Exercise], count: int, last_type: str | None
) -> tuple[list[Exercise], str | None]:
    """
    Greedily pick up to ``count`` candidates, avoiding consecutive repeats of a type.

    Each step takes the first remaining candidate whose type differs from the
    previous pick; when none does, the constraint is relaxed and the first
    remaining candidate is taken. Candidate order (quality) is otherwise kept.

    Returns:
        (picked exercises, type of the last pick)
    """
    remaining = list(candidates)
    picked: list[Exercise] = []

    while len(picked) < count and remaining:
        index = next(
            (i for i, e in enumerate(remaining) if e.exercise_type != last_type),
            0,
        )
        choice = remaining.pop(index)
        picked.append(choice)
        last_type = choice.exercise_type

    return picked, last_type


class ExerciseSelector:
    """
    Select exercises for a learner and a skill.

    Algorithm:
    1. Load active exercises for the skill (excluded types removed), best quality first
    2. Load or lazily create the learner's rotation state
    3. unseen = eligible - seen; if empty, start a new rotation
    4. Pick from unseen with type variety until ``count`` or exhaustion
    5. If short and the pool itself is smaller than ``count``, ask the generator
    6. Persist seen ids, rotation number and last type in the same transaction
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        generator: ExerciseGenerator | None = None,
        quality_ledger: QualityLedger | None = None,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.generator = generator or NullExerciseGenerator()
        self.quality_ledger = quality_ledger or QualityLedger(session_factory, self.settings)

    def select_exercises(self, learner_id: str, skill_id: str, count: int) -> list[Exercise]:
        """Select and consume up to ``count`` exercises in a dedicated transaction."""
        with session_scope(self.session_factory) as session:
            return self.select(ProgressStore(session), learner_id, skill_id, count).exercises

    def excluded_types(self, skill: Skill) -> set[str]:
        """Global session exclusions plus the skill's own."""
        excluded = set(self.settings.session_excluded_exercise_types)
        excluded.update(skill.excluded_exercise_types or [])
        return excluded

    def select(self, store: ProgressStore, learner_id: str, skill_id: str, count: int) -> SelectionResult:
        """Select inside an existing transaction."""
        skill = store.get_skill(skill_id)
        if count <= 0:
            return SelectionResult()

        excluded = self.excluded_types(skill)
        eligible = store.list_eligible_exercises(skill_id, excluded)
        rotation = store.get_or_create_rotation(learner_id, skill_id)

        seen_ids = list(rotation.seen_exercise_ids or [])
        seen = set(seen_ids)
        unseen = [e for e in eligible if e.id not in seen]

        wrapped = False
        if not unseen and eligible:
            rotation.rotation = (rotation.rotation or 1) + 1
            seen_ids = []
            unseen = list(eligible)
            wrapped = True
            logger.info(
                f"Rotation wrapped for learner {learner_id} skill {skill_id}: "
                f"now rotation {rotation.rotation} ({len(eligible)} eligible)"
            )

        selected, last_type = order_for_variety(unseen, count, rotation.last_exercise_type)

        generated: list[Exercise] = []
        if len(selected) < count and len(eligible) < count:
            generated = self._generate(store, skill, count - len(selected), excluded)
            if generated:
                selected.extend(generated)
                last_type = generated[-1].exercise_type

        if selected:
            rotation.seen_exercise_ids = seen_ids + [e.id for e in selected]
            rotation.last_exercise_type = last_type
            self.quality_ledger.record_served(selected)
        store.session.flush()

        logger.debug(
            f"Selected {len(selected)}/{count} exercises for learner {learner_id} "
            f"skill {skill_id} (rotation {rotation.rotation}, generated {len(generated)})"
        )
        return SelectionResult(
            exercises=selected,
            rotation=rotation.rotation,
            rotation_wrapped=wrapped,
            generated_count=len(generated),
        )

    def _generate(
        self, store: ProgressStore, skill: Skill, needed: int, excluded: set[str]
    ) -> list[Exercise]:
        """
        Synthesize exercises, persist them as active and return the servable ones.

        Any generator failure or shortfall is absorbed.
        """
        want = min(needed, self.settings.generation_max_per_request)
        if want <= 0:
            return []

        try:
            payloads = self.generator.generate_exercises(skill.id, want)
        except (GenerationUnavailable, httpx.HTTPError) as e:
            logger.warning(f"Exercise generation failed for skill {skill.id}: {e}")
            return []
        except Exception:  # Selection still returns what it has
            logger.exception(f"Unexpected error from exercise generator for skill {skill.id}")
            return []

        servable: list[Exercise] = []
        for payload in list(payloads or [])[:want]:
            if not isinstance(payload, GeneratedExercise):
                try:
                    payload = GeneratedExercise.model_validate(payload)
                except ValidationError as e:
                    logger.warning(f"Dropping malformed generated exercise for skill {skill.id}: {e}")
                    continue
            exercise = store.add_exercise(
                Exercise(
                    skill_id=skill.id,
                    exercise_type=payload.exercise_type.value,
                    difficulty=payload.difficulty or skill.difficulty_level,
                    origin=ExerciseOrigin.GENERATED.value,
                    content=payload.content,
                    quality_score=self.settings.quality_default_score,
                    eligibility=Eligibility.ACTIVE.value,
                )
            )
            if exercise.exercise_type in excluded:
                logger.debug(f"Generated exercise {exercise.id} has excluded type {exercise.exercise_type}")
                continue
            servable.append(exercise)

        if len(servable) < want:
            logger.warning(
                f"Generation exhausted for skill {skill.id}: {len(servable)}/{want} servable exercises"
            )
        else:
            logger.info(f"Generated {len(servable)} exercises for skill {skill.id}")
        return servable
