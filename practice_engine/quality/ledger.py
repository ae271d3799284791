"""
Quality Ledger: per-exercise quality score and eligibility.

Scoring:
- good: +5 (capped at 100)
- bad: -10 (floored at 0); a bad rating that leaves the score below 20
  moves an active exercise to flagged, removing it from selection pools

This is the only path that changes eligibility. Flagged exercises are never
re-activated automatically. Usage counters (served/answered/correct/time)
are also kept here; they are informational and never affect eligibility.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.orm import sessionmaker

from practice_engine.config import Settings, get_settings
from practice_engine.core.enums import Eligibility, Verdict
from practice_engine.db.database import session_scope
from practice_engine.db.models import Exercise
from practice_engine.db.progress_store import ProgressStore


@dataclass(frozen=True)
class RatingOutcome:
    """Result of one quality rating."""

    exercise_id: str
    previous_score: int
    quality_score: int
    eligibility: Eligibility

    @property
    def flagged(self) -> bool:
        return self.eligibility is Eligibility.FLAGGED


class QualityLedger:
    """Maintains exercise quality scores and eligibility."""

    def __init__(self, session_factory: sessionmaker, settings: Settings | None = None):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    def rate(self, exercise_id: str, verdict: Verdict | str) -> RatingOutcome:
        """Apply an explicit good/bad rating in its own transaction."""
        verdict = Verdict(verdict)
        with session_scope(self.session_factory) as session:
            return self.apply_rating(ProgressStore(session), exercise_id, verdict)

    def apply_rating(self, store: ProgressStore, exercise_id: str, verdict: Verdict) -> RatingOutcome:
        """Apply a rating inside an existing transaction."""
        exercise = store.get_exercise(exercise_id, for_update=True)
        cfg = self.settings

        previous = exercise.quality_score if exercise.quality_score is not None else cfg.quality_default_score
        if verdict is Verdict.GOOD:
            score = min(cfg.quality_max_score, previous + cfg.quality_good_delta)
        else:
            score = max(cfg.quality_min_score, previous - cfg.quality_bad_delta)
        exercise.quality_score = score

        if (
            verdict is Verdict.BAD
            and score < cfg.quality_flag_threshold
            and exercise.eligibility == Eligibility.ACTIVE.value
        ):
            exercise.eligibility = Eligibility.FLAGGED.value
            logger.info(f"Exercise {exercise_id} flagged (quality {previous} -> {score})")
        else:
            logger.debug(f"Exercise {exercise_id} rated {verdict.value}: {previous} -> {score}")

        store.session.flush()
        return RatingOutcome(
            exercise_id=exercise.id,
            previous_score=previous,
            quality_score=score,
            eligibility=Eligibility(exercise.eligibility),
        )

    def record_served(self, exercises: list[Exercise]) -> None:
        """Count one serving for each selected exercise."""
        for exercise in exercises:
            exercise.times_served = (exercise.times_served or 0) + 1

    def record_usage(
        self, store: ProgressStore, exercise_id: str, is_correct: bool, time_spent_seconds: int
    ) -> Exercise:
        """Update answer statistics for an exercise after a graded attempt."""
        exercise = store.get_exercise(exercise_id, for_update=True)
        exercise.times_answered = (exercise.times_answered or 0) + 1
        if is_correct:
            exercise.times_correct = (exercise.times_correct or 0) + 1
        exercise.total_time_seconds = (exercise.total_time_seconds or 0) + max(0, time_spent_seconds)
        return exercise
