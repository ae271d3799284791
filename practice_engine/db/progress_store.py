"""
Progress Store: data access for content, rotation state, mastery and sessions.

A ProgressStore is bound to one SQLAlchemy session, i.e. to one transaction
opened by session_scope(). Components receive the store explicitly; none of
them keeps ambient state between calls.

Rows that an operation reads and then writes are fetched with
``for_update=True`` so concurrent requests for the same learner serialize on
backends with row locks (PostgreSQL). SQLite ignores the hint and serializes
writers at the database level.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from practice_engine.core.enums import Eligibility, SessionStatus
from practice_engine.db.models import (
    Attempt,
    Exercise,
    PracticeSession,
    RotationState,
    Skill,
    SkillProgress,
    UnlockRecord,
)
from practice_engine.exceptions import ExerciseNotFound, SessionNotFound, SkillNotFound


class ProgressStore:
    """Database access layer for one transaction."""

    def __init__(self, session: Session):
        self.session = session

    # ========================================
    # Skills
    # ========================================

    def add_skill(self, skill: Skill) -> Skill:
        self.session.add(skill)
        self.session.flush()
        return skill

    def get_skill(self, skill_id: str) -> Skill:
        """Get one skill, raising SkillNotFound when absent."""
        skill = self.session.get(Skill, skill_id)
        if skill is None:
            raise SkillNotFound(skill_id)
        return skill

    def list_domain_skills(self, domain_id: str) -> list[Skill]:
        """Skills of a domain ordered by ordering index."""
        result = self.session.execute(
            select(Skill).where(Skill.domain_id == domain_id).order_by(Skill.order_index)
        )
        return list(result.scalars().all())

    def get_predecessor_skill(self, skill: Skill) -> Skill | None:
        """The skill immediately before this one in its domain, if any."""
        result = self.session.execute(
            select(Skill)
            .where(Skill.domain_id == skill.domain_id, Skill.order_index < skill.order_index)
            .order_by(Skill.order_index.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def get_successor_skill(self, skill: Skill) -> Skill | None:
        """The skill immediately after this one in its domain, if any."""
        result = self.session.execute(
            select(Skill)
            .where(Skill.domain_id == skill.domain_id, Skill.order_index > skill.order_index)
            .order_by(Skill.order_index.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ========================================
    # Exercises
    # ========================================

    def add_exercise(self, exercise: Exercise) -> Exercise:
        self.session.add(exercise)
        self.session.flush()
        return exercise

    def get_exercise(self, exercise_id: str, for_update: bool = False) -> Exercise:
        """Get one exercise, raising ExerciseNotFound when absent."""
        query = select(Exercise).where(Exercise.id == exercise_id)
        if for_update:
            query = query.with_for_update()
        exercise = self.session.execute(query).scalar_one_or_none()
        if exercise is None:
            raise ExerciseNotFound(exercise_id)
        return exercise

    def list_eligible_exercises(
        self, skill_id: str, excluded_types: Iterable[str] = ()
    ) -> list[Exercise]:
        """
        Active exercises of a skill, best quality first.

        Ties are broken by creation time then id so the order is deterministic.
        """
        query = select(Exercise).where(
            Exercise.skill_id == skill_id,
            Exercise.eligibility == Eligibility.ACTIVE.value,
        )
        excluded = list(excluded_types)
        if excluded:
            query = query.where(Exercise.exercise_type.notin_(excluded))
        query = query.order_by(
            Exercise.quality_score.desc(), Exercise.created_at.asc(), Exercise.id.asc()
        )
        return list(self.session.execute(query).scalars().all())

    # ========================================
    # Rotation state
    # ========================================

    def get_rotation(self, learner_id: str, skill_id: str, for_update: bool = False) -> RotationState | None:
        query = select(RotationState).where(
            RotationState.learner_id == learner_id, RotationState.skill_id == skill_id
        )
        if for_update:
            query = query.with_for_update()
        return self.session.execute(query).scalar_one_or_none()

    def get_or_create_rotation(self, learner_id: str, skill_id: str) -> RotationState:
        """Load the rotation state for update, creating it lazily on first use."""
        rotation = self.get_rotation(learner_id, skill_id, for_update=True)
        if rotation is None:
            rotation = RotationState(
                learner_id=learner_id,
                skill_id=skill_id,
                rotation=1,
                seen_exercise_ids=[],
                last_exercise_type=None,
            )
            self.session.add(rotation)
            self.session.flush()
        return rotation

    # ========================================
    # Skill progress & unlocks
    # ========================================

    def get_progress(self, learner_id: str, skill_id: str, for_update: bool = False) -> SkillProgress | None:
        query = select(SkillProgress).where(
            SkillProgress.learner_id == learner_id, SkillProgress.skill_id == skill_id
        )
        if for_update:
            query = query.with_for_update()
        return self.session.execute(query).scalar_one_or_none()

    def get_or_create_progress(self, learner_id: str, skill_id: str) -> SkillProgress:
        progress = self.get_progress(learner_id, skill_id, for_update=True)
        if progress is None:
            progress = SkillProgress(
                learner_id=learner_id,
                skill_id=skill_id,
                attempts_count=0,
                correct_count=0,
                mastery_level=0,
                level_attempts=0,
                level_correct=0,
                current_streak=0,
                best_streak=0,
                total_time_seconds=0,
            )
            self.session.add(progress)
            self.session.flush()
        return progress

    def list_learner_progress(self, learner_id: str, skill_ids: Iterable[str]) -> dict[str, SkillProgress]:
        """Progress rows keyed by skill id."""
        ids = list(skill_ids)
        if not ids:
            return {}
        result = self.session.execute(
            select(SkillProgress).where(
                SkillProgress.learner_id == learner_id, SkillProgress.skill_id.in_(ids)
            )
        )
        return {row.skill_id: row for row in result.scalars().all()}

    def get_unlock_record(self, learner_id: str, skill_id: str) -> UnlockRecord | None:
        return self.session.execute(
            select(UnlockRecord).where(
                UnlockRecord.learner_id == learner_id, UnlockRecord.skill_id == skill_id
            )
        ).scalar_one_or_none()

    def list_unlocked_skill_ids(self, learner_id: str, skill_ids: Iterable[str]) -> set[str]:
        ids = list(skill_ids)
        if not ids:
            return set()
        result = self.session.execute(
            select(UnlockRecord.skill_id).where(
                UnlockRecord.learner_id == learner_id, UnlockRecord.skill_id.in_(ids)
            )
        )
        return {str(row) for row in result.scalars().all()}

    def add_unlock_record(self, record: UnlockRecord) -> UnlockRecord:
        self.session.add(record)
        self.session.flush()
        return record

    # ========================================
    # Sessions & attempts
    # ========================================

    def add_session(self, practice_session: PracticeSession) -> PracticeSession:
        self.session.add(practice_session)
        self.session.flush()
        return practice_session

    def get_session(self, session_id: str, for_update: bool = False) -> PracticeSession:
        """Get one practice session, raising SessionNotFound when absent."""
        query = select(PracticeSession).where(PracticeSession.id == session_id)
        if for_update:
            query = query.with_for_update()
        practice_session = self.session.execute(query).scalar_one_or_none()
        if practice_session is None:
            raise SessionNotFound(session_id)
        return practice_session

    def find_active_session(self, learner_id: str, skill_id: str) -> PracticeSession | None:
        """Most recent in-progress session for a learner and skill."""
        result = self.session.execute(
            select(PracticeSession)
            .where(
                PracticeSession.learner_id == learner_id,
                PracticeSession.skill_id == skill_id,
                PracticeSession.status == SessionStatus.IN_PROGRESS.value,
            )
            .order_by(PracticeSession.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def add_attempt(self, attempt: Attempt) -> Attempt:
        self.session.add(attempt)
        self.session.flush()
        return attempt

    def list_attempts(self, session_id: str) -> list[Attempt]:
        result = self.session.execute(
            select(Attempt).where(Attempt.session_id == session_id).order_by(Attempt.created_at)
        )
        return list(result.scalars().all())
