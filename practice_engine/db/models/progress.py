"""
Per-learner progress models.

All rows here are keyed by (learner_id, skill_id); operations for different
learners never touch the same row.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow


class RotationState(Base):
    """
    Tracks which exercises a learner has been served in the current rotation.

    The seen list is cleared and the rotation number incremented when every
    eligible exercise of the skill has been served.
    """

    __tablename__ = "rotation_states"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    skill_id: Mapped[str] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False
    )

    rotation: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    # Reassigned (never mutated in place) so the JSON column change is tracked
    seen_exercise_ids: Mapped[list] = mapped_column(JSON, default=list)
    last_exercise_type: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("learner_id", "skill_id", name="uq_rotation_learner_skill"),
    )

    def __repr__(self) -> str:
        return (
            f"<RotationState learner={self.learner_id} skill={self.skill_id} "
            f"rotation={self.rotation} seen={len(self.seen_exercise_ids or [])}>"
        )


class SkillProgress(Base):
    """
    Attempt history summary and mastery level (0-5) per learner per skill.

    level_attempts / level_correct count attempts since the last level change
    and drive the level-up rule.
    """

    __tablename__ = "skill_progress"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    skill_id: Mapped[str] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False
    )

    attempts_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mastery_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    level_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    best_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_time_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_attempt_at: Mapped[datetime | None] = mapped_column()
    level_changed_at: Mapped[datetime | None] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("learner_id", "skill_id", name="uq_progress_learner_skill"),
    )

    def __repr__(self) -> str:
        return (
            f"<SkillProgress learner={self.learner_id} skill={self.skill_id} "
            f"level={self.mastery_level} attempts={self.attempts_count}>"
        )

    @property
    def accuracy(self) -> float:
        """Lifetime correct rate (0-1)."""
        if self.attempts_count:
            return self.correct_count / self.attempts_count
        return 0.0


class UnlockRecord(Base):
    """A skill unlocked by means other than the default chain (manual grant, alternate path)."""

    __tablename__ = "unlock_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    skill_id: Mapped[str] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, default="manual", nullable=False)
    granted_at: Mapped[datetime] = mapped_column(default=utcnow)

    __table_args__ = (
        UniqueConstraint("learner_id", "skill_id", name="uq_unlock_learner_skill"),
    )

    def __repr__(self) -> str:
        return f"<UnlockRecord learner={self.learner_id} skill={self.skill_id} reason={self.reason}>"
