"""
Practice session and attempt models.

A session moves in_progress -> completed or in_progress -> abandoned.
Attempts are append-only and never updated or deleted.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from practice_engine.core.enums import SessionStatus, SessionType

from .base import Base, new_id, utcnow


class PracticeSession(Base):
    """
    One bounded practice attempt at a skill.

    total_steps = (1 if theory-first else 0) + exercise count + 1 recap step.
    """

    __tablename__ = "practice_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    skill_id: Mapped[str] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False
    )

    # Session configuration
    session_type: Mapped[str] = mapped_column(
        Text, default=SessionType.PRACTICE.value, nullable=False
    )
    target_minutes: Mapped[float] = mapped_column(nullable=False)
    target_exercises: Mapped[int] = mapped_column(Integer, nullable=False)
    exercise_ids: Mapped[list] = mapped_column(JSON, default=list)
    total_steps: Mapped[int] = mapped_column(Integer, nullable=False)

    # Session state
    status: Mapped[str] = mapped_column(
        Text, default=SessionStatus.IN_PROGRESS.value, nullable=False
    )
    current_step: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    theory_shown: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Progress tracking
    exercises_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    exercises_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reward_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Mastery level when the session started, for the recap's level-up flag
    starting_mastery_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Recap side effects, each set once its external call succeeds
    xp_credited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    streak_updated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column()
    abandoned_at: Mapped[datetime | None] = mapped_column()
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    attempts: Mapped[list[Attempt]] = relationship(
        back_populates="session", order_by="Attempt.created_at"
    )

    __table_args__ = (
        Index("idx_practice_session_learner_skill", "learner_id", "skill_id", "status"),
        # At most one in-progress session per learner and skill
        Index(
            "uq_practice_session_active",
            "learner_id",
            "skill_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<PracticeSession id={self.id} learner={self.learner_id} status={self.status}>"

    @property
    def exercise_count(self) -> int:
        return len(self.exercise_ids or [])

    @property
    def is_in_progress(self) -> bool:
        return self.status == SessionStatus.IN_PROGRESS.value

    @property
    def has_theory_step(self) -> bool:
        return SessionType(self.session_type).has_theory_step


class Attempt(Base):
    """Immutable record of one graded answer."""

    __tablename__ = "attempts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("practice_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    learner_id: Mapped[str] = mapped_column(Text, nullable=False)
    exercise_id: Mapped[str] = mapped_column(
        ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    session: Mapped[PracticeSession] = relationship(back_populates="attempts")

    def __repr__(self) -> str:
        return f"<Attempt session={self.session_id} exercise={self.exercise_id} correct={self.is_correct}>"
