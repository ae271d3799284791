"""
Content models: skills and their exercise pool.

Skills are authored externally and immutable while the engine runs.
Exercise content is an opaque JSON payload; only quality score,
eligibility and usage counters change after creation.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from practice_engine.core.enums import Eligibility, ExerciseOrigin

from .base import Base, new_id, utcnow


class Skill(Base):
    """
    A learnable unit, ordered within its domain.

    The ordering index defines the default unlock chain: a skill becomes
    available once its predecessor in the same domain is mastered.
    """

    __tablename__ = "skills"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    domain_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    code: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str | None] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Exercise types this skill refuses in sessions, on top of the global exclusion list
    excluded_exercise_types: Mapped[list] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    exercises: Mapped[list[Exercise]] = relationship(back_populates="skill")

    __table_args__ = (
        UniqueConstraint("domain_id", "order_index", name="uq_skill_domain_order"),
        CheckConstraint("difficulty_level >= 1", name="ck_skill_difficulty"),
    )

    def __repr__(self) -> str:
        return f"<Skill id={self.id} domain={self.domain_id} order={self.order_index}>"


class Exercise(Base):
    """
    A practice item belonging to exactly one skill.

    Quality score and eligibility are mutated only through the quality ledger.
    """

    __tablename__ = "exercises"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    skill_id: Mapped[str] = mapped_column(
        ForeignKey("skills.id", ondelete="CASCADE"), nullable=False
    )
    exercise_type: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    origin: Mapped[str] = mapped_column(Text, default=ExerciseOrigin.AUTHORED.value, nullable=False)
    content: Mapped[dict] = mapped_column(JSON, default=dict)

    # Quality ledger
    quality_score: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    eligibility: Mapped[str] = mapped_column(Text, default=Eligibility.ACTIVE.value, nullable=False)

    # Usage statistics
    times_served: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    times_answered: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    times_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_time_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    skill: Mapped[Skill] = relationship(back_populates="exercises")

    __table_args__ = (
        Index("idx_exercise_skill_eligibility", "skill_id", "eligibility"),
        CheckConstraint("quality_score >= 0 AND quality_score <= 100", name="ck_exercise_quality"),
    )

    def __repr__(self) -> str:
        return f"<Exercise id={self.id} type={self.exercise_type} quality={self.quality_score}>"

    @property
    def is_eligible(self) -> bool:
        return self.eligibility == Eligibility.ACTIVE.value

    @property
    def is_generated(self) -> bool:
        return self.origin == ExerciseOrigin.GENERATED.value

    @property
    def success_rate(self) -> float | None:
        """Observed correct rate across all learners, None before the first answer."""
        if not self.times_answered:
            return None
        return self.times_correct / self.times_answered
