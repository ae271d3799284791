"""
Enumerations for exercises, sessions and quality feedback.
"""

from __future__ import annotations

from enum import Enum


class ExerciseType(str, Enum):
    """Exercise presentation types. Content payloads are opaque to the engine."""

    MULTIPLE_CHOICE = "multiple_choice"
    FILL_BLANK = "fill_blank"
    FREE_INPUT = "free_input"
    DRAG_DROP = "drag_drop"
    INTERACTIVE = "interactive"


class ExerciseOrigin(str, Enum):
    """Where an exercise came from."""

    AUTHORED = "authored"
    GENERATED = "generated"


class Eligibility(str, Enum):
    """
    Pool status of an exercise.

    Only ACTIVE exercises are candidates for selection. FLAGGED and RETIRED
    require administrative action to come back.
    """

    ACTIVE = "active"
    FLAGGED = "flagged"
    RETIRED = "retired"


class SessionType(str, Enum):
    """Session flavour: theory step first, or straight to practice."""

    LEARN = "learn"  # theory-first
    PRACTICE = "practice"  # practice-only

    @property
    def has_theory_step(self) -> bool:
        return self is SessionType.LEARN


class SessionStatus(str, Enum):
    """Session lifecycle states. COMPLETED and ABANDONED are terminal."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Verdict(str, Enum):
    """Explicit quality feedback on an exercise."""

    GOOD = "good"
    BAD = "bad"
