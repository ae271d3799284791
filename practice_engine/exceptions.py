"""
Error taxonomy for the practice engine.

Nothing here is retried automatically; the caller decides retry policy.
"""

from __future__ import annotations


class PracticeEngineError(Exception):
    """Base class for all engine errors."""


class NotFoundError(PracticeEngineError):
    """A referenced entity does not exist."""


class SkillNotFound(NotFoundError):
    def __init__(self, skill_id: str):
        super().__init__(f"Skill not found: {skill_id}")
        self.skill_id = skill_id


class ExerciseNotFound(NotFoundError):
    def __init__(self, exercise_id: str):
        super().__init__(f"Exercise not found: {exercise_id}")
        self.exercise_id = exercise_id


class SessionNotFound(NotFoundError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class NoContentAvailable(PracticeEngineError):
    """Selection produced zero exercises even after the generation fallback."""

    def __init__(self, skill_id: str):
        super().__init__(f"No exercises available for skill {skill_id}")
        self.skill_id = skill_id


class InvalidSessionState(PracticeEngineError):
    """Operation attempted against a session not in the required state."""

    def __init__(self, session_id: str, status: str, message: str | None = None):
        super().__init__(message or f"Session {session_id} is {status}")
        self.session_id = session_id
        self.status = status


class DuplicateActiveSession(PracticeEngineError):
    """A session is already in progress for this learner and skill."""

    def __init__(self, learner_id: str, skill_id: str, session_id: str | None = None):
        super().__init__(
            f"Learner {learner_id} already has an in-progress session for skill {skill_id}"
        )
        self.learner_id = learner_id
        self.skill_id = skill_id
        self.session_id = session_id


class SkillLocked(PracticeEngineError):
    """The learner has not unlocked the requested skill."""

    def __init__(self, learner_id: str, skill_id: str):
        super().__init__(f"Skill {skill_id} is locked for learner {learner_id}")
        self.learner_id = learner_id
        self.skill_id = skill_id


class PersistenceFailure(PracticeEngineError):
    """The underlying store is unavailable or rejected the transaction."""


class GenerationUnavailable(PracticeEngineError):
    """Soft failure from the exercise generator; absorbed by selection."""
