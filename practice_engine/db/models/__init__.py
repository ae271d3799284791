# SQLAlchemy models
from .base import Base, new_id, utcnow
from .content import Exercise, Skill
from .progress import RotationState, SkillProgress, UnlockRecord
from .session import Attempt, PracticeSession

__all__ = [
    # Base
    "Base",
    "new_id",
    "utcnow",
    # Content
    "Skill",
    "Exercise",
    # Progress
    "RotationState",
    "SkillProgress",
    "UnlockRecord",
    # Sessions
    "PracticeSession",
    "Attempt",
]
