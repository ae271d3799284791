"""
Core Module - shared enumerations and value types.

Everything stored as text in the database is enumerated here so that
selection, sessions and the quality ledger agree on the same vocabulary.
"""

from practice_engine.core.enums import (
    Eligibility,
    ExerciseOrigin,
    ExerciseType,
    SessionStatus,
    SessionType,
    Verdict,
)

__all__ = [
    "Eligibility",
    "ExerciseOrigin",
    "ExerciseType",
    "SessionStatus",
    "SessionType",
    "Verdict",
]
