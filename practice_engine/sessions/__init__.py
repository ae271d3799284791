"""
Session lifecycle: creation, answer submission, abandonment and recap.
"""

from practice_engine.sessions.manager import (
    SessionManager,
    SessionRecap,
    SubmitResult,
    round_half_up,
)

__all__ = ["SessionManager", "SessionRecap", "SubmitResult", "round_half_up"]
