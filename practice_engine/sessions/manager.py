"""
Session Lifecycle Manager.

Orchestrates a practice session end-to-end:
- Creation: pacing (minutes -> exercise count), selection, persistence
- Answer submission: attempt log, reward points, step index, completion,
  mastery update and exercise usage statistics
- Abandonment
- Recap: accuracy, elapsed time, streak bonus, one-time XP crediting

State machine::

    in_progress -> completed
    in_progress -> abandoned

Step layout of a session::

    [theory]  exercise_0 ... exercise_{n-1}  recap
    (learn only)

Every public method runs in exactly one transaction.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from practice_engine.config import Settings, get_settings
from practice_engine.core.enums import SessionStatus, SessionType
from practice_engine.db.database import session_scope
from practice_engine.db.models import Attempt, Exercise, PracticeSession, utcnow
from practice_engine.db.progress_store import ProgressStore
from practice_engine.exceptions import (
    DuplicateActiveSession,
    InvalidSessionState,
    NoContentAvailable,
    SkillLocked,
)
from practice_engine.integrations.xp_client import NullXpService, XpService
from practice_engine.learning.exercise_selector import ExerciseSelector
from practice_engine.learning.mastery_tracker import MasteryTracker
from practice_engine.quality.ledger import QualityLedger

XP_REASON_SESSION_COMPLETE = "session_complete"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (1.5 -> 2, 2.5 -> 3)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of one answer submission."""

    session_id: str
    current_step: int
    is_complete: bool
    is_correct: bool
    points_awarded: int
    exercises_completed: int
    exercises_correct: int
    reward_points: int
    mastery_level: int


@dataclass(frozen=True)
class SessionRecap:
    """Summary shown at the recap step of a completed session."""

    session_id: str
    learner_id: str
    skill_id: str
    session_type: str
    exercises_completed: int
    exercises_correct: int
    accuracy: int
    elapsed_seconds: int
    streak_bonus: bool
    reward_points: int
    level_up: bool
    mastery_level: int
    xp_credited: bool


class SessionManager:
    """Top-level orchestrator over selection, mastery and quality."""

    def __init__(
        self,
        session_factory: sessionmaker,
        selector: ExerciseSelector | None = None,
        tracker: MasteryTracker | None = None,
        quality_ledger: QualityLedger | None = None,
        xp_service: XpService | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.quality_ledger = quality_ledger or QualityLedger(session_factory, self.settings)
        self.selector = selector or ExerciseSelector(
            session_factory, quality_ledger=self.quality_ledger, settings=self.settings
        )
        self.tracker = tracker or MasteryTracker(session_factory, self.settings)
        self.xp_service = xp_service or NullXpService()
        self.clock = clock

    # ========================================
    # Creation
    # ========================================

    def target_exercise_count(self, target_minutes: float) -> int:
        """
        Convert a time budget to an exercise count.

        10 minutes at 1.5 exercises/minute -> 15. Any positive budget yields
        at least one exercise.
        """
        if target_minutes is None or target_minutes <= 0:
            raise ValueError(f"target_minutes must be positive, got {target_minutes}")
        return max(1, round_half_up(target_minutes * self.settings.exercises_per_minute))

    def create_session(
        self,
        learner_id: str,
        skill_id: str,
        session_type: SessionType | str = SessionType.PRACTICE,
        target_minutes: float = 10,
    ) -> PracticeSession:
        """
        Create and persist a new in-progress session.

        Raises:
            DuplicateActiveSession: A session is already in progress for this learner and skill
            SkillLocked: The skill is locked and require_unlocked_skill is enabled
            NoContentAvailable: Selection returned nothing, generation included
        """
        session_type = SessionType(session_type)
        target = self.target_exercise_count(target_minutes)

        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            skill = store.get_skill(skill_id)

            existing = store.find_active_session(learner_id, skill_id)
            if existing is not None:
                raise DuplicateActiveSession(learner_id, skill_id, existing.id)

            if self.settings.require_unlocked_skill and (
                self.tracker.unlock_reason(store, learner_id, skill) is None
            ):
                raise SkillLocked(learner_id, skill_id)

            selection = self.selector.select(store, learner_id, skill_id, target)
            if not selection.exercises:
                raise NoContentAvailable(skill_id)

            exercise_count = len(selection)
            theory_steps = 1 if session_type.has_theory_step else 0
            try:
                practice_session = store.add_session(
                    PracticeSession(
                        learner_id=learner_id,
                        skill_id=skill_id,
                        session_type=session_type.value,
                        target_minutes=float(target_minutes),
                        target_exercises=target,
                        exercise_ids=selection.exercise_ids,
                        total_steps=theory_steps + exercise_count + 1,
                        status=SessionStatus.IN_PROGRESS.value,
                        current_step=0,
                        starting_mastery_level=self.tracker.get_mastery_level(
                            store, learner_id, skill_id
                        ),
                        started_at=self.clock(),
                    )
                )
            except IntegrityError as e:
                # Lost the race against a concurrent create (partial unique index)
                raise DuplicateActiveSession(learner_id, skill_id) from e

        logger.info(
            f"Session {practice_session.id} created for learner {learner_id} skill {skill_id}: "
            f"{exercise_count}/{target} exercises ({session_type.value})"
        )
        return practice_session

    # ========================================
    # Lookup
    # ========================================

    def get_active_session(self, learner_id: str, skill_id: str) -> PracticeSession | None:
        """The in-progress session a caller should resume, if any."""
        with session_scope(self.session_factory) as session:
            return ProgressStore(session).find_active_session(learner_id, skill_id)

    def get_session(self, session_id: str) -> PracticeSession:
        with session_scope(self.session_factory) as session:
            return ProgressStore(session).get_session(session_id)

    def get_session_exercise(self, session_id: str, index: int) -> Exercise:
        """
        The exercise at ``index`` of the session's ordered list.

        Raises:
            IndexError: index is outside the session's exercise list
        """
        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            practice_session = store.get_session(session_id)
            exercise_ids = practice_session.exercise_ids or []
            if index < 0 or index >= len(exercise_ids):
                raise IndexError(
                    f"Session {session_id} has {len(exercise_ids)} exercises, no index {index}"
                )
            return store.get_exercise(exercise_ids[index])

    def list_attempts(self, session_id: str) -> list[Attempt]:
        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            store.get_session(session_id)
            return store.list_attempts(session_id)

    # ========================================
    # Progression
    # ========================================

    def acknowledge_theory(self, session_id: str) -> PracticeSession:
        """Mark the theory step as shown. Repeated calls do not advance the step again."""
        with session_scope(self.session_factory) as session:
            practice_session = ProgressStore(session).get_session(session_id, for_update=True)
            self._require_in_progress(practice_session)
            if not practice_session.has_theory_step:
                raise InvalidSessionState(
                    session_id,
                    practice_session.status,
                    f"Session {session_id} is practice-only and has no theory step",
                )
            if not practice_session.theory_shown:
                practice_session.theory_shown = True
                practice_session.current_step = self._step_for(practice_session)
            return practice_session

    def submit_answer(
        self,
        session_id: str,
        exercise_id: str,
        is_correct: bool,
        time_spent_seconds: int = 0,
    ) -> SubmitResult:
        """
        Record one graded answer.

        The attempt, session counters, mastery update and exercise statistics
        are written in a single transaction.

        Raises:
            InvalidSessionState: Session not in progress, or exercise not part of it
        """
        time_spent_seconds = max(0, int(time_spent_seconds or 0))
        cfg = self.settings

        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            practice_session = store.get_session(session_id, for_update=True)
            self._require_in_progress(practice_session)

            if exercise_id not in (practice_session.exercise_ids or []):
                raise InvalidSessionState(
                    session_id,
                    practice_session.status,
                    f"Exercise {exercise_id} is not part of session {session_id}",
                )

            store.add_attempt(
                Attempt(
                    session_id=session_id,
                    learner_id=practice_session.learner_id,
                    exercise_id=exercise_id,
                    is_correct=bool(is_correct),
                    time_spent_seconds=time_spent_seconds,
                    created_at=self.clock(),
                )
            )

            points = cfg.reward_points_correct if is_correct else cfg.reward_points_incorrect
            practice_session.exercises_completed += 1
            if is_correct:
                practice_session.exercises_correct += 1
            practice_session.reward_points += points

            # Answering implies the theory step has been passed
            if practice_session.has_theory_step and not practice_session.theory_shown:
                practice_session.theory_shown = True
            practice_session.current_step = self._step_for(practice_session)

            is_complete = practice_session.exercises_completed >= practice_session.exercise_count
            if is_complete:
                practice_session.status = SessionStatus.COMPLETED.value
                practice_session.completed_at = self.clock()

            progress = self.tracker.apply_attempt(
                store,
                practice_session.learner_id,
                practice_session.skill_id,
                bool(is_correct),
                time_spent_seconds,
                now=self.clock(),
            )
            self.quality_ledger.record_usage(store, exercise_id, bool(is_correct), time_spent_seconds)

            result = SubmitResult(
                session_id=session_id,
                current_step=practice_session.current_step,
                is_complete=is_complete,
                is_correct=bool(is_correct),
                points_awarded=points,
                exercises_completed=practice_session.exercises_completed,
                exercises_correct=practice_session.exercises_correct,
                reward_points=practice_session.reward_points,
                mastery_level=progress.mastery_level,
            )

        if result.is_complete:
            logger.info(
                f"Session {session_id} completed: {result.exercises_correct}/"
                f"{result.exercises_completed} correct, {result.reward_points} points"
            )
        return result

    def abandon_session(self, session_id: str) -> PracticeSession:
        """
        Move an in-progress session to abandoned.

        Abandoning an abandoned session is a no-op. Recorded attempts are kept.

        Raises:
            InvalidSessionState: The session is already completed
        """
        with session_scope(self.session_factory) as session:
            practice_session = ProgressStore(session).get_session(session_id, for_update=True)
            if practice_session.status == SessionStatus.ABANDONED.value:
                return practice_session
            if practice_session.status == SessionStatus.COMPLETED.value:
                raise InvalidSessionState(session_id, practice_session.status)

            practice_session.status = SessionStatus.ABANDONED.value
            practice_session.abandoned_at = self.clock()

        logger.info(
            f"Session {session_id} abandoned after {practice_session.exercises_completed}/"
            f"{practice_session.exercise_count} exercises"
        )
        return practice_session

    # ========================================
    # Recap
    # ========================================

    def compute_recap(self, session_id: str) -> SessionRecap:
        """
        Summarize a completed session and credit its reward points once.

        XP crediting and the daily streak update are tracked separately, each
        flag committed as soon as its call succeeds. A later recap only
        repeats the call that has not gone through yet.

        Raises:
            InvalidSessionState: The session has not completed
        """
        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            practice_session = store.get_session(session_id, for_update=True)
            if practice_session.status != SessionStatus.COMPLETED.value:
                raise InvalidSessionState(
                    session_id,
                    practice_session.status,
                    f"Session {session_id} is {practice_session.status}; recap requires completed",
                )

            completed = practice_session.exercises_completed
            correct = practice_session.exercises_correct
            accuracy = round_half_up(correct / completed * 100) if completed else 0

            finished_at = practice_session.completed_at or self.clock()
            elapsed = max(0, int((finished_at - practice_session.started_at).total_seconds()))

            mastery_level = self.tracker.get_mastery_level(
                store, practice_session.learner_id, practice_session.skill_id
            )

            recap = SessionRecap(
                session_id=practice_session.id,
                learner_id=practice_session.learner_id,
                skill_id=practice_session.skill_id,
                session_type=practice_session.session_type,
                exercises_completed=completed,
                exercises_correct=correct,
                accuracy=accuracy,
                elapsed_seconds=elapsed,
                streak_bonus=correct >= self.settings.streak_bonus_min_correct,
                reward_points=practice_session.reward_points,
                level_up=mastery_level > practice_session.starting_mastery_level,
                mastery_level=mastery_level,
                xp_credited=practice_session.xp_credited,
            )
            streak_updated = practice_session.streak_updated

        # External calls run outside the recap transaction
        if not recap.xp_credited:
            recap = replace(recap, xp_credited=self._credit_xp(recap))
        if not streak_updated:
            self._update_streak(recap)
        return recap

    def _credit_xp(self, recap: SessionRecap) -> bool:
        """Hand the session's points to the XP service. Returns True once credited."""
        try:
            self.xp_service.add_xp(
                recap.learner_id, recap.reward_points, XP_REASON_SESSION_COMPLETE
            )
        except Exception as e:  # Left uncredited; the next recap retries
            logger.warning(f"XP crediting failed for session {recap.session_id}: {e}")
            return False

        self._mark_rewarded(recap.session_id, xp_credited=True)
        logger.info(
            f"Credited {recap.reward_points} XP to learner {recap.learner_id} "
            f"for session {recap.session_id}"
        )
        return True

    def _update_streak(self, recap: SessionRecap) -> bool:
        try:
            self.xp_service.update_daily_streak(recap.learner_id)
        except Exception as e:  # Left pending; the next recap retries
            logger.warning(f"Daily streak update failed for session {recap.session_id}: {e}")
            return False

        self._mark_rewarded(recap.session_id, streak_updated=True)
        return True

    def _mark_rewarded(self, session_id: str, **flags: bool) -> None:
        with session_scope(self.session_factory) as session:
            practice_session = ProgressStore(session).get_session(session_id, for_update=True)
            for name, value in flags.items():
                setattr(practice_session, name, value)

    # ========================================
    # Helpers
    # ========================================

    @staticmethod
    def _require_in_progress(practice_session: PracticeSession) -> None:
        if not practice_session.is_in_progress:
            raise InvalidSessionState(practice_session.id, practice_session.status)

    @staticmethod
    def _step_for(practice_session: PracticeSession) -> int:
        theory = 1 if practice_session.has_theory_step and practice_session.theory_shown else 0
        return theory + practice_session.exercises_completed
