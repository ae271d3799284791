"""
Mastery & Unlock Graph.

Mastery is an integer level 0-5 per learner per skill (5 = mastered):
- Every graded attempt updates attempt/correct counts, streaks and time
- The level rises by one when, since the last level change, the learner has
  made at least 5 attempts with a correct rate of at least 70%
- The level never decreases

Unlocking follows a linear chain per domain: a skill is available when it is
the first skill of its domain, when the preceding skill (by ordering index)
is mastered, or when an UnlockRecord grants it explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy.orm import sessionmaker

from practice_engine.config import Settings, get_settings
from practice_engine.db.database import session_scope
from practice_engine.db.models import Skill, SkillProgress, UnlockRecord, utcnow
from practice_engine.db.progress_store import ProgressStore

UNLOCK_FIRST_IN_DOMAIN = "first_in_domain"
UNLOCK_PREREQUISITE_MASTERED = "prerequisite_mastered"
UNLOCK_GRANTED = "granted"


@dataclass(frozen=True)
class SkillStatus:
    """Skill with the learner's progress and availability."""

    skill_id: str
    domain_id: str
    code: str | None
    name: str | None
    order_index: int
    difficulty_level: int
    mastery_level: int
    attempts_count: int
    correct_count: int
    is_unlocked: bool
    unlock_reason: str | None
    last_attempt_at: datetime | None

    @property
    def is_mastered(self) -> bool:
        return self.mastery_level >= 5


class MasteryTracker:
    """Track per-skill mastery and answer availability questions."""

    def __init__(self, session_factory: sessionmaker, settings: Settings | None = None):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    # ========================================
    # Mastery
    # ========================================

    def record_attempt(
        self,
        learner_id: str,
        skill_id: str,
        is_correct: bool,
        time_spent_seconds: int = 0,
    ) -> SkillProgress:
        """Record one graded attempt in its own transaction and return updated progress."""
        with session_scope(self.session_factory) as session:
            return self.apply_attempt(
                ProgressStore(session), learner_id, skill_id, is_correct, time_spent_seconds
            )

    def apply_attempt(
        self,
        store: ProgressStore,
        learner_id: str,
        skill_id: str,
        is_correct: bool,
        time_spent_seconds: int = 0,
        now: datetime | None = None,
    ) -> SkillProgress:
        """
        Update progress for one attempt inside an existing transaction.

        No deduplication happens here: each call is one attempt, including
        repeated correct answers to the same exercise across sessions.
        """
        skill = store.get_skill(skill_id)
        progress = store.get_or_create_progress(learner_id, skill_id)
        now = now or utcnow()

        progress.attempts_count += 1
        progress.level_attempts += 1
        if is_correct:
            progress.correct_count += 1
            progress.level_correct += 1
            progress.current_streak += 1
            progress.best_streak = max(progress.best_streak, progress.current_streak)
        else:
            progress.current_streak = 0
        progress.total_time_seconds += max(0, int(time_spent_seconds or 0))
        progress.last_attempt_at = now

        previous_level = progress.mastery_level
        if self.should_level_up(progress):
            progress.mastery_level = previous_level + 1
            progress.level_attempts = 0
            progress.level_correct = 0
            progress.level_changed_at = now
            logger.info(
                f"Learner {learner_id} reached mastery level {progress.mastery_level} on skill {skill_id}"
            )
            if progress.mastery_level >= self.settings.mastery_max_level:
                successor = store.get_successor_skill(skill)
                if successor is not None:
                    logger.info(f"Skill {successor.id} unlocked for learner {learner_id}")

        store.session.flush()
        return progress

    def should_level_up(self, progress: SkillProgress) -> bool:
        """Threshold rule on the attempts made since the last level change."""
        cfg = self.settings
        if progress.mastery_level >= cfg.mastery_max_level:
            return False
        if progress.level_attempts < cfg.mastery_min_attempts:
            return False
        return progress.level_correct / progress.level_attempts >= cfg.mastery_accuracy_threshold

    def get_progress(self, learner_id: str, skill_id: str) -> SkillProgress | None:
        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            store.get_skill(skill_id)
            return store.get_progress(learner_id, skill_id)

    def get_mastery_level(self, store: ProgressStore, learner_id: str, skill_id: str) -> int:
        progress = store.get_progress(learner_id, skill_id)
        return progress.mastery_level if progress else 0

    # ========================================
    # Unlocks
    # ========================================

    def is_unlocked(self, learner_id: str, skill_id: str) -> bool:
        """Whether the learner may practice the skill."""
        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            return self.unlock_reason(store, learner_id, store.get_skill(skill_id)) is not None

    def unlock_reason(self, store: ProgressStore, learner_id: str, skill: Skill) -> str | None:
        """Why a skill is available to the learner, or None when it is locked."""
        predecessor = store.get_predecessor_skill(skill)
        if predecessor is None:
            return UNLOCK_FIRST_IN_DOMAIN
        if self.get_mastery_level(store, learner_id, predecessor.id) >= self.settings.mastery_max_level:
            return UNLOCK_PREREQUISITE_MASTERED
        if store.get_unlock_record(learner_id, skill.id) is not None:
            return UNLOCK_GRANTED
        return None

    def grant_unlock(self, learner_id: str, skill_id: str, reason: str = "manual") -> UnlockRecord:
        """Unlock a skill outside the default chain. Granting twice keeps the first record."""
        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            store.get_skill(skill_id)
            existing = store.get_unlock_record(learner_id, skill_id)
            if existing is not None:
                return existing
            record = store.add_unlock_record(
                UnlockRecord(learner_id=learner_id, skill_id=skill_id, reason=reason)
            )
            logger.info(f"Skill {skill_id} granted to learner {learner_id} ({reason})")
            return record

    def list_domain_skills(self, learner_id: str, domain_id: str) -> list[SkillStatus]:
        """Every skill of a domain in chain order with the learner's progress and availability."""
        with session_scope(self.session_factory) as session:
            store = ProgressStore(session)
            skills = store.list_domain_skills(domain_id)
            skill_ids = [s.id for s in skills]
            progress_map = store.list_learner_progress(learner_id, skill_ids)
            granted = store.list_unlocked_skill_ids(learner_id, skill_ids)

            statuses: list[SkillStatus] = []
            previous: Skill | None = None
            for skill in skills:
                progress = progress_map.get(skill.id)
                if previous is None:
                    reason = UNLOCK_FIRST_IN_DOMAIN
                elif (
                    previous.id in progress_map
                    and progress_map[previous.id].mastery_level >= self.settings.mastery_max_level
                ):
                    reason = UNLOCK_PREREQUISITE_MASTERED
                elif skill.id in granted:
                    reason = UNLOCK_GRANTED
                else:
                    reason = None

                statuses.append(
                    SkillStatus(
                        skill_id=skill.id,
                        domain_id=skill.domain_id,
                        code=skill.code,
                        name=skill.name,
                        order_index=skill.order_index,
                        difficulty_level=skill.difficulty_level,
                        mastery_level=progress.mastery_level if progress else 0,
                        attempts_count=progress.attempts_count if progress else 0,
                        correct_count=progress.correct_count if progress else 0,
                        is_unlocked=reason is not None,
                        unlock_reason=reason,
                        last_attempt_at=progress.last_attempt_at if progress else None,
                    )
                )
                previous = skill
            return statuses
