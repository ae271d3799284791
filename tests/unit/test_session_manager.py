"""
Unit tests for SessionManager.

Tests:
- Pacing: target minutes -> exercise count
- Creation, duplicate detection, no-content and locked-skill failures
- Answer submission: points, step index, completion, mastery and stats
- Abandonment (idempotent) and recap (accuracy, streak bonus, one-time XP)
"""

import pytest

from practice_engine.core.enums import SessionStatus, SessionType
from practice_engine.db.database import session_scope
from practice_engine.db.models import Exercise
from practice_engine.exceptions import (
    DuplicateActiveSession,
    InvalidSessionState,
    NoContentAvailable,
    SessionNotFound,
    SkillLocked,
)
from practice_engine.sessions.manager import SessionManager, round_half_up
from practice_engine.services import build_services

LEARNER = "learner-1"


def _answer_all(manager, practice_session, outcomes):
    results = []
    for exercise_id, is_correct in zip(practice_session.exercise_ids, outcomes):
        results.append(manager.submit_answer(practice_session.id, exercise_id, is_correct, 20))
    return results


class TestPacing:
    """Minutes to exercise count at 1.5 exercises per minute."""

    @pytest.mark.parametrize(
        "minutes,expected",
        [(10, 15), (5, 8), (3, 5), (1, 2), (0.2, 1)],
    )
    def test_target_exercise_count(self, services, minutes, expected):
        assert services.sessions.target_exercise_count(minutes) == expected

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_rejects_non_positive_budget(self, services, minutes):
        with pytest.raises(ValueError):
            services.sessions.target_exercise_count(minutes)

    def test_round_half_up(self):
        assert round_half_up(75.5) == 76
        assert round_half_up(2.5) == 3
        assert round_half_up(74.4) == 74


class TestCreateSession:
    def test_practice_session_steps(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 20)

        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], "practice", 10)

        assert practice_session.status == SessionStatus.IN_PROGRESS.value
        assert practice_session.target_exercises == 15
        assert practice_session.exercise_count == 15
        assert practice_session.total_steps == 16
        assert practice_session.current_step == 0

    def test_learn_session_has_theory_step(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 4)

        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], SessionType.LEARN, 10)

        # Pool of 4 is smaller than 15; the empty generator adds nothing
        assert practice_session.exercise_count == 4
        assert practice_session.total_steps == 1 + 4 + 1

    def test_duplicate_active_session(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 10)
        existing = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        with pytest.raises(DuplicateActiveSession) as exc_info:
            services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        assert exc_info.value.session_id == existing.id
        assert services.sessions.get_active_session(LEARNER, skill_chain[0]).id == existing.id

    def test_other_skill_not_blocked(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        make_exercises(skill_chain[1], 3)
        services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        other = services.sessions.create_session(LEARNER, skill_chain[1], target_minutes=2)

        assert other.skill_id == skill_chain[1]

    def test_no_content(self, services, skill_chain):
        with pytest.raises(NoContentAvailable):
            services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=5)

        assert services.sessions.get_active_session(LEARNER, skill_chain[0]) is None

    def test_generated_content_fills_empty_pool(self, services, generator, skill_chain):
        generator.payloads = [{"type": "multiple_choice", "content": {"prompt": str(i)}} for i in range(3)]

        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        assert practice_session.exercise_count == 3

    def test_locked_skill_refused_when_required(self, settings, engine, skill_chain, make_exercises):
        settings.require_unlocked_skill = True
        services = build_services(settings, engine=engine)
        make_exercises(skill_chain[1], 3)

        with pytest.raises(SkillLocked):
            services.sessions.create_session(LEARNER, skill_chain[1], target_minutes=2)

    def test_locked_skill_allowed_by_default(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[1], 3)

        practice_session = services.sessions.create_session(LEARNER, skill_chain[1], target_minutes=2)

        assert practice_session.skill_id == skill_chain[1]

    def test_records_starting_mastery(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        for _ in range(5):
            services.tracker.record_attempt(LEARNER, skill_chain[0], True)

        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        assert practice_session.starting_mastery_level == 1


class TestSubmitAnswer:
    def test_points_and_steps(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        first, second, third = _answer_all(services.sessions, practice_session, [True, False, True])

        assert first.points_awarded == 10
        assert second.points_awarded == 2
        assert [r.current_step for r in (first, second, third)] == [1, 2, 3]
        assert not second.is_complete
        assert third.is_complete
        assert third.reward_points == 22
        assert third.exercises_correct == 2

        stored = services.sessions.get_session(practice_session.id)
        assert stored.status == SessionStatus.COMPLETED.value
        assert stored.completed_at is not None
        assert stored.current_step == stored.total_steps - 1

    def test_learn_session_counts_theory_step(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], SessionType.LEARN, 1)

        acknowledged = services.sessions.acknowledge_theory(practice_session.id)
        again = services.sessions.acknowledge_theory(practice_session.id)
        result = services.sessions.submit_answer(practice_session.id, practice_session.exercise_ids[0], True)

        assert acknowledged.theory_shown
        assert acknowledged.current_step == 1
        assert again.current_step == 1
        assert result.current_step == 2

    def test_theory_on_practice_session_rejected(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)

        with pytest.raises(InvalidSessionState):
            services.sessions.acknowledge_theory(practice_session.id)

    def test_submit_to_completed_session(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(services.sessions, practice_session, [True, True])

        with pytest.raises(InvalidSessionState):
            services.sessions.submit_answer(practice_session.id, practice_session.exercise_ids[0], True)

    def test_exercise_not_in_session(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        make_exercises(skill_chain[1], 1)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)

        with pytest.raises(InvalidSessionState):
            services.sessions.submit_answer(practice_session.id, f"{skill_chain[1]}-ex-0", True)

        assert services.sessions.list_attempts(practice_session.id) == []

    def test_unknown_session(self, services):
        with pytest.raises(SessionNotFound):
            services.sessions.submit_answer("missing", "ex", True)

    def test_updates_mastery_and_statistics(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 5)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=3)

        results = _answer_all(services.sessions, practice_session, [True] * 5)

        assert results[-1].mastery_level == 1
        progress = services.tracker.get_progress(LEARNER, skill_chain[0])
        assert progress.attempts_count == 5
        assert progress.total_time_seconds == 100
        with session_scope(services.session_factory) as session:
            exercise = session.get(Exercise, practice_session.exercise_ids[0])
            assert exercise.times_answered == 1
            assert exercise.times_correct == 1

    def test_attempts_are_recorded(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(services.sessions, practice_session, [False, True])

        attempts = services.sessions.list_attempts(practice_session.id)

        assert sorted(a.is_correct for a in attempts) == [False, True]
        assert all(a.learner_id == LEARNER for a in attempts)


class TestAbandon:
    def test_abandon_is_idempotent(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)
        services.sessions.submit_answer(practice_session.id, practice_session.exercise_ids[0], True)

        first = services.sessions.abandon_session(practice_session.id)
        second = services.sessions.abandon_session(practice_session.id)

        assert first.status == SessionStatus.ABANDONED.value
        assert second.status == SessionStatus.ABANDONED.value
        assert second.abandoned_at == first.abandoned_at
        assert len(services.sessions.list_attempts(practice_session.id)) == 1

    def test_abandon_frees_skill_for_new_session(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 6)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)
        services.sessions.abandon_session(practice_session.id)

        replacement = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        assert replacement.id != practice_session.id
        assert services.sessions.get_active_session(LEARNER, skill_chain[0]).id == replacement.id

    def test_submit_after_abandon(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        services.sessions.abandon_session(practice_session.id)

        with pytest.raises(InvalidSessionState):
            services.sessions.submit_answer(practice_session.id, practice_session.exercise_ids[0], True)

    def test_abandon_completed_rejected(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(services.sessions, practice_session, [True, True])

        with pytest.raises(InvalidSessionState):
            services.sessions.abandon_session(practice_session.id)


class TestRecap:
    def test_accuracy_and_streak_bonus(self, services, xp_service, clock, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 8)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=5)
        assert practice_session.exercise_count == 8
        clock.advance(240)

        _answer_all(services.sessions, practice_session, [True] * 6 + [False] * 2)
        recap = services.sessions.compute_recap(practice_session.id)

        assert recap.exercises_completed == 8
        assert recap.exercises_correct == 6
        assert recap.accuracy == 75
        assert recap.streak_bonus is True
        assert recap.reward_points == 6 * 10 + 2 * 2
        assert recap.elapsed_seconds == 240
        assert recap.xp_credited
        assert xp_service.xp_calls == [(LEARNER, 64, "session_complete")]
        assert xp_service.streak_calls == [LEARNER]

    def test_xp_credited_once(self, services, xp_service, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(services.sessions, practice_session, [True, True])

        first = services.sessions.compute_recap(practice_session.id)
        second = services.sessions.compute_recap(practice_session.id)

        assert first == second
        assert len(xp_service.xp_calls) == 1
        assert len(xp_service.streak_calls) == 1

    def test_no_streak_bonus_below_three(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)
        _answer_all(services.sessions, practice_session, [True, True, False])

        recap = services.sessions.compute_recap(practice_session.id)

        assert recap.accuracy == 67
        assert recap.streak_bonus is False

    def test_level_up_reported(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 5)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=3)
        _answer_all(services.sessions, practice_session, [True] * 5)

        recap = services.sessions.compute_recap(practice_session.id)

        assert recap.level_up is True
        assert recap.mastery_level == 1

    def test_recap_requires_completion(self, services, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 3)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=2)

        with pytest.raises(InvalidSessionState):
            services.sessions.compute_recap(practice_session.id)

    def test_xp_failure_retried_on_next_recap(self, services, xp_service, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(services.sessions, practice_session, [True, False])
        xp_service.fail = True

        failed = services.sessions.compute_recap(practice_session.id)
        xp_service.fail = False
        retried = services.sessions.compute_recap(practice_session.id)

        assert not failed.xp_credited
        assert retried.xp_credited
        assert xp_service.xp_calls == [(LEARNER, 12, "session_complete")]

    def test_streak_failure_does_not_repeat_xp(self, services, xp_service, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(services.sessions, practice_session, [True, True])
        xp_service.streak_failures = 1

        first = services.sessions.compute_recap(practice_session.id)
        stored = services.sessions.get_session(practice_session.id)
        second = services.sessions.compute_recap(practice_session.id)

        assert first.xp_credited and second.xp_credited
        assert stored.xp_credited is True
        assert stored.streak_updated is False
        assert xp_service.xp_calls == [(LEARNER, 20, "session_complete")]
        assert xp_service.streak_calls == [LEARNER]
        assert services.sessions.get_session(practice_session.id).streak_updated is True

    def test_xp_failure_keeps_streak_update(self, services, xp_service, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        practice_session = services.sessions.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(services.sessions, practice_session, [True, True])
        xp_service.fail = True

        services.sessions.compute_recap(practice_session.id)
        xp_service.fail = False
        services.sessions.compute_recap(practice_session.id)

        assert len(xp_service.xp_calls) == 1
        assert xp_service.streak_calls == [LEARNER]


class TestConstruction:
    def test_defaults_wire_null_collaborators(self, settings, session_factory, skill_chain, make_exercises):
        make_exercises(skill_chain[0], 2)
        manager = SessionManager(session_factory, settings=settings)

        practice_session = manager.create_session(LEARNER, skill_chain[0], target_minutes=1)
        _answer_all(manager, practice_session, [True, True])

        assert manager.compute_recap(practice_session.id).xp_credited
