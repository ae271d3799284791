"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
an in-memory SQLite database, a seeded skill chain and fake collaborators.
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from practice_engine.config import Settings
from practice_engine.core.enums import ExerciseType
from practice_engine.db.database import build_engine, build_session_factory, init_db, session_scope
from practice_engine.db.models import Exercise, Skill
from practice_engine.db.progress_store import ProgressStore
from practice_engine.services import build_services

DOMAIN_ID = "fractions"
SKILL_IDS = ["fractions-1", "fractions-2", "fractions-3"]

VARIED_TYPES = [
    ExerciseType.MULTIPLE_CHOICE,
    ExerciseType.FILL_BLANK,
    ExerciseType.DRAG_DROP,
    ExerciseType.INTERACTIVE,
]


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (HTTP API and CLI)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ========================================
# Fake collaborators
# ========================================


class FakeGenerator:
    """Scripted exercise generator recording every request."""

    def __init__(self, payloads=None, error: Exception | None = None):
        self.payloads = list(payloads or [])
        self.error = error
        self.calls: list[tuple[str, int]] = []

    def generate_exercises(self, skill_id: str, count: int):
        self.calls.append((skill_id, count))
        if self.error is not None:
            raise self.error
        return self.payloads[:count]


class RecordingXpService:
    """XP service that records calls instead of crediting."""

    def __init__(self, fail: bool = False, streak_failures: int = 0):
        self.fail = fail
        self.streak_failures = streak_failures
        self.xp_calls: list[tuple[str, int, str]] = []
        self.streak_calls: list[str] = []

    def add_xp(self, learner_id: str, amount: int, reason_tag: str) -> None:
        if self.fail:
            raise ConnectionError("XP service unreachable")
        self.xp_calls.append((learner_id, amount, reason_tag))

    def update_daily_streak(self, learner_id: str) -> None:
        if self.streak_failures:
            self.streak_failures -= 1
            raise ConnectionError("Streak service unreachable")
        self.streak_calls.append(learner_id)


class FakeClock:
    """Deterministic clock for elapsed-time assertions."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 3, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ========================================
# Seeding helpers
# ========================================


def add_exercises(
    session_factory,
    skill_id: str,
    count: int,
    types=None,
    quality_score: int = 50,
    prefix: str | None = None,
) -> list[str]:
    """Add authored exercises cycling through ``types``; returns their ids in insertion order."""
    types = list(types or VARIED_TYPES)
    prefix = prefix or skill_id
    ids = []
    with session_scope(session_factory) as session:
        store = ProgressStore(session)
        for i in range(count):
            exercise_type = types[i % len(types)]
            exercise = store.add_exercise(
                Exercise(
                    id=f"{prefix}-ex-{i}",
                    skill_id=skill_id,
                    exercise_type=ExerciseType(exercise_type).value,
                    difficulty=1,
                    content={"prompt": f"Question {i}"},
                    quality_score=quality_score,
                )
            )
            ids.append(exercise.id)
    return ids


# ========================================
# Database fixtures
# ========================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None, database_url="sqlite://")


@pytest.fixture
def engine(settings):
    """Fresh in-memory database per test."""
    engine = build_engine(settings.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def skill_chain(session_factory):
    """Three skills of one domain, ordered 1..3."""
    with session_scope(session_factory) as session:
        store = ProgressStore(session)
        for index, skill_id in enumerate(SKILL_IDS, start=1):
            store.add_skill(
                Skill(
                    id=skill_id,
                    domain_id=DOMAIN_ID,
                    code=f"FR{index}",
                    name=f"Fractions {index}",
                    order_index=index,
                    difficulty_level=index,
                    excluded_exercise_types=[],
                )
            )
    return list(SKILL_IDS)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def xp_service():
    return RecordingXpService()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def services(settings, engine, generator, xp_service, clock):
    """Fully wired engine components on the in-memory database."""
    services = build_services(settings, engine=engine, generator=generator, xp_service=xp_service)
    services.sessions.clock = clock
    return services


@pytest.fixture
def make_exercises(session_factory):
    """Factory fixture: make_exercises(skill_id, count, types=None, quality_score=50)."""

    def _make(skill_id, count, types=None, quality_score=50, prefix=None):
        return add_exercises(session_factory, skill_id, count, types, quality_score, prefix)

    return _make
