"""
Component wiring shared by the HTTP API and the CLI.

All engine components are built around one session factory; nothing here
holds per-learner state.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from practice_engine.config import Settings, get_settings
from practice_engine.db.database import build_session_factory, get_engine
from practice_engine.integrations import (
    ExerciseGenerator,
    XpService,
    build_generator,
    build_xp_service,
)
from practice_engine.learning.exercise_selector import ExerciseSelector
from practice_engine.learning.mastery_tracker import MasteryTracker
from practice_engine.quality.ledger import QualityLedger
from practice_engine.sessions.manager import SessionManager


@dataclass
class EngineServices:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    quality_ledger: QualityLedger
    selector: ExerciseSelector
    tracker: MasteryTracker
    sessions: SessionManager
    generator: ExerciseGenerator
    xp_service: XpService

    def close(self) -> None:
        """Release HTTP clients held by the collaborators."""
        for collaborator in (self.generator, self.xp_service):
            close = getattr(collaborator, "close", None)
            if callable(close):
                close()


def build_services(
    settings: Settings | None = None,
    engine: Engine | None = None,
    generator: ExerciseGenerator | None = None,
    xp_service: XpService | None = None,
) -> EngineServices:
    """Build every engine component from settings, with optional overrides for tests."""
    settings = settings or get_settings()
    engine = engine or get_engine(settings)
    session_factory = build_session_factory(engine)
    generator = generator or build_generator(settings)
    xp_service = xp_service or build_xp_service(settings)

    quality_ledger = QualityLedger(session_factory, settings)
    selector = ExerciseSelector(session_factory, generator, quality_ledger, settings)
    tracker = MasteryTracker(session_factory, settings)
    sessions = SessionManager(
        session_factory,
        selector=selector,
        tracker=tracker,
        quality_ledger=quality_ledger,
        xp_service=xp_service,
        settings=settings,
    )
    return EngineServices(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        quality_ledger=quality_ledger,
        selector=selector,
        tracker=tracker,
        sessions=sessions,
        generator=generator,
        xp_service=xp_service,
    )
