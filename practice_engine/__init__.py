"""
Adaptive Practice Engine.

Builds bounded practice sessions for a learner and a skill, tracks progress
through them, updates per-skill mastery and gates access to later skills.

Subpackages:
- db: SQLAlchemy models, transaction scope, Progress Store
- learning: exercise selection/rotation, mastery & unlock graph
- quality: exercise quality ledger
- sessions: session lifecycle manager
- integrations: exercise generator and XP/streak collaborators
- api / cli: FastAPI and Typer surfaces
"""

__version__ = "1.0.0"
