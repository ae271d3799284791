"""
FastAPI dependencies.

Routers receive the wired EngineServices from the application state, so a
test can build an app around its own database and collaborators.
"""

from __future__ import annotations

from fastapi import Request

from practice_engine.services import EngineServices


def get_services(request: Request) -> EngineServices:
    return request.app.state.services
