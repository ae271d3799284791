"""
Entry point for the adaptive practice engine HTTP service.

Run with:
    uvicorn practice_engine.api.main:app --reload --port 8100
    python main.py
"""

import uvicorn

from practice_engine.config import get_settings

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "practice_engine.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
