"""
XP / daily streak collaborator.

Invoked by the session lifecycle manager once per completed session.
"""

from __future__ import annotations

from typing import Protocol

import httpx
from loguru import logger


class XpService(Protocol):
    """Interface for reward crediting."""

    def add_xp(self, learner_id: str, amount: int, reason_tag: str) -> None:
        ...

    def update_daily_streak(self, learner_id: str) -> None:
        ...


class NullXpService:
    """XP service used when none is configured; only logs."""

    def add_xp(self, learner_id: str, amount: int, reason_tag: str) -> None:
        logger.info(f"XP not credited (no service configured): learner={learner_id} amount={amount} reason={reason_tag}")

    def update_daily_streak(self, learner_id: str) -> None:
        logger.debug(f"Daily streak not updated (no service configured): learner={learner_id}")


class HttpXpService:
    """HTTP client for a remote XP/streak service."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def add_xp(self, learner_id: str, amount: int, reason_tag: str) -> None:
        """
        Credit reward points to a learner.

        Raises:
            httpx.HTTPError: On API communication failure
        """
        response = self.client.post(
            f"/learners/{learner_id}/xp",
            json={"amount": amount, "reason": reason_tag},
        )
        response.raise_for_status()
        logger.debug(f"Credited {amount} XP to learner {learner_id} ({reason_tag})")

    def update_daily_streak(self, learner_id: str) -> None:
        """Record today's activity for the learner's daily streak."""
        response = self.client.post(f"/learners/{learner_id}/streak")
        response.raise_for_status()
