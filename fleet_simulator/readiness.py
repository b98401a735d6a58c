"""Readiness prober - polls the downstream health endpoint before the
fleet is registered.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

__all__ = ["ReadinessProber"]

logger = logging.getLogger("fleet_simulator.readiness")


class ReadinessProber:
    """Bounded polling of a health endpoint."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def probe(self, health_url: str, max_attempts: int = 20, delay_s: float = 0.5) -> bool:
        """Return ``True`` as soon as *health_url* answers 2xx.

        Each failed attempt (transport error or non-2xx status) is followed
        by a ``delay_s`` pause.  Returns ``False`` after *max_attempts*.
        """
        for attempt in range(1, max_attempts + 1):
            logger.info("Pinging downstream (attempt %d/%d): %s", attempt, max_attempts, health_url)
            try:
                resp = await self._client.get(health_url)
            except httpx.HTTPError as exc:
                logger.debug("Health check failed (attempt %d): %s", attempt, exc)
            else:
                if resp.is_success:
                    logger.info("Downstream is up (HTTP %d)", resp.status_code)
                    return True
                logger.debug("Health check returned HTTP %d (attempt %d)", resp.status_code, attempt)

            await asyncio.sleep(delay_s)

        logger.error("Downstream not ready after %d attempts: %s", max_attempts, health_url)
        return False
