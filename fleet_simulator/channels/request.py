"""Request channel - POSTs each reading as JSON to the ingestion endpoint."""

from __future__ import annotations

import logging

import httpx

from fleet_simulator.models import Reading

__all__ = ["RequestChannel"]

logger = logging.getLogger("fleet_simulator.channels.request")


class RequestChannel:
    """Synchronous request/response delivery of readings.

    ``send`` returns only after the downstream service answered, and
    raises ``httpx.HTTPError`` on transport failure or a non-2xx status.

    Parameters:
        client: Shared ``httpx.AsyncClient``.
        url: Ingestion endpoint (must accept ``POST``).
    """

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    @property
    def url(self) -> str:
        return self._url

    async def send(self, reading: Reading) -> None:
        resp = await self._client.post(
            self._url,
            content=reading.to_json(),
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()
        logger.debug("POST %s - device %d - HTTP %d", self._url, reading.target_id, resp.status_code)
