"""WebSocket session - publishes readings over a persistent WebSocket.

Each message is a JSON envelope ``{"destination": ..., "payload": ...}``;
the server routes on ``destination``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import websockets
from websockets.protocol import State

from fleet_simulator.channels.base import StreamSession

__all__ = ["WebSocketSession"]

logger = logging.getLogger("fleet_simulator.channels.websocket")


class WebSocketSession(StreamSession):
    """:class:`StreamSession` backed by the ``websockets`` client.

    Parameters:
        url: ``ws://`` or ``wss://`` endpoint.
        open_timeout_s: Timeout for the opening handshake.
        headers: Extra HTTP headers sent with the handshake.
    """

    def __init__(
        self,
        url: str,
        *,
        open_timeout_s: float = 5.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._url = url
        self._open_timeout = open_timeout_s
        self._headers = headers or {}
        self._connection: Any = None

    @property
    def url(self) -> str:
        return self._url

    async def connect(self) -> None:
        if self._connection is not None:
            stale, self._connection = self._connection, None
            try:
                await stale.close()
            except Exception as exc:
                logger.debug("Error closing previous WebSocket connection: %s", exc)
        self._connection = await websockets.connect(
            self._url,
            open_timeout=self._open_timeout,
            additional_headers=self._headers or None,
        )
        logger.info("WebSocket session open - %s", self._url)

    async def send(self, destination: str, payload: dict[str, Any]) -> None:
        if self._connection is None:
            raise RuntimeError("WebSocketSession is not connected")
        message = json.dumps({"destination": destination, "payload": payload}, allow_nan=False)
        await self._connection.send(message)

    async def disconnect(self) -> None:
        if self._connection is not None:
            connection, self._connection = self._connection, None
            await connection.close()
            logger.info("WebSocket session closed - %s", self._url)

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.state is State.OPEN
