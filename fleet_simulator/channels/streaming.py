"""Streaming channel - best-effort publishing of readings on a persistent
session, with serialised connect-with-retry and linear backoff.

The channel never raises out of :meth:`StreamingChannel.send`: a reading
that cannot be published is logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging

from fleet_simulator.channels.base import ChannelState, StreamSession
from fleet_simulator.models import Reading

__all__ = ["StreamingChannel"]

logger = logging.getLogger("fleet_simulator.channels.streaming")


class StreamingChannel:
    """Owns one :class:`StreamSession` and its connection lifecycle.

    Parameters:
        session: The transport session.
        destination: Fixed destination every reading is published to.
        retry_delay_s: Base delay for the linear connect backoff.
        connect_timeout_s: Upper bound for a single connect attempt.
        inline_reconnect_attempts: Attempts made by ``send`` when it finds
            the channel disconnected.  Inline attempts do not back off.
        reconnect_cooldown_s: After a failed inline reconnect, ``send``
            drops readings without reconnecting for this long.
    """

    def __init__(
        self,
        session: StreamSession,
        *,
        destination: str = "/app/sensorData",
        retry_delay_s: float = 1.0,
        connect_timeout_s: float = 5.0,
        inline_reconnect_attempts: int = 3,
        reconnect_cooldown_s: float = 5.0,
    ) -> None:
        self._session = session
        self._destination = destination
        self._retry_delay_s = retry_delay_s
        self._connect_timeout_s = connect_timeout_s
        self._inline_attempts = inline_reconnect_attempts
        self._reconnect_cooldown_s = reconnect_cooldown_s
        self._inline_failed_at: float | None = None
        self._state = ChannelState.DISCONNECTED
        self._connect_lock = asyncio.Lock()

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def destination(self) -> str:
        return self._destination

    @property
    def is_connected(self) -> bool:
        if self._state is ChannelState.CONNECTED and not self._session.is_connected:
            logger.info("Streaming session dropped by transport")
            self._state = ChannelState.DISCONNECTED
        return self._state is ChannelState.CONNECTED

    async def connect_with_retry(self, max_attempts: int, base_delay_s: float | None = None) -> bool:
        """Connect, retrying up to *max_attempts* times.

        Waits ``base_delay_s * attempt`` after each failed attempt.  Only
        one caller runs attempts at a time; a caller that waited for the
        lock returns immediately if the session came up meanwhile.
        """
        delay = self._retry_delay_s if base_delay_s is None else base_delay_s
        async with self._connect_lock:
            if self.is_connected:
                return True

            for attempt in range(1, max_attempts + 1):
                self._state = ChannelState.CONNECTING
                try:
                    await asyncio.wait_for(self._session.connect(), timeout=self._connect_timeout_s)
                except Exception as exc:
                    self._state = ChannelState.DISCONNECTED
                    if attempt < max_attempts:
                        logger.warning(
                            "Streaming connect failed (attempt %d/%d): %s - retrying in %.1fs",
                            attempt,
                            max_attempts,
                            exc,
                            delay * attempt,
                        )
                        await asyncio.sleep(delay * attempt)
                    else:
                        logger.error("Streaming connect failed after %d attempts: %s", max_attempts, exc)
                    continue

                self._state = ChannelState.CONNECTED
                self._inline_failed_at = None
                logger.info("Streaming channel connected (attempt %d/%d)", attempt, max_attempts)
                return True

            return False

    async def send(self, reading: Reading) -> bool:
        """Publish *reading*; return ``True`` when it left the process."""
        if not self.is_connected:
            now = asyncio.get_running_loop().time()
            if self._inline_failed_at is not None and now - self._inline_failed_at < self._reconnect_cooldown_s:
                logger.debug("Streaming reconnect cooling down - dropping reading for device %d", reading.target_id)
                return False
            if not await self.connect_with_retry(self._inline_attempts, base_delay_s=0):
                self._inline_failed_at = asyncio.get_running_loop().time()
                logger.warning("Streaming channel not connected - dropping reading for device %d", reading.target_id)
                return False

        try:
            await self._session.send(self._destination, reading.to_dict())
        except Exception as exc:
            logger.error("Streaming send to %s failed: %s - dropping reading", self._destination, exc)
            self._state = ChannelState.DISCONNECTED
            return False

        logger.debug("Streamed reading for device %d to %s", reading.target_id, self._destination)
        return True

    async def disconnect(self) -> None:
        """Tear the session down.  Safe to call when already disconnected."""
        async with self._connect_lock:
            if self._state is ChannelState.DISCONNECTED and not self._session.is_connected:
                return
            try:
                await self._session.disconnect()
            except Exception as exc:
                logger.warning("Error while closing streaming session: %s", exc)
            finally:
                self._state = ChannelState.DISCONNECTED
