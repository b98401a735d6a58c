"""Streaming session abstraction.

Provides:
- ``StreamSession`` - abstract persistent publish session.  The simulator
                      never looks at the wire protocol; it only connects,
                      sends a payload to a destination and disconnects.
- ``ChannelState``  - lifecycle states of a :class:`StreamingChannel`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any

__all__ = ["ChannelState", "StreamSession"]


class ChannelState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class StreamSession(ABC):
    """Abstract base class for persistent publish sessions.

    Concrete sessions must implement ``connect``, ``send``, ``disconnect``
    and ``is_connected``.  ``connect`` returns only once the remote end has
    acknowledged the session and raises on failure.  ``send`` raises when
    the transport is broken.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the session; raise on failure."""

    @abstractmethod
    async def send(self, destination: str, payload: dict[str, Any]) -> None:
        """Publish *payload* to *destination*."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session.  Must be safe to call when already closed."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """``True`` while the session can accept ``send`` calls."""
