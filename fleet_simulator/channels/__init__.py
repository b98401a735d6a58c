"""Delivery channels for simulated readings.

Import what you need directly from this package::

    from fleet_simulator.channels import RequestChannel, StreamingChannel
"""

from __future__ import annotations

from fleet_simulator.channels.base import ChannelState, StreamSession
from fleet_simulator.channels.request import RequestChannel
from fleet_simulator.channels.streaming import StreamingChannel
from fleet_simulator.channels.websocket import WebSocketSession

__all__ = [
    "ChannelState",
    "RequestChannel",
    "StreamSession",
    "StreamingChannel",
    "WebSocketSession",
]
