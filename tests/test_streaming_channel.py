"""Tests for StreamingChannel - state machine, retry, best-effort send."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from fleet_simulator.channels.base import ChannelState, StreamSession
from fleet_simulator.channels.streaming import StreamingChannel
from fleet_simulator.models import Device, Reading
from fleet_simulator.sensor_kinds import SensorKind

# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------


def _reading() -> Reading:
    return Reading.online(Device(1, (SensorKind.HUMIDITY,)), SensorKind.HUMIDITY, 50.0)


class _FakeSession(StreamSession):
    """In-memory session for testing StreamingChannel."""

    def __init__(self, *, connect_failures: int = 0, send_failures: int = 0, connect_delay_s: float = 0.0) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self._open = False
        self._connect_failures = connect_failures
        self._send_failures = send_failures
        self._connect_delay_s = connect_delay_s

    async def connect(self) -> None:
        self.connect_calls += 1
        if self._connect_delay_s:
            await asyncio.sleep(self._connect_delay_s)
        if self.connect_calls <= self._connect_failures:
            raise ConnectionRefusedError("Simulated connect failure")
        self._open = True

    async def send(self, destination: str, payload: dict[str, Any]) -> None:
        if self._send_failures > 0:
            self._send_failures -= 1
            self._open = False
            raise ConnectionResetError("Simulated transport failure")
        self.sent.append((destination, payload))

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._open = False

    @property
    def is_connected(self) -> bool:
        return self._open

    def drop(self) -> None:
        self._open = False


# -----------------------------------------------------------------------
# connect_with_retry
# -----------------------------------------------------------------------


class TestConnectWithRetry:
    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self) -> None:
        session = _FakeSession()
        channel = StreamingChannel(session, retry_delay_s=0)
        assert channel.state is ChannelState.DISCONNECTED
        assert await channel.connect_with_retry(3)
        assert channel.state is ChannelState.CONNECTED
        assert session.connect_calls == 1

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self) -> None:
        session = _FakeSession(connect_failures=2)
        channel = StreamingChannel(session, retry_delay_s=0)
        assert await channel.connect_with_retry(5)
        assert session.connect_calls == 3

    @pytest.mark.asyncio
    async def test_exhaustion_returns_false(self) -> None:
        session = _FakeSession(connect_failures=99)
        channel = StreamingChannel(session, retry_delay_s=0)
        assert not await channel.connect_with_retry(4)
        assert session.connect_calls == 4
        assert channel.state is ChannelState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_linear_backoff(self, monkeypatch: pytest.MonkeyPatch) -> None:
        delays: list[float] = []

        async def _fake_sleep(delay: float) -> None:
            delays.append(delay)

        monkeypatch.setattr("fleet_simulator.channels.streaming.asyncio.sleep", _fake_sleep)
        channel = StreamingChannel(_FakeSession(connect_failures=99), retry_delay_s=0.5)
        assert not await channel.connect_with_retry(4)
        assert delays == [0.5, 1.0, 1.5]

    @pytest.mark.asyncio
    async def test_attempt_timeout(self) -> None:
        session = _FakeSession(connect_delay_s=1.0)
        channel = StreamingChannel(session, retry_delay_s=0, connect_timeout_s=0.01)
        assert not await channel.connect_with_retry(2)
        assert session.connect_calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_serialised(self) -> None:
        session = _FakeSession(connect_delay_s=0.05)
        channel = StreamingChannel(session, retry_delay_s=0)
        results = await asyncio.gather(*(channel.connect_with_retry(3) for _ in range(5)))
        assert all(results)
        assert session.connect_calls == 1

    @pytest.mark.asyncio
    async def test_already_connected_is_noop(self) -> None:
        session = _FakeSession()
        channel = StreamingChannel(session, retry_delay_s=0)
        await channel.connect_with_retry(1)
        assert await channel.connect_with_retry(1)
        assert session.connect_calls == 1


# -----------------------------------------------------------------------
# send
# -----------------------------------------------------------------------


class TestSend:
    @pytest.mark.asyncio
    async def test_publishes_to_destination(self) -> None:
        session = _FakeSession()
        channel = StreamingChannel(session, destination="/app/sensorData", retry_delay_s=0)
        await channel.connect_with_retry(1)

        assert await channel.send(_reading())
        destination, payload = session.sent[0]
        assert destination == "/app/sensorData"
        assert payload["deviceId"] == 1
        assert payload["sensorType"] == "HUMIDITY"

    @pytest.mark.asyncio
    async def test_inline_reconnect_when_disconnected(self) -> None:
        session = _FakeSession(connect_failures=1)
        channel = StreamingChannel(session, retry_delay_s=0)
        assert await channel.send(_reading())
        assert session.connect_calls == 2
        assert len(session.sent) == 1

    @pytest.mark.asyncio
    async def test_drops_when_reconnect_fails(self, caplog: pytest.LogCaptureFixture) -> None:
        session = _FakeSession(connect_failures=99)
        channel = StreamingChannel(session, retry_delay_s=0, inline_reconnect_attempts=3)
        assert not await channel.send(_reading())
        assert session.connect_calls == 3
        assert session.sent == []
        assert "dropping reading" in caplog.text

    @pytest.mark.asyncio
    async def test_inline_reconnect_does_not_back_off(self) -> None:
        session = _FakeSession(connect_failures=99)
        channel = StreamingChannel(session, retry_delay_s=1.0)
        assert not await asyncio.wait_for(channel.send(_reading()), timeout=0.5)
        assert session.connect_calls == 3

    @pytest.mark.asyncio
    async def test_failed_reconnect_cools_down(self) -> None:
        session = _FakeSession(connect_failures=99)
        channel = StreamingChannel(session, retry_delay_s=0, reconnect_cooldown_s=60.0)
        assert not await channel.send(_reading())
        assert not await channel.send(_reading())
        assert not await channel.send(_reading())
        assert session.connect_calls == 3

    @pytest.mark.asyncio
    async def test_reconnects_again_after_cooldown(self) -> None:
        session = _FakeSession(connect_failures=3)
        channel = StreamingChannel(session, retry_delay_s=0, reconnect_cooldown_s=0.0)
        assert not await channel.send(_reading())
        assert await channel.send(_reading())
        assert session.connect_calls == 4
        assert len(session.sent) == 1

    @pytest.mark.asyncio
    async def test_send_failure_swallowed_and_marks_disconnected(self) -> None:
        session = _FakeSession(send_failures=1)
        channel = StreamingChannel(session, retry_delay_s=0)
        await channel.connect_with_retry(1)

        assert not await channel.send(_reading())
        assert channel.state is ChannelState.DISCONNECTED
        # next send reconnects inline
        assert await channel.send(_reading())
        assert session.connect_calls == 2

    @pytest.mark.asyncio
    async def test_transport_drop_detected(self) -> None:
        session = _FakeSession()
        channel = StreamingChannel(session, retry_delay_s=0)
        await channel.connect_with_retry(1)
        session.drop()
        assert not channel.is_connected
        assert channel.state is ChannelState.DISCONNECTED


# -----------------------------------------------------------------------
# disconnect
# -----------------------------------------------------------------------


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect(self) -> None:
        session = _FakeSession()
        channel = StreamingChannel(session, retry_delay_s=0)
        await channel.connect_with_retry(1)
        await channel.disconnect()
        assert channel.state is ChannelState.DISCONNECTED
        assert session.disconnect_calls == 1

    @pytest.mark.asyncio
    async def test_disconnect_idempotent(self) -> None:
        session = _FakeSession()
        channel = StreamingChannel(session, retry_delay_s=0)
        await channel.disconnect()
        await channel.connect_with_retry(1)
        await channel.disconnect()
        await channel.disconnect()
        assert session.disconnect_calls == 1
        assert channel.state is ChannelState.DISCONNECTED
