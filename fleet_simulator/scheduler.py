"""Simulation scheduler - the periodic driver that advances every device's
connectivity, builds one reading per device and dispatches it on both
delivery channels.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from collections.abc import Awaitable, Callable

import httpx

from fleet_simulator import metrics
from fleet_simulator.channels.request import RequestChannel
from fleet_simulator.channels.streaming import StreamingChannel
from fleet_simulator.metrics import MetricsSink
from fleet_simulator.models import Device, FleetState, Reading
from fleet_simulator.sensor_kinds import anomalous_value, nominal_value

__all__ = ["PeriodicTask", "SimulationScheduler", "TickStats"]

logger = logging.getLogger("fleet_simulator.scheduler")


# -----------------------------------------------------------------------
# Periodic task
# -----------------------------------------------------------------------


class PeriodicTask:
    """Runs an async callable every ``interval_s`` seconds on the event loop.

    Ticks never overlap: when one overruns its period the next one starts
    right after it.  An exception raised by a tick is logged and the loop
    carries on.
    """

    def __init__(self, func: Callable[[], Awaitable[object]], interval_s: float, *, name: str = "periodic") -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._func = func
        self.interval_s = interval_s
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self._name)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self._func()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Periodic task '%s' raised", self._name)
            elapsed = loop.time() - started
            if elapsed > self.interval_s:
                logger.warning("Tick took %.2fs, longer than the %.2fs period", elapsed, self.interval_s)
            await asyncio.sleep(max(0.0, self.interval_s - elapsed))


# -----------------------------------------------------------------------
# Scheduler
# -----------------------------------------------------------------------


class TickStats:
    """Counts for one tick, returned by :meth:`SimulationScheduler.tick`."""

    __slots__ = ("anomalies", "disconnected", "reconnected", "sent", "skipped", "streamed")

    def __init__(self) -> None:
        self.sent = 0
        self.streamed = 0
        self.anomalies = 0
        self.disconnected = 0
        self.reconnected = 0
        self.skipped = 0

    def __repr__(self) -> str:
        return (
            f"TickStats(sent={self.sent}, streamed={self.streamed}, anomalies={self.anomalies}, "
            f"disconnected={self.disconnected}, reconnected={self.reconnected}, skipped={self.skipped})"
        )


class SimulationScheduler:
    """Per-tick update-and-send cycle over the whole fleet.

    Parameters:
        fleet: Shared device collection and simulation flag.
        request_channel: Synchronous HTTP delivery.
        streaming_channel: Best-effort streaming delivery.
        metrics_sink: Counter sink.
        rng: Source of randomness for every probabilistic choice.
        disconnect_probability / reconnect_probability / anomaly_probability:
            Per-device, per-tick probabilities.
    """

    def __init__(
        self,
        fleet: FleetState,
        request_channel: RequestChannel,
        streaming_channel: StreamingChannel,
        metrics_sink: MetricsSink,
        rng: random.Random,
        *,
        disconnect_probability: float = 0.1,
        reconnect_probability: float = 0.5,
        anomaly_probability: float = 0.05,
    ) -> None:
        self._fleet = fleet
        self._request = request_channel
        self._streaming = streaming_channel
        self._metrics = metrics_sink
        self._rng = rng
        self.disconnect_probability = disconnect_probability
        self.reconnect_probability = reconnect_probability
        self.anomaly_probability = anomaly_probability
        self.tick_count = 0

    async def tick(self) -> TickStats:
        stats = TickStats()
        if not self._fleet.simulation_enabled:
            logger.debug("Simulation paused - tick skipped")
            return stats

        self.tick_count += 1
        for device in self._fleet.snapshot():
            await self._tick_device(device, stats)

        logger.debug("Tick %d done: %r", self.tick_count, stats)
        return stats

    async def _tick_device(self, device: Device, stats: TickStats) -> None:
        self._advance_connectivity(device, stats)

        if not device.sensor_kinds:
            stats.skipped += 1
            return

        kind = self._rng.choice(device.sensor_kinds)
        if device.connected:
            injected = self._rng.random() < self.anomaly_probability
            value = anomalous_value(kind, self._rng) if injected else nominal_value(kind, self._rng)
            reading = Reading.online(device, kind, value)
            if injected:
                logger.warning(
                    "[ANOMALY] localId %d targetId %d - Type: %s - Value: %s",
                    device.id,
                    reading.target_id,
                    kind,
                    value,
                )
                self._metrics.increment(metrics.ANOMALIES)
                stats.anomalies += 1
        else:
            reading = Reading.offline(device, kind)

        try:
            await self._request.send(reading)
        except httpx.HTTPError as exc:
            logger.error(
                "Failed to send data for local device %d targetId %d: %s",
                device.id,
                reading.target_id,
                exc,
            )
        else:
            self._metrics.increment(metrics.DATA_SENT)
            stats.sent += 1

        if await self._streaming.send(reading):
            stats.streamed += 1

    def _advance_connectivity(self, device: Device, stats: TickStats) -> None:
        if not device.connected:
            if self._rng.random() < self.reconnect_probability:
                device.connected = True
                logger.info("[RECONNECTED] Device %d", device.id)
                self._metrics.increment(metrics.RECONNECTED)
                stats.reconnected += 1
        elif self._rng.random() < self.disconnect_probability:
            device.connected = False
            logger.info("[DISCONNECTED] Device %d", device.id)
            self._metrics.increment(metrics.DISCONNECTED)
            stats.disconnected += 1
