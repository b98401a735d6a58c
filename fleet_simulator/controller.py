"""Fleet controller - top-level orchestrator and public control surface.

Wires settings, HTTP client, both delivery channels, metrics and the
scheduler together; runs the bootstrap sequence (validate -> create
devices -> readiness probe -> registration -> streaming connect) and
exposes the manual operations used while the simulation is running.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import signal
import threading

import httpx

from fleet_simulator import metrics
from fleet_simulator.channels.base import StreamSession
from fleet_simulator.channels.request import RequestChannel
from fleet_simulator.channels.streaming import StreamingChannel
from fleet_simulator.channels.websocket import WebSocketSession
from fleet_simulator.config import SimulatorSettings
from fleet_simulator.errors import BootstrapError
from fleet_simulator.metrics import InMemoryMetrics, MetricsSink
from fleet_simulator.models import Device, FleetState, Reading
from fleet_simulator.readiness import ReadinessProber
from fleet_simulator.registration import RegistrationClient
from fleet_simulator.scheduler import PeriodicTask, SimulationScheduler
from fleet_simulator.sensor_kinds import anomalous_value

__all__ = ["FleetController"]

logger = logging.getLogger("fleet_simulator")


class FleetController:
    """High-level API for running a simulated device fleet.

    Example::

        from fleet_simulator import FleetController, SimulatorSettings

        settings = SimulatorSettings(
            device_count=10,
            sensor_types=["TEMPERATURE", "HUMIDITY"],
            target_url="http://localhost:8080/api/sensor",
        )
        FleetController(settings).run(duration_s=60)

    Parameters:
        settings:
            Validated :class:`SimulatorSettings`.
        client:
            ``httpx.AsyncClient`` shared by the prober, the registration
            client and the request channel.  Created (and owned) by the
            controller when omitted.
        session:
            Streaming transport.  Defaults to a :class:`WebSocketSession`
            on ``settings.websocket_url``.
        metrics_sink:
            Counter sink; defaults to :class:`InMemoryMetrics`.
        rng:
            Random source; defaults to ``random.Random(settings.random_seed)``.
    """

    def __init__(
        self,
        settings: SimulatorSettings,
        *,
        client: httpx.AsyncClient | None = None,
        session: StreamSession | None = None,
        metrics_sink: MetricsSink | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_s))
        self.metrics = metrics_sink or InMemoryMetrics()
        self._rng = rng or random.Random(settings.random_seed)
        self.fleet = FleetState()

        self._prober = ReadinessProber(self._client)
        self._registration = RegistrationClient(
            self._client,
            max_attempts=settings.registration_max_attempts,
            delay_s=settings.registration_delay_s,
        )
        self.request_channel = RequestChannel(self._client, settings.target_url)
        self.streaming_channel = StreamingChannel(
            session or WebSocketSession(settings.websocket_url, open_timeout_s=settings.stream_connect_timeout_s),
            destination=settings.stream_destination,
            retry_delay_s=settings.stream_retry_delay_s,
            connect_timeout_s=settings.stream_connect_timeout_s,
            reconnect_cooldown_s=settings.interval_s,
        )
        self.scheduler = SimulationScheduler(
            self.fleet,
            self.request_channel,
            self.streaming_channel,
            self.metrics,
            self._rng,
            disconnect_probability=settings.disconnect_probability,
            reconnect_probability=settings.reconnect_probability,
            anomaly_probability=settings.anomaly_probability,
        )
        self._periodic = PeriodicTask(self.scheduler.tick, settings.interval_s, name="fleet-scheduler")
        self._bootstrapped = False

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def bootstrap(self) -> None:
        """Create, probe for and register the fleet.

        Raises:
            BootstrapError: invalid settings, or downstream never ready.
        """
        if self._bootstrapped:
            return
        logger.info("Bootstrapping fleet of %d devices", self.settings.device_count)
        self.settings.validate_for_bootstrap()

        # a retried bootstrap reuses the fleet from the failed attempt
        if not len(self.fleet):
            kinds = self.settings.sensor_kinds
            for device_id in range(1, self.settings.device_count + 1):
                self.fleet.append(Device(device_id, kinds))
            logger.info("Generated %d devices: %s", len(self.fleet), list(self.fleet))

        health_url = self.settings.health_url
        ready = await self._prober.probe(
            health_url,
            max_attempts=self.settings.readiness_max_attempts,
            delay_s=self.settings.readiness_delay_s,
        )
        if not ready:
            raise BootstrapError(f"Downstream health endpoint not reachable at {health_url}")

        registration_url = self.settings.registration_url
        for device in self.fleet.snapshot():
            if device.remote_id is not None:
                continue
            assigned = await self._registration.register(device, registration_url)
            if assigned is not None:
                device.assign_remote_id(assigned)
            else:
                logger.warning("Proceeding without assigned id for local device %d", device.id)

        if not await self.streaming_channel.connect_with_retry(self.settings.stream_connect_attempts):
            logger.warning(
                "Streaming channel unavailable at %s - readings will go over HTTP only until it recovers",
                self.settings.websocket_url,
            )
        self._bootstrapped = True

    # ------------------------------------------------------------------
    # Simulation control
    # ------------------------------------------------------------------

    def start_simulation(self) -> None:
        self.fleet.simulation_enabled = True
        logger.info("Simulation enabled")

    def stop_simulation(self) -> None:
        self.fleet.simulation_enabled = False
        logger.info("Simulation paused")

    @property
    def simulation_enabled(self) -> bool:
        return self.fleet.simulation_enabled

    def disconnect_device(self, device_id: int) -> None:
        device = self.fleet.find(device_id)
        if device is not None and device.connected:
            device.connected = False
            logger.info("[MANUAL DISCONNECT] Device %d", device_id)

    def reconnect_device(self, device_id: int) -> None:
        device = self.fleet.find(device_id)
        if device is not None and not device.connected:
            device.connected = True
            logger.info("[MANUAL RECONNECT] Device %d", device_id)

    async def inject_anomaly_to_device(self, device_id: int) -> int:
        """Send one anomalous reading per sensor kind of a connected device.

        Readings go over the request channel only.  Unknown or
        disconnected devices are ignored.  Returns the number of
        readings accepted by the downstream service.
        """
        device = self.fleet.find(device_id)
        if device is None or not device.connected:
            return 0

        accepted = 0
        for kind in device.sensor_kinds:
            reading = Reading.online(device, kind, anomalous_value(kind, self._rng))
            try:
                await self.request_channel.send(reading)
            except httpx.HTTPError as exc:
                logger.error("Failed to send manual anomaly for device %d: %s", device.id, exc)
                continue
            logger.warning(
                "[MANUAL ANOMALY] localId %d targetId %d Type %s => %s",
                device.id,
                reading.target_id,
                kind,
                reading.value,
            )
            self.metrics.increment(metrics.ANOMALIES)
            accepted += 1
        return accepted

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._periodic.running

    async def start(self) -> None:
        """Bootstrap (once) and start the periodic scheduler."""
        await self.bootstrap()
        self._periodic.start()
        logger.info("Scheduler started - pushing every %d ms", self.settings.data_push_interval_ms)

    async def stop(self) -> None:
        """Stop the scheduler and release the streaming session and HTTP client."""
        await self._periodic.stop()
        await self.streaming_channel.disconnect()
        if self._owns_client:
            await self._client.aclose()
        if isinstance(self.metrics, InMemoryMetrics):
            logger.info("Metrics: %s", self.metrics.snapshot())
        logger.info("Fleet controller stopped")

    def run(self, duration_s: float | None = None) -> None:
        """Blocking entry point - starts the event loop.

        Works inside environments that already have a running event loop
        (Jupyter, IPython) by spawning a dedicated thread with its own loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None and loop.is_running():
            exc: list[BaseException | None] = [None]

            def _target() -> None:
                try:
                    asyncio.run(self.run_async(duration_s=duration_s))
                except KeyboardInterrupt:
                    logger.info("Interrupted by user")
                except BaseException as e:
                    exc[0] = e

            t = threading.Thread(target=_target, daemon=True)
            t.start()
            t.join()
            if exc[0] is not None:
                raise exc[0]
        else:
            try:
                asyncio.run(self.run_async(duration_s=duration_s))
            except KeyboardInterrupt:
                logger.info("Interrupted by user")

    async def run_async(self, duration_s: float | None = None) -> None:
        """Async entry point - run until *duration_s* elapses or a stop signal."""
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        # NotImplementedError on Windows, RuntimeError outside the main thread.
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, stop_event.set)

        try:
            await self.start()
            if duration_s is None:
                await stop_event.wait()
                logger.info("Stop signal received - shutting down")
            else:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop_event.wait(), timeout=duration_s)
                if stop_event.is_set():
                    logger.info("Stop signal received - shutting down")
                else:
                    logger.info("Duration reached (%.1fs) - stopping", duration_s)
        except asyncio.CancelledError:
            logger.info("Fleet controller cancelled")
        finally:
            await self.stop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(sig)
