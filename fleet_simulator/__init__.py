"""Device Fleet Simulator - emulate a fleet of IoT devices that register
with a telemetry-ingestion service and stream synthetic readings over
HTTP and a persistent WebSocket session, with random connectivity loss
and injected anomalies.

Quick start::

    from fleet_simulator import FleetController, SimulatorSettings

    settings = SimulatorSettings(
        device_count=5,
        sensor_types=["TEMPERATURE", "MOTION"],
        target_url="http://localhost:8080/api/sensor",
        data_push_interval_ms=1000,
    )
    FleetController(settings).run(duration_s=30)
"""

from __future__ import annotations

from fleet_simulator.config import SimulatorSettings, load_yaml_config
from fleet_simulator.controller import FleetController
from fleet_simulator.errors import BootstrapError
from fleet_simulator.models import Device, FleetState, Reading
from fleet_simulator.sensor_kinds import SensorKind

__all__ = [
    "BootstrapError",
    "Device",
    "FleetController",
    "FleetState",
    "Reading",
    "SensorKind",
    "SimulatorSettings",
    "load_yaml_config",
]

__version__ = "0.1.0"
