"""Settings model and YAML loader for the fleet simulator.

The YAML file has a single ``simulator:`` section.  Keys may be written in
snake_case or in the camelCase used by the downstream service's own
configuration::

    simulator:
      deviceCount: 10
      sensorTypes: [TEMPERATURE, HUMIDITY, MOTION]
      targetUrl: http://localhost:8080/api/sensor
      websocketUrl: ws://localhost:8080/ws-sensor-data
      # deviceRegistrationUrl: http://localhost:8080/api/device
      dataPushIntervalMs: 5000
      log_level: INFO
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import yaml
from pydantic import BaseModel, Field

from fleet_simulator.errors import BootstrapError
from fleet_simulator.sensor_kinds import SensorKind, parse_sensor_kind

__all__ = [
    "DEVICE_PATH",
    "HEALTH_PATH",
    "SimulatorSettings",
    "load_yaml_config",
    "replace_last_path_segment",
]

logger = logging.getLogger("fleet_simulator.config")

HEALTH_PATH = "actuator/health"
DEVICE_PATH = "device"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class SimulatorSettings(BaseModel):
    """Validated simulator configuration.

    Attributes:
        device_count: Number of simulated devices.
        sensor_types: Kind names every device carries, in order.
        target_url: Request-channel endpoint readings are POSTed to.
        websocket_url: Streaming-channel endpoint.
        device_registration_url: Explicit registration endpoint; derived
            from ``target_url`` when empty.
        data_push_interval_ms: Scheduler tick period.
        disconnect_probability / reconnect_probability / anomaly_probability:
            Per-tick, per-device transition and injection probabilities.
        readiness_max_attempts / readiness_delay_s: Health-probe polling.
        registration_max_attempts / registration_delay_s: Per-device
            registration retry policy.
        stream_connect_attempts / stream_retry_delay_s: Streaming connect
            retry policy (linear backoff base).
        stream_connect_timeout_s: Upper bound for one connect attempt.
        stream_destination: Destination every reading is published to.
        request_timeout_s: HTTP timeout for every request.
        random_seed: Seed for the shared random source (``None`` = OS entropy).
        duration_s: Optional run duration.
        log_level: Logging level string.
    """

    device_count: int = Field(default=1, ge=0)
    sensor_types: list[str] = Field(default_factory=list)
    target_url: str = ""
    websocket_url: str = "ws://localhost:8080/ws-sensor-data"
    device_registration_url: str | None = None
    data_push_interval_ms: int = Field(default=5000, gt=0)

    disconnect_probability: float = Field(default=0.1, ge=0.0, le=1.0)
    reconnect_probability: float = Field(default=0.5, ge=0.0, le=1.0)
    anomaly_probability: float = Field(default=0.05, ge=0.0, le=1.0)

    readiness_max_attempts: int = Field(default=20, ge=1)
    readiness_delay_s: float = Field(default=0.5, ge=0.0)
    registration_max_attempts: int = Field(default=5, ge=1)
    registration_delay_s: float = Field(default=0.4, ge=0.0)

    stream_connect_attempts: int = Field(default=5, ge=1)
    stream_retry_delay_s: float = Field(default=1.0, ge=0.0)
    stream_connect_timeout_s: float = Field(default=5.0, gt=0.0)
    stream_destination: str = "/app/sensorData"

    request_timeout_s: float = Field(default=10.0, gt=0.0)
    random_seed: int | None = None
    duration_s: float | None = None
    log_level: str = "INFO"

    @property
    def sensor_kinds(self) -> tuple[SensorKind | str, ...]:
        return tuple(parse_sensor_kind(name) for name in self.sensor_types)

    @property
    def interval_s(self) -> float:
        return self.data_push_interval_ms / 1000.0

    @property
    def health_url(self) -> str:
        return replace_last_path_segment(self.target_url, HEALTH_PATH)

    @property
    def registration_url(self) -> str:
        if self.device_registration_url and self.device_registration_url.strip():
            return self.device_registration_url
        return replace_last_path_segment(self.target_url, DEVICE_PATH)

    def validate_for_bootstrap(self) -> None:
        """Raise :class:`BootstrapError` when the fleet cannot be started."""
        if not self.sensor_types:
            raise BootstrapError("Sensor types cannot be null or empty")
        if not self.target_url or not self.target_url.strip():
            raise BootstrapError("Target URL cannot be null or empty")


def replace_last_path_segment(url: str, replacement: str) -> str:
    """Swap the final path segment of *url* for *replacement*.

    ``http://host/api/sensor`` + ``device`` -> ``http://host/api/device``.
    A URL without a path gets *replacement* appended.
    """
    parts = urlsplit(url)
    segments = parts.path.rstrip("/").split("/")
    segments[-1] = replacement.strip("/")
    path = "/".join(segments)
    if not path.startswith("/"):
        path = "/" + path
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def load_yaml_config(path: str | Path) -> SimulatorSettings:
    """Load and validate a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    section = raw.get("simulator", {}) or {}
    settings = SimulatorSettings(**_normalise_keys(section))

    logger.info(
        "Loaded config: %d devices, sensor types %s, target %s",
        settings.device_count,
        settings.sensor_types,
        settings.target_url or "<unset>",
    )
    return settings


def _normalise_keys(section: dict[str, Any]) -> dict[str, Any]:
    """Convert camelCase / kebab-case keys to the snake_case field names."""
    normalised: dict[str, Any] = {}
    for key, value in section.items():
        snake = _CAMEL_BOUNDARY.sub("_", str(key)).replace("-", "_").lower()
        if snake not in SimulatorSettings.model_fields:
            logger.warning("Ignoring unknown config key '%s'", key)
            continue
        normalised[snake] = value
    return normalised
