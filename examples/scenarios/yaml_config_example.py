#!/usr/bin/env python3
"""YAML config example -- write a config file, load it and run the fleet
for a fixed duration.

Usage::

    python examples/scenarios/yaml_config_example.py
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

_CONFIG = """\
simulator:
  deviceCount: 5
  sensorTypes: [TEMPERATURE, HUMIDITY]
  targetUrl: http://localhost:8080/api/sensor
  websocketUrl: ws://localhost:8080/ws-sensor-data
  dataPushIntervalMs: 2000
  anomaly_probability: 0.2
  duration_s: 20
"""


def main() -> None:
    from fleet_simulator import FleetController, load_yaml_config

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "simulator.yaml"
        path.write_text(_CONFIG)
        settings = load_yaml_config(path)

    controller = FleetController(settings)
    controller.run(duration_s=settings.duration_s)
    print(f"\nCounters: {controller.metrics.snapshot()}")


if __name__ == "__main__":
    main()
