#!/usr/bin/env python3
"""Manual control example -- run a small fleet and drive it by hand:
pause the simulation, knock a device offline, inject an anomaly burst.

Requires a running ingestion service exposing ``/api/sensor``,
``/api/device`` and ``/api/actuator/health``.

Usage::

    python examples/scenarios/manual_control_example.py --target-url http://localhost:8080/api/sensor
"""

from __future__ import annotations

import argparse
import asyncio
import logging


async def _scenario(target_url: str, websocket_url: str) -> None:
    from fleet_simulator import FleetController, SimulatorSettings

    settings = SimulatorSettings(
        device_count=3,
        sensor_types=["TEMPERATURE", "HUMIDITY", "MOTION"],
        target_url=target_url,
        websocket_url=websocket_url,
        data_push_interval_ms=1000,
        random_seed=42,
    )
    controller = FleetController(settings)

    await controller.start()
    try:
        await asyncio.sleep(3)

        print("-> disconnecting device 1")
        controller.disconnect_device(1)
        await asyncio.sleep(2)

        print("-> injecting anomalies on device 2")
        accepted = await controller.inject_anomaly_to_device(2)
        print(f"   {accepted} anomalous readings accepted")

        print("-> pausing simulation")
        controller.stop_simulation()
        await asyncio.sleep(2)

        print("-> resuming simulation, reconnecting device 1")
        controller.start_simulation()
        controller.reconnect_device(1)
        await asyncio.sleep(3)
    finally:
        await controller.stop()

    print(f"\nCounters: {controller.metrics.snapshot()}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--target-url", default="http://localhost:8080/api/sensor")
    parser.add_argument("--websocket-url", default="ws://localhost:8080/ws-sensor-data")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s")
    asyncio.run(_scenario(args.target_url, args.websocket_url))


if __name__ == "__main__":
    main()
