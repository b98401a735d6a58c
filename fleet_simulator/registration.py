"""Registration client - registers each simulated device with the
downstream service and captures the id it assigns.

Registration is best effort: a device that cannot be registered keeps
using its local id as the reading target.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from fleet_simulator.models import Device
from fleet_simulator.sensor_kinds import SensorKind

__all__ = ["RegistrationClient", "device_type_for"]

logger = logging.getLogger("fleet_simulator.registration")

_ID_KEYS = ("deviceId", "id")


def device_type_for(device: Device) -> str:
    """First configured sensor kind name of the device, or ``UNKNOWN`` when it has none."""
    if not device.sensor_kinds:
        return SensorKind.UNKNOWN.value
    return str(device.sensor_kinds[0])


class RegistrationClient:
    """POSTs ``{deviceName, deviceType}`` with a fixed-delay retry policy.

    Parameters:
        client: Shared ``httpx.AsyncClient``.
        max_attempts: Attempts per device before giving up.
        delay_s: Pause between attempts.
    """

    def __init__(self, client: httpx.AsyncClient, *, max_attempts: int = 5, delay_s: float = 0.4) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._delay_s = delay_s

    async def register(self, device: Device, registration_url: str) -> int | None:
        """Register *device*; return the assigned id or ``None`` on exhaustion."""
        body = {"deviceName": device.name, "deviceType": device_type_for(device)}

        for attempt in range(1, self._max_attempts + 1):
            logger.info(
                "Registering device -> URL: %s, payload: %s (try %d/%d)",
                registration_url,
                body,
                attempt,
                self._max_attempts,
            )
            try:
                resp = await self._client.post(registration_url, json=body)
            except httpx.HTTPError as exc:
                logger.warning("%s registration attempt %d failed: %s", device.name, attempt, exc)
            else:
                assigned = _assigned_id(resp)
                if assigned is not None:
                    logger.info("%s registration OK -> assigned id %d", device.name, assigned)
                    return assigned
                logger.warning(
                    "%s registration returned unexpected response: HTTP %d %s",
                    device.name,
                    resp.status_code,
                    resp.text[:200],
                )

            if attempt < self._max_attempts:
                await asyncio.sleep(self._delay_s)

        logger.warning(
            "%s registration failed after %d tries - using local id %d",
            device.name,
            self._max_attempts,
            device.id,
        )
        return None


def _assigned_id(resp: httpx.Response) -> int | None:
    """Extract the id from a ``201 Created`` response, else ``None``."""
    if resp.status_code != httpx.codes.CREATED:
        return None
    try:
        payload: Any = resp.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    for key in _ID_KEYS:
        value = payload.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None
