"""Data models for the fleet simulator.

Defines the ``Device`` (mutable per-device state), the ``Reading`` sent on
both delivery channels and ``FleetState``, the shared device collection.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Iterator, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from fleet_simulator.sensor_kinds import SensorKind, unit_for

__all__ = ["Device", "FleetState", "Reading"]


class Device:
    """One simulated device.

    ``id`` is fixed at creation.  ``remote_id`` is the identifier assigned
    by the downstream service at registration and can be set only once.
    ``sensor_kinds`` is the fleet-wide tuple, shared by every device.
    """

    def __init__(self, device_id: int, sensor_kinds: Sequence[SensorKind | str]) -> None:
        if device_id < 1:
            raise ValueError(f"Device id must be positive, got {device_id}")
        self._id = device_id
        self._remote_id: int | None = None
        self.sensor_kinds: tuple[SensorKind | str, ...] = tuple(sensor_kinds)
        self.connected = True

    @property
    def id(self) -> int:
        return self._id

    @property
    def remote_id(self) -> int | None:
        return self._remote_id

    @property
    def target_id(self) -> int:
        """Identifier used as the reading's device id on the wire."""
        return self._remote_id if self._remote_id is not None else self._id

    @property
    def name(self) -> str:
        return f"Device-{self._id}"

    def assign_remote_id(self, remote_id: int) -> None:
        if self._remote_id is not None:
            raise ValueError(f"{self.name} already has remote id {self._remote_id}")
        self._remote_id = remote_id

    def __repr__(self) -> str:
        return (
            f"Device(id={self._id}, remote_id={self._remote_id}, "
            f"sensor_kinds={[str(k) for k in self.sensor_kinds]}, connected={self.connected})"
        )


class Reading(BaseModel):
    """A single synthetic data point sent on both delivery channels.

    Attributes:
        target_id: Downstream device id (remote id, or local id as fallback).
        value: Sensor value; ``NaN`` means the device is offline.
        sensor_kind: Kind of sensor that produced the value; a configured
            name without a profile is kept as a plain string.
        unit: Engineering unit derived from ``sensor_kind``.
        valid: Device connectivity at the time the reading was built.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, ser_json_inf_nan="strings")

    target_id: int = Field(alias="deviceId")
    value: float
    sensor_kind: SensorKind | str = Field(alias="sensorType", union_mode="left_to_right")
    unit: str
    valid: bool

    @field_serializer("value", when_used="json")
    def _serialize_value(self, value: float) -> float | str:
        # strict JSON has no NaN token
        return "NaN" if math.isnan(value) else value

    @classmethod
    def online(cls, device: Device, kind: SensorKind | str, value: float) -> Reading:
        return cls(target_id=device.target_id, value=value, sensor_kind=kind, unit=unit_for(kind), valid=True)

    @classmethod
    def offline(cls, device: Device, kind: SensorKind | str) -> Reading:
        """Heartbeat for a disconnected device: no data, ``valid=False``."""
        return cls(target_id=device.target_id, value=math.nan, sensor_kind=kind, unit=unit_for(kind), valid=False)

    @property
    def is_offline(self) -> bool:
        return math.isnan(self.value)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation (camelCase keys)."""
        return self.model_dump(by_alias=True, mode="json")

    def to_json(self) -> str:
        """Return a compact, strict JSON string; ``NaN`` is written as ``"NaN"``."""
        return self.model_dump_json(by_alias=True)


class FleetState:
    """Append-only, ordered collection of devices plus the simulation flag.

    Appends take a lock; readers iterate over an immutable snapshot, so a
    scheduler tick can walk the fleet while another task appends devices or
    flips ``Device.connected``.  Devices are never removed.
    """

    def __init__(self) -> None:
        self._devices: tuple[Device, ...] = ()
        self._lock = threading.Lock()
        self.simulation_enabled = True

    def append(self, device: Device) -> None:
        with self._lock:
            self._devices = (*self._devices, device)

    def snapshot(self) -> tuple[Device, ...]:
        return self._devices

    def find(self, device_id: int) -> Device | None:
        for device in self._devices:
            if device.id == device_id:
                return device
        return None

    def __iter__(self) -> Iterator[Device]:
        return iter(self._devices)

    def __len__(self) -> int:
        return len(self._devices)
