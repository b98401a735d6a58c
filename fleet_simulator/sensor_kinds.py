"""Sensor kinds and their value-generation profiles.

Every kind maps to a :class:`KindProfile` holding the nominal generator,
the anomalous generator, the engineering unit and the nominal range used
to decide whether a value is in or out of bounds.  Adding a kind means
adding one enum member and one row to ``KIND_PROFILES``.

A configured name with no profile is carried as a plain string and uses
the ``UNKNOWN`` profile.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

__all__ = [
    "KIND_PROFILES",
    "KindProfile",
    "SensorKind",
    "anomalous_value",
    "nominal_value",
    "parse_sensor_kind",
    "profile_for",
    "unit_for",
]

logger = logging.getLogger("fleet_simulator.sensor_kinds")


class SensorKind(StrEnum):
    """Kinds of sensor a simulated device can carry."""

    TEMPERATURE = "TEMPERATURE"
    HUMIDITY = "HUMIDITY"
    MOTION = "MOTION"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class KindProfile:
    """How values for one sensor kind are produced.

    Attributes:
        unit: Engineering unit sent with every reading.
        nominal: ``(rng) -> float`` producing an in-range value.
        anomalous: ``(rng) -> float`` producing an out-of-range value.
        nominal_min / nominal_max: Half-open nominal range ``[min, max)``;
            for discrete kinds the closed set of nominal values is
            expressed as ``[min, max]``.
    """

    unit: str
    nominal: Callable[[random.Random], float]
    anomalous: Callable[[random.Random], float]
    nominal_min: float
    nominal_max: float


def _coin(rng: random.Random, heads: float, tails: float) -> float:
    return heads if rng.random() < 0.5 else tails


KIND_PROFILES: dict[SensorKind, KindProfile] = {
    SensorKind.TEMPERATURE: KindProfile(
        unit="°C",
        nominal=lambda rng: 20.0 + rng.random() * 20.0,
        anomalous=lambda rng: _coin(rng, -50.0, 150.0),
        nominal_min=20.0,
        nominal_max=40.0,
    ),
    SensorKind.HUMIDITY: KindProfile(
        unit="%",
        nominal=lambda rng: 30.0 + rng.random() * 60.0,
        anomalous=lambda rng: _coin(rng, 0.0, 120.0),
        nominal_min=30.0,
        nominal_max=90.0,
    ),
    SensorKind.MOTION: KindProfile(
        unit="binary",
        nominal=lambda rng: 1.0 if rng.random() < 0.2 else 0.0,
        anomalous=lambda rng: 2.0,
        nominal_min=0.0,
        nominal_max=1.0,
    ),
    SensorKind.UNKNOWN: KindProfile(
        unit="",
        nominal=lambda rng: 0.0,
        anomalous=lambda rng: 9999.0,
        nominal_min=0.0,
        nominal_max=0.0,
    ),
}


def profile_for(kind: SensorKind | str) -> KindProfile:
    return KIND_PROFILES.get(kind, KIND_PROFILES[SensorKind.UNKNOWN])


def nominal_value(kind: SensorKind | str, rng: random.Random) -> float:
    return profile_for(kind).nominal(rng)


def anomalous_value(kind: SensorKind | str, rng: random.Random) -> float:
    return profile_for(kind).anomalous(rng)


def unit_for(kind: SensorKind | str) -> str:
    return profile_for(kind).unit


def parse_sensor_kind(name: str | SensorKind) -> SensorKind | str:
    """Resolve a configured kind name (case-insensitive).

    Names without a profile come back as the configured name itself; they
    keep that name on the wire but produce ``UNKNOWN`` values (``0`` /
    ``9999``, empty unit).
    """
    if isinstance(name, SensorKind):
        return name
    configured = str(name).strip()
    try:
        return SensorKind(configured.upper())
    except ValueError:
        logger.warning("No profile for sensor kind '%s' - using the UNKNOWN profile", configured)
        return configured
