"""Tests for fleet_simulator.sensor_kinds - profiles, generators, parsing."""

from __future__ import annotations

import random

import pytest

from fleet_simulator.sensor_kinds import (
    KIND_PROFILES,
    SensorKind,
    anomalous_value,
    nominal_value,
    parse_sensor_kind,
    profile_for,
    unit_for,
)

# -----------------------------------------------------------------------
# Profile table
# -----------------------------------------------------------------------


class TestKindProfiles:
    """Every kind has a profile with the expected unit."""

    def test_every_kind_has_a_profile(self) -> None:
        assert set(KIND_PROFILES) == set(SensorKind)

    @pytest.mark.parametrize(
        ("kind", "unit"),
        [
            (SensorKind.TEMPERATURE, "°C"),
            (SensorKind.HUMIDITY, "%"),
            (SensorKind.MOTION, "binary"),
            (SensorKind.UNKNOWN, ""),
        ],
    )
    def test_units(self, kind: SensorKind, unit: str) -> None:
        assert unit_for(kind) == unit


# -----------------------------------------------------------------------
# Generators
# -----------------------------------------------------------------------


class TestNominalValues:
    """Nominal values stay inside their range."""

    def test_temperature_range(self) -> None:
        rng = random.Random(1)
        values = [nominal_value(SensorKind.TEMPERATURE, rng) for _ in range(500)]
        assert all(20.0 <= v < 40.0 for v in values)

    def test_humidity_range(self) -> None:
        rng = random.Random(2)
        values = [nominal_value(SensorKind.HUMIDITY, rng) for _ in range(500)]
        assert all(30.0 <= v < 90.0 for v in values)

    def test_motion_is_binary_and_mostly_idle(self) -> None:
        rng = random.Random(3)
        values = [nominal_value(SensorKind.MOTION, rng) for _ in range(2000)]
        assert set(values) <= {0.0, 1.0}
        # p(1) = 0.2
        assert 0.1 < values.count(1.0) / len(values) < 0.3

    def test_unknown_is_zero(self) -> None:
        assert nominal_value(SensorKind.UNKNOWN, random.Random()) == 0.0


class TestAnomalousValues:
    """Anomalous values sit outside the nominal range."""

    def test_temperature_extremes(self) -> None:
        rng = random.Random(4)
        values = {anomalous_value(SensorKind.TEMPERATURE, rng) for _ in range(200)}
        assert values == {-50.0, 150.0}

    def test_humidity_extremes(self) -> None:
        rng = random.Random(5)
        values = {anomalous_value(SensorKind.HUMIDITY, rng) for _ in range(200)}
        assert values == {0.0, 120.0}

    def test_fixed_anomalies(self) -> None:
        rng = random.Random()
        assert anomalous_value(SensorKind.MOTION, rng) == 2.0
        assert anomalous_value(SensorKind.UNKNOWN, rng) == 9999.0

    @pytest.mark.parametrize("kind", list(SensorKind))
    def test_outside_nominal_range(self, kind: SensorKind) -> None:
        rng = random.Random(6)
        profile = KIND_PROFILES[kind]
        for _ in range(50):
            value = anomalous_value(kind, rng)
            assert value < profile.nominal_min or value > profile.nominal_max


# -----------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------


class TestParseSensorKind:
    """Configured names resolve to enum members."""

    def test_exact_name(self) -> None:
        assert parse_sensor_kind("HUMIDITY") is SensorKind.HUMIDITY

    def test_case_and_whitespace_insensitive(self) -> None:
        assert parse_sensor_kind("  temperature ") is SensorKind.TEMPERATURE

    def test_enum_passthrough(self) -> None:
        assert parse_sensor_kind(SensorKind.MOTION) is SensorKind.MOTION

    def test_unknown_name_kept_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        kind = parse_sensor_kind(" Pressure ")
        assert kind == "Pressure"
        assert not isinstance(kind, SensorKind)
        assert "Pressure" in caplog.text

    def test_unknown_name_uses_unknown_profile(self) -> None:
        rng = random.Random(3)
        assert unit_for("PRESSURE") == ""
        assert nominal_value("PRESSURE", rng) == 0.0
        assert anomalous_value("PRESSURE", rng) == 9999.0
        assert profile_for("PRESSURE") is KIND_PROFILES[SensorKind.UNKNOWN]
