"""Tests for RegistrationClient - httpx.MockTransport backed."""

from __future__ import annotations

import json

import httpx
import pytest

from fleet_simulator.models import Device
from fleet_simulator.registration import RegistrationClient, device_type_for
from fleet_simulator.sensor_kinds import SensorKind

REGISTRATION_URL = "http://downstream/device"


def _client(responses: list[httpx.Response | Exception], calls: list[httpx.Request]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        outcome = responses[min(len(calls), len(responses)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestDeviceType:
    def test_first_kind(self) -> None:
        device = Device(1, (SensorKind.HUMIDITY, SensorKind.TEMPERATURE))
        assert device_type_for(device) == "HUMIDITY"

    def test_no_kinds(self) -> None:
        assert device_type_for(Device(1, ())) == "UNKNOWN"

    def test_unprofiled_kind_keeps_configured_name(self) -> None:
        assert device_type_for(Device(1, ("PRESSURE", SensorKind.MOTION))) == "PRESSURE"


class TestRegister:
    @pytest.mark.asyncio
    async def test_created_returns_assigned_id(self) -> None:
        calls: list[httpx.Request] = []
        async with _client([httpx.Response(201, json={"deviceId": 101})], calls) as client:
            registrar = RegistrationClient(client, delay_s=0)
            assigned = await registrar.register(Device(1, (SensorKind.TEMPERATURE,)), REGISTRATION_URL)

        assert assigned == 101
        assert len(calls) == 1
        assert calls[0].method == "POST"
        assert json.loads(calls[0].content) == {"deviceName": "Device-1", "deviceType": "TEMPERATURE"}

    @pytest.mark.asyncio
    async def test_accepts_id_key(self) -> None:
        calls: list[httpx.Request] = []
        async with _client([httpx.Response(201, json={"id": "55"})], calls) as client:
            assigned = await RegistrationClient(client, delay_s=0).register(Device(1, ()), REGISTRATION_URL)
        assert assigned == 55

    @pytest.mark.asyncio
    async def test_retries_on_unexpected_status_and_errors(self) -> None:
        calls: list[httpx.Request] = []
        responses: list[httpx.Response | Exception] = [
            httpx.ConnectError("refused"),
            httpx.Response(200, json={"deviceId": 1}),  # not 201
            httpx.Response(201, text="not json"),
            httpx.Response(201, json={"deviceId": 7}),
        ]
        async with _client(responses, calls) as client:
            assigned = await RegistrationClient(client, delay_s=0).register(Device(1, ()), REGISTRATION_URL)
        assert assigned == 7
        assert len(calls) == 4

    @pytest.mark.asyncio
    async def test_exhaustion_returns_none_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        calls: list[httpx.Request] = []
        async with _client([httpx.Response(500)], calls) as client:
            assigned = await RegistrationClient(client, delay_s=0).register(Device(4, ()), REGISTRATION_URL)

        assert assigned is None
        assert len(calls) == 5
        failures = [r for r in caplog.records if "failed after 5 tries" in r.getMessage()]
        assert failures and failures[0].levelname == "WARNING"

    @pytest.mark.asyncio
    async def test_custom_attempt_bound(self) -> None:
        calls: list[httpx.Request] = []
        async with _client([httpx.ConnectError("refused")], calls) as client:
            registrar = RegistrationClient(client, max_attempts=2, delay_s=0)
            assert await registrar.register(Device(1, ()), REGISTRATION_URL) is None
        assert len(calls) == 2
