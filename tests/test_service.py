from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest

from hvacbridge import _constants as c
from hvacbridge.actuators.canbus import CanActuator, encode_frame
from hvacbridge.config import CanConfig, HvacConfig, LedConfig
from hvacbridge.dispatcher import SIGNALS
from hvacbridge.exceptions import HvacBridgeError
from hvacbridge.models.broker import SetError, StatusCode, StreamStatus
from hvacbridge.models.datapoint import Datapoint
from hvacbridge.service import HvacService
from hvacbridge.subscription import SubscriptionState
from fakes import FakeBroker, RecordingBus, StreamScript, update, wait_for


def _config(tmp_path: Path) -> HvacConfig:
    return HvacConfig(
        can=CanConfig(port="vcan-test"),
        leds=LedConfig(red=str(tmp_path / "r"), green=str(tmp_path / "g"), blue=str(tmp_path / "b")),
        resubscribe_delay=0.01,
    )


@pytest.mark.asyncio
async def test_service_bridges_updates_and_mirrors(tmp_path: Path) -> None:
    broker = FakeBroker(
        [
            StreamScript(
                updates=[
                    update(
                        (c.DRIVER_TEMPERATURE, Datapoint.from_int32(30)),
                        (c.DRIVER_FAN_SPEED, Datapoint.from_uint32(100)),
                        (c.AIR_CONDITIONING_ACTIVE, Datapoint.from_bool(True)),
                        (c.AIR_CONDITIONING_ACTIVE, Datapoint.from_bool(True)),
                    )
                ],
                block=True,
            )
        ]
    )
    bus = RecordingBus()
    service = HvacService(_config(tmp_path), broker=broker, can=CanActuator(bus_factory=lambda _c: bus))

    async with service:
        await wait_for(lambda: len(broker.sets) == 3)
        assert broker.requests[0].paths == list(SIGNALS)
        assert [path for path, _dp in broker.sets] == [
            c.DRIVER_TEMPERATURE,
            c.DRIVER_FAN_SPEED,
            c.AIR_CONDITIONING_ACTIVE,
        ]
        assert bytes(bus.messages[-1].data) == encode_frame(30, 21, 255)
        assert (tmp_path / "b").read_text() != ""
        assert service.store.snapshot().air_conditioning

    assert service.subscription.state is SubscriptionState.CLOSED
    assert bus.shutdown_calls == 1


@pytest.mark.asyncio
async def test_service_logs_set_errors(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    broker = FakeBroker(
        [StreamScript(updates=[update((c.RECIRCULATION_ACTIVE, Datapoint.from_bool(True)))], block=True)]
    )
    broker.set_errors = [SetError(path=c.RECIRCULATION_ACTIVE, code=404, reason="not_found")]
    service = HvacService(_config(tmp_path), broker=broker, can=CanActuator(bus_factory=lambda _c: RecordingBus()))

    with caplog.at_level(logging.ERROR):
        async with service:
            await wait_for(lambda: len(broker.sets) == 1)
            await asyncio.sleep(0)

    assert f"Error setting {c.RECIRCULATION_ACTIVE}: 404 - not_found" in caplog.text


@pytest.mark.asyncio
async def test_run_returns_when_broker_cancels_stream(tmp_path: Path) -> None:
    broker = FakeBroker([StreamScript(status=StreamStatus.cancelled("shutdown"))])
    service = HvacService(_config(tmp_path), broker=broker, can=CanActuator(bus_factory=lambda _c: RecordingBus()))

    async with service:
        await asyncio.wait_for(service.run(), timeout=1.0)
        assert service.subscription.state is SubscriptionState.CLOSED
        assert len(broker.requests) == 1


@pytest.mark.asyncio
async def test_service_resubscribes_after_stream_error(tmp_path: Path) -> None:
    broker = FakeBroker(
        [
            StreamScript(status=StreamStatus(code=StatusCode.UNAVAILABLE, details="restart")),
            StreamScript(updates=[update((c.PASSENGER_TEMPERATURE, Datapoint.from_int32(18)))], block=True),
        ]
    )
    service = HvacService(_config(tmp_path), broker=broker, can=CanActuator(bus_factory=lambda _c: RecordingBus()))

    async with service:
        await wait_for(lambda: service.store.snapshot().right_temperature == 18)
        assert len(broker.requests) == 2
        assert broker.requests[0] == broker.requests[1]


@pytest.mark.asyncio
async def test_run_requires_start(tmp_path: Path) -> None:
    service = HvacService(_config(tmp_path), broker=FakeBroker())
    with pytest.raises(HvacBridgeError):
        await service.run()


class _ExplodingSetBroker(FakeBroker):
    async def set(self, path: str, datapoint: Datapoint, *, actuator: bool = False) -> list[SetError]:
        self.sets.append((path, datapoint))
        raise RuntimeError("malformed set response")


@pytest.mark.asyncio
async def test_unexpected_mirror_failure_is_logged(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    broker = _ExplodingSetBroker(
        [StreamScript(updates=[update((c.FRONT_DEFROSTER_ACTIVE, Datapoint.from_bool(True)))], block=True)]
    )
    service = HvacService(_config(tmp_path), broker=broker, can=CanActuator(bus_factory=lambda _c: RecordingBus()))

    with caplog.at_level(logging.ERROR):
        async with service:
            await wait_for(lambda: len(broker.sets) == 1)
            await asyncio.sleep(0)
            assert service.subscription.state is SubscriptionState.STREAMING

    assert f"Unexpected error setting {c.FRONT_DEFROSTER_ACTIVE}" in caplog.text
    assert "malformed set response" in caplog.text
