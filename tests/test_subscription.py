from __future__ import annotations

import asyncio

import pytest

from hvacbridge import _constants as c
from hvacbridge.dispatcher import SIGNALS
from hvacbridge.exceptions import HvacFatalError
from hvacbridge.models.broker import DataEntry, StatusCode, StreamStatus, SubscribeRequest, SubscribeUpdate
from hvacbridge.models.datapoint import Datapoint
from hvacbridge.subscription import SubscriptionManager, SubscriptionState
from fakes import FakeBroker, StreamScript, update, wait_for


def _request() -> SubscribeRequest:
    return SubscribeRequest.for_signals(SIGNALS)


def _manager(broker: FakeBroker, received: list, delay: float = 0.01) -> SubscriptionManager:
    return SubscriptionManager(
        broker=broker,
        on_update=lambda path, dp: received.append((path, dp)),
        resubscribe_delay=delay,
    )


@pytest.mark.asyncio
async def test_updates_are_delivered_in_order() -> None:
    broker = FakeBroker(
        [
            StreamScript(
                updates=[
                    update((c.DRIVER_TEMPERATURE, Datapoint.from_int32(22))),
                    update(
                        (c.DRIVER_FAN_SPEED, Datapoint.from_uint32(10)),
                        (c.AIR_CONDITIONING_ACTIVE, Datapoint.from_bool(True)),
                    ),
                ],
                block=True,
            )
        ]
    )
    received: list = []
    manager = _manager(broker, received)
    manager.subscribe(_request())

    await wait_for(lambda: len(received) == 3)
    assert [path for path, _dp in received] == [
        c.DRIVER_TEMPERATURE,
        c.DRIVER_FAN_SPEED,
        c.AIR_CONDITIONING_ACTIVE,
    ]
    assert manager.state is SubscriptionState.STREAMING
    await manager.close()


@pytest.mark.asyncio
async def test_entries_without_usable_value_are_skipped() -> None:
    broker = FakeBroker(
        [
            StreamScript(
                updates=[
                    SubscribeUpdate(
                        entries=(
                            DataEntry(path="", actuator_target=Datapoint.from_int32(1)),
                            DataEntry(path=c.DRIVER_TEMPERATURE),
                            DataEntry(path=c.DRIVER_TEMPERATURE, actuator_target=Datapoint()),
                            DataEntry(path=c.PASSENGER_TEMPERATURE, value=Datapoint.from_int32(19)),
                        )
                    )
                ],
                block=True,
            )
        ]
    )
    received: list = []
    manager = _manager(broker, received)
    manager.subscribe(_request())

    await wait_for(lambda: len(received) == 1)
    assert received == [(c.PASSENGER_TEMPERATURE, Datapoint.from_int32(19))]
    await manager.close()


@pytest.mark.asyncio
async def test_failing_handler_does_not_end_stream() -> None:
    broker = FakeBroker(
        [
            StreamScript(
                updates=[
                    update((c.DRIVER_TEMPERATURE, Datapoint.from_int32(22))),
                    update((c.PASSENGER_TEMPERATURE, Datapoint.from_int32(23))),
                ],
                block=True,
            )
        ]
    )
    received: list = []

    def _handler(path: str, dp: Datapoint) -> None:
        received.append(path)
        if path == c.DRIVER_TEMPERATURE:
            raise RuntimeError("hardware hiccup")

    manager = SubscriptionManager(broker=broker, on_update=_handler, resubscribe_delay=0.01)
    manager.subscribe(_request())

    await wait_for(lambda: len(received) == 2)
    assert manager.state is SubscriptionState.STREAMING
    assert len(broker.requests) == 1
    await manager.close()


@pytest.mark.asyncio
async def test_failure_schedules_exactly_one_resubscribe_after_delay() -> None:
    broker = FakeBroker(
        [
            StreamScript(status=StreamStatus(code=StatusCode.UNAVAILABLE, details="broker restarted")),
            StreamScript(block=True),
        ]
    )
    manager = _manager(broker, [], delay=0.2)
    original = _request()
    manager.subscribe(original)

    await wait_for(lambda: manager.state is SubscriptionState.RESUBSCRIBING)
    assert len(broker.requests) == 1

    await wait_for(lambda: len(broker.requests) == 2)
    await asyncio.sleep(0.05)
    assert len(broker.requests) == 2
    assert manager.resubscribe_count == 1
    assert manager.state is SubscriptionState.STREAMING

    retry = broker.requests[1]
    assert retry == original
    assert retry is not original
    await manager.close()


@pytest.mark.asyncio
async def test_clean_close_by_broker_also_resubscribes() -> None:
    broker = FakeBroker([StreamScript(status=StreamStatus.ok()), StreamScript(block=True)])
    manager = _manager(broker, [])
    manager.subscribe(_request())

    await wait_for(lambda: len(broker.requests) == 2)
    assert manager.resubscribe_count == 1
    await manager.close()


@pytest.mark.asyncio
async def test_repeated_failures_keep_resubscribing_with_fresh_copies() -> None:
    failure = StreamStatus(code=StatusCode.INTERNAL)
    broker = FakeBroker(
        [StreamScript(status=failure), StreamScript(status=failure), StreamScript(block=True)]
    )
    manager = _manager(broker, [])
    manager.subscribe(_request())

    await wait_for(lambda: len(broker.requests) == 3)
    first, second, third = broker.requests
    assert first == second == third
    assert len({id(first), id(second), id(third)}) == 3
    assert manager.resubscribe_count == 2
    await manager.close()


@pytest.mark.asyncio
async def test_cancelled_status_stops_without_resubscribe() -> None:
    broker = FakeBroker([StreamScript(status=StreamStatus.cancelled("shutdown"))])
    manager = _manager(broker, [])
    manager.subscribe(_request())

    await asyncio.wait_for(manager.wait_closed(), timeout=1.0)
    await asyncio.sleep(0.05)
    assert manager.state is SubscriptionState.CLOSED
    assert len(broker.requests) == 1
    assert manager.resubscribe_count == 0


@pytest.mark.asyncio
async def test_local_close_cancels_stream_without_resubscribe() -> None:
    broker = FakeBroker([StreamScript(block=True)])
    manager = _manager(broker, [])
    manager.subscribe(_request())
    await wait_for(lambda: len(broker.requests) == 1)

    await manager.close()
    await asyncio.sleep(0.05)
    assert manager.state is SubscriptionState.CLOSED
    assert len(broker.requests) == 1
    await asyncio.wait_for(manager.wait_closed(), timeout=1.0)


@pytest.mark.asyncio
async def test_close_while_resubscribe_pending_is_noop_for_timer() -> None:
    broker = FakeBroker([StreamScript(status=StreamStatus(code=StatusCode.UNAVAILABLE))])
    manager = _manager(broker, [], delay=0.1)
    manager.subscribe(_request())
    await wait_for(lambda: manager.state is SubscriptionState.RESUBSCRIBING)

    await manager.close()
    await asyncio.sleep(0.2)
    assert len(broker.requests) == 1
    assert manager.state is SubscriptionState.CLOSED


@pytest.mark.asyncio
async def test_subscribe_replaces_active_stream() -> None:
    broker = FakeBroker([StreamScript(block=True), StreamScript(block=True)])
    manager = _manager(broker, [])
    manager.subscribe(_request())
    await wait_for(lambda: len(broker.requests) == 1)

    replacement = SubscribeRequest.for_signals({c.DRIVER_TEMPERATURE: True})
    manager.subscribe(replacement)
    await wait_for(lambda: len(broker.requests) == 2)
    await asyncio.sleep(0.05)

    assert manager.request is replacement
    assert manager.state is SubscriptionState.STREAMING
    assert manager.resubscribe_count == 0
    assert len(broker.requests) == 2
    await manager.close()


class _UnclonableRequest(SubscribeRequest):
    def clone(self) -> SubscribeRequest:
        raise MemoryError


@pytest.mark.asyncio
async def test_retry_request_allocation_failure_is_fatal() -> None:
    broker = FakeBroker([StreamScript(status=StreamStatus(code=StatusCode.UNAVAILABLE))])
    manager = _manager(broker, [])
    manager.subscribe(_UnclonableRequest.for_signals(SIGNALS))

    with pytest.raises(HvacFatalError):
        await asyncio.wait_for(manager.wait_closed(), timeout=1.0)
    assert manager.state is SubscriptionState.FAILED
    assert len(broker.requests) == 1


@pytest.mark.asyncio
async def test_subscribe_after_close_is_rejected() -> None:
    manager = _manager(FakeBroker(), [])
    await manager.close()
    with pytest.raises(RuntimeError):
        manager.subscribe(_request())


class _TransportCancelBroker(FakeBroker):
    async def subscribe(self, request: SubscribeRequest):  # noqa: ANN201
        self.requests.append(request)
        await asyncio.sleep(0.01)
        raise asyncio.CancelledError()
        yield  # pragma: no cover


@pytest.mark.asyncio
async def test_transport_cancellation_is_final() -> None:
    broker = _TransportCancelBroker()
    manager = _manager(broker, [])
    manager.subscribe(_request())

    await asyncio.wait_for(manager.wait_closed(), timeout=1.0)
    await asyncio.sleep(0.05)
    assert manager.state is SubscriptionState.CLOSED
    assert manager.resubscribe_count == 0
    assert len(broker.requests) == 1
