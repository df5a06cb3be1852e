from __future__ import annotations

import queue

import pytest

from jabractl.core.model import (
    BatteryEvent,
    BatteryStatus,
    ButtonEvent,
    ButtonId,
    DeviceDetached,
    DeviceEvent,
    DeviceHandle,
)
from jabractl.core.stream import EventStream


def _button(sequence: int) -> ButtonEvent:
    return ButtonEvent(
        handle=DeviceHandle(1),
        sequence=sequence,
        timestamp_ns=sequence,
        button=ButtonId.MUTE,
        pressed=True,
    )


def _battery(sequence: int) -> BatteryEvent:
    return BatteryEvent(
        handle=DeviceHandle(1),
        sequence=sequence,
        timestamp_ns=sequence,
        status=BatteryStatus(level_percent=50, charging=False, low=False),
    )


def test_every_subscriber_sees_every_event_in_order() -> None:
    stream = EventStream()
    first = stream.subscribe()
    second = stream.subscribe()

    for sequence in range(3):
        stream.publish(_button(sequence))

    assert [e.sequence for e in first.drain()] == [0, 1, 2]
    assert [e.sequence for e in second.drain()] == [0, 1, 2]


def test_subscription_filters_by_type() -> None:
    stream = EventStream()
    batteries = stream.subscribe(BatteryEvent)

    stream.publish(_button(0))
    stream.publish(_battery(1))

    assert [type(e) for e in batteries.drain()] == [BatteryEvent]


def test_closed_subscription_ends_iteration() -> None:
    stream = EventStream()
    subscription = stream.subscribe()
    stream.publish(_button(0))
    subscription.close()
    stream.publish(_button(1))

    assert [e.sequence for e in subscription] == [0]
    assert subscription.get() is None


def test_stream_close_ends_all_subscriptions() -> None:
    stream = EventStream()
    subscription = stream.subscribe()
    stream.close()

    assert list(subscription) == []
    assert stream.subscribe().get(timeout=0.1) is None


def test_get_times_out_when_idle() -> None:
    stream = EventStream()
    subscription = stream.subscribe()
    with pytest.raises(queue.Empty):
        subscription.get(timeout=0.01)


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    stream = EventStream()
    seen: list[DeviceEvent] = []

    def broken(event: DeviceEvent) -> None:
        raise RuntimeError("listener bug")

    stream.add_listener(broken)
    stream.add_listener(seen.append)
    stream.publish(_button(0))

    assert len(seen) == 1
    assert "failed on button" in caplog.text


def test_removed_listener_is_not_called() -> None:
    stream = EventStream()
    seen: list[DeviceEvent] = []
    remove = stream.add_listener(seen.append)
    remove()

    stream.publish(
        DeviceDetached(handle=DeviceHandle(1), sequence=0, timestamp_ns=0, info=None)
    )
    assert seen == []
