from __future__ import annotations

import threading

import pytest

from jabractl.core.errors import (
    AlreadyInitializedError,
    InvalidParameterError,
    NotInitializedError,
    NotSupportedError,
)
from jabractl.core.lifecycle import LifecycleState
from jabractl.core.model import ButtonEvent, ButtonId, DeviceAttached, DeviceEvent, DeviceHandle
from jabractl.core.service import HeadsetService
from jabractl.native.base import CallbackKind, ReturnCode
from jabractl.native.simulated import SimulatedDevice, SimulatedSdk


def _service(*devices: SimulatedDevice) -> tuple[HeadsetService, SimulatedSdk]:
    sdk = SimulatedSdk(list(devices))
    return HeadsetService(sdk), sdk


def test_initialize_twice_fails() -> None:
    service, _ = _service()
    service.initialize("app")
    try:
        with pytest.raises(AlreadyInitializedError):
            service.initialize("app")
    finally:
        service.close()


def test_uninitialize_without_initialize_fails() -> None:
    service, sdk = _service()
    with pytest.raises(NotInitializedError):
        service.uninitialize()
    assert sdk.native_calls("uninitialize") == []


def test_operations_rejected_while_uninitialized() -> None:
    service, sdk = _service(SimulatedDevice(device_id=1, name="Engage 55"))
    with pytest.raises(NotInitializedError):
        service.list_devices()
    with pytest.raises(NotInitializedError):
        service.controls.set_mute(1, True)
    assert sdk.native_calls("set_mute") == []


def test_initialize_enumerates_devices_and_registers_callbacks() -> None:
    service, sdk = _service(
        SimulatedDevice(device_id=1, name="Engage 55", serial_number="SN-1"),
        SimulatedDevice(device_id=2, name="Link 400", is_dongle=True),
    )
    service.initialize("app")
    try:
        assert service.state is LifecycleState.INITIALIZED
        assert [d.handle for d in service.list_devices()] == [DeviceHandle(1), DeviceHandle(2)]
        assert set(sdk.callbacks) == set(CallbackKind)
        assert all(callback is not None for callback in sdk.callbacks.values())
        assert sdk.outstanding == 0
    finally:
        service.close()


def test_uninitialize_unregisters_and_clears_registry() -> None:
    service, sdk = _service(SimulatedDevice(device_id=1, name="Engage 55"))
    service.initialize("app")
    service.uninitialize()

    assert service.state is LifecycleState.UNINITIALIZED
    assert not sdk.is_initialized()
    assert [registered for _, registered in sdk.registrations[-5:]] == [False] * 5
    assert len(service.registry) == 0


def test_reinitialize_after_uninitialize_registers_again() -> None:
    service, sdk = _service(SimulatedDevice(device_id=1, name="Engage 55"))
    service.initialize("app")
    service.uninitialize()
    service.initialize("app")
    try:
        assert [registered for _, registered in sdk.registrations] == [True] * 5 + [False] * 5 + [True] * 5
        sdk.press(1, 31)
        assert service.flush(timeout=2.0)
        assert service.stats().dispatched == 1
    finally:
        service.close()


def test_native_initialize_failure_keeps_state() -> None:
    service, sdk = _service()
    sdk.return_codes["initialize"] = ReturnCode.NOT_SUPPORTED

    with pytest.raises(NotSupportedError):
        service.initialize("app")
    assert service.state is LifecycleState.UNINITIALIZED
    assert sdk.registrations == []


def test_empty_app_id_rejected_locally() -> None:
    service, sdk = _service()
    with pytest.raises(InvalidParameterError):
        service.initialize("  ")
    assert sdk.native_calls("initialize") == []


def test_sdk_initialized_elsewhere_is_rejected() -> None:
    service, sdk = _service()
    sdk.initialize("other-owner")

    with pytest.raises(AlreadyInitializedError):
        service.initialize("app")


def test_setup_failure_rolls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    service, sdk = _service(SimulatedDevice(device_id=1, name="Engage 55"))

    def broken_enumeration() -> list:
        raise RuntimeError("enumeration exploded")

    monkeypatch.setattr(service.boundary, "attached_devices", broken_enumeration)

    with pytest.raises(RuntimeError):
        service.initialize("app")
    assert service.state is LifecycleState.UNINITIALIZED
    assert not sdk.is_initialized()
    assert not service.bridge.running
    assert [registered for _, registered in sdk.registrations] == [True] * 5 + [False] * 5

    monkeypatch.undo()
    service.initialize("app")
    service.close()


def test_listener_can_use_controls_while_devices_are_seeded() -> None:
    service, _ = _service(SimulatedDevice(device_id=1, name="Engage 55"))
    muted: list[bool] = []
    seen = threading.Event()

    def on_attached(event: DeviceEvent) -> None:
        if isinstance(event, DeviceAttached):
            muted.append(service.controls.get_mute(event.handle))
            seen.set()

    service.stream.add_listener(on_attached)
    starter = threading.Thread(target=service.initialize, args=("app",), daemon=True)
    starter.start()
    starter.join(timeout=3.0)
    try:
        assert not starter.is_alive()
        assert seen.wait(timeout=3.0)
        assert muted == [False]
    finally:
        service.close()


def test_listener_can_uninitialize_the_session() -> None:
    service, sdk = _service(SimulatedDevice(device_id=1, name="Engage 55"))
    service.initialize("app")
    errors: list[Exception] = []
    handled = threading.Event()

    def on_button(event: DeviceEvent) -> None:
        if not isinstance(event, ButtonEvent):
            return
        try:
            service.uninitialize()
        except Exception as exc:
            errors.append(exc)
        finally:
            handled.set()

    remove = service.stream.add_listener(on_button)
    sdk.press(1, ButtonId.HOOK_SWITCH)
    assert handled.wait(timeout=3.0)
    remove()

    assert errors == []
    assert service.state is LifecycleState.UNINITIALIZED
    assert not sdk.is_initialized()
    assert [registered for _, registered in sdk.registrations[-5:]] == [False] * 5

    service.initialize("app")
    try:
        assert [d.handle for d in service.list_devices()] == [DeviceHandle(1)]
    finally:
        service.close()


def test_guarded_call_delays_uninitialize() -> None:
    service, sdk = _service(SimulatedDevice(device_id=1, name="Engage 55"))
    service.initialize("app")
    entered = threading.Event()
    release = threading.Event()
    finished = threading.Event()

    def hold_guard() -> None:
        with service.lifecycle.guard():
            entered.set()
            release.wait(timeout=5.0)

    def stop() -> None:
        service.uninitialize()
        finished.set()

    holder = threading.Thread(target=hold_guard)
    holder.start()
    assert entered.wait(timeout=2.0)
    stopper = threading.Thread(target=stop)
    stopper.start()
    try:
        assert not finished.wait(timeout=0.2)
        assert service.state is LifecycleState.INITIALIZED
        assert sdk.native_calls("uninitialize") == []
    finally:
        release.set()
        holder.join(timeout=2.0)
        stopper.join(timeout=5.0)

    assert finished.is_set()
    assert service.state is LifecycleState.UNINITIALIZED
    service.close()
