from __future__ import annotations

from collections.abc import Iterator

import pytest

from jabractl.core.errors import (
    FailedError,
    InvalidParameterError,
    NoDeviceError,
    NotInitializedError,
    NotSupportedError,
    UnknownDeviceError,
)
from jabractl.core.model import BatteryStatus, DeviceHandle
from jabractl.core.service import HeadsetService
from jabractl.native.base import ReturnCode
from jabractl.native.simulated import SimulatedDevice, SimulatedSdk


@pytest.fixture
def sdk() -> SimulatedSdk:
    return SimulatedSdk(
        [
            SimulatedDevice(device_id=1, name="Jabra Evolve2 65", serial_number="SN-1"),
            SimulatedDevice(device_id=2, name="Jabra Link 380", serial_number=None, is_dongle=True),
        ]
    )


@pytest.fixture
def service(sdk: SimulatedSdk) -> Iterator[HeadsetService]:
    service = HeadsetService(sdk)
    service.initialize("app")
    yield service
    service.close()


def test_volume_out_of_range_never_reaches_sdk(service: HeadsetService, sdk: SimulatedSdk) -> None:
    with pytest.raises(InvalidParameterError, match="outside 0..100"):
        service.controls.set_volume(1, 150)
    with pytest.raises(InvalidParameterError):
        service.controls.set_volume(1, -1)
    with pytest.raises(InvalidParameterError):
        service.controls.set_volume(1, True)

    assert sdk.native_calls("set_volume") == []


def test_unknown_device_is_rejected_locally(service: HeadsetService, sdk: SimulatedSdk) -> None:
    with pytest.raises(UnknownDeviceError):
        service.controls.set_volume(9, 50)
    with pytest.raises(UnknownDeviceError):
        service.controls.get_mute(DeviceHandle(9))

    assert sdk.native_calls("set_volume") == []
    assert sdk.native_calls("get_mute") == []


def test_invalid_device_id_is_invalid_parameter(service: HeadsetService) -> None:
    with pytest.raises(InvalidParameterError):
        service.controls.set_mute(70000, True)


def test_flags_must_be_booleans(service: HeadsetService, sdk: SimulatedSdk) -> None:
    with pytest.raises(InvalidParameterError, match="muted must be True or False"):
        service.controls.set_mute(1, 1)  # type: ignore[arg-type]
    with pytest.raises(InvalidParameterError):
        service.controls.set_hold(1, "yes")  # type: ignore[arg-type]

    assert sdk.native_calls("set_mute") == []
    assert sdk.native_calls("set_hold") == []


def test_controls_reach_the_device(service: HeadsetService, sdk: SimulatedSdk) -> None:
    controls = service.controls
    controls.set_mute(1, True)
    controls.set_volume(1, 80)
    controls.set_ringer(1, True)
    controls.set_hook_state(1, True)
    controls.set_busylight(1, True)
    controls.set_hold(1, True)

    device = sdk.devices[1]
    assert device.muted is True
    assert device.volume == 80
    assert device.ringer is True
    assert device.off_hook is True
    assert device.busylight is True
    assert device.on_hold is True
    assert controls.get_mute(1) is True
    assert controls.get_volume(1) == 80
    assert sdk.native_calls("set_busylight_state") == [(1, True)]


def test_state_is_read_from_the_sdk_every_time(service: HeadsetService, sdk: SimulatedSdk) -> None:
    service.controls.set_mute(1, True)
    sdk.devices[1].muted = False

    assert service.controls.get_mute(1) is False
    assert len(sdk.native_calls("get_mute")) == 1


@pytest.mark.parametrize(
    ("code", "error"),
    [
        (ReturnCode.NOT_SUPPORTED, NotSupportedError),
        (ReturnCode.FAILED, FailedError),
        (ReturnCode.INVALID_PARAMETER, InvalidParameterError),
    ],
)
def test_native_failures_are_raised(
    service: HeadsetService, sdk: SimulatedSdk, code: ReturnCode, error: type[Exception]
) -> None:
    sdk.return_codes["set_busylight_state"] = code

    with pytest.raises(error, match=f"set_busylight_state failed: {code.name}"):
        service.controls.set_busylight(1, True)
    assert len(sdk.native_calls("set_busylight_state")) == 1


def test_device_gone_from_sdk_reports_no_device(service: HeadsetService, sdk: SimulatedSdk) -> None:
    del sdk.devices[1]

    with pytest.raises(NoDeviceError):
        service.controls.get_volume(1)


def test_battery_query(service: HeadsetService, sdk: SimulatedSdk) -> None:
    sdk.devices[1].battery_level = 42
    sdk.devices[1].charging = True

    assert service.controls.get_battery_status(1) == BatteryStatus(
        level_percent=42, charging=True, low=False
    )


def test_out_of_range_battery_from_sdk_is_a_failure(
    service: HeadsetService, sdk: SimulatedSdk
) -> None:
    sdk.devices[1].battery_level = 150

    with pytest.raises(FailedError, match="invalid battery status"):
        service.controls.get_battery_status(1)


def test_identity_queries(service: HeadsetService, sdk: SimulatedSdk) -> None:
    controls = service.controls

    assert controls.get_serial_number(1) == "SN-1"
    assert controls.get_serial_number(2) is None
    assert controls.get_device_name(1) == "Jabra Evolve2 65"
    assert controls.is_dongle(2) is True
    assert controls.is_dongle(1) is False
    assert sdk.allocations == sdk.releases
    assert service.ledger.outstanding == 0


def test_repeated_serial_queries_release_every_string(
    service: HeadsetService, sdk: SimulatedSdk
) -> None:
    before = sdk.releases
    for _ in range(10):
        service.controls.get_serial_number(1)

    assert sdk.releases - before == 10
    assert sdk.outstanding == 0


def test_session_is_checked_before_parameters(sdk: SimulatedSdk) -> None:
    service = HeadsetService(sdk)

    with pytest.raises(NotInitializedError):
        service.controls.set_volume(1, 150)
    with pytest.raises(NotInitializedError):
        service.controls.set_mute(1, "on")  # type: ignore[arg-type]
    assert sdk.calls == []
