"""Control facade: validated device commands on top of the native SDK."""

from __future__ import annotations

import ctypes
import logging
from collections.abc import Callable
from functools import partial

from jabractl.core.errors import FailedError, InvalidParameterError, raise_for_return_code
from jabractl.core.lifecycle import LifecycleManager
from jabractl.core.model import BatteryStatus, DeviceHandle
from jabractl.core.ownership import OwnershipBoundary
from jabractl.core.registry import DeviceRegistry
from jabractl.native.base import NativeBatteryStatus, NativeSdk

LOGGER = logging.getLogger(__name__)

MIN_VOLUME = 0
MAX_VOLUME = 100


def as_handle(device: DeviceHandle | int) -> DeviceHandle:
    if isinstance(device, DeviceHandle):
        return device
    try:
        return DeviceHandle(device)
    except ValueError as exc:
        raise InvalidParameterError(str(exc)) from exc


def _flag(value: object, name: str) -> int:
    if not isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be True or False, got {value!r}")
    return int(value)


def _volume(level: object) -> int:
    if isinstance(level, bool) or not isinstance(level, int):
        raise InvalidParameterError(f"volume must be an integer, got {level!r}")
    if not MIN_VOLUME <= level <= MAX_VOLUME:
        raise InvalidParameterError(f"volume {level} is outside {MIN_VOLUME}..{MAX_VOLUME}")
    return level


class ControlFacade:
    """Device commands and queries.

    Every operation runs inside the lifecycle guard, validates its
    parameters and the device handle locally, and only then calls the SDK.
    Native failures are raised to the caller as-is; nothing is retried.
    Control state is never cached.
    """

    def __init__(
        self,
        sdk: NativeSdk,
        lifecycle: LifecycleManager,
        registry: DeviceRegistry,
        boundary: OwnershipBoundary,
    ) -> None:
        self._sdk = sdk
        self._lifecycle = lifecycle
        self._registry = registry
        self._boundary = boundary

    def _device_id(self, device: DeviceHandle | int) -> int:
        handle = as_handle(device)
        self._registry.require(handle)
        return handle.device_id

    def _set(
        self,
        device: DeviceHandle | int,
        value: object,
        check: Callable[[object], int],
        operation: str,
    ) -> None:
        with self._lifecycle.guard():
            native_value = check(value)
            device_id = self._device_id(device)
            LOGGER.debug("%s(%s, %s)", operation, device_id, native_value)
            setter = getattr(self._sdk, operation)
            raise_for_return_code(setter(device_id, native_value), operation)

    def set_mute(self, device: DeviceHandle | int, muted: bool) -> None:
        self._set(device, muted, partial(_flag, name="muted"), "set_mute")

    def get_mute(self, device: DeviceHandle | int) -> bool:
        with self._lifecycle.guard():
            device_id = self._device_id(device)
            mute = ctypes.c_int(0)
            raise_for_return_code(self._sdk.get_mute(device_id, mute), "get_mute")
            return bool(mute.value)

    def set_ringer(self, device: DeviceHandle | int, ringing: bool) -> None:
        self._set(device, ringing, partial(_flag, name="ringing"), "set_ringer")

    def set_hook_state(self, device: DeviceHandle | int, off_hook: bool) -> None:
        self._set(device, off_hook, partial(_flag, name="off_hook"), "set_hook_state")

    def set_busylight(self, device: DeviceHandle | int, on: bool) -> None:
        self._set(device, on, partial(_flag, name="on"), "set_busylight_state")

    def set_hold(self, device: DeviceHandle | int, on_hold: bool) -> None:
        self._set(device, on_hold, partial(_flag, name="on_hold"), "set_hold")

    def set_volume(self, device: DeviceHandle | int, level: int) -> None:
        self._set(device, level, _volume, "set_volume")

    def get_volume(self, device: DeviceHandle | int) -> int:
        with self._lifecycle.guard():
            device_id = self._device_id(device)
            volume = ctypes.c_int(0)
            raise_for_return_code(self._sdk.get_volume(device_id, volume), "get_volume")
            return volume.value

    def get_battery_status(self, device: DeviceHandle | int) -> BatteryStatus:
        with self._lifecycle.guard():
            device_id = self._device_id(device)
            status = NativeBatteryStatus()
            raise_for_return_code(
                self._sdk.get_battery_status(device_id, status), "get_battery_status"
            )
            try:
                return BatteryStatus(
                    level_percent=status.levelInPercent,
                    charging=bool(status.charging),
                    low=bool(status.batteryLow),
                )
            except ValueError as exc:
                raise FailedError(f"Device {device_id} reported an invalid battery status: {exc}") from exc

    def is_dongle(self, device: DeviceHandle | int) -> bool:
        with self._lifecycle.guard():
            return self._sdk.is_dongle(self._device_id(device))

    def get_serial_number(self, device: DeviceHandle | int) -> str | None:
        with self._lifecycle.guard():
            return self._boundary.serial_number(self._device_id(device))

    def get_device_name(self, device: DeviceHandle | int) -> str | None:
        with self._lifecycle.guard():
            return self._boundary.device_name(self._device_id(device))
