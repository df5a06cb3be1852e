"""Stable public API for building tooling on top of jabractl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable

from jabractl.core.config import LoadedConfig, load_config
from jabractl.core.errors import (
    AlreadyInitializedError,
    ConfigError,
    FailedError,
    InvalidParameterError,
    JabraError,
    LibraryLoadError,
    NativeError,
    NoDeviceError,
    NotInitializedError,
    NotSupportedError,
    OwnershipViolationError,
    UnknownDeviceError,
)
from jabractl.core.lifecycle import LifecycleState
from jabractl.core.model import (
    BatteryEvent,
    BatteryStatus,
    BridgeConfig,
    BridgeStats,
    ButtonEvent,
    ButtonId,
    DeviceAttached,
    DeviceDetached,
    DeviceEvent,
    DeviceHandle,
    DeviceInfo,
    EventKind,
    RawHidEvent,
)
from jabractl.core.service import HeadsetService
from jabractl.core.stream import Subscription
from jabractl.native.base import NativeSdk
from jabractl.native.simulated import SimulatedDevice, SimulatedSdk

__all__ = [
    "JabraError",
    "NativeError",
    "InvalidParameterError",
    "NoDeviceError",
    "NotSupportedError",
    "FailedError",
    "NotInitializedError",
    "AlreadyInitializedError",
    "UnknownDeviceError",
    "OwnershipViolationError",
    "ConfigError",
    "LibraryLoadError",
    "BatteryEvent",
    "BatteryStatus",
    "BridgeConfig",
    "BridgeStats",
    "ButtonEvent",
    "ButtonId",
    "DeviceAttached",
    "DeviceDetached",
    "DeviceEvent",
    "DeviceHandle",
    "DeviceInfo",
    "EventKind",
    "RawHidEvent",
    "LifecycleState",
    "Subscription",
    "SimulatedDevice",
    "SimulatedSdk",
    "Client",
]


class Client:
    """Public client for Jabra headsets.

    A `Client` wraps SDK lifecycle, device tracking, the event stream and
    device controls behind a stable API intended for third-party tools
    (softphones, presence agents, scripts). Use it as a context manager to
    initialize on entry and tear everything down on exit.
    """

    def __init__(
        self,
        sdk: NativeSdk | None = None,
        *,
        config: BridgeConfig | None = None,
    ) -> None:
        warnings: tuple[str, ...] = ()
        if config is None and sdk is None:
            loaded: LoadedConfig = load_config()
            config, warnings = loaded.config, loaded.warnings
        self._service = HeadsetService(sdk, config=config, warnings=warnings)

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._service.warnings

    @property
    def state(self) -> LifecycleState:
        return self._service.state

    def initialize(self, app_id: str | None = None) -> None:
        self._service.initialize(app_id)

    def uninitialize(self) -> None:
        self._service.uninitialize()

    def close(self) -> None:
        self._service.close()

    def __enter__(self) -> Client:
        self.initialize()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def list_devices(self) -> list[DeviceInfo]:
        return self._service.list_devices()

    def get_device(self, device: DeviceHandle | int) -> DeviceInfo:
        return self._service.get_device(device)

    def last_battery(self, device: DeviceHandle | int) -> BatteryStatus | None:
        return self._service.last_battery(device)

    def subscribe(self, *event_types: type[DeviceEvent]) -> Subscription:
        return self._service.stream.subscribe(*event_types)

    def add_listener(self, listener: Callable[[DeviceEvent], None]) -> Callable[[], None]:
        return self._service.stream.add_listener(listener)

    def flush(self, timeout: float | None = None) -> bool:
        return self._service.flush(timeout)

    def stats(self) -> BridgeStats:
        return self._service.stats()

    def set_mute(self, device: DeviceHandle | int, muted: bool) -> None:
        self._service.controls.set_mute(device, muted)

    def get_mute(self, device: DeviceHandle | int) -> bool:
        return self._service.controls.get_mute(device)

    def set_ringer(self, device: DeviceHandle | int, ringing: bool) -> None:
        self._service.controls.set_ringer(device, ringing)

    def set_hook_state(self, device: DeviceHandle | int, off_hook: bool) -> None:
        self._service.controls.set_hook_state(device, off_hook)

    def set_busylight(self, device: DeviceHandle | int, on: bool) -> None:
        self._service.controls.set_busylight(device, on)

    def set_hold(self, device: DeviceHandle | int, on_hold: bool) -> None:
        self._service.controls.set_hold(device, on_hold)

    def set_volume(self, device: DeviceHandle | int, level: int) -> None:
        self._service.controls.set_volume(device, level)

    def get_volume(self, device: DeviceHandle | int) -> int:
        return self._service.controls.get_volume(device)

    def get_battery_status(self, device: DeviceHandle | int) -> BatteryStatus:
        return self._service.controls.get_battery_status(device)

    def is_dongle(self, device: DeviceHandle | int) -> bool:
        return self._service.controls.is_dongle(device)

    def get_serial_number(self, device: DeviceHandle | int) -> str | None:
        return self._service.controls.get_serial_number(device)

    def get_device_name(self, device: DeviceHandle | int) -> str | None:
        return self._service.controls.get_device_name(device)
