"""In-process stand-in for the Jabra SDK.

Used for simulation mode when no headset or native library is available, and
by the test suite. Buffers handed out are real ctypes allocations so the
ownership boundary exercises the same code paths as with ``libjabra``; every
allocation is tracked and freeing an unknown address raises ``RuntimeError``
where the native library would corrupt memory.
"""

from __future__ import annotations

import ctypes
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from jabractl.core.model import JABRA_VENDOR_ID
from jabractl.native.base import (
    CallbackKind,
    DeviceInfoPointer,
    NativeBatteryStatus,
    NativeDeviceInfo,
    ReturnCode,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class SimulatedDevice:
    device_id: int
    name: str
    serial_number: str | None = None
    vendor_id: int = JABRA_VENDOR_ID
    product_id: int = 0x0001
    is_dongle: bool = False
    battery_level: int = 100
    charging: bool = False
    battery_low: bool = False
    muted: bool = False
    volume: int = 50
    ringer: bool = False
    off_hook: bool = False
    on_hold: bool = False
    busylight: bool = False


class SimulatedSdk:
    def __init__(
        self,
        devices: list[SimulatedDevice] | None = None,
        *,
        drain_interval_s: float | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self.devices: dict[int, SimulatedDevice] = {d.device_id: d for d in devices or []}
        self.callbacks: dict[CallbackKind, Callable[..., None] | None] = {}
        self.registrations: list[tuple[CallbackKind, bool]] = []
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.return_codes: dict[str, ReturnCode] = {}
        self.allocations = 0
        self.releases = 0
        self._live: dict[int, Any] = {}
        self._initialized = False
        self._drain_interval_s = drain_interval_s
        self._drain_stop = threading.Event()
        self._drain_thread: threading.Thread | None = None

    @property
    def outstanding(self) -> int:
        with self._lock:
            return len(self._live)

    def _record(self, name: str, *args: Any) -> ReturnCode:
        with self._lock:
            self.calls.append((name, args))
            return self.return_codes.get(name, ReturnCode.SUCCESS)

    def native_calls(self, name: str) -> list[tuple[Any, ...]]:
        with self._lock:
            return [args for call, args in self.calls if call == name]

    # -- lifecycle -----------------------------------------------------------

    def initialize(self, app_id: str) -> int:
        code = self._record("initialize", app_id)
        if code != ReturnCode.SUCCESS:
            return code
        if not app_id:
            return ReturnCode.INVALID_PARAMETER
        with self._lock:
            self._initialized = True
        if self._drain_interval_s:
            self._start_drain(self._drain_interval_s)
        return ReturnCode.SUCCESS

    def uninitialize(self) -> None:
        self._record("uninitialize")
        self._stop_drain()
        with self._lock:
            self._initialized = False
            self.callbacks.clear()

    def is_initialized(self) -> bool:
        with self._lock:
            return self._initialized

    def register_callback(
        self, kind: CallbackKind, callback: Callable[..., None] | None
    ) -> None:
        self._record("register_callback", kind)
        with self._lock:
            self.callbacks[kind] = callback
            self.registrations.append((kind, callback is not None))

    # -- memory --------------------------------------------------------------

    def _allocate(self, address: int, keepalive: Any) -> None:
        with self._lock:
            self._live[address] = keepalive
            self.allocations += 1

    def _free(self, address: int | None, what: str) -> None:
        with self._lock:
            if address is None or self._live.pop(address, None) is None:
                raise RuntimeError(f"free of unowned {what} at {address!r}")
            self.releases += 1

    def get_attached_devices(self) -> tuple[Any, int]:
        self._record("get_attached_devices")
        with self._lock:
            attached = list(self.devices.values())
        if not attached:
            return DeviceInfoPointer(), 0

        array = (NativeDeviceInfo * len(attached))()
        buffers = []
        for entry, device in zip(array, attached):
            name = ctypes.create_string_buffer(device.name.encode("utf-8"))
            buffers.append(name)
            entry.deviceID = device.device_id
            entry.deviceName = ctypes.cast(name, ctypes.c_char_p)
            if device.serial_number is not None:
                serial = ctypes.create_string_buffer(device.serial_number.encode("utf-8"))
                buffers.append(serial)
                entry.serialNumber = ctypes.cast(serial, ctypes.c_char_p)
            entry.vendorID = device.vendor_id
            entry.productID = device.product_id
            entry.isDongle = int(device.is_dongle)
        self._allocate(ctypes.addressof(array), (array, buffers))
        return ctypes.cast(array, DeviceInfoPointer), len(attached)

    def free_device_list(self, devices: Any) -> None:
        self._record("free_device_list")
        self._free(ctypes.cast(devices, ctypes.c_void_p).value, "device list")

    def get_device_name(self, device_id: int) -> bytes | None:
        self._record("get_device_name", device_id)
        device = self.devices.get(device_id)
        return device.name.encode("utf-8") if device else None

    def get_serial_number(self, device_id: int) -> int | None:
        self._record("get_serial_number", device_id)
        device = self.devices.get(device_id)
        if device is None or device.serial_number is None:
            return None
        buffer = ctypes.create_string_buffer(device.serial_number.encode("utf-8"))
        address = ctypes.addressof(buffer)
        self._allocate(address, buffer)
        return address

    def free_string(self, address: int) -> None:
        self._record("free_string", address)
        self._free(address, "string")

    def is_dongle(self, device_id: int) -> bool:
        self._record("is_dongle", device_id)
        device = self.devices.get(device_id)
        return bool(device and device.is_dongle)

    # -- controls ------------------------------------------------------------

    def _control(self, name: str, device_id: int, attribute: str, value: Any) -> int:
        code = self._record(name, device_id, value)
        if code != ReturnCode.SUCCESS:
            return code
        with self._lock:
            device = self.devices.get(device_id)
            if device is None:
                return ReturnCode.NO_DEVICE
            setattr(device, attribute, value)
        return ReturnCode.SUCCESS

    def _query(self, name: str, device_id: int) -> tuple[int, SimulatedDevice | None]:
        code = self._record(name, device_id)
        if code != ReturnCode.SUCCESS:
            return code, None
        device = self.devices.get(device_id)
        if device is None:
            return ReturnCode.NO_DEVICE, None
        return ReturnCode.SUCCESS, device

    def get_battery_status(self, device_id: int, status: NativeBatteryStatus) -> int:
        code, device = self._query("get_battery_status", device_id)
        if device is not None:
            status.levelInPercent = device.battery_level
            status.charging = int(device.charging)
            status.batteryLow = int(device.battery_low)
        return code

    def set_mute(self, device_id: int, mute: int) -> int:
        return self._control("set_mute", device_id, "muted", bool(mute))

    def get_mute(self, device_id: int, mute: ctypes.c_int) -> int:
        code, device = self._query("get_mute", device_id)
        if device is not None:
            mute.value = int(device.muted)
        return code

    def set_ringer(self, device_id: int, ringer: int) -> int:
        return self._control("set_ringer", device_id, "ringer", bool(ringer))

    def set_hook_state(self, device_id: int, off_hook: int) -> int:
        return self._control("set_hook_state", device_id, "off_hook", bool(off_hook))

    def set_busylight_state(self, device_id: int, on: int) -> int:
        return self._control("set_busylight_state", device_id, "busylight", bool(on))

    def set_hold(self, device_id: int, hold: int) -> int:
        return self._control("set_hold", device_id, "on_hold", bool(hold))

    def set_volume(self, device_id: int, volume: int) -> int:
        return self._control("set_volume", device_id, "volume", int(volume))

    def get_volume(self, device_id: int, volume: ctypes.c_int) -> int:
        code, device = self._query("get_volume", device_id)
        if device is not None:
            volume.value = device.volume
        return code

    # -- device activity -----------------------------------------------------

    def _fire(self, kind: CallbackKind, *args: int) -> None:
        with self._lock:
            callback = self.callbacks.get(kind)
        if callback is not None:
            callback(*args)

    def plug(self, device: SimulatedDevice) -> None:
        with self._lock:
            self.devices[device.device_id] = device
        self._fire(CallbackKind.DEVICE_ATTACHED, device.device_id)

    def unplug(self, device_id: int) -> None:
        with self._lock:
            self.devices.pop(device_id, None)
        self._fire(CallbackKind.DEVICE_DETACHED, device_id)

    def press(self, device_id: int, button: int, pressed: bool = True) -> None:
        self._fire(CallbackKind.BUTTON_TRANSLATED, device_id, int(button), int(pressed))

    def raw_hid(self, device_id: int, usage_page: int, usage: int, value: int) -> None:
        self._fire(CallbackKind.BUTTON_RAW_HID, device_id, usage_page, usage, value)

    def report_battery(
        self, device_id: int, level: int, charging: bool = False, low: bool = False
    ) -> None:
        with self._lock:
            device = self.devices.get(device_id)
            if device is not None and 0 <= level <= 100:
                device.battery_level = level
                device.charging = charging
                device.battery_low = low
        self._fire(CallbackKind.BATTERY_STATUS, device_id, level, int(charging), int(low))

    def _start_drain(self, interval_s: float) -> None:
        self._drain_stop.clear()
        self._drain_thread = threading.Thread(
            target=self._drain_loop,
            args=(interval_s,),
            name="jabractl-simulated-battery",
            daemon=True,
        )
        self._drain_thread.start()

    def _stop_drain(self) -> None:
        self._drain_stop.set()
        if self._drain_thread is not None:
            self._drain_thread.join(timeout=1.0)
            self._drain_thread = None

    def _drain_loop(self, interval_s: float) -> None:
        while not self._drain_stop.wait(interval_s):
            with self._lock:
                devices = list(self.devices.values())
            for device in devices:
                level = device.battery_level - 1 if device.battery_level > 0 else 100
                self.report_battery(device.device_id, level, low=level <= 10)


def demo_devices() -> list[SimulatedDevice]:
    return [
        SimulatedDevice(
            device_id=1,
            name="Jabra Engage 55 Mono SE",
            serial_number="SIM-123456",
            product_id=0x0A5C,
        ),
        SimulatedDevice(
            device_id=2,
            name="Jabra Link 400",
            serial_number="SIM-654321",
            product_id=0x0A5E,
            is_dongle=True,
        ),
    ]
