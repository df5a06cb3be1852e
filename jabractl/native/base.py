"""Native ABI of the Jabra SDK and the protocol the bridge consumes.

The structures and callback prototypes mirror ``JabraSDK.h`` field for field.
Nothing outside :mod:`jabractl.native` and :mod:`jabractl.core.ownership`
should touch these types directly.
"""

from __future__ import annotations

import ctypes
from collections.abc import Callable
from enum import Enum, IntEnum
from typing import Any, Protocol


class ReturnCode(IntEnum):
    SUCCESS = 0
    INVALID_PARAMETER = 1
    NO_DEVICE = 2
    NOT_SUPPORTED = 3
    FAILED = 4


class NativeBatteryStatus(ctypes.Structure):
    _fields_ = [
        ("levelInPercent", ctypes.c_int),
        ("charging", ctypes.c_int),
        ("batteryLow", ctypes.c_int),
    ]


class NativeDeviceInfo(ctypes.Structure):
    _fields_ = [
        ("deviceID", ctypes.c_ushort),
        ("deviceName", ctypes.c_char_p),
        ("serialNumber", ctypes.c_char_p),
        ("vendorID", ctypes.c_ushort),
        ("productID", ctypes.c_ushort),
        ("isDongle", ctypes.c_int),
    ]


DeviceInfoPointer = ctypes.POINTER(NativeDeviceInfo)

DeviceAttachedFunc = ctypes.CFUNCTYPE(None, ctypes.c_ushort)
DeviceDetachedFunc = ctypes.CFUNCTYPE(None, ctypes.c_ushort)
ButtonTranslatedFunc = ctypes.CFUNCTYPE(None, ctypes.c_ushort, ctypes.c_int, ctypes.c_int)
ButtonRawHidFunc = ctypes.CFUNCTYPE(
    None, ctypes.c_ushort, ctypes.c_ushort, ctypes.c_ushort, ctypes.c_int
)
BatteryStatusFunc = ctypes.CFUNCTYPE(
    None, ctypes.c_ushort, ctypes.c_int, ctypes.c_int, ctypes.c_int
)


class CallbackKind(Enum):
    DEVICE_ATTACHED = "device_attached"
    DEVICE_DETACHED = "device_detached"
    BUTTON_TRANSLATED = "button_translated"
    BUTTON_RAW_HID = "button_raw_hid"
    BATTERY_STATUS = "battery_status"


# (registration function, prototype) per callback kind.
CALLBACK_SIGNATURES: dict[CallbackKind, tuple[str, Any]] = {
    CallbackKind.DEVICE_ATTACHED: ("Jabra_RegisterDeviceAttachedCallback", DeviceAttachedFunc),
    CallbackKind.DEVICE_DETACHED: ("Jabra_RegisterDeviceDetachedCallback", DeviceDetachedFunc),
    CallbackKind.BUTTON_TRANSLATED: (
        "Jabra_RegisterButtonInDataTranslatedCallback",
        ButtonTranslatedFunc,
    ),
    CallbackKind.BUTTON_RAW_HID: ("Jabra_RegisterButtonInDataRawHidCallback", ButtonRawHidFunc),
    CallbackKind.BATTERY_STATUS: ("Jabra_RegisterBatteryStatusUpdateCallback", BatteryStatusFunc),
}


class NativeSdk(Protocol):
    """Subset of the Jabra SDK used by the bridge, one method per C function.

    Methods returning memory follow the C ownership rules: the device list
    must go back through :meth:`free_device_list`, the serial number address
    through :meth:`free_string`, and the device name is borrowed.
    """

    def initialize(self, app_id: str) -> int: ...

    def uninitialize(self) -> None: ...

    def is_initialized(self) -> bool: ...

    def register_callback(
        self, kind: CallbackKind, callback: Callable[..., None] | None
    ) -> None: ...

    def get_attached_devices(self) -> tuple[Any, int]:
        """Return ``(POINTER(NativeDeviceInfo), count)``; the pointer may be NULL."""

    def free_device_list(self, devices: Any) -> None: ...

    def get_device_name(self, device_id: int) -> bytes | None: ...

    def get_serial_number(self, device_id: int) -> int | None:
        """Return the address of an SDK-allocated string, or ``None``."""

    def free_string(self, address: int) -> None: ...

    def is_dongle(self, device_id: int) -> bool: ...

    def get_battery_status(self, device_id: int, status: NativeBatteryStatus) -> int: ...

    def set_mute(self, device_id: int, mute: int) -> int: ...

    def get_mute(self, device_id: int, mute: ctypes.c_int) -> int: ...

    def set_ringer(self, device_id: int, ringer: int) -> int: ...

    def set_hook_state(self, device_id: int, off_hook: int) -> int: ...

    def set_busylight_state(self, device_id: int, on: int) -> int: ...

    def set_hold(self, device_id: int, hold: int) -> int: ...

    def set_volume(self, device_id: int, volume: int) -> int: ...

    def get_volume(self, device_id: int, volume: ctypes.c_int) -> int: ...
