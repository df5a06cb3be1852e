"""Native Jabra SDK binding implemented with ctypes."""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import threading
from collections.abc import Callable
from typing import Any

from jabractl.core.errors import LibraryLoadError
from jabractl.native.base import (
    CALLBACK_SIGNATURES,
    CallbackKind,
    DeviceInfoPointer,
    NativeBatteryStatus,
)

LOGGER = logging.getLogger(__name__)

_LIBRARY_NAMES = ("jabra", "libjabra")
_DEVICE_ID = ctypes.c_ushort
_RETURN_CODE = ctypes.c_int

# name -> (argtypes, restype)
_SIGNATURES: dict[str, tuple[tuple[Any, ...], Any]] = {
    "Jabra_Initialize": ((ctypes.c_char_p,), _RETURN_CODE),
    "Jabra_Uninitialize": ((), None),
    "Jabra_IsInitialized": ((), ctypes.c_int),
    "Jabra_GetAttachedDevices": ((ctypes.POINTER(ctypes.c_int),), DeviceInfoPointer),
    "Jabra_FreeDeviceList": ((DeviceInfoPointer,), None),
    # Borrowed: c_char_p copies the bytes and the SDK keeps the buffer.
    "Jabra_GetDeviceName": ((_DEVICE_ID,), ctypes.c_char_p),
    # Owned: keep the raw address so it can be handed back to Jabra_FreeString.
    "Jabra_GetSerialNumber": ((_DEVICE_ID,), ctypes.c_void_p),
    "Jabra_FreeString": ((ctypes.c_void_p,), None),
    "Jabra_IsDongle": ((_DEVICE_ID,), ctypes.c_int),
    "Jabra_GetBatteryStatus": (
        (_DEVICE_ID, ctypes.POINTER(NativeBatteryStatus)),
        _RETURN_CODE,
    ),
    "Jabra_SetMute": ((_DEVICE_ID, ctypes.c_int), _RETURN_CODE),
    "Jabra_GetMute": ((_DEVICE_ID, ctypes.POINTER(ctypes.c_int)), _RETURN_CODE),
    "Jabra_SetRinger": ((_DEVICE_ID, ctypes.c_int), _RETURN_CODE),
    "Jabra_SetHookState": ((_DEVICE_ID, ctypes.c_int), _RETURN_CODE),
    "Jabra_SetBusylightState": ((_DEVICE_ID, ctypes.c_int), _RETURN_CODE),
    "Jabra_SetHold": ((_DEVICE_ID, ctypes.c_int), _RETURN_CODE),
    "Jabra_SetVolume": ((_DEVICE_ID, ctypes.c_int), _RETURN_CODE),
    "Jabra_GetVolume": ((_DEVICE_ID, ctypes.POINTER(ctypes.c_int)), _RETURN_CODE),
}


def resolve_library_path(library_path: str | None = None) -> str:
    candidate = library_path or os.environ.get("JABRACTL_LIBRARY")
    if candidate:
        return candidate
    for name in _LIBRARY_NAMES:
        found = ctypes.util.find_library(name)
        if found:
            return found
    raise LibraryLoadError(
        "Could not locate the Jabra SDK library. Set 'library_path' in the config "
        "or JABRACTL_LIBRARY, or use simulation mode."
    )


class CtypesSdk:
    def __init__(self, library_path: str | None = None) -> None:
        path = resolve_library_path(library_path)
        try:
            self._lib = ctypes.CDLL(path)
        except OSError as exc:
            raise LibraryLoadError(f"Could not load Jabra SDK library {path}: {exc}") from exc

        for name, (argtypes, restype) in _SIGNATURES.items():
            try:
                function = getattr(self._lib, name)
            except AttributeError as exc:
                raise LibraryLoadError(f"{path} does not export {name}") from exc
            function.argtypes = list(argtypes)
            function.restype = restype

        for kind, (name, prototype) in CALLBACK_SIGNATURES.items():
            try:
                function = getattr(self._lib, name)
            except AttributeError as exc:
                raise LibraryLoadError(f"{path} does not export {name}") from exc
            function.argtypes = [prototype]
            function.restype = None

        self.library_path = path
        self._callbacks_lock = threading.Lock()
        # Every thunk ever handed to the SDK stays referenced: the SDK may still
        # call a replaced pointer, and a collected thunk would crash the process.
        self._thunks: list[Any] = []
        LOGGER.debug("Loaded Jabra SDK from %s", path)

    def initialize(self, app_id: str) -> int:
        return int(self._lib.Jabra_Initialize(app_id.encode("utf-8")))

    def uninitialize(self) -> None:
        self._lib.Jabra_Uninitialize()

    def is_initialized(self) -> bool:
        return bool(self._lib.Jabra_IsInitialized())

    def register_callback(
        self, kind: CallbackKind, callback: Callable[..., None] | None
    ) -> None:
        name, prototype = CALLBACK_SIGNATURES[kind]
        register = getattr(self._lib, name)
        if callback is None:
            register(None)
            return
        thunk = prototype(callback)
        with self._callbacks_lock:
            self._thunks.append(thunk)
        register(thunk)

    def get_attached_devices(self) -> tuple[Any, int]:
        count = ctypes.c_int(0)
        devices = self._lib.Jabra_GetAttachedDevices(ctypes.byref(count))
        return devices, count.value

    def free_device_list(self, devices: Any) -> None:
        self._lib.Jabra_FreeDeviceList(devices)

    def get_device_name(self, device_id: int) -> bytes | None:
        return self._lib.Jabra_GetDeviceName(device_id)

    def get_serial_number(self, device_id: int) -> int | None:
        return self._lib.Jabra_GetSerialNumber(device_id)

    def free_string(self, address: int) -> None:
        self._lib.Jabra_FreeString(address)

    def is_dongle(self, device_id: int) -> bool:
        return bool(self._lib.Jabra_IsDongle(device_id))

    def get_battery_status(self, device_id: int, status: NativeBatteryStatus) -> int:
        return int(self._lib.Jabra_GetBatteryStatus(device_id, ctypes.byref(status)))

    def set_mute(self, device_id: int, mute: int) -> int:
        return int(self._lib.Jabra_SetMute(device_id, mute))

    def get_mute(self, device_id: int, mute: ctypes.c_int) -> int:
        return int(self._lib.Jabra_GetMute(device_id, ctypes.byref(mute)))

    def set_ringer(self, device_id: int, ringer: int) -> int:
        return int(self._lib.Jabra_SetRinger(device_id, ringer))

    def set_hook_state(self, device_id: int, off_hook: int) -> int:
        return int(self._lib.Jabra_SetHookState(device_id, off_hook))

    def set_busylight_state(self, device_id: int, on: int) -> int:
        return int(self._lib.Jabra_SetBusylightState(device_id, on))

    def set_hold(self, device_id: int, hold: int) -> int:
        return int(self._lib.Jabra_SetHold(device_id, hold))

    def set_volume(self, device_id: int, volume: int) -> int:
        return int(self._lib.Jabra_SetVolume(device_id, volume))

    def get_volume(self, device_id: int, volume: ctypes.c_int) -> int:
        return int(self._lib.Jabra_GetVolume(device_id, ctypes.byref(volume)))
