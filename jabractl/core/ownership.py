"""Ownership boundary for memory allocated by the native SDK.

Every native buffer is acquired inside a context manager, copied into plain
Python values and released exactly once on every exit path. Callers above
this module only ever see :class:`~jabractl.core.model.DeviceInfo` and ``str``.
"""

from __future__ import annotations

import ctypes
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from jabractl.core.errors import OwnershipViolationError
from jabractl.core.model import DeviceHandle, DeviceInfo
from jabractl.native.base import NativeSdk

LOGGER = logging.getLogger(__name__)


class OwnershipLedger:
    """Counts native acquisitions and releases and rejects double frees."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._live: dict[int, str] = {}
        self.acquired = 0
        self.released = 0

    @property
    def outstanding(self) -> int:
        with self._lock:
            return len(self._live)

    def acquire(self, address: int, kind: str) -> None:
        with self._lock:
            if address in self._live:
                raise OwnershipViolationError(
                    f"SDK returned live {self._live[address]} at 0x{address:x} again as {kind}"
                )
            self._live[address] = kind
            self.acquired += 1

    def release(self, address: int, kind: str) -> None:
        with self._lock:
            held = self._live.pop(address, None)
            if held is None:
                raise OwnershipViolationError(f"{kind} at 0x{address:x} is not owned (double free?)")
            if held != kind:
                raise OwnershipViolationError(
                    f"0x{address:x} was acquired as {held} but released as {kind}"
                )
            self.released += 1


def _decode(raw: bytes | None) -> str | None:
    if raw is None:
        return None
    return raw.decode("utf-8", errors="replace")


def _pointer_address(pointer: Any) -> int | None:
    if not pointer:
        return None
    return ctypes.cast(pointer, ctypes.c_void_p).value


class OwnershipBoundary:
    def __init__(self, sdk: NativeSdk, ledger: OwnershipLedger | None = None) -> None:
        self._sdk = sdk
        self.ledger = ledger or OwnershipLedger()

    @contextmanager
    def _owned(self, address: int, kind: str, release: Callable[[], None]) -> Iterator[None]:
        self.ledger.acquire(address, kind)
        try:
            yield
        finally:
            try:
                release()
            except Exception as exc:
                LOGGER.critical("Releasing native %s at 0x%x failed: %s", kind, address, exc)
                raise OwnershipViolationError(
                    f"Releasing native {kind} at 0x{address:x} failed: {exc}"
                ) from exc
            self.ledger.release(address, kind)

    def attached_devices(self) -> list[DeviceInfo]:
        devices, count = self._sdk.get_attached_devices()
        address = _pointer_address(devices)
        if address is None:
            return []

        with self._owned(address, "device list", lambda: self._sdk.free_device_list(devices)):
            infos: list[DeviceInfo] = []
            for index in range(max(count, 0)):
                entry = devices[index]
                handle = DeviceHandle(int(entry.deviceID))
                infos.append(
                    DeviceInfo(
                        handle=handle,
                        name=_decode(entry.deviceName) or "",
                        serial_number=_decode(entry.serialNumber),
                        vendor_id=int(entry.vendorID),
                        product_id=int(entry.productID),
                        is_dongle=bool(entry.isDongle),
                    )
                )

        # Serial lookups allocate again, so they run after the list is freed.
        return [
            info
            if info.serial_number is not None
            else replace(info, serial_number=self.serial_number(info.handle.device_id))
            for info in infos
        ]

    def serial_number(self, device_id: int) -> str | None:
        address = self._sdk.get_serial_number(device_id)
        if not address:
            return None
        with self._owned(address, "string", lambda: self._sdk.free_string(address)):
            return _decode(ctypes.string_at(address))

    def device_name(self, device_id: int) -> str | None:
        # Borrowed from the SDK: copied, never freed.
        return _decode(self._sdk.get_device_name(device_id))
